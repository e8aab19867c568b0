"""Availability tools: query, create, update and delete availability slots.

Each tool is bound to an ``AvailabilityApi`` instance when the catalog is
built at startup (see ``build_catalog``).
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any, Literal
from zoneinfo import ZoneInfo

from pydantic import Field

from availchat.config import settings
from availchat.tools.base import BaseTool, ToolName, ToolParams, ToolResult
from availchat.tools.registry import ToolRegistry

if TYPE_CHECKING:
    from availchat.chat.context import ConversationContext
    from availchat.integrations.availability_api import AvailabilityApi

logger = logging.getLogger(__name__)

_CATEGORY = "availability"

_DATE = r"^\d{4}-\d{2}-\d{2}$"
_TIME = r"^([01]\d|2[0-3]):[0-5]\d$"


# -- Slot helpers ----------------------------------------------------------------


def _tz() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def _now(context: ConversationContext | None) -> datetime:
    if context is not None:
        return context.reference_time()
    return datetime.now(_tz())


def _provider_id(context: ConversationContext | None) -> str:
    if context is not None and context.user_id:
        return context.user_id
    return settings.user_id


def _to_iso(day: str, hhmm: str) -> str:
    """Combine a date and a HH:MM time into an ISO timestamp in the configured zone."""
    return datetime.combine(date.fromisoformat(day), time.fromisoformat(hhmm), tzinfo=_tz()).isoformat()


def _minutes_between(start: str, end: str) -> int:
    s = datetime.combine(date.min, time.fromisoformat(start))
    e = datetime.combine(date.min, time.fromisoformat(end))
    if e <= s:
        e += timedelta(days=1)
    return int((e - s).total_seconds() // 60)


def _add_minutes(hhmm: str, minutes: int) -> str:
    start = datetime.combine(date.min, time.fromisoformat(hhmm))
    return (start + timedelta(minutes=minutes)).strftime("%H:%M")


def _parse_ts(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_tz())
    return parsed.astimezone(_tz())


def slot_key(slot: dict[str, Any]) -> str:
    return str(slot.get("id") or slot.get("_id") or "")


def slot_start(slot: dict[str, Any]) -> datetime | None:
    return _parse_ts(slot.get("startTime") or slot.get("start_time"))


def slot_end(slot: dict[str, Any]) -> datetime | None:
    return _parse_ts(slot.get("endTime") or slot.get("end_time"))


def slot_is_booked(slot: dict[str, Any]) -> bool:
    return bool(slot.get("isBooked", slot.get("is_booked", False)))


def _is_expired(slot: dict[str, Any], now: datetime) -> bool:
    end = slot_end(slot) or slot_start(slot)
    return end is not None and end < now


def _matches_time(slot: dict[str, Any], hhmm: str | None) -> bool:
    if not hhmm:
        return True
    start = slot_start(slot)
    return start is not None and start.strftime("%H:%M") == hhmm


def _sort_by_start(slots: list[dict[str, Any]]) -> list[dict[str, Any]]:
    far_future = datetime.max.replace(tzinfo=_tz())
    return sorted(slots, key=lambda s: slot_start(s) or far_future)


def _brief(slot: dict[str, Any]) -> dict[str, Any]:
    start = slot_start(slot)
    return {
        "id": slot_key(slot),
        "start_time": start.isoformat() if start else None,
        "is_booked": slot_is_booked(slot),
    }


def _count_created(body: Any) -> int:
    if isinstance(body, list):
        return len(body)
    if isinstance(body, dict):
        for key in ("slots", "created", "data"):
            if isinstance(body.get(key), list):
                return len(body[key])
        if isinstance(body.get("count"), int):
            return body["count"]
    return 0


class _AvailabilityTool(BaseTool):
    """Shared plumbing for tools backed by the availability API."""

    category = _CATEGORY

    def __init__(self, api: AvailabilityApi) -> None:
        self._api = api

    async def _slots_on(
        self,
        context: ConversationContext | None,
        start_date: str | None,
        end_date: str | None = None,
    ) -> list[dict[str, Any]]:
        slots = await self._api.list_slots(
            _provider_id(context),
            start_date=start_date,
            end_date=end_date or start_date,
        )
        return _sort_by_start(slots)


# -- get_availability_data ---------------------------------------------------------


class GetAvailabilityDataParams(ToolParams):
    start_date: str | None = Field(default=None, pattern=_DATE, description="Start date (YYYY-MM-DD)")
    end_date: str | None = Field(default=None, pattern=_DATE, description="End date (YYYY-MM-DD)")
    status: Literal["available", "booked", "expired", "all"] | None = Field(
        default=None, description="Filter by availability status"
    )
    include_analysis: bool = Field(default=False, description="Ask the backend for analysis")
    include_metrics: bool = Field(default=False, description="Ask the backend for utilization metrics")
    include_optimization: bool = Field(
        default=False, description="Ask the backend for optimization hints"
    )


class GetAvailabilityDataTool(_AvailabilityTool):
    name = ToolName.GET_AVAILABILITY_DATA
    description = "Retrieve availability slots with optional date range and status filters"
    params_model = GetAvailabilityDataParams

    async def execute(
        self,
        start_date: str | None = None,
        end_date: str | None = None,
        status: str | None = None,
        include_analysis: bool = False,
        include_metrics: bool = False,
        include_optimization: bool = False,
        context: ConversationContext | None = None,
    ) -> ToolResult:
        slots = await self._api.list_slots(
            _provider_id(context),
            start_date=start_date,
            end_date=end_date or start_date,
            includeAnalysis=include_analysis or None,
            includeMetrics=include_metrics or None,
            includeOptimization=include_optimization or None,
        )
        now = _now(context)
        if status == "available":
            slots = [s for s in slots if not slot_is_booked(s) and not _is_expired(s, now)]
        elif status == "booked":
            slots = [s for s in slots if slot_is_booked(s)]
        elif status == "expired":
            slots = [s for s in slots if _is_expired(s, now)]
        slots = _sort_by_start(slots)

        booked = sum(1 for s in slots if slot_is_booked(s))
        summary = {"total": len(slots), "available": len(slots) - booked, "booked": booked}
        return ToolResult(
            data={"slots": slots, "summary": summary},
            message=f"Found {len(slots)} availability slots",
        )


# -- create_availability_slot ------------------------------------------------------


class CreateAvailabilitySlotParams(ToolParams):
    date: str = Field(pattern=_DATE, description="Date for the availability slot (YYYY-MM-DD)")
    start_time: str = Field(pattern=_TIME, description="Start time in HH:MM format (24-hour)")
    end_time: str = Field(pattern=_TIME, description="End time in HH:MM format (24-hour)")
    duration: int | None = Field(
        default=None, ge=1, description="Duration in minutes (calculated from start/end if omitted)"
    )
    type: Literal["one_off", "recurring"] = Field(default="one_off", description="Type of slot")
    day_of_week: int | None = Field(
        default=None, ge=0, le=6, description="Day of week for recurring slots (0=Sunday)"
    )
    auto_confirm: bool = Field(default=False, description="Create without asking for confirmation")


class CreateAvailabilitySlotTool(_AvailabilityTool):
    name = ToolName.CREATE_AVAILABILITY_SLOT
    description = "Create a single availability slot for a specific date and time"
    params_model = CreateAvailabilitySlotParams

    async def execute(
        self,
        date: str,
        start_time: str,
        end_time: str,
        duration: int | None = None,
        type: str = "one_off",  # noqa: A002
        day_of_week: int | None = None,
        auto_confirm: bool = False,
        context: ConversationContext | None = None,
    ) -> ToolResult:
        minutes = _minutes_between(start_time, end_time)
        end_day = date if end_time > start_time else (
            (datetime.fromisoformat(date) + timedelta(days=1)).date().isoformat()
        )
        payload = {
            "providerId": _provider_id(context),
            "type": type,
            "date": date,
            "startTime": _to_iso(date, start_time),
            "endTime": _to_iso(end_day, end_time),
            "duration": duration or minutes,
            "dayOfWeek": day_of_week,
        }
        body = await self._api.create_slot({k: v for k, v in payload.items() if v is not None})
        return ToolResult(
            data={"slot": body},
            message=f"Created slot on {date} from {start_time} to {end_time}",
        )


# -- create_bulk_availability ------------------------------------------------------


class CreateBulkAvailabilityParams(ToolParams):
    pattern: Literal["daily", "weekly", "monthly", "weekdays", "weekends", "range", "custom"] = Field(
        default="weekly", description="Pattern for creating multiple slots"
    )
    start_date: str = Field(pattern=_DATE, description="Start date for the pattern")
    end_date: str | None = Field(default=None, pattern=_DATE, description="End date for the pattern")
    start_time: str = Field(pattern=_TIME, description="Daily start time (HH:MM)")
    end_time: str = Field(pattern=_TIME, description="Daily end time (HH:MM)")
    duration: int | None = Field(default=None, ge=1, description="Duration per slot in minutes")
    count: int | None = Field(default=None, ge=1, description="Number of slots to create")
    days_of_week: list[int] | None = Field(
        default=None, description="Day numbers (0=Sunday) for weekly patterns"
    )
    break_time: int | None = Field(default=None, ge=0, description="Break between slots in minutes")


_RECURRING_PATTERNS = {"weekly", "weekdays", "weekends", "monthly"}


class CreateBulkAvailabilityTool(_AvailabilityTool):
    name = ToolName.CREATE_BULK_AVAILABILITY
    description = "Create multiple availability slots following a recurrence pattern"
    params_model = CreateBulkAvailabilityParams

    async def execute(
        self,
        start_date: str,
        start_time: str,
        end_time: str,
        pattern: str = "weekly",
        end_date: str | None = None,
        duration: int | None = None,
        count: int | None = None,
        days_of_week: list[int] | None = None,
        break_time: int | None = None,
        context: ConversationContext | None = None,
    ) -> ToolResult:
        if days_of_week and any(d < 0 or d > 6 for d in days_of_week):
            return ToolResult.failure("days_of_week values must be between 0 and 6")

        payload = {
            "providerId": _provider_id(context),
            "type": "recurring" if pattern in _RECURRING_PATTERNS else "one_off",
            "pattern": pattern,
            "startDate": start_date,
            "endDate": end_date,
            "startTime": _to_iso(start_date, start_time),
            "endTime": _to_iso(start_date, end_time),
            "duration": duration or _minutes_between(start_time, end_time),
            "quantity": count,
            "daysOfWeek": days_of_week,
            "breakTime": break_time,
        }
        body = await self._api.create_bulk({k: v for k, v in payload.items() if v is not None})
        created = _count_created(body)
        return ToolResult(
            data={"result": body, "created": created},
            message=f"Created {created} availability slots ({pattern})",
        )


# -- update_availability_slot ------------------------------------------------------


class UpdateAvailabilitySlotParams(ToolParams):
    slot_id: str | None = Field(default=None, description="ID of the slot to update")
    match_date: str | None = Field(
        default=None, pattern=_DATE, description="Date of the slot to update when no ID is known"
    )
    match_time: str | None = Field(
        default=None, pattern=_TIME, description="Current start time of the slot to update"
    )
    date: str | None = Field(default=None, pattern=_DATE, description="New date")
    start_time: str | None = Field(default=None, pattern=_TIME, description="New start time")
    end_time: str | None = Field(default=None, pattern=_TIME, description="New end time")
    duration: int | None = Field(default=None, ge=1, description="New duration in minutes")
    preserve_bookings: bool = Field(default=True, description="Keep existing bookings attached")
    notify_changes: bool = Field(default=False, description="Notify booked clients of the change")


class UpdateAvailabilitySlotTool(_AvailabilityTool):
    name = ToolName.UPDATE_AVAILABILITY_SLOT
    description = "Update an existing availability slot, identified by ID or by its date and time"
    params_model = UpdateAvailabilitySlotParams

    async def execute(
        self,
        slot_id: str | None = None,
        match_date: str | None = None,
        match_time: str | None = None,
        date: str | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        duration: int | None = None,
        preserve_bookings: bool = True,
        notify_changes: bool = False,
        context: ConversationContext | None = None,
    ) -> ToolResult:
        if slot_id:
            current = await self._api.get_slot(slot_id)
        else:
            if not match_date:
                return ToolResult.failure("Provide slot_id or the date of the slot to update")
            candidates = [
                s for s in await self._slots_on(context, match_date) if _matches_time(s, match_time)
            ]
            if not candidates:
                return ToolResult.failure(f"No slot found on {match_date} at {match_time or 'any time'}")
            if len(candidates) > 1:
                return ToolResult(
                    data={"updated": False, "matches": [_brief(s) for s in candidates]},
                    message="Multiple slots match. Ask which one to update.",
                )
            current = candidates[0]
            slot_id = slot_key(current)

        existing_start = slot_start(current)
        new_date = date or match_date or (existing_start.date().isoformat() if existing_start else None)
        new_start = start_time or (existing_start.strftime("%H:%M") if existing_start else None)
        if new_date is None or new_start is None:
            return ToolResult.failure("Could not determine the new date and time for the slot")

        minutes = duration or current.get("duration") or 60
        new_end = end_time or _add_minutes(new_start, int(minutes))
        payload = {
            "date": new_date,
            "startTime": _to_iso(new_date, new_start),
            "endTime": _to_iso(new_date, new_end),
            "duration": _minutes_between(new_start, new_end),
            "preserveBookings": preserve_bookings,
            "notifyChanges": notify_changes,
        }
        body = await self._api.update_slot(slot_id, payload)
        return ToolResult(
            data={"updated": True, "slot": body},
            message=f"Updated slot to {new_date} {new_start}-{new_end}",
        )


# -- delete_availability_slot ------------------------------------------------------


class DeleteAvailabilitySlotParams(ToolParams):
    slot_id: str | None = Field(default=None, description="ID of the slot to delete")
    date: str | None = Field(default=None, pattern=_DATE, description="Date of the slot to delete")
    start_time: str | None = Field(default=None, pattern=_TIME, description="Start time of the slot")
    confirm_delete: bool = Field(
        default=True, description="Only report matching slots and ask before deleting"
    )
    only_unbooked: bool = Field(default=False, description="Never delete booked slots")


class DeleteAvailabilitySlotTool(_AvailabilityTool):
    name = ToolName.DELETE_AVAILABILITY_SLOT
    description = "Delete a specific availability slot, identified by ID or by its date and time"
    params_model = DeleteAvailabilitySlotParams

    async def execute(
        self,
        slot_id: str | None = None,
        date: str | None = None,
        start_time: str | None = None,
        confirm_delete: bool = True,
        only_unbooked: bool = False,
        context: ConversationContext | None = None,
    ) -> ToolResult:
        if slot_id and not confirm_delete:
            await self._api.delete_slot(slot_id)
            return ToolResult(data={"deleted": 1, "ids": [slot_id]}, message="Deleted 1 slot")

        if slot_id:
            matches = [await self._api.get_slot(slot_id)]
        elif date:
            matches = [s for s in await self._slots_on(context, date) if _matches_time(s, start_time)]
        else:
            return ToolResult.failure("Provide slot_id or the date of the slot to delete")

        if only_unbooked:
            matches = [s for s in matches if not slot_is_booked(s)]
        if not matches:
            return ToolResult.failure("No matching slots to delete")

        if confirm_delete:
            return ToolResult(
                data={"deleted": 0, "pending_confirmation": True, "matches": [_brief(s) for s in matches]},
                message=f"Found {len(matches)} matching slot(s). Confirm to delete.",
            )
        if len(matches) > 1:
            return ToolResult(
                data={"deleted": 0, "matches": [_brief(s) for s in matches]},
                message="Multiple slots match. Ask which one to delete.",
            )

        target = slot_key(matches[0])
        await self._api.delete_slot(target)
        return ToolResult(data={"deleted": 1, "ids": [target]}, message="Deleted 1 slot")


# -- delete_bulk_availability ------------------------------------------------------


class DeleteBulkAvailabilityParams(ToolParams):
    criteria: Literal["expired", "unbooked", "date_range", "day_of_week", "all"] = Field(
        description="Criteria for bulk deletion"
    )
    start_date: str | None = Field(default=None, pattern=_DATE, description="Start of the range")
    end_date: str | None = Field(default=None, pattern=_DATE, description="End of the range")
    day_of_week: int | None = Field(default=None, ge=0, le=6, description="Day of week (0=Sunday)")
    confirm_delete: bool = Field(
        default=True, description="Only report matching slots and ask before deleting"
    )
    only_unbooked: bool = Field(default=False, description="Never delete booked slots")


class DeleteBulkAvailabilityTool(_AvailabilityTool):
    name = ToolName.DELETE_BULK_AVAILABILITY
    description = "Delete multiple availability slots matching a criteria"
    params_model = DeleteBulkAvailabilityParams

    async def execute(
        self,
        criteria: str,
        start_date: str | None = None,
        end_date: str | None = None,
        day_of_week: int | None = None,
        confirm_delete: bool = True,
        only_unbooked: bool = False,
        context: ConversationContext | None = None,
    ) -> ToolResult:
        slots = await self._slots_on(context, start_date, end_date)
        now = _now(context)

        if criteria == "expired":
            slots = [s for s in slots if _is_expired(s, now)]
        elif criteria == "unbooked":
            only_unbooked = True
        elif criteria == "day_of_week":
            if day_of_week is None:
                return ToolResult.failure("day_of_week is required for day_of_week deletion")
            # isoweekday(): Monday=1 .. Sunday=7; our numbering is Sunday=0
            slots = [s for s in slots if (st := slot_start(s)) and st.isoweekday() % 7 == day_of_week]
        if only_unbooked:
            slots = [s for s in slots if not slot_is_booked(s)]

        if not slots:
            return ToolResult(data={"deleted": 0, "matches": []}, message="No slots matched")

        if confirm_delete:
            return ToolResult(
                data={"deleted": 0, "pending_confirmation": True, "matches": [_brief(s) for s in slots]},
                message=f"Found {len(slots)} slots to delete. Confirm to proceed.",
            )

        deleted: list[str] = []
        for slot in slots:
            await self._api.delete_slot(slot_key(slot))
            deleted.append(slot_key(slot))
        logger.info("Bulk-deleted %d slots (criteria=%s)", len(deleted), criteria)
        return ToolResult(data={"deleted": len(deleted), "ids": deleted}, message=f"Deleted {len(deleted)} slots")


# -- navigate_calendar -------------------------------------------------------------


class NavigateCalendarParams(ToolParams):
    target_date: str | None = Field(default=None, pattern=_DATE, description="Date to navigate to")
    view: Literal["day", "week", "month"] = Field(default="week", description="Calendar view")


class NavigateCalendarTool(BaseTool):
    name = ToolName.NAVIGATE_CALENDAR
    description = "Navigate to a specific date or view in the calendar"
    category = "calendar"
    params_model = NavigateCalendarParams

    async def execute(
        self,
        target_date: str | None = None,
        view: str = "week",
        context: ConversationContext | None = None,
    ) -> ToolResult:
        day = target_date or _now(context).date().isoformat()
        page = f"/dashboard/availability?view={view}&date={day}"
        if context is not None:
            context.current_page = page
        return ToolResult(data={"page": page, "view": view, "date": day}, message=f"Opened {view} view for {day}")


# -- Catalog -----------------------------------------------------------------------


def build_catalog(api: AvailabilityApi) -> ToolRegistry:
    """Register every tool against ``api`` and freeze the catalog."""
    registry = ToolRegistry()
    for tool in (
        GetAvailabilityDataTool(api),
        CreateAvailabilitySlotTool(api),
        CreateBulkAvailabilityTool(api),
        UpdateAvailabilitySlotTool(api),
        DeleteAvailabilitySlotTool(api),
        DeleteBulkAvailabilityTool(api),
        NavigateCalendarTool(),
    ):
        registry.register(tool)
    registry.freeze()
    return registry
