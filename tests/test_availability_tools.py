"""Tests for availability tools: query, create, update, delete, navigate."""

from availchat.integrations.availability_api import AvailabilityApiError
from availchat.tools.base import ToolName

# -- get_availability_data -------------------------------------------------------


async def test_get_sorts_and_summarizes(registry, api, context, make_slot) -> None:
    api.list_slots.return_value = [
        make_slot("late", "2024-01-16", "10:00", "11:00", booked=True),
        make_slot("early", "2024-01-16", "09:00", "10:00"),
    ]

    result = await registry.execute(ToolName.GET_AVAILABILITY_DATA, {"startDate": "2024-01-16"}, context)

    assert result.success
    assert [s["id"] for s in result.data["slots"]] == ["early", "late"]
    assert result.data["summary"] == {"total": 2, "available": 1, "booked": 1}
    assert result.message == "Found 2 availability slots"
    api.list_slots.assert_awaited_once_with(
        "provider-1",
        start_date="2024-01-16",
        end_date="2024-01-16",
        includeAnalysis=None,
        includeMetrics=None,
        includeOptimization=None,
    )


async def test_get_passes_analytics_flags(registry, api, context) -> None:
    await registry.execute(ToolName.GET_AVAILABILITY_DATA, {"includeMetrics": True}, context)
    assert api.list_slots.await_args.kwargs["includeMetrics"] is True


async def test_get_status_filters(registry, api, context, make_slot) -> None:
    api.list_slots.return_value = [
        make_slot("past", "2024-01-14", "09:00", "10:00"),
        make_slot("open", "2024-01-16", "09:00", "10:00"),
        make_slot("taken", "2024-01-16", "11:00", "12:00", booked=True),
    ]

    available = await registry.execute(ToolName.GET_AVAILABILITY_DATA, {"status": "available"}, context)
    booked = await registry.execute(ToolName.GET_AVAILABILITY_DATA, {"status": "booked"}, context)
    expired = await registry.execute(ToolName.GET_AVAILABILITY_DATA, {"status": "expired"}, context)

    assert [s["id"] for s in available.data["slots"]] == ["open"]
    assert [s["id"] for s in booked.data["slots"]] == ["taken"]
    assert [s["id"] for s in expired.data["slots"]] == ["past"]


async def test_get_rejects_bad_status(registry, api, context) -> None:
    result = await registry.execute(ToolName.GET_AVAILABILITY_DATA, {"status": "maybe"}, context)
    assert not result.success
    api.list_slots.assert_not_awaited()


async def test_backend_error_becomes_failure(registry, api, context) -> None:
    api.list_slots.side_effect = AvailabilityApiError("Availability service returned 500", status_code=500)

    result = await registry.execute(ToolName.GET_AVAILABILITY_DATA, {}, context)

    assert not result.success
    assert result.message == (
        "Failed to execute get_availability_data: Availability service returned 500"
    )
    assert context.recent_actions[0].success is False


# -- create_availability_slot ----------------------------------------------------


async def test_create_slot_payload(registry, api, context) -> None:
    args = {"date": "2024-01-16", "startTime": "09:00", "endTime": "10:00"}
    result = await registry.execute(ToolName.CREATE_AVAILABILITY_SLOT, args, context)

    assert result.success
    assert result.message == "Created slot on 2024-01-16 from 09:00 to 10:00"
    api.create_slot.assert_awaited_once_with(
        {
            "providerId": "provider-1",
            "type": "one_off",
            "date": "2024-01-16",
            "startTime": "2024-01-16T09:00:00-06:00",
            "endTime": "2024-01-16T10:00:00-06:00",
            "duration": 60,
        }
    )


async def test_create_overnight_slot(registry, api, context) -> None:
    args = {"date": "2024-01-16", "start_time": "22:00", "end_time": "01:00"}
    await registry.execute(ToolName.CREATE_AVAILABILITY_SLOT, args, context)

    payload = api.create_slot.await_args.args[0]
    assert payload["endTime"] == "2024-01-17T01:00:00-06:00"
    assert payload["duration"] == 180


async def test_create_requires_valid_times(registry, api, context) -> None:
    args = {"date": "2024-01-16", "start_time": "25:00", "end_time": "10:00"}
    result = await registry.execute(ToolName.CREATE_AVAILABILITY_SLOT, args, context)

    assert not result.success
    assert result.error.startswith("Invalid parameters")
    api.create_slot.assert_not_awaited()


async def test_create_recurring_slot(registry, api, context) -> None:
    args = {
        "date": "2024-01-16",
        "start_time": "09:00",
        "end_time": "09:30",
        "type": "recurring",
        "day_of_week": 2,
    }
    await registry.execute(ToolName.CREATE_AVAILABILITY_SLOT, args, context)

    payload = api.create_slot.await_args.args[0]
    assert payload["type"] == "recurring"
    assert payload["dayOfWeek"] == 2
    assert payload["duration"] == 30


# -- create_bulk_availability ----------------------------------------------------


async def test_bulk_create(registry, api, context) -> None:
    api.create_bulk.return_value = {"slots": [{"id": "1"}, {"id": "2"}, {"id": "3"}]}
    args = {
        "pattern": "weekdays",
        "start_date": "2024-01-15",
        "start_time": "09:00",
        "end_time": "10:00",
        "count": 3,
        "days_of_week": [1, 2, 3, 4, 5],
    }

    result = await registry.execute(ToolName.CREATE_BULK_AVAILABILITY, args, context)

    assert result.data["created"] == 3
    assert result.message == "Created 3 availability slots (weekdays)"
    payload = api.create_bulk.await_args.args[0]
    assert payload["type"] == "recurring"
    assert payload["quantity"] == 3
    assert payload["daysOfWeek"] == [1, 2, 3, 4, 5]
    assert payload["startTime"] == "2024-01-15T09:00:00-06:00"
    assert "breakTime" not in payload


async def test_bulk_create_rejects_bad_weekday(registry, api, context) -> None:
    args = {"start_date": "2024-01-15", "start_time": "09:00", "end_time": "10:00", "days_of_week": [7]}
    result = await registry.execute(ToolName.CREATE_BULK_AVAILABILITY, args, context)

    assert not result.success
    api.create_bulk.assert_not_awaited()


# -- update_availability_slot ----------------------------------------------------


async def test_update_by_date_and_time(registry, api, context, make_slot) -> None:
    api.list_slots.return_value = [
        make_slot("a", "2024-01-16", "14:00", "15:00", duration=60),
        make_slot("b", "2024-01-16", "16:00", "17:00", duration=60),
    ]
    args = {"match_date": "2024-01-16", "match_time": "14:00", "start_time": "15:00"}

    result = await registry.execute(ToolName.UPDATE_AVAILABILITY_SLOT, args, context)

    assert result.data["updated"] is True
    api.update_slot.assert_awaited_once_with(
        "a",
        {
            "date": "2024-01-16",
            "startTime": "2024-01-16T15:00:00-06:00",
            "endTime": "2024-01-16T16:00:00-06:00",
            "duration": 60,
            "preserveBookings": True,
            "notifyChanges": False,
        },
    )


async def test_update_asks_when_several_match(registry, api, context, make_slot) -> None:
    api.list_slots.return_value = [
        make_slot("a", "2024-01-16", "14:00", "15:00"),
        make_slot("b", "2024-01-16", "16:00", "17:00"),
    ]

    result = await registry.execute(
        ToolName.UPDATE_AVAILABILITY_SLOT, {"match_date": "2024-01-16", "start_time": "10:00"}, context
    )

    assert result.data["updated"] is False
    assert [m["id"] for m in result.data["matches"]] == ["a", "b"]
    api.update_slot.assert_not_awaited()


async def test_update_nothing_found(registry, api, context) -> None:
    result = await registry.execute(
        ToolName.UPDATE_AVAILABILITY_SLOT, {"match_date": "2024-01-16", "match_time": "14:00"}, context
    )
    assert not result.success
    assert "No slot found" in result.error


async def test_update_by_id_keeps_date(registry, api, context, make_slot) -> None:
    api.get_slot.return_value = make_slot("a", "2024-01-17", "14:00", "15:00", duration=30)

    await registry.execute(ToolName.UPDATE_AVAILABILITY_SLOT, {"slot_id": "a", "start_time": "11:00"}, context)

    slot_id, payload = api.update_slot.await_args.args
    assert slot_id == "a"
    assert payload["startTime"] == "2024-01-17T11:00:00-06:00"
    assert payload["endTime"] == "2024-01-17T11:30:00-06:00"


async def test_update_needs_a_target(registry, api, context) -> None:
    result = await registry.execute(ToolName.UPDATE_AVAILABILITY_SLOT, {"start_time": "11:00"}, context)
    assert not result.success
    api.update_slot.assert_not_awaited()


# -- delete_availability_slot ----------------------------------------------------


async def test_delete_asks_for_confirmation(registry, api, context, make_slot) -> None:
    api.list_slots.return_value = [make_slot("a", "2024-01-16", "14:00", "15:00")]

    result = await registry.execute(
        ToolName.DELETE_AVAILABILITY_SLOT, {"date": "2024-01-16", "start_time": "14:00"}, context
    )

    assert result.data["pending_confirmation"] is True
    assert result.data["deleted"] == 0
    assert result.data["matches"][0]["id"] == "a"
    api.delete_slot.assert_not_awaited()


async def test_delete_confirmed(registry, api, context, make_slot) -> None:
    api.list_slots.return_value = [make_slot("a", "2024-01-16", "14:00", "15:00")]

    result = await registry.execute(
        ToolName.DELETE_AVAILABILITY_SLOT,
        {"date": "2024-01-16", "start_time": "14:00", "confirm_delete": False},
        context,
    )

    assert result.data == {"deleted": 1, "ids": ["a"]}
    api.delete_slot.assert_awaited_once_with("a")


async def test_delete_by_id(registry, api, context) -> None:
    await registry.execute(ToolName.DELETE_AVAILABILITY_SLOT, {"slotId": "a", "confirmDelete": False}, context)
    api.delete_slot.assert_awaited_once_with("a")


async def test_delete_only_unbooked(registry, api, context, make_slot) -> None:
    api.list_slots.return_value = [make_slot("a", "2024-01-16", "14:00", "15:00", booked=True)]

    result = await registry.execute(
        ToolName.DELETE_AVAILABILITY_SLOT,
        {"date": "2024-01-16", "only_unbooked": True, "confirm_delete": False},
        context,
    )

    assert not result.success
    assert result.error == "No matching slots to delete"
    api.delete_slot.assert_not_awaited()


# -- delete_bulk_availability ----------------------------------------------------


async def test_bulk_delete_expired(registry, api, context, make_slot) -> None:
    api.list_slots.return_value = [
        make_slot("old", "2024-01-14", "09:00", "10:00"),
        make_slot("new", "2024-01-16", "09:00", "10:00"),
    ]

    result = await registry.execute(
        ToolName.DELETE_BULK_AVAILABILITY, {"criteria": "expired", "confirm_delete": False}, context
    )

    assert result.data == {"deleted": 1, "ids": ["old"]}
    api.delete_slot.assert_awaited_once_with("old")


async def test_bulk_delete_day_of_week(registry, api, context, make_slot) -> None:
    api.list_slots.return_value = [
        make_slot("tue", "2024-01-16", "09:00", "10:00"),
        make_slot("wed", "2024-01-17", "09:00", "10:00"),
    ]

    result = await registry.execute(
        ToolName.DELETE_BULK_AVAILABILITY, {"criteria": "day_of_week", "day_of_week": 2}, context
    )

    assert result.data["pending_confirmation"] is True
    assert [m["id"] for m in result.data["matches"]] == ["tue"]


async def test_bulk_delete_unbooked_keeps_booked(registry, api, context, make_slot) -> None:
    api.list_slots.return_value = [
        make_slot("free", "2024-01-16", "09:00", "10:00"),
        make_slot("taken", "2024-01-16", "11:00", "12:00", booked=True),
    ]

    result = await registry.execute(
        ToolName.DELETE_BULK_AVAILABILITY, {"criteria": "unbooked", "confirm_delete": False}, context
    )

    assert result.data["ids"] == ["free"]


async def test_bulk_delete_nothing_matched(registry, api, context) -> None:
    result = await registry.execute(ToolName.DELETE_BULK_AVAILABILITY, {"criteria": "all"}, context)
    assert result.success
    assert result.data == {"deleted": 0, "matches": []}


# -- navigate_calendar -----------------------------------------------------------


async def test_navigate_sets_current_page(registry, context) -> None:
    result = await registry.execute(
        ToolName.NAVIGATE_CALENDAR, {"target_date": "2024-01-16", "view": "day"}, context
    )

    assert result.data["page"] == "/dashboard/availability?view=day&date=2024-01-16"
    assert context.current_page == result.data["page"]
    assert context.recent_tool_names() == [ToolName.NAVIGATE_CALENDAR]


async def test_navigate_defaults_to_this_week(registry, context) -> None:
    result = await registry.execute(ToolName.NAVIGATE_CALENDAR, {}, context)
    assert result.data == {
        "page": "/dashboard/availability?view=week&date=2024-01-15",
        "view": "week",
        "date": "2024-01-15",
    }
