"""Turn extracted entities into arguments for a specific tool."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from availchat.nlp.entities import ExtractedEntities, infer_duration, next_occurrence, normalize
from availchat.tools.base import ToolName

if TYPE_CHECKING:
    from datetime import date

    from availchat.chat.context import ConversationContext
    from availchat.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

_AUTO_CONFIRM_RE = re.compile(r"\b(please|just do it|go ahead|confirm|yes|sure)\b")
_UNBOOKED_RE = re.compile(r"\b(unbooked|empty|unused|free|available)\b")
_EXPIRED_RE = re.compile(r"\b(expired|past|old)\b")
_NOTIFY_RE = re.compile(r"\b(notify|inform|tell|alert|email|message)\b")
_ANALYSIS_RE = re.compile(r"\b(analy[sz]e|analysis|insights|patterns|trends|breakdown)\b")
_METRICS_RE = re.compile(r"\b(metrics|statistics|stats|utilization|performance|how many|count)\b")
_OPTIMIZATION_RE = re.compile(r"\b(optimi[sz]e|optimization|improve|suggest|suggestions|recommend\w*)\b")

_RECURRENCE_RULES = (
    (re.compile(r"\b(weekdays?|monday to friday|mon-fri)\b"), "weekdays"),
    (re.compile(r"\b(weekends?)\b"), "weekends"),
    (re.compile(r"\b(daily|every day|each day)\b"), "daily"),
    (re.compile(r"\b(monthly|every month)\b"), "monthly"),
    (re.compile(r"\b(weekly|every week)\b"), "weekly"),
)
_PATTERN_DAYS = {"weekdays": [1, 2, 3, 4, 5], "weekends": [0, 6]}

# Numbers that belong to a time, date or duration are not slot counts.
_NON_COUNT_NUMBERS = re.compile(
    r"\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}(?:/\d{2,4})?|\d{1,2}:\d{2}|\d+\s*(?:am|pm|a\.m\.|p\.m\.)"
    r"|\b(?:at|from|to|until|till)\s+\d+|\d+(?:\.\d+)?\s*-?\s*(?:hours?|hrs?|minutes?|mins?|days?|weeks?)\b"
)
_MANY_RE = re.compile(r"\b(many|lots|several)\b")
_FEW_RE = re.compile(r"\b(few|some)\b")

DEFAULT_BULK_COUNT = 7


def infer_recurrence(text: str) -> str:
    for pattern, name in _RECURRENCE_RULES:
        if pattern.search(text):
            return name
    return "weekly"


def infer_count(text: str) -> int:
    remaining = _NON_COUNT_NUMBERS.sub(" ", text)
    if m := re.search(r"\b(\d+)\b", remaining):
        return int(m.group(1))
    if _MANY_RE.search(text):
        return 10
    if _FEW_RE.search(text):
        return 5
    return DEFAULT_BULK_COUNT


def infer_view(text: str) -> str | None:
    if re.search(r"\bmonth\b", text):
        return "month"
    if re.search(r"\bweek\b", text):
        return "week"
    if re.search(r"\b(day|today|tomorrow)\b", text):
        return "day"
    return None


class ParameterBuilder:
    """Builds tool arguments from entities plus action-specific inference.

    Output keys are the tool's Python parameter names. Keys the target
    tool does not declare, and ``None`` values, are dropped.
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    def build(
        self,
        entities: ExtractedEntities,
        action: str,
        raw_text: str,
        context: ConversationContext | None = None,
    ) -> dict[str, Any]:
        tool_def = self._registry.get(action)
        if tool_def is None:
            logger.warning("No tool '%s' to build parameters for", action)
            return {}

        text = normalize(raw_text)
        today = context.reference_time().date() if context is not None else None
        params = self._base(entities)

        if action == ToolName.GET_AVAILABILITY_DATA:
            params.update(
                include_analysis=bool(_ANALYSIS_RE.search(text)),
                include_metrics=bool(_METRICS_RE.search(text)),
                include_optimization=bool(_OPTIMIZATION_RE.search(text)),
            )
        elif action == ToolName.CREATE_AVAILABILITY_SLOT:
            self._for_create(params, entities, text, today)
        elif action == ToolName.CREATE_BULK_AVAILABILITY:
            self._for_bulk_create(params, entities, text, today)
        elif action == ToolName.UPDATE_AVAILABILITY_SLOT:
            self._for_update(params, entities, text)
        elif action == ToolName.DELETE_AVAILABILITY_SLOT:
            params["date"] = params.get("start_date")
            params["confirm_delete"] = not _AUTO_CONFIRM_RE.search(text)
            params["only_unbooked"] = bool(_UNBOOKED_RE.search(text))
        elif action == ToolName.DELETE_BULK_AVAILABILITY:
            self._for_bulk_delete(params, entities, text)
        elif action == ToolName.NAVIGATE_CALENDAR:
            params["target_date"] = params.get("start_date")
            params["view"] = infer_view(text)

        allowed = tool_def.parameter_names
        return {k: v for k, v in params.items() if k in allowed and v is not None}

    @staticmethod
    def _base(entities: ExtractedEntities) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if entities.dates:
            params["start_date"] = entities.dates.start_date
            params["end_date"] = entities.dates.end_date
        if entities.times:
            params["start_time"] = entities.times.start_time
            params["end_time"] = entities.times.end_time
        if entities.duration:
            params["duration"] = entities.duration.minutes
        if entities.context:
            params["status"] = entities.context.status
            params["priority"] = entities.context.priority
        if entities.weekday_pattern:
            params["days_of_week"] = list(entities.weekday_pattern.days)
        return params

    @staticmethod
    def _for_create(
        params: dict[str, Any], entities: ExtractedEntities, text: str, today: date | None
    ) -> None:
        pattern = entities.weekday_pattern
        if params.get("start_date"):
            params["date"] = params["start_date"]
        elif today is not None:
            params["date"] = (next_occurrence(today, pattern.days[0]) if pattern else today).isoformat()
        # An explicit end time already fixes the length of the slot.
        if params.get("duration") is None and (entities.times is None or entities.times.end_inferred):
            params["duration"] = infer_duration(text)
        if pattern:
            params["type"] = "recurring"
            params["day_of_week"] = pattern.days[0]
        params["auto_confirm"] = bool(_AUTO_CONFIRM_RE.search(text))

    @staticmethod
    def _for_bulk_create(
        params: dict[str, Any], entities: ExtractedEntities, text: str, today: date | None
    ) -> None:
        pattern = infer_recurrence(text)
        params["pattern"] = pattern
        params["count"] = infer_count(text)
        if not params.get("start_date") and today is not None:
            params["start_date"] = today.isoformat()
        if params.get("days_of_week") is None:
            params["days_of_week"] = _PATTERN_DAYS.get(pattern)
        if params.get("duration") is None and entities.duration is None and entities.times is None:
            params["duration"] = infer_duration(text)

    @staticmethod
    def _for_update(params: dict[str, Any], entities: ExtractedEntities, text: str) -> None:
        params["match_date"] = params.pop("start_date", None)
        params.pop("start_time", None)
        params.pop("end_time", None)
        times = entities.times.times if entities.times else []
        if times:
            params["match_time"] = times[0]
        if len(times) >= 2:
            params["start_time"] = times[1]
        if len(times) >= 3:
            params["end_time"] = times[2]
        params["preserve_bookings"] = True
        params["notify_changes"] = bool(_NOTIFY_RE.search(text))

    @staticmethod
    def _for_bulk_delete(params: dict[str, Any], entities: ExtractedEntities, text: str) -> None:
        days = entities.weekday_pattern.days if entities.weekday_pattern else []
        if _EXPIRED_RE.search(text):
            criteria = "expired"
        elif _UNBOOKED_RE.search(text):
            criteria = "unbooked"
        elif len(days) == 1:
            criteria = "day_of_week"
            params["day_of_week"] = days[0]
        elif entities.dates:
            criteria = "date_range"
        else:
            criteria = "all"
        params["criteria"] = criteria
        params["only_unbooked"] = bool(_UNBOOKED_RE.search(text))
        params["confirm_delete"] = not _AUTO_CONFIRM_RE.search(text)
