"""Conversational checks that run before intent detection.

Some messages should not be acted on yet: they name a weekday without
saying which one, leave out the time of a new slot, or ask for something
the tool catalog cannot do. ``ConversationalChecker.check`` spots these and
returns a clarification turn instead of a guess.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum

from availchat.nlp.entities import (
    WEEKDAY_NAMES,
    find_invalid_dates,
    last_occurrence,
    next_occurrence,
    normalize,
    week_bounds,
)

MAX_FOLLOW_UP_SUGGESTIONS = 4
MAX_ALTERNATIVES = 3


class ClarificationKind(StrEnum):
    AMBIGUOUS_INPUT = "ambiguous_input"
    INCOMPLETE_INPUT = "incomplete_input"
    UNSUPPORTED_CAPABILITY = "unsupported_capability"


@dataclass
class Clarification:
    needs_clarification: bool
    kind: ClarificationKind | None = None
    response: str = ""
    options: list[str] = field(default_factory=list)
    # Ambiguous fragment of the message and what each option replaces it with
    subject: str | None = None
    resolutions: dict[str, str] = field(default_factory=dict)

    @classmethod
    def not_needed(cls) -> Clarification:
        return cls(needs_clarification=False)

    def resolve(self, original: str, reply: str) -> str | None:
        """Rewrite ``original`` using the option picked in ``reply``, or ``None`` if none was picked."""
        if not self.subject:
            return None
        replacement = self.resolutions.get(normalize(reply))
        if replacement is None:
            return None
        pattern = re.compile(r"(?<!\w)" + re.escape(self.subject) + r"(?!\w)")
        return pattern.sub(replacement, normalize(original), count=1)


_WEEKDAY_RE = re.compile(r"\b(" + "|".join(WEEKDAY_NAMES) + r")\b")
_DAY_QUALIFIER_RE = re.compile(r"\b(this|next|last|coming|past|every|each)\b")
_WEEK_RE = re.compile(r"\bweek\b")
_QUALIFIED_WEEK_RE = re.compile(r"\b(this|next|last|every|each|per|a|one|\d+)\s+week\b")
_AMBIGUOUS_HOUR_RE = re.compile(
    r"\b(?:at|from|to|until|till)\s+(\d{1,2})(?![\d:])(?!\s*(?:am|pm|a\.m\.|p\.m\.|hours?|hrs?|mins?|minutes?|days?|weeks?|slots?)\b)"
    r"|\b(\d{1,2})\s*o'clock\b"
)
_MERIDIEM_RE = re.compile(r"\d\s*(am|pm|a\.m\.|p\.m\.)(?!\w)")
_DAYPART_RE = re.compile(r"\b(morning|afternoon|evening|night|tonight|noon|midnight)\b")

_CREATION_RE = re.compile(r"\b(create|add|make|new|book|schedule)\b")
_CREATION_NOUN_RE = re.compile(r"\b(slot|slots|availability|appointment|appointments)\b")
_TIME_TOKEN_RE = re.compile(
    r"\b(at|from|morning|afternoon|evening|night|noon|midnight)\b|\d{1,2}:\d{2}|\b\d{1,2}\s*(am|pm)\b"
)
_MODIFY_RE = re.compile(r"\b(delete|remove|update|modify|change|cancel|clear)\b")
_MODIFY_NOUN_RE = re.compile(r"\b(slot|slots|availability)\b")
_SPECIFIER_RE = re.compile(
    r"\b(all|every|today|tomorrow|tonight|week|month|weekend|morning|afternoon|evening|unbooked|expired|"
    + "|".join(WEEKDAY_NAMES)
    + r")\b|\d{1,2}:\d{2}|\b\d{1,2}\s*(am|pm)\b|\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}|\bat \d"
)
_VAGUE_RE = re.compile(r"\b(later|soon|sometime|eventually)\b")
_RETRIEVAL_RE = re.compile(r"\b(show|list|display|view|get|check|see)\b")


@dataclass(frozen=True)
class _Capability:
    requested: str
    tool_name: str
    pattern: re.Pattern[str]
    alternative: str
    suggestions: tuple[str, ...]


_CAPABILITIES = (
    _Capability(
        requested="schedule analysis",
        tool_name="analyze_availability_patterns",
        pattern=re.compile(r"\b(analyze|analyse|analysis|insights|patterns|trends|metrics|statistics|stats|report)\b"),
        alternative=(
            "I can show you your availability data with basic metrics. "
            "Would you like me to retrieve your current schedule?"
        ),
        suggestions=("Show my availability this week", "Show my availability for today", "Count my total slots"),
    ),
    _Capability(
        requested="schedule optimization",
        tool_name="optimize_schedule",
        pattern=re.compile(r"\b(optimize|optimise|optimization|improve|better|suggestions|recommendations)\b"),
        alternative=(
            "I can help you view your current availability and suggest manual improvements. "
            "Would you like to see your schedule first?"
        ),
        suggestions=("Show my current schedule", "Find gaps in my availability", "Show busiest days this week"),
    ),
    _Capability(
        requested="data export",
        tool_name="export_availability_data",
        pattern=re.compile(r"\b(export|download|backup)\b"),
        alternative=(
            "I can display your availability data for you to copy. "
            "Would you like me to show your current schedule?"
        ),
        suggestions=("Display all my slots", "Show this week's schedule", "List availability by day"),
    ),
)

_TIME_NEEDED_SUGGESTIONS = (
    "Create slot for tomorrow at 2 PM",
    "Create slot for today at 3 PM",
    "Create slot for Friday morning",
    "Create slot for next week",
)
_SPECIFICATION_SUGGESTIONS = (
    "Delete all slots for today",
    "Update my 2 PM slot",
    "Remove slots for this week",
    "Change tomorrow's appointments",
)
_VAGUE_TIME_SUGGESTIONS = (
    "Show availability for tomorrow",
    "Create slot for next Tuesday",
    "Update slot for Friday at 3 PM",
)


def _range(start: date, end: date) -> str:
    return f"{start.isoformat()} - {end.isoformat()}"


class ConversationalChecker:
    """Decides whether a message needs a clarification turn.

    ``tool_names`` is the live catalog; capabilities it already covers are
    never reported as unsupported.
    """

    def __init__(self, tool_names: Iterable[str]) -> None:
        self._tool_names = frozenset(tool_names)

    def check(self, text: str, now: datetime) -> Clarification:
        text = normalize(text)
        return (
            self._check_invalid_dates(text, now)
            or self._check_ambiguity(text, now.date())
            or self._check_missing_information(text)
            or self._check_capabilities(text)
            or Clarification.not_needed()
        )

    # -- Impossible dates ------------------------------------------------------

    def _check_invalid_dates(self, text: str, now: datetime) -> Clarification | None:
        invalid = find_invalid_dates(text, now)
        if not invalid:
            return None
        return self._follow_up(
            f"\"{invalid[0]}\" isn't a date on the calendar. Which date did you mean?",
            _VAGUE_TIME_SUGGESTIONS,
        )

    # -- Ambiguity -------------------------------------------------------------

    def _check_ambiguity(self, text: str, today: date) -> Clarification | None:
        day = _WEEKDAY_RE.search(text)
        if day and not _DAY_QUALIFIER_RE.search(text):
            name = day.group(1)
            weekday = WEEKDAY_NAMES.index(name)
            label = name.capitalize()
            upcoming = next_occurrence(today, weekday).isoformat()
            previous = last_occurrence(today, weekday).isoformat()
            options = [f"This {label} ({upcoming})", f"Last {label} ({previous})"]
            return Clarification(
                needs_clarification=True,
                kind=ClarificationKind.AMBIGUOUS_INPUT,
                response=f"I understand you're asking about {text}, but which {label} do you mean?\n\nPlease choose:",
                options=options,
                subject=name,
                resolutions=dict(zip([normalize(o) for o in options], [upcoming, previous], strict=True)),
            )

        if _WEEK_RE.search(text) and not _QUALIFIED_WEEK_RE.search(text):
            start, end = week_bounds(today)
            step = timedelta(days=7)
            options = [
                f"This week ({_range(start, end)})",
                f"Next week ({_range(start + step, end + step)})",
            ]
            return Clarification(
                needs_clarification=True,
                kind=ClarificationKind.AMBIGUOUS_INPUT,
                response='I see you mentioned "week" - which week are you referring to?\n\nPlease choose:',
                options=options,
                subject="week",
                resolutions=dict(zip([normalize(o) for o in options], ["this week", "next week"], strict=True)),
            )

        hour = _AMBIGUOUS_HOUR_RE.search(text)
        if hour and not _MERIDIEM_RE.search(text) and not _DAYPART_RE.search(text):
            value = int(hour.group(1) or hour.group(2))
            if 1 <= value <= 12:
                options = [f"{value}:00 AM", f"{value}:00 PM"]
                lead = hour.group(0).split()[0] + " " if hour.group(1) else ""
                return Clarification(
                    needs_clarification=True,
                    kind=ClarificationKind.AMBIGUOUS_INPUT,
                    response=(
                        f"I noticed you mentioned a time - do you mean {value}:00 AM or PM?\n\nPlease choose:"
                    ),
                    options=options,
                    subject=hour.group(0),
                    resolutions={normalize(o): lead + normalize(o) for o in options},
                )
        return None

    # -- Missing information ---------------------------------------------------

    def _check_missing_information(self, text: str) -> Clarification | None:
        if _CREATION_RE.search(text) and _CREATION_NOUN_RE.search(text) and not _TIME_TOKEN_RE.search(text):
            return self._follow_up(
                "I'd be happy to create that availability slot for you! "
                "What time would you like to create the availability slot?",
                _TIME_NEEDED_SUGGESTIONS,
            )

        if _MODIFY_RE.search(text) and _MODIFY_NOUN_RE.search(text) and not _SPECIFIER_RE.search(text):
            return self._follow_up(
                "I can help you with that modification. Which specific slots would you like to modify? "
                'Please specify a time, date, or use "all".',
                _SPECIFICATION_SUGGESTIONS,
            )

        if _VAGUE_RE.search(text):
            return self._follow_up(
                "I understand what you want to do. Could you be more specific about the timing? "
                'For example, "tomorrow at 2 PM" or "next week".',
                _VAGUE_TIME_SUGGESTIONS,
            )
        return None

    @staticmethod
    def _follow_up(response: str, suggestions: tuple[str, ...]) -> Clarification:
        return Clarification(
            needs_clarification=True,
            kind=ClarificationKind.INCOMPLETE_INPUT,
            response=response,
            options=list(suggestions[:MAX_FOLLOW_UP_SUGGESTIONS]),
        )

    # -- Unsupported capabilities ----------------------------------------------

    def _check_capabilities(self, text: str) -> Clarification | None:
        if _RETRIEVAL_RE.search(text):
            return None
        missing = [
            cap for cap in _CAPABILITIES if cap.tool_name not in self._tool_names and cap.pattern.search(text)
        ]
        if not missing:
            return None

        primary = missing[0]
        alternatives = [s for cap in missing for s in cap.suggestions]
        return Clarification(
            needs_clarification=True,
            kind=ClarificationKind.UNSUPPORTED_CAPABILITY,
            response=(
                f"I understand you're looking for {primary.requested}, but I don't have that "
                f"specific capability yet. However, {primary.alternative}"
            ),
            options=alternatives[:MAX_ALTERNATIVES],
        )
