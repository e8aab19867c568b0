"""Entity extraction: dates, times, durations, weekday patterns and status hints.

Everything here is pure: ``extract(text, now)`` never raises and returns
absent fields when nothing matches. Dates come back as ISO ``YYYY-MM-DD``
strings and times as 24-hour ``HH:MM`` strings.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

DEFAULT_DURATION_MINUTES = 60

# Index 0 is Sunday; weeks run Sunday..Saturday.
WEEKDAY_NAMES = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]

_DAY_ABBREVIATIONS = {
    "sun": 0,
    "mon": 1,
    "tue": 2,
    "tues": 2,
    "wed": 3,
    "weds": 3,
    "thu": 4,
    "thur": 4,
    "thurs": 4,
    "fri": 5,
    "sat": 6,
}

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}  # fmt: skip

_WEEKDAY_RE = "|".join(WEEKDAY_NAMES)
_DAY_TOKEN_RE = "|".join([*WEEKDAY_NAMES, *sorted(_DAY_ABBREVIATIONS, key=len, reverse=True)])
_MONTH_RE = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sept?(?:ember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)


@dataclass
class DateEntities:
    start_date: str | None = None
    end_date: str | None = None


@dataclass
class TimeEntities:
    times: list[str] = field(default_factory=list)
    start_time: str | None = None
    end_time: str | None = None
    end_inferred: bool = False


@dataclass
class DurationEntity:
    minutes: int


@dataclass
class WeekdayPattern:
    days: list[int]
    kind: str  # "range", "alias" or "list"


@dataclass
class ContextEntities:
    status: str | None = None
    priority: str | None = None


@dataclass
class ExtractedEntities:
    """Everything recognized in one message. Recomputed per message."""

    dates: DateEntities | None = None
    times: TimeEntities | None = None
    duration: DurationEntity | None = None
    weekday_pattern: WeekdayPattern | None = None
    context: ContextEntities | None = None

    def is_empty(self) -> bool:
        return not any((self.dates, self.times, self.duration, self.weekday_pattern, self.context))

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def normalize(text: str) -> str:
    """Lowercase, fold curly quotes and collapse whitespace."""
    text = text.lower()
    text = text.replace("‘", "'").replace("’", "'")
    text = text.replace("“", '"').replace("”", '"')
    return re.sub(r"\s+", " ", text).strip()


def day_index(d: date) -> int:
    """Weekday of ``d`` with Sunday as 0."""
    return d.isoweekday() % 7


def week_bounds(d: date) -> tuple[date, date]:
    """Sunday..Saturday week containing ``d``."""
    start = d - timedelta(days=day_index(d))
    return start, start + timedelta(days=6)


def next_occurrence(today: date, weekday: int) -> date:
    """Next ``weekday`` strictly after today."""
    diff = weekday - day_index(today)
    if diff <= 0:
        diff += 7
    return today + timedelta(days=diff)


def last_occurrence(today: date, weekday: int) -> date:
    """Most recent ``weekday`` strictly before today."""
    diff = day_index(today) - weekday
    if diff <= 0:
        diff += 7
    return today - timedelta(days=diff)


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _fmt_time(hour: int, minute: int = 0) -> str:
    return f"{hour % 24:02d}:{minute:02d}"


def _to_24h(hour: int, meridiem: str | None) -> int:
    if meridiem:
        pm = meridiem.startswith("p")
        if hour == 12:
            return 12 if pm else 0
        return hour + 12 if pm else hour
    return hour


# -- Dates ---------------------------------------------------------------------


def _month_number(token: str) -> int:
    return _MONTHS[token[:4] if token.startswith("sept") else token[:3]]


def _year(token: str | None, today: date) -> int:
    if not token:
        return today.year
    return 2000 + int(token) if len(token) == 2 else int(token)


# Explicit date shapes, tried in order. Each yields (year, month, day).
_DATE_RULES: tuple[tuple[re.Pattern[str], Callable[..., tuple[int, int, int]]], ...] = (
    (
        re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b"),
        lambda today, y, m, d: (int(y), int(m), int(d)),
    ),
    (
        re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?\b"),
        lambda today, m, d, y: (_year(y, today), int(m), int(d)),
    ),
    (
        re.compile(r"\b(\d{1,2})-(\d{1,2})-(\d{4})\b"),
        lambda today, d, m, y: (int(y), int(m), int(d)),
    ),
    (
        re.compile(rf"\b({_MONTH_RE})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b(?:,?\s*(\d{{4}}))?"),
        lambda today, m, d, y: (_year(y, today), _month_number(m), int(d)),
    ),
    (
        re.compile(rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+(?:of\s+)?({_MONTH_RE})\b(?:,?\s*(\d{{4}}))?"),
        lambda today, d, m, y: (_year(y, today), _month_number(m), int(d)),
    ),
)


def _scan_dates(text: str, today: date) -> tuple[list[date], list[str]]:
    """Valid dates from the first shape that yields any, plus every impossible date seen on the way."""
    invalid: list[str] = []
    for pattern, parts in _DATE_RULES:
        found: list[date] = []
        for m in pattern.finditer(text):
            d = _safe_date(*parts(today, *m.groups()))
            if d is None:
                invalid.append(m.group(0).strip())
            else:
                found.append(d)
        if found:
            return found, invalid
    return [], invalid


def _explicit_dates(text: str, today: date) -> list[date]:
    return _scan_dates(text, today)[0]


def find_invalid_dates(text: str, now: datetime) -> list[str]:
    """Date-shaped tokens that name no real calendar day, such as ``2024-02-30``."""
    return _scan_dates(normalize(text), now.date())[1]


def extract_dates(text: str, now: datetime) -> DateEntities | None:
    today = now.date()

    explicit = _explicit_dates(text, today)
    if explicit:
        end = explicit[1] if len(explicit) > 1 else None
        return DateEntities(explicit[0].isoformat(), end.isoformat() if end else None)

    if re.search(r"\bday after tomorrow\b", text):
        return DateEntities((today + timedelta(days=2)).isoformat())
    if re.search(r"\b(today|tonight|now)\b", text):
        return DateEntities(today.isoformat())
    if re.search(r"\btomorrow\b", text):
        return DateEntities((today + timedelta(days=1)).isoformat())
    if re.search(r"\byesterday\b", text):
        return DateEntities((today - timedelta(days=1)).isoformat())
    if m := re.search(r"\bin (\d+) days?\b", text):
        return DateEntities((today + timedelta(days=int(m.group(1)))).isoformat())

    if m := re.search(r"\b(this|next|last) week\b", text):
        start, end = week_bounds(today)
        shift = {"this": 0, "next": 7, "last": -7}[m.group(1)]
        return DateEntities(
            (start + timedelta(days=shift)).isoformat(),
            (end + timedelta(days=shift)).isoformat(),
        )

    if m := re.search(r"\b(this|next) weekend\b", text):
        saturday = today + timedelta(days=6 - day_index(today))
        if m.group(1) == "next":
            saturday += timedelta(days=7)
        return DateEntities(saturday.isoformat(), (saturday + timedelta(days=1)).isoformat())

    if m := re.search(r"\b(this|next) month\b", text):
        year, month = today.year, today.month
        if m.group(1) == "next":
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        last_day = calendar.monthrange(year, month)[1]
        return DateEntities(date(year, month, 1).isoformat(), date(year, month, last_day).isoformat())

    # "every monday" is a recurrence, not one particular day
    recurring = re.search(rf"\b(?:every|each) (?:{_WEEKDAY_RE})\b", text)
    if not recurring and (m := re.search(rf"\b(?:(this|next|last|coming|past) )?({_WEEKDAY_RE})\b", text)):
        qualifier, name = m.group(1), m.group(2)
        weekday = WEEKDAY_NAMES.index(name)
        if qualifier in ("last", "past"):
            target = last_occurrence(today, weekday)
        elif qualifier == "this" and weekday == day_index(today):
            target = today
        else:
            target = next_occurrence(today, weekday)
        return DateEntities(target.isoformat())

    return None


# -- Times ---------------------------------------------------------------------

_CLOCK_RE = re.compile(r"\b(\d{1,2}):(\d{2})\s*(am|pm|a\.m\.|p\.m\.)?")
_HOUR_MERIDIEM_RE = re.compile(r"\b(\d{1,2})\s*(am|pm|a\.m\.|p\.m\.)(?!\w)")
_PREPOSITION_HOUR_RE = re.compile(
    r"\b(?:at|from|to|until|till)\s+(\d{1,2})(?![\d:])(?!\s*(?:am|pm|a\.m\.|p\.m\.|hours?|hrs?|mins?|minutes?|days?|weeks?|slots?)\b)"
)
_NAMED_TIME_RE = re.compile(r"\b(noon|midday|midnight)\b")
_DAYPARTS = {"morning": "09:00", "afternoon": "14:00", "evening": "18:00", "night": "20:00"}
_DAYPART_RE = re.compile(r"\b(morning|afternoon|evening|night)\b")


def _bare_hour(hour: int) -> int:
    # Without am/pm, 1-7 is read as afternoon business hours.
    return hour + 12 if 1 <= hour <= 7 else hour


def extract_times(text: str) -> TimeEntities | None:
    found: list[tuple[int, str]] = []
    taken: list[tuple[int, int]] = []

    def claim(span: tuple[int, int], value: str) -> None:
        if any(span[0] < end and start < span[1] for start, end in taken):
            return
        taken.append(span)
        found.append((span[0], value))

    for m in _CLOCK_RE.finditer(text):
        hour, minute = int(m.group(1)), int(m.group(2))
        if hour > 23 or minute > 59:
            continue
        hour = _to_24h(hour, m.group(3)) if m.group(3) else _bare_hour(hour)
        claim(m.span(), _fmt_time(hour, minute))

    for m in _HOUR_MERIDIEM_RE.finditer(text):
        hour = int(m.group(1))
        if 1 <= hour <= 12:
            claim(m.span(), _fmt_time(_to_24h(hour, m.group(2))))

    for m in _PREPOSITION_HOUR_RE.finditer(text):
        hour = int(m.group(1))
        if hour <= 23:
            claim(m.span(), _fmt_time(_bare_hour(hour)))

    for m in _NAMED_TIME_RE.finditer(text):
        claim(m.span(), "00:00" if m.group(1) == "midnight" else "12:00")

    if not found:
        m = _DAYPART_RE.search(text)
        if m is None:
            return None
        found.append((m.start(), _DAYPARTS[m.group(1)]))

    times = list(dict.fromkeys(value for _, value in sorted(found)))
    if len(times) >= 2:
        return TimeEntities(times=times, start_time=times[0], end_time=times[1])

    start = times[0]
    start_dt = datetime.strptime(start, "%H:%M")
    end = (start_dt + timedelta(minutes=infer_duration(text))).strftime("%H:%M")
    return TimeEntities(times=times, start_time=start, end_time=end, end_inferred=True)


# -- Durations -----------------------------------------------------------------

_HOURS_RE = re.compile(r"\b(\d+(?:\.\d+)?)\s*-?\s*(?:hours?|hrs?)\b")
_MINUTES_RE = re.compile(r"\b(\d+)\s*-?\s*(?:minutes?|mins?)\b")


def extract_duration(text: str) -> DurationEntity | None:
    minutes = 0.0
    if m := _HOURS_RE.search(text):
        minutes += float(m.group(1)) * 60
    if m := _MINUTES_RE.search(text):
        minutes += int(m.group(1))
    if not minutes:
        if re.search(r"\bhalf an? hour\b", text):
            minutes = 30
        elif re.search(r"\b(an|one) hour\b", text):
            minutes = 60
    if minutes <= 0:
        return None
    return DurationEntity(minutes=int(round(minutes)))


def infer_duration(text: str) -> int:
    """Duration in minutes: explicit mention first, then wording, then the default."""
    text = normalize(text)
    explicit = extract_duration(text)
    if explicit is not None:
        return explicit.minutes
    if re.search(r"\b(meeting|consultation|appointment)s?\b", text):
        return 60
    if re.search(r"\b(quick|brief|short)\b", text):
        return 30
    if re.search(r"\b(long|extended|detailed)\b", text):
        return 120
    return DEFAULT_DURATION_MINUTES


# -- Weekday patterns ----------------------------------------------------------


def _day_number(token: str) -> int:
    if token in WEEKDAY_NAMES:
        return WEEKDAY_NAMES.index(token)
    return _DAY_ABBREVIATIONS[token]


def extract_weekday_pattern(text: str) -> WeekdayPattern | None:
    m = re.search(
        rf"\b({_DAY_TOKEN_RE})\s*(?:-|–|to|through|thru)\s*({_DAY_TOKEN_RE})\b",
        text,
    )
    if m:
        first, last = _day_number(m.group(1)), _day_number(m.group(2))
        span = (last - first) % 7
        days = sorted({(first + i) % 7 for i in range(span + 1)})
        return WeekdayPattern(days=days, kind="range")

    if re.search(r"\bweekdays\b", text):
        return WeekdayPattern(days=[1, 2, 3, 4, 5], kind="alias")
    if re.search(r"\bweekends\b", text):
        return WeekdayPattern(days=[0, 6], kind="alias")
    if re.search(r"\b(daily|every day|each day)\b", text):
        return WeekdayPattern(days=list(range(7)), kind="alias")

    plural = re.findall(rf"\b({_WEEKDAY_RE})s\b", text)
    if re.search(rf"\b(every|each) ({_WEEKDAY_RE})\b", text) or plural:
        names = re.findall(rf"\b({_WEEKDAY_RE})s?\b", text)
        return WeekdayPattern(days=sorted({WEEKDAY_NAMES.index(n) for n in names}), kind="list")
    return None


# -- Status / priority ---------------------------------------------------------


def extract_context(text: str) -> ContextEntities | None:
    status = None
    if re.search(r"\b(available|free|open)\b", text):
        status = "available"
    elif re.search(r"\b(booked|busy|taken|occupied)\b", text):
        status = "booked"
    elif re.search(r"\b(expired|past)\b", text):
        status = "expired"
    priority = "high" if re.search(r"\b(urgent|asap|immediately)\b", text) else None
    if status is None and priority is None:
        return None
    return ContextEntities(status=status, priority=priority)


def extract(text: str, now: datetime) -> ExtractedEntities:
    """Run every extractor over ``text``, resolving relative dates against ``now``."""
    text = normalize(text)
    return ExtractedEntities(
        dates=extract_dates(text, now),
        times=extract_times(text),
        duration=extract_duration(text),
        weekday_pattern=extract_weekday_pattern(text),
        context=extract_context(text),
    )
