"""Intent detection: map free text to a tool name with a confidence score.

Three strategies run over the normalized text:

- pattern: an ordered table of ``IntentRule`` regexes, each scored by
  ``score_rule``;
- semantic: a bag of indicator phrases per action;
- contextual: keywords of the actions already taken in this conversation.

The highest confidence wins. On equal confidence the earlier strategy in
that list wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from availchat.nlp.entities import normalize
from availchat.tools.base import ToolName

if TYPE_CHECKING:
    from availchat.chat.context import ConversationContext

PATTERN_CAP = 0.95
SEMANTIC_CAP = 0.8
SEMANTIC_MIN_HITS = 4
CONTEXTUAL_THRESHOLD = 0.5

# Up to six intervening words between two parts of a rule.
_GAP = r"(?:\W+\w+){0,6}?\W+"

_DAYS = "monday|tuesday|wednesday|thursday|friday|saturday|sunday"


def _seq(*parts: str) -> re.Pattern[str]:
    """Compile word-bounded alternation groups that must appear in order."""
    return re.compile(r"\b(?:" + (")" + _GAP + "(?:").join(parts) + r")\b")


@dataclass(frozen=True)
class IntentRule:
    action: str
    pattern: re.Pattern[str]
    weight: float = 0.7


@dataclass
class IntentResult:
    action: str | None
    confidence: float
    response: str = ""
    strategy: str = "none"

    @classmethod
    def none(cls) -> IntentResult:
        return cls(action=None, confidence=0.0)


_G = ToolName.GET_AVAILABILITY_DATA
_C = ToolName.CREATE_AVAILABILITY_SLOT
_CB = ToolName.CREATE_BULK_AVAILABILITY
_U = ToolName.UPDATE_AVAILABILITY_SLOT
_D = ToolName.DELETE_AVAILABILITY_SLOT
_DB = ToolName.DELETE_BULK_AVAILABILITY
_N = ToolName.NAVIGATE_CALENDAR

_CREATE_VERBS = "create|add|make|new|book|schedule|set up|setup|establish|generate|put in|open up"
_DELETE_VERBS = "delete|remove|cancel|clear|eliminate|erase|drop|take away|get rid of|unbook|wipe|purge"

RULES: tuple[IntentRule, ...] = (
    IntentRule(
        _CB,
        _seq(
            "create|add|make|set up|setup|generate|open up|schedule|book",
            r"bulk|multiple|many|several|batch|recurring|repeated|regular|daily|weekly|monthly"
            r"|every|each|weekdays|weekends|\d+\s+(?:\w+\s+)?slots",
        ),
        weight=0.8,
    ),
    IntentRule(_C, _seq(_CREATE_VERBS, "slots?|availability|appointments?|time|meetings?|sessions?|bookings?|block")),
    IntentRule(_C, _seq("block|reserve|allocate|mark", "time|slot|calendar|schedule|period")),
    IntentRule(_C, _seq("mark me as|set me as|make me", "available|free")),
    IntentRule(_C, _seq("book", f"{_DAYS}|today|tomorrow|at|for")),
    IntentRule(
        _DB,
        _seq(_DELETE_VERBS, "all|every|multiple|bulk|unbooked|expired|empty|unused|old|past"),
        weight=0.8,
    ),
    IntentRule(_D, _seq(_DELETE_VERBS, "slots?|availability|appointments?|time|meetings?|sessions?|bookings?")),
    IntentRule(_D, _seq("free up|unblock|unschedule|clear out", "time|slot|schedule|calendar|period")),
    IntentRule(_D, _seq("remove|delete|cancel", f"today|tomorrow|this|next|{_DAYS}")),
    IntentRule(_D, _seq("don't|do not|no longer", "need|want|require", "slot|time|appointment|meeting")),
    IntentRule(
        _U,
        _seq(
            "update|modify|change|move|edit|reschedule|adjust|alter|shift|relocate",
            "slots?|availability|appointments?|time|meetings?|sessions?",
        ),
    ),
    IntentRule(_U, _seq("move|shift|relocate|transfer|change|reschedule", "to|earlier|later|different")),
    IntentRule(_U, _seq("extend|shorten|lengthen|reduce", "slot|appointment|meeting|time|session")),
    IntentRule(_U, _seq("make|change", "longer|shorter|bigger|smaller", "slot|appointment|time")),
    IntentRule(
        _N,
        _seq("go to|navigate|jump to|switch to|take me to|open", "calendar|day view|week view|month view"),
    ),
    IntentRule(
        _N,
        _seq("go to|navigate to|jump to|take me to", rf"today|tomorrow|next week|next month|{_DAYS}|\d{{4}}-\d{{2}}-\d{{2}}"),
    ),
    IntentRule(
        _G,
        _seq(
            "show|display|list|view|see|check|find|get|retrieve|pull up|bring up|what|how many|tell me|let me know|when",
            "availability|available|slots?|schedule|calendar|appointments?|meetings?|bookings?|free|busy|booked|time",
        ),
    ),
    IntentRule(
        _G,
        _seq(
            "do i have|am i|is there|are there|have i got|have we got",
            "any|time|slots?|availability|available|appointments?|free|busy|meetings?",
        ),
    ),
    IntentRule(_G, _seq("when am i|when are we|what time am i|what time are we", "free|available|busy|booked")),
    IntentRule(
        _G,
        _seq(f"{_DAYS}|today|tomorrow|morning|afternoon|evening|tonight|weekend", "availability|schedule|slots?"),
    ),
    IntentRule(_G, _seq("how many|count|number of", "slots?|appointments?|times?|hours?|meetings?|bookings?")),
)

# Keyword-density vocabulary per action; prefix matches count ("slot" finds "slots").
ACTION_KEYWORDS: dict[str, tuple[str, ...]] = {
    _G: ("show", "display", "view", "see", "check", "list", "get", "retrieve", "availability",
         "schedule", "calendar", "free", "busy"),
    _C: ("create", "add", "make", "new", "book", "schedule", "set", "availability", "slot",
         "appointment"),
    _D: ("delete", "remove", "cancel", "clear", "eliminate", "erase", "unbook"),
    _U: ("update", "modify", "change", "edit", "reschedule", "move", "shift", "adjust"),
    _CB: ("bulk", "multiple", "many", "several", "batch", "all", "recurring", "repeated"),
    _DB: ("delete", "remove", "clear", "all", "unbooked", "expired", "bulk", "every"),
    _N: ("go", "navigate", "calendar", "view", "jump", "switch", "open"),
}  # fmt: skip

PATTERN_RESPONSES: dict[str, str] = {
    _G: "I'll retrieve your availability data",
    _C: "I'll help you create a new availability slot",
    _D: "I'll help you delete availability slots",
    _U: "I'll help you update your availability slots",
    _CB: "I'll help you create multiple availability slots",
    _DB: "I'll help you delete multiple availability slots",
    _N: "I'll take you to the calendar",
}

_NL_INDICATORS = (
    re.compile(r"\b(what|how|when|where|why|which)\b"),
    re.compile(r"\b(show me|tell me|help me|can you|please|i want|i need|i'd like)\b"),
    re.compile(r"\b(today|tomorrow|this week|next week|morning|afternoon|evening)\b"),
)
_TEMPORAL_PREPOSITION = re.compile(r"\b(at|on|from|to|until|between|during|before|after)\b")


def _has_keyword(text: str, keyword: str) -> bool:
    return re.search(r"\b" + re.escape(keyword), text) is not None


def score_rule(rule: IntentRule, text: str) -> float:
    """Confidence of ``rule`` for already-normalized ``text``; 0.0 when it does not match."""
    if not rule.pattern.search(text):
        return 0.0

    confidence = rule.weight
    keywords = ACTION_KEYWORDS.get(rule.action, ())
    if keywords:
        found = sum(1 for kw in keywords if _has_keyword(text, kw))
        confidence += found / len(keywords) * 0.2

    confidence += 0.1 * sum(1 for indicator in _NL_INDICATORS if indicator.search(text))

    if 3 <= len(text.split()) <= 15:
        confidence += 0.05
    if _TEMPORAL_PREPOSITION.search(text):
        confidence += 0.08

    return min(confidence, PATTERN_CAP)


def match_patterns(text: str, rules: tuple[IntentRule, ...] = RULES) -> IntentResult:
    best = IntentResult.none()
    for rule in rules:
        confidence = score_rule(rule, text)
        if confidence > best.confidence:
            best = IntentResult(
                action=rule.action,
                confidence=confidence,
                response=PATTERN_RESPONSES.get(rule.action, ""),
                strategy="pattern",
            )
    return best


# -- Semantic ------------------------------------------------------------------

SEMANTIC_INDICATORS: dict[str, tuple[str, ...]] = {
    _G: ("what", "how many", "show", "display", "list", "view", "see", "check", "find", "get",
         "available", "free", "busy", "schedule", "calendar", "my", "availability", "slots",
         "tell me", "let me see", "i want to see", "i need to know"),
    _C: ("create", "add", "make", "new", "book", "schedule", "set up", "setup", "establish",
         "i want to add", "i need to create", "help me make", "can you add", "please create"),
    _D: ("delete", "remove", "cancel", "clear", "eliminate", "erase", "drop", "take away",
         "get rid of", "free up", "unblock", "no longer need", "dont need"),
    _U: ("update", "modify", "change", "move", "edit", "reschedule", "adjust", "alter", "shift",
         "make it different", "change time", "move to", "different time"),
    _CB: ("bulk", "multiple", "many", "several", "batch", "all", "every", "each", "recurring",
          "repeated", "regular", "weekly", "daily", "pattern", "routine"),
}  # fmt: skip

SEMANTIC_RESPONSES: dict[str, str] = {
    _G: "I'll retrieve your availability information",
    _C: "I'll help you create availability",
    _D: "I'll help you remove availability",
    _U: "I'll help you modify your availability",
    _CB: "I'll help you create multiple availability slots",
}


def match_semantics(text: str) -> IntentResult:
    best_action, best_hits = None, 0
    for action, indicators in SEMANTIC_INDICATORS.items():
        hits = sum(1 for phrase in indicators if re.search(rf"\b{re.escape(phrase)}\b", text))
        if hits > best_hits:
            best_action, best_hits = action, hits

    if best_action is None or best_hits < SEMANTIC_MIN_HITS:
        return IntentResult.none()
    return IntentResult(
        action=best_action,
        confidence=min(best_hits * 0.1, SEMANTIC_CAP),
        response=SEMANTIC_RESPONSES[best_action],
        strategy="semantic",
    )


# -- Contextual ----------------------------------------------------------------

CONTEXT_KEYWORDS: dict[str, tuple[str, ...]] = {
    _G: ("show", "display", "see", "view", "check"),
    _C: ("create", "add", "make", "new", "book"),
    _D: ("delete", "remove", "cancel", "clear"),
    _U: ("update", "change", "modify", "edit"),
}

CONTEXT_RESPONSES: dict[str, str] = {
    _G: "Based on our conversation, I'll get your availability information.",
    _C: "Following up on our discussion, I'll create that availability slot.",
    _D: "As we discussed, I'll remove those availability slots.",
    _U: "Continuing from before, I'll update your availability.",
    _CB: "As requested earlier, I'll create multiple availability slots.",
}


def match_context(text: str, recent_tools: list[str]) -> IntentResult:
    """Score against the tools already used; ``recent_tools`` is newest first."""
    if not recent_tools:
        return IntentResult.none()

    score = 0.0
    for tool_name in recent_tools:
        for keyword in CONTEXT_KEYWORDS.get(tool_name, ()):
            if _has_keyword(text, keyword):
                score += 0.2
    score = min(score, 1.0)

    if score <= CONTEXTUAL_THRESHOLD:
        return IntentResult.none()
    action = recent_tools[0]
    return IntentResult(
        action=action,
        confidence=score,
        response=CONTEXT_RESPONSES.get(action, "I'll help you with your request."),
        strategy="contextual",
    )


def combine(results: list[IntentResult]) -> IntentResult:
    """Highest confidence wins; the first of equal results is kept."""
    best = IntentResult.none()
    for result in results:
        if result.action is not None and result.confidence > best.confidence:
            best = result
    return best


def detect_intent(text: str, context: ConversationContext | None = None) -> IntentResult:
    """Run every strategy over ``text`` and return the combined result."""
    text = normalize(text)
    recent = context.recent_tool_names() if context is not None else []
    return combine([match_patterns(text), match_semantics(text), match_context(text, recent)])
