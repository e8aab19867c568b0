"""Tests for intent detection: pattern, semantic and contextual strategies."""

import re

import pytest

from availchat.chat.context import ConversationContext
from availchat.nlp.intents import (
    RULES,
    IntentResult,
    IntentRule,
    combine,
    detect_intent,
    match_context,
    match_patterns,
    match_semantics,
    score_rule,
)
from availchat.tools.base import ToolName


@pytest.mark.parametrize(
    ("text", "action"),
    [
        ("show my availability tomorrow", ToolName.GET_AVAILABILITY_DATA),
        ("create a 2 hour slot tomorrow at 9am", ToolName.CREATE_AVAILABILITY_SLOT),
        ("create slots every weekday at 9am", ToolName.CREATE_BULK_AVAILABILITY),
        ("delete all expired slots", ToolName.DELETE_BULK_AVAILABILITY),
        ("move my 2pm slot to 4pm", ToolName.UPDATE_AVAILABILITY_SLOT),
        ("go to the calendar", ToolName.NAVIGATE_CALENDAR),
        ("book 2024-01-19 at 2:00 pm", ToolName.CREATE_AVAILABILITY_SLOT),
    ],
)
def test_detects_action(text: str, action: str) -> None:
    result = detect_intent(text)
    assert result.action == action
    assert result.strategy == "pattern"


def test_pattern_confidence_breakdown() -> None:
    # base 0.7 + 2 of 13 keywords + one natural-language indicator + short-message bonus
    result = detect_intent("Show my availability tomorrow")
    assert result.confidence == pytest.approx(0.7 + 2 / 13 * 0.2 + 0.1 + 0.05)
    assert result.response == "I'll retrieve your availability data"


def test_pattern_confidence_is_capped() -> None:
    result = detect_intent("create a 2 hour slot tomorrow at 9am")
    assert result.confidence == pytest.approx(0.95)


def test_score_rule_without_match_is_zero() -> None:
    assert score_rule(RULES[0], "hello there") == 0.0


def test_earlier_rule_wins_ties() -> None:
    pattern = re.compile(r"\bslots\b")
    rules = (IntentRule("first", pattern), IntentRule("second", pattern))
    assert match_patterns("create slots", rules).action == "first"


def test_unmatched_text() -> None:
    result = detect_intent("hello there")
    assert result.action is None
    assert result.confidence == 0.0


# -- Semantic --------------------------------------------------------------------


def test_semantic_needs_four_indicators() -> None:
    assert match_semantics("create add").action is None

    result = match_semantics("create add make new")
    assert result.action == ToolName.CREATE_AVAILABILITY_SLOT
    assert result.confidence == pytest.approx(0.4)
    assert result.strategy == "semantic"


def test_semantic_confidence_is_capped() -> None:
    text = "delete remove cancel clear eliminate erase drop take away get rid of"
    result = match_semantics(text)
    assert result.action == ToolName.DELETE_AVAILABILITY_SLOT
    assert result.confidence == pytest.approx(0.8)


# -- Contextual ------------------------------------------------------------------


def test_context_needs_history() -> None:
    assert match_context("show display see view", []).action is None


def test_context_below_threshold() -> None:
    assert match_context("show and check", [ToolName.GET_AVAILABILITY_DATA]).action is None


def test_context_match() -> None:
    result = match_context("show display see view", [ToolName.GET_AVAILABILITY_DATA])
    assert result.action == ToolName.GET_AVAILABILITY_DATA
    assert result.confidence == pytest.approx(0.8)
    assert result.strategy == "contextual"


def test_context_picks_newest_action() -> None:
    recent = [ToolName.CREATE_AVAILABILITY_SLOT, ToolName.GET_AVAILABILITY_DATA]
    result = match_context("show display see add", recent)
    assert result.action == ToolName.CREATE_AVAILABILITY_SLOT


def test_detect_intent_reads_context() -> None:
    ctx = ConversationContext()
    ctx.record_action(ToolName.GET_AVAILABILITY_DATA, success=True, message="Found 0 availability slots")

    # No pattern rule matches these verbs alone.
    result = detect_intent("show display see view", ctx)
    assert result.action == ToolName.GET_AVAILABILITY_DATA
    assert result.strategy == "contextual"


@pytest.mark.parametrize(
    "text",
    [
        "show my availability tomorrow",
        "delete every monday slot",
        "show display see view",
        "hello there",
    ],
)
def test_detect_intent_is_repeatable(text: str) -> None:
    ctx = ConversationContext()
    ctx.record_action(ToolName.GET_AVAILABILITY_DATA, success=True, message="Found 0 availability slots")
    ctx.record_action(ToolName.CREATE_AVAILABILITY_SLOT, success=False, message="Invalid parameters")

    results = {
        (r.action, r.confidence, r.strategy) for r in (detect_intent(text, ctx) for _ in range(5))
    }
    assert len(results) == 1


# -- Combination -----------------------------------------------------------------


def test_combine_prefers_highest() -> None:
    low = IntentResult("a", 0.5, strategy="pattern")
    high = IntentResult("b", 0.7, strategy="semantic")
    assert combine([low, high]) is high


def test_combine_keeps_first_on_tie() -> None:
    first = IntentResult("a", 0.6, strategy="pattern")
    second = IntentResult("b", 0.6, strategy="contextual")
    assert combine([first, second]) is first


def test_combine_ignores_empty_results() -> None:
    assert combine([IntentResult.none(), IntentResult.none()]).action is None
