"""Tests for ConversationContext."""

from availchat.chat.context import ConversationContext


def test_reference_time_uses_fixed_now(now) -> None:
    ctx = ConversationContext(now=now)
    assert ctx.reference_time() == now


def test_reference_time_defaults_to_wall_clock() -> None:
    ctx = ConversationContext()
    assert ctx.reference_time().tzinfo is not None


def test_record_action_is_newest_first(now) -> None:
    ctx = ConversationContext(now=now)
    ctx.record_action("get_availability_data", success=True, message="Found 2 availability slots")
    ctx.record_action("create_availability_slot", success=True, message="Created slot")

    assert ctx.recent_tool_names() == ["create_availability_slot", "get_availability_data"]


def test_recent_actions_are_bounded(now) -> None:
    ctx = ConversationContext(now=now, max_recent_actions=2)
    for name in ("a", "b", "c"):
        ctx.record_action(name, success=True, message="ok")

    assert ctx.recent_tool_names() == ["c", "b"]


def test_recent_action_text(now) -> None:
    ctx = ConversationContext(now=now)
    ok = ctx.record_action("get_availability_data", success=True, message="Found 0 availability slots")
    bad = ctx.record_action("delete_availability_slot", success=False, message="No matching slots to delete")

    assert str(ok) == "Executed get_availability_data with result: Found 0 availability slots"
    assert str(bad) == "Executed delete_availability_slot with error: No matching slots to delete"


def test_snapshot_is_camel_case(now) -> None:
    ctx = ConversationContext(user_id="provider-1", current_page="/dashboard", now=now)
    ctx.record_action("navigate_calendar", success=True, message="Opened week view for 2024-01-15")

    snap = ctx.snapshot()
    assert snap["userId"] == "provider-1"
    assert snap["currentPage"] == "/dashboard"
    assert snap["currentDate"] == now.isoformat()
    assert snap["recentActions"] == ["Executed navigate_calendar with result: Opened week view for 2024-01-15"]
