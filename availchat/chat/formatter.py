"""Reply text for the local pipeline: tool result summaries, help and suggestions."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from availchat.tools.availability_tools import slot_is_booked, slot_start
from availchat.tools.base import ToolName

if TYPE_CHECKING:
    from availchat.chat.session import ToolCallRecord

MAX_CONTEXTUAL_SUGGESTIONS = 5

_CRUD_TOOLS = {
    ToolName.CREATE_AVAILABILITY_SLOT,
    ToolName.UPDATE_AVAILABILITY_SLOT,
    ToolName.DELETE_AVAILABILITY_SLOT,
    ToolName.DELETE_BULK_AVAILABILITY,
}


def format_response(base: str, records: list[ToolCallRecord]) -> str:
    """Append a Results section for successes and an Issues section for failures."""
    if not records:
        return base

    text = base
    succeeded = [r for r in records if r.result.get("success")]
    failed = [r for r in records if not r.result.get("success")]

    if succeeded:
        text += "\n\nResults:"
        for record in succeeded:
            data = record.result.get("data")
            if data:
                text += f"\n\n**{record.tool_name} completed:**"
                text += _tool_summary(record.tool_name, data)
            else:
                text += f"\n\n{record.result.get('message', '')}"

    if failed:
        text += "\n\nIssues:"
        for record in failed:
            text += f"\n• {record.result.get('message') or record.result.get('error')}"

    return text


def _tool_summary(tool_name: str, data: dict[str, Any]) -> str:
    if tool_name == ToolName.GET_AVAILABILITY_DATA:
        return _availability_summary(data)
    if tool_name == ToolName.CREATE_BULK_AVAILABILITY:
        return f"\n• Created {data.get('created', 0)} availability slots"
    if tool_name in _CRUD_TOOLS:
        if data.get("pending_confirmation"):
            return f"\n• {len(data.get('matches', []))} matching slots awaiting confirmation"
        return "\n• Operation completed successfully"
    return f"\n• {tool_name} completed"


def _availability_summary(data: dict[str, Any]) -> str:
    slots = data.get("slots")
    if slots is None:
        return ""

    lines = [f"\n• Found {len(slots)} availability slots"]
    summary = data.get("summary")
    if summary:
        lines.append(
            f"\n• Available: {summary['available']}, Booked: {summary['booked']}, Total: {summary['total']}"
        )
    if slots:
        free = [s for s in slots if not slot_is_booked(s)]
        start = slot_start(free[0]) if free else None
        if start is not None:
            lines.append(f"\n• Next available: {start.strftime('%Y-%m-%d %H:%M')}")
        elif not free:
            lines.append("\n• No available slots in this time period")
    return "".join(lines)


def helpful_response(text: str) -> str:
    """Reply for messages no intent could be matched to."""
    lowered = text.lower()
    if re.search(r"\b(help|confused|don't understand|what)\b", lowered):
        return (
            "I can help you manage your availability using natural language! Try asking me to "
            '"show my availability this week" or "create a slot for tomorrow at 2 PM".'
        )
    if re.search(r"\b(not working|broken|error)\b", lowered):
        return (
            "I'm sorry you're having trouble. Let me help you with your availability management. "
            'You can ask me in plain English like "show me my free time today" or '
            '"book me for Friday afternoon".'
        )
    if re.search(r"\b(time|schedule|calendar|available|free|busy)\b", lowered):
        return (
            "I understand you're asking about time management. I can help you view, create, "
            "update, or delete availability slots using natural language commands."
        )
    return (
        "I'm here to help you manage your availability using natural language. You can ask me "
        "to show, create, update, or delete availability slots. Just tell me what you need in "
        "your own words!"
    )


def contextual_suggestions(text: str) -> list[str]:
    lowered = text.lower()
    suggestions: list[str] = []

    if re.search(r"\b(today|now|right now)\b", lowered):
        suggestions += ["Show my availability for today", "Create a slot for today"]
    elif re.search(r"\btomorrow\b", lowered):
        suggestions += ["Show my availability for tomorrow", "Create availability for tomorrow"]
    elif re.search(r"\b(week|weekly)\b", lowered):
        suggestions += ["Show my availability for this week", "Create weekly recurring slots"]

    if re.search(r"\b(help|what|how)\b", lowered):
        suggestions += [
            "Show all my availability",
            "Create a new availability slot",
            "Delete old or unused slots",
            "Update existing availability",
        ]

    if not suggestions:
        suggestions = [
            "Show my availability for today",
            "Create a new availability slot",
            "Delete unbooked slots this week",
            "Show my availability for next week",
            "Create slots every weekday at 9 AM",
        ]
    return suggestions[:MAX_CONTEXTUAL_SUGGESTIONS]


_TOOL_SUGGESTIONS: dict[str, list[str]] = {
    ToolName.CREATE_AVAILABILITY_SLOT: [
        "Create a 1-hour slot tomorrow at 2 PM",
        "Add availability for Monday 9 AM to 5 PM",
        "Create slot for 2024-01-15 from 10:00 to 11:00",
    ],
    ToolName.DELETE_AVAILABILITY_SLOT: [
        "Delete the slot at 2 PM today",
        "Remove all unbooked slots this week",
        "Cancel my availability for tomorrow",
    ],
    ToolName.GET_AVAILABILITY_DATA: [
        "Show my schedule for this week",
        "List all available slots for tomorrow",
        "Display booked appointments for today",
    ],
}


def suggestions_for_tool(tool_name: str) -> list[str]:
    return list(_TOOL_SUGGESTIONS.get(tool_name, []))


def apology(exc: BaseException) -> str:
    return f"I apologize, but I encountered an error: {exc}. Please try again or rephrase your request."
