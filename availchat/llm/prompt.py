"""System prompt assembly for the Claude completion backend."""

from __future__ import annotations

from typing import Any

_INSTRUCTIONS = """\
You are an assistant that manages a service provider's appointment availability.
Use the tools to view, create, update and delete availability slots. Dates are
YYYY-MM-DD and times are 24-hour HH:MM. If the request is ambiguous (which
Friday, AM or PM, which slots), ask a short clarifying question instead of
calling a tool. Keep replies brief."""


def build_system_prompt(context: dict[str, Any]) -> str:
    """Instructions plus the conversation context snapshot."""
    lines = [_INSTRUCTIONS, "", "## Context", ""]
    lines.append(f"- Current date: {context.get('currentDate', 'unknown')}")
    if context.get("currentPage"):
        lines.append(f"- Current page: {context['currentPage']}")
    recent = context.get("recentActions") or []
    if recent:
        lines.append("- Recent actions (newest first):")
        lines.extend(f"  - {action}" for action in recent)
    return "\n".join(lines)
