"""ConversationContext: per-conversation state carried through every turn."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from availchat.config import settings


@dataclass(frozen=True)
class RecentAction:
    """One executed tool call, as remembered by the conversation."""

    tool_name: str
    success: bool
    message: str
    timestamp: datetime

    def __str__(self) -> str:
        outcome = "result" if self.success else "error"
        return f"Executed {self.tool_name} with {outcome}: {self.message}"


@dataclass
class ConversationContext:
    """Mutable state owned by a single conversation.

    Attributes:
        user_id: Operator whose availability is managed.
        current_page: UI location the operator is looking at.
        now: Fixed reference time. ``None`` means "use the wall clock".
        recent_actions: Newest-first log of executed tool calls, bounded
            to ``max_recent_actions`` entries.
    """

    user_id: str = ""
    current_page: str = ""
    now: datetime | None = None
    max_recent_actions: int = field(default_factory=lambda: settings.recent_actions_limit)
    recent_actions: deque[RecentAction] = field(init=False)

    def __post_init__(self) -> None:
        self.recent_actions = deque(maxlen=self.max_recent_actions)

    def reference_time(self) -> datetime:
        """The "now" that relative dates are resolved against."""
        if self.now is not None:
            return self.now
        return datetime.now(ZoneInfo(settings.timezone))

    def record_action(self, tool_name: str, *, success: bool, message: str) -> RecentAction:
        """Log a tool call. The oldest entry is evicted once the log is full."""
        action = RecentAction(
            tool_name=tool_name,
            success=success,
            message=message,
            timestamp=self.reference_time(),
        )
        self.recent_actions.appendleft(action)
        return action

    def recent_tool_names(self) -> list[str]:
        """Tool names of the logged actions, newest first."""
        return [a.tool_name for a in self.recent_actions]

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe copy, attached to messages and sent to the remote service."""
        return {
            "userId": self.user_id,
            "currentPage": self.current_page,
            "currentDate": self.reference_time().isoformat(),
            "recentActions": [str(a) for a in self.recent_actions],
        }
