"""Chat sessions and message history."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from availchat.config import settings

if TYPE_CHECKING:
    from availchat.chat.storage import LocalStorage

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(ZoneInfo(settings.timezone))


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class ToolCallRecord:
    """One tool invocation made while answering a message."""

    tool_name: str
    parameters: dict[str, Any]
    result: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"toolName": self.tool_name, "parameters": self.parameters, "result": self.result}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCallRecord:
        return cls(
            tool_name=data["toolName"],
            parameters=dict(data.get("parameters") or {}),
            result=dict(data.get("result") or {}),
        )


@dataclass(frozen=True)
class MessageMetadata:
    tool_calls: tuple[ToolCallRecord, ...] = ()
    context_snapshot: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "toolCalls": [call.to_dict() for call in self.tool_calls],
            "contextSnapshot": self.context_snapshot,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessageMetadata:
        return cls(
            tool_calls=tuple(ToolCallRecord.from_dict(c) for c in data.get("toolCalls") or []),
            context_snapshot=dict(data.get("contextSnapshot") or {}),
        )


@dataclass(frozen=True)
class Message:
    """A single conversation turn. Never modified once created."""

    role: str  # "user" or "assistant"
    content: str
    id: str = field(default_factory=lambda: _new_id("msg"))
    timestamp: datetime = field(default_factory=_now)
    metadata: MessageMetadata | None = None

    @property
    def tool_calls(self) -> tuple[ToolCallRecord, ...]:
        return self.metadata.tool_calls if self.metadata else ()

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.metadata is not None:
            payload["metadata"] = self.metadata.to_dict()
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        metadata = data.get("metadata")
        return cls(
            id=data["id"],
            role=data["role"],
            content=data["content"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            metadata=MessageMetadata.from_dict(metadata) if metadata else None,
        )


@dataclass
class Session:
    """Conversation history for a single chat window."""

    user_id: str = ""
    title: str = "Availability Assistant"
    id: str = field(default_factory=lambda: _new_id("session"))
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    is_active: bool = True

    def add(self, message: Message) -> None:
        self.messages.append(message)
        self.updated_at = message.timestamp

    def recent(self, count: int) -> list[Message]:
        """The last ``count`` messages, oldest first."""
        if count <= 0:
            return []
        return self.messages[-count:]

    def clear(self) -> int:
        """Clear all messages. Returns the count of cleared messages."""
        count = len(self.messages)
        self.messages.clear()
        self.updated_at = _now()
        return count

    def to_api_messages(self, count: int | None = None) -> list[dict[str, str]]:
        """Role/content pairs, as sent to a completion service."""
        messages = self.messages if count is None else self.recent(count)
        return [{"role": m.role, "content": m.content} for m in messages]


class SessionManager:
    """Owns the active session of one chat client and keeps its history saved.

    When a ``LocalStorage`` is given, the history is loaded on startup and
    written back after every change.
    """

    def __init__(self, user_id: str = "", storage: LocalStorage | None = None) -> None:
        self._storage = storage
        self.session = Session(user_id=user_id)
        if storage is not None:
            for message in storage.load_history():
                self.session.messages.append(message)
            if self.session.messages:
                self.session.updated_at = self.session.messages[-1].timestamp
                logger.info("Restored %d messages from chat history", len(self.session.messages))

    @property
    def messages(self) -> list[Message]:
        return list(self.session.messages)

    def add_message(
        self,
        role: str,
        content: str,
        *,
        tool_calls: list[ToolCallRecord] | None = None,
        context_snapshot: dict[str, Any] | None = None,
    ) -> Message:
        metadata = None
        if tool_calls is not None or context_snapshot is not None:
            metadata = MessageMetadata(
                tool_calls=tuple(tool_calls or ()),
                context_snapshot=dict(context_snapshot or {}),
            )
        message = Message(role=role, content=content, metadata=metadata)
        self.session.add(message)
        self._save()
        return message

    def recent_messages(self, count: int) -> list[Message]:
        return self.session.recent(count)

    def clear_chat(self) -> None:
        """Drop the history and start a fresh session for the same user."""
        cleared = self.session.clear()
        self.session.is_active = False
        self.session = Session(user_id=self.session.user_id)
        if self._storage is not None:
            self._storage.clear_history()
        logger.info("Cleared chat (%d messages), new session %s", cleared, self.session.id)

    def _save(self) -> None:
        if self._storage is not None:
            self._storage.save_history(self.session.messages)
