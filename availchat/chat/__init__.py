"""Conversation layer: context, sessions, storage, formatting and orchestration."""

from availchat.chat.context import ConversationContext, RecentAction
from availchat.chat.orchestrator import ChatService, LocalFallback, ProcessingResult, RemoteAttempt, TurnState
from availchat.chat.session import Message, MessageMetadata, Session, SessionManager, ToolCallRecord
from availchat.chat.storage import ChatWindowState, LocalStorage

__all__ = [
    "ChatService",
    "ChatWindowState",
    "ConversationContext",
    "LocalFallback",
    "LocalStorage",
    "Message",
    "MessageMetadata",
    "ProcessingResult",
    "RecentAction",
    "RemoteAttempt",
    "Session",
    "SessionManager",
    "ToolCallRecord",
    "TurnState",
]
