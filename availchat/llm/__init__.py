"""Remote completion backends."""

from availchat.llm.client import (
    ClaudeCompletionClient,
    CompletionRequest,
    CompletionResponse,
    HttpCompletionClient,
    RemoteCompletionClient,
    RemoteCompletionError,
    build_completion_client,
)

__all__ = [
    "ClaudeCompletionClient",
    "CompletionRequest",
    "CompletionResponse",
    "HttpCompletionClient",
    "RemoteCompletionClient",
    "RemoteCompletionError",
    "build_completion_client",
]
