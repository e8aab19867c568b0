"""Remote completion clients: the primary path for answering a message.

Two backends share one request/response shape:

- ``HttpCompletionClient`` posts to the availability backend's AI endpoint;
- ``ClaudeCompletionClient`` calls the Anthropic Messages API with the
  tool catalog's schemas.

Any failure surfaces as ``RemoteCompletionError`` so the caller can fall
back to the local pipeline.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import anthropic
import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from availchat.config import settings
from availchat.llm.prompt import build_system_prompt

if TYPE_CHECKING:
    from availchat.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


class RemoteCompletionError(Exception):
    """The remote completion service failed or returned something unusable."""


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RemoteToolCall(_WireModel):
    name: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class CompletionRequest(_WireModel):
    message: str
    context: dict[str, Any] = Field(default_factory=dict)
    tools: list[dict[str, Any]] = Field(default_factory=list)
    conversation_history: list[dict[str, Any]] = Field(default_factory=list)


class CompletionResponse(_WireModel):
    response: str = ""
    tool_calls: list[RemoteToolCall] = Field(default_factory=list)
    suggested_actions: list[str] = Field(default_factory=list)


class RemoteCompletionClient(Protocol):
    async def complete(self, request: CompletionRequest) -> CompletionResponse: ...


class HttpCompletionClient:
    """POSTs the request to ``{backend}/ai/chat/process``."""

    def __init__(
        self,
        url: str | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url or settings.get_completion_api_url()
        self._token = settings.availability_api_token if token is None else token
        self._timeout = settings.http_timeout_seconds if timeout is None else timeout
        self._transport = transport

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    self._url,
                    json=request.model_dump(by_alias=True, mode="json"),
                    headers=headers,
                )
                resp.raise_for_status()
                return CompletionResponse.model_validate(resp.json())
        except httpx.HTTPStatusError as exc:
            msg = f"Completion service returned {exc.response.status_code}"
            raise RemoteCompletionError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"Completion service unreachable: {exc}"
            raise RemoteCompletionError(msg) from exc
        except (ValueError, ValidationError) as exc:
            msg = f"Completion service sent an invalid response: {exc}"
            raise RemoteCompletionError(msg) from exc


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


def _to_claude_messages(history: list[dict[str, Any]], message: str) -> list[dict[str, Any]]:
    """Alternating user/assistant turns that start with a user turn and end with ``message``."""
    turns = [
        {"role": h["role"], "content": h["content"]}
        for h in history
        if h.get("role") in ("user", "assistant") and h.get("content")
    ]
    if not turns or turns[-1]["role"] != "user" or turns[-1]["content"] != message:
        turns.append({"role": "user", "content": message})
    while turns and turns[0]["role"] != "user":
        turns.pop(0)

    merged: list[dict[str, Any]] = []
    for turn in turns:
        if merged and merged[-1]["role"] == turn["role"]:
            merged[-1]["content"] += "\n\n" + turn["content"]
        else:
            merged.append(dict(turn))
    return merged


class ClaudeCompletionClient:
    """Asks Claude which tools to call. Tools are executed by the caller."""

    def __init__(
        self,
        tool_schemas: list[dict[str, Any]],
        *,
        model: str | None = None,
        max_tokens: int = 1024,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self._tool_schemas = tool_schemas
        self._model = model or settings.claude_model
        self._max_tokens = max_tokens
        self._client = client

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        client = self._client or _get_client()
        try:
            response = await client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=build_system_prompt(request.context),
                messages=_to_claude_messages(request.conversation_history, request.message),
                tools=self._tool_schemas,
            )
        except anthropic.APIError as exc:
            msg = f"Claude request failed: {exc}"
            raise RemoteCompletionError(msg) from exc

        text_parts: list[str] = []
        calls: list[RemoteToolCall] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                calls.append(RemoteToolCall(name=block.name, parameters=dict(block.input or {})))

        logger.info("Claude replied with %d tool calls (stop_reason=%s)", len(calls), response.stop_reason)
        return CompletionResponse(response="\n".join(text_parts).strip(), tool_calls=calls)


def build_completion_client(registry: ToolRegistry) -> RemoteCompletionClient | None:
    """The configured remote backend, or ``None`` to use the local pipeline only."""
    backend = settings.completion_backend.lower()
    if backend == "http":
        return HttpCompletionClient()
    if backend == "anthropic":
        if not settings.anthropic_api_key:
            logger.warning("completion_backend=anthropic but no API key is set; using local pipeline only")
            return None
        return ClaudeCompletionClient(registry.get_schemas())
    if backend != "none":
        logger.warning("Unknown completion backend '%s'; using local pipeline only", backend)
    return None
