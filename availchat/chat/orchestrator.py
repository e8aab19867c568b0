"""Chat orchestration: one user message in, one assistant message out.

Each message first goes to the remote completion backend. If that is not
configured or fails, the same text runs through the local pipeline:

    RECEIVE -> CONVERSATIONAL_CHECK -> CLARIFY
                                    -> INTENT_DETECT -> PARAM_BUILD -> EXECUTE -> FORMAT
                                                     -> HELP_RESPONSE

A yes or no answering a delete that is awaiting confirmation skips straight
to EXECUTE or FORMAT.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from availchat.chat.context import ConversationContext
from availchat.chat.formatter import (
    apology,
    contextual_suggestions,
    format_response,
    helpful_response,
    suggestions_for_tool,
)
from availchat.chat.session import Message, SessionManager, ToolCallRecord
from availchat.config import settings
from availchat.llm.client import CompletionRequest, RemoteCompletionError
from availchat.nlp.clarify import Clarification, ClarificationKind, ConversationalChecker
from availchat.nlp.entities import extract, normalize
from availchat.nlp.intents import detect_intent
from availchat.nlp.params import ParameterBuilder

if TYPE_CHECKING:
    from availchat.llm.client import RemoteCompletionClient
    from availchat.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

_CONFIRM_REPLY_RE = re.compile(
    r"^(yes|yep|yeah|y|sure|ok|okay|confirm|confirmed|go ahead|do it|delete (?:it|them))\b"
)
_DECLINE_REPLY_RE = re.compile(r"^(no|nope|n|cancel|stop|keep (?:it|them)|never ?mind|don't)\b")


class TurnState(StrEnum):
    RECEIVE = "receive"
    CONVERSATIONAL_CHECK = "conversational_check"
    CLARIFY = "clarify"
    INTENT_DETECT = "intent_detect"
    PARAM_BUILD = "param_build"
    EXECUTE = "execute"
    FORMAT = "format"
    HELP_RESPONSE = "help_response"


@dataclass
class ProcessingResult:
    response: str
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    suggested_actions: list[str] = field(default_factory=list)
    needs_clarification: bool = False
    clarification_kind: ClarificationKind | None = None
    states: list[TurnState] = field(default_factory=list)


@dataclass(frozen=True)
class RemoteAttempt:
    """The remote backend answered."""

    result: ProcessingResult


@dataclass(frozen=True)
class LocalFallback:
    """The local pipeline answered because the remote path was unavailable."""

    result: ProcessingResult
    reason: str


class ChatService:
    """Conversation front door for one chat client.

    Owns its ``ConversationContext`` and session; nothing is shared between
    instances. Messages are handled one at a time.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        context: ConversationContext | None = None,
        remote: RemoteCompletionClient | None = None,
        sessions: SessionManager | None = None,
    ) -> None:
        self.registry = registry
        self.context = context or ConversationContext(user_id=settings.user_id)
        self.remote = remote
        self.sessions = sessions or SessionManager(user_id=self.context.user_id)
        self.is_processing = False
        self._checker = ConversationalChecker(registry.tool_names)
        self._builder = ParameterBuilder(registry)
        self._pending: tuple[str, Clarification] | None = None
        # Delete that listed its matches and waits for a yes or no
        self._pending_delete: tuple[str, dict[str, Any]] | None = None

    async def send_message(self, text: str) -> Message | None:
        """Handle one user message and return the assistant's reply.

        Returns ``None`` for empty text, or when a previous message is still
        being processed.
        """
        content = text.strip()
        if not content:
            return None
        if self.is_processing:
            logger.warning("Rejected message while another is being processed")
            return None

        self.is_processing = True
        try:
            self.sessions.add_message("user", content, context_snapshot=self.context.snapshot())
            try:
                outcome = await self.process(content)
            except Exception as exc:
                logger.exception("Failed to process message")
                return self.sessions.add_message("assistant", apology(exc))

            if isinstance(outcome, LocalFallback):
                logger.info("Answered locally: %s", outcome.reason)
            result = outcome.result
            return self.sessions.add_message(
                "assistant",
                result.response,
                tool_calls=result.tool_calls,
                context_snapshot=self.context.snapshot(),
            )
        finally:
            self.is_processing = False

    async def process(self, text: str) -> RemoteAttempt | LocalFallback:
        """Try the remote backend, falling back to the local pipeline once."""
        if self.remote is None:
            return LocalFallback(await self.process_locally(text), reason="no remote completion backend")

        try:
            result = await self._process_remotely(text)
        except RemoteCompletionError as exc:
            logger.warning("Remote completion failed, using local pipeline: %s", exc)
            return LocalFallback(await self.process_locally(text), reason=str(exc))
        except Exception as exc:
            logger.exception("Unexpected remote completion failure, using local pipeline")
            return LocalFallback(await self.process_locally(text), reason=str(exc) or type(exc).__name__)
        return RemoteAttempt(result)

    async def _process_remotely(self, text: str) -> ProcessingResult:
        request = CompletionRequest(
            message=text,
            context=self.context.snapshot(),
            tools=self.registry.describe_tools(),
            conversation_history=self.sessions.session.to_api_messages(settings.history_window),
        )
        response = await self.remote.complete(request)

        records: list[ToolCallRecord] = []
        for call in response.tool_calls:
            result = await self.registry.execute(call.name, call.parameters, self.context)
            records.append(ToolCallRecord(call.name, call.parameters, result.to_dict()))

        return ProcessingResult(
            response=format_response(response.response, records),
            tool_calls=records,
            suggested_actions=response.suggested_actions,
        )

    async def process_locally(self, text: str) -> ProcessingResult:
        """Deterministic pipeline: clarify, or detect, build, execute and format."""
        states = [TurnState.RECEIVE, TurnState.CONVERSATIONAL_CHECK]
        answered = await self._answer_pending_delete(text, states)
        if answered is not None:
            return answered
        text = self._apply_pending_answer(text)
        now = self.context.reference_time()

        clarification = self._checker.check(text, now)
        if clarification.needs_clarification:
            states.append(TurnState.CLARIFY)
            if clarification.subject:
                self._pending = (text, clarification)
            return ProcessingResult(
                response=clarification.response,
                suggested_actions=clarification.options,
                needs_clarification=True,
                clarification_kind=clarification.kind,
                states=states,
            )

        states.append(TurnState.INTENT_DETECT)
        intent = detect_intent(text, self.context)
        logger.info("Intent %s (%.2f via %s)", intent.action, intent.confidence, intent.strategy)
        if intent.action is None or intent.confidence <= settings.intent_confidence_threshold:
            states.append(TurnState.HELP_RESPONSE)
            return ProcessingResult(
                response=helpful_response(text),
                suggested_actions=contextual_suggestions(text),
                states=states,
            )

        states.append(TurnState.PARAM_BUILD)
        params = self._builder.build(extract(text, now), intent.action, text, self.context)

        states.append(TurnState.EXECUTE)
        result = await self.registry.execute(intent.action, params, self.context)

        if result.success and (result.data or {}).get("pending_confirmation"):
            self._pending_delete = (intent.action, params)

        states.append(TurnState.FORMAT)
        record = ToolCallRecord(intent.action, params, result.to_dict())
        suggestions = suggestions_for_tool(intent.action) if result.success else contextual_suggestions(text)
        return ProcessingResult(
            response=format_response(intent.response, [record]),
            tool_calls=[record],
            suggested_actions=suggestions,
            states=states,
        )

    async def _answer_pending_delete(self, text: str, states: list[TurnState]) -> ProcessingResult | None:
        """Run or drop a delete awaiting confirmation. ``None`` means the reply was about something else."""
        if self._pending_delete is None:
            return None
        action, params = self._pending_delete
        self._pending_delete = None
        reply = normalize(text)

        if _DECLINE_REPLY_RE.match(reply):
            logger.info("Pending %s declined", action)
            states.append(TurnState.FORMAT)
            return ProcessingResult(
                response="Okay, I won't delete anything.",
                suggested_actions=suggestions_for_tool(action),
                states=states,
            )
        if not _CONFIRM_REPLY_RE.match(reply):
            return None

        confirmed = {**params, "confirm_delete": False}
        states.append(TurnState.EXECUTE)
        result = await self.registry.execute(action, confirmed, self.context)
        states.append(TurnState.FORMAT)
        record = ToolCallRecord(action, confirmed, result.to_dict())
        return ProcessingResult(
            response=format_response("Deleting the slots you confirmed", [record]),
            tool_calls=[record],
            suggested_actions=suggestions_for_tool(action),
            states=states,
        )

    def _apply_pending_answer(self, text: str) -> str:
        """Merge a reply that picks a clarification option into the original request."""
        if self._pending is None:
            return text
        original, clarification = self._pending
        self._pending = None
        resolved = clarification.resolve(original, text)
        if resolved is None:
            return text
        logger.info("Resolved clarification: %r -> %r", original, resolved)
        return resolved

    def clear_chat(self) -> None:
        self._pending = None
        self._pending_delete = None
        self.sessions.clear_chat()
