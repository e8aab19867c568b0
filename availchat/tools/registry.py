"""Tool registry: central catalog and executor for all tools."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from availchat.tools.base import TOOL_EXECUTION_FAILED, TOOL_NOT_FOUND, BaseTool, ToolParams, ToolResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from availchat.chat.context import ConversationContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDef:
    """Internal representation of a registered tool."""

    name: str
    description: str
    category: str
    handler: Callable[..., Awaitable[ToolResult]]
    params_model: type[ToolParams] | None = None

    @property
    def parameter_names(self) -> frozenset[str]:
        """Python-side names of every declared parameter."""
        if self.params_model is None:
            return frozenset()
        return frozenset(self.params_model.model_fields)


class ToolRegistry:
    """Catalog of tools, fixed once startup registration is done.

    Tools are registered explicitly, either as class instances::

        registry.register(GetAvailabilityDataTool(api))

    or with the decorator for stateless handlers::

        @registry.tool(name="ping", description="Ping", category="test")
        async def ping() -> ToolResult:
            return ToolResult(data={"pong": True})

    After ``freeze()`` the catalog is immutable.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDef] = {}
        self._frozen = False

    def _add(self, tool_def: ToolDef) -> None:
        if self._frozen:
            msg = f"Tool catalog is frozen; cannot register '{tool_def.name}'"
            raise RuntimeError(msg)
        if tool_def.name in self._tools:
            msg = f"Tool '{tool_def.name}' is already registered"
            raise ValueError(msg)
        self._tools[tool_def.name] = tool_def

    def tool(
        self,
        *,
        name: str,
        description: str,
        category: str,
        params_model: type[ToolParams] | None = None,
    ) -> Callable:
        """Decorator to register an async function as a tool."""

        def decorator(fn: Callable[..., Awaitable[ToolResult]]) -> Callable:
            if not inspect.iscoroutinefunction(fn):
                msg = f"Tool handler '{name}' must be an async function"
                raise TypeError(msg)

            self._add(
                ToolDef(
                    name=str(name),
                    description=description,
                    category=category,
                    handler=fn,
                    params_model=params_model,
                )
            )
            return fn

        return decorator

    def register(self, tool_instance: BaseTool) -> None:
        """Register a class-based tool instance."""
        self._add(
            ToolDef(
                name=str(tool_instance.name),
                description=tool_instance.description,
                category=tool_instance.category,
                handler=tool_instance.execute,
                params_model=tool_instance.params_model,
            )
        )

    def freeze(self) -> None:
        """Reject any further registration."""
        self._frozen = True
        logger.info("Tool catalog frozen with %d tools: %s", len(self._tools), ", ".join(self._tools))

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> ToolDef | None:
        """Look up a tool by name."""
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @property
    def tool_names(self) -> list[str]:
        """All registered tool names."""
        return list(self._tools.keys())

    def get_schemas(self) -> list[dict[str, Any]]:
        """Generate Claude-compatible tool schemas for all registered tools."""
        return [
            {
                "name": t.name,
                "description": t.description,
                "input_schema": self._input_schema(t),
            }
            for t in self._tools.values()
        ]

    def describe_tools(self) -> list[dict[str, Any]]:
        """Tool list in the ``{name, description, parameters}`` wire format."""
        return [
            {
                "name": t.name,
                "description": t.description,
                "parameters": self._input_schema(t),
            }
            for t in self._tools.values()
        ]

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any],
        context: ConversationContext | None = None,
    ) -> ToolResult:
        """Execute a tool by name with the given arguments.

        Never raises. Unknown tools, invalid arguments and handler exceptions
        all come back as failed ``ToolResult`` objects. When a context is
        given, every call is logged to its recent actions, and handlers that
        accept a ``context`` parameter receive it.
        """
        result = await self._run(name, arguments, context)
        if context is not None:
            context.record_action(name, success=result.success, message=result.message)
        return result

    async def _run(
        self,
        name: str,
        arguments: dict[str, Any],
        context: ConversationContext | None,
    ) -> ToolResult:
        tool_def = self._tools.get(name)
        if tool_def is None:
            logger.warning("Unknown tool requested: %s", name)
            return ToolResult.failure(
                f"Tool '{name}' not found",
                code=TOOL_NOT_FOUND,
                message=f"The tool '{name}' is not available.",
            )

        logger.info("Tool '%s' called with %s", name, arguments)
        t0 = time.monotonic()

        if tool_def.params_model is not None:
            try:
                params = tool_def.params_model.model_validate(arguments)
            except ValidationError as exc:
                fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
                logger.warning("Tool '%s' rejected arguments: %s", name, fields)
                return ToolResult.failure(
                    f"Invalid parameters: {fields}",
                    message=f"Failed to execute {name}: missing or invalid {fields}",
                )
            kwargs = params.model_dump()
        else:
            kwargs = dict(arguments)

        if context is not None and _accepts_param(tool_def.handler, "context"):
            kwargs["context"] = context

        try:
            result = await tool_def.handler(**kwargs)
        except Exception as exc:
            elapsed = time.monotonic() - t0
            logger.exception("Tool '%s' failed in %.2fs", name, elapsed)
            reason = str(exc) or type(exc).__name__
            return ToolResult.failure(
                reason,
                code=TOOL_EXECUTION_FAILED,
                message=f"Failed to execute {name}: {reason}",
            )

        elapsed = time.monotonic() - t0
        if result.success:
            logger.info("Tool '%s' succeeded in %.2fs", name, elapsed)
        else:
            logger.warning("Tool '%s' returned error in %.2fs: %s", name, elapsed, result.error)
        return result

    @staticmethod
    def _input_schema(tool_def: ToolDef) -> dict[str, Any]:
        if tool_def.params_model is not None:
            return tool_def.params_model.model_json_schema(by_alias=True)
        return {"type": "object", "properties": {}}


def _accepts_param(fn: Callable[..., Any], param_name: str) -> bool:
    """Check whether a callable accepts a given parameter name."""
    return param_name in inspect.signature(fn).parameters
