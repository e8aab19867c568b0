"""Base types for the tool-calling framework."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ToolName(StrEnum):
    """Every tool the catalog knows how to bind."""

    GET_AVAILABILITY_DATA = "get_availability_data"
    CREATE_AVAILABILITY_SLOT = "create_availability_slot"
    CREATE_BULK_AVAILABILITY = "create_bulk_availability"
    UPDATE_AVAILABILITY_SLOT = "update_availability_slot"
    DELETE_AVAILABILITY_SLOT = "delete_availability_slot"
    DELETE_BULK_AVAILABILITY = "delete_bulk_availability"
    NAVIGATE_CALENDAR = "navigate_calendar"


# Structured failure codes carried on ToolResult.error_code
TOOL_NOT_FOUND = "tool_not_found"
TOOL_EXECUTION_FAILED = "tool_execution_failed"


@dataclass
class ToolResult:
    """Result of a tool execution.

    Every tool returns one of these. ``message`` is a short human-readable
    summary used in recent-action logs and in the chat reply.
    """

    data: dict[str, Any] | None = None
    message: str = ""
    error: str | None = None
    error_code: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: str, *, code: str = TOOL_EXECUTION_FAILED, message: str = "") -> "ToolResult":
        return cls(error=error, error_code=code, message=message or error)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
            payload["errorCode"] = self.error_code
        return payload


class ToolParams(BaseModel):
    """Base class for tool parameter models.

    Subclass with Field() definitions. Field names are snake_case in Python;
    the generated JSON schema (and the remote wire format) uses camelCase
    aliases, and both spellings are accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BaseTool(ABC):
    """Abstract base for class-based tool implementations.

    Tools hold whatever collaborator they need (API clients, etc.) and are
    registered on a ``ToolRegistry`` at startup::

        class MyTool(BaseTool):
            name = ToolName.NAVIGATE_CALENDAR
            description = "Does a thing"
            category = "calendar"
            params_model = MyToolParams

            async def execute(self, **kwargs) -> ToolResult:
                return ToolResult(data={"ok": True})
    """

    name: str = ""
    description: str = ""
    category: str = ""
    params_model: type[ToolParams] | None = None

    @abstractmethod
    async def execute(self, **kwargs: Any) -> ToolResult:
        """Execute the tool with validated parameters."""
        ...
