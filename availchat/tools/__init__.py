"""Tool framework: the availability tool catalog and its registry."""

from availchat.tools.availability_tools import build_catalog
from availchat.tools.base import BaseTool, ToolName, ToolParams, ToolResult
from availchat.tools.registry import ToolDef, ToolRegistry

__all__ = [
    "BaseTool",
    "ToolDef",
    "ToolName",
    "ToolParams",
    "ToolRegistry",
    "ToolResult",
    "build_catalog",
]
