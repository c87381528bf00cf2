"""
Tool layer for the Sales Arsenal MCP server.

- registry: ToolRegistry, ToolSpec and the ToolResult envelope
- definitions: the tool set exposed to clients
"""

from .registry import ToolRegistry, ToolResult, ToolSpec
from .definitions import build_tool_registry

__all__ = ["ToolRegistry", "ToolResult", "ToolSpec", "build_tool_registry"]
