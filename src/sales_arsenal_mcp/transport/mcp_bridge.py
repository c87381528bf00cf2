"""
MCP protocol server fed from the ToolRegistry.

Used by the stdio transport and the SSE stream (`GET /sse` + `POST /messages/`).
"""

import logging
from typing import Any, Dict, List

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .. import __version__, constants
from ..tools import ToolRegistry

logger = logging.getLogger(__name__)


class ToolCallFailed(Exception):
    """Raised so the protocol server answers with `isError: true` and this text."""

    pass


def create_mcp_server(registry: ToolRegistry) -> Server:
    """
    Create a protocol server that lists and calls the registry's tools.

    Args:
        registry: Tool registry shared with the HTTP dispatcher

    Returns:
        Configured mcp Server
    """
    server = Server(constants.SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        return [
            Tool(name=spec["name"], description=spec["description"], inputSchema=spec["inputSchema"])
            for spec in registry.list_tools()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
        result = await registry.call(name, arguments)
        if result.is_error:
            raise ToolCallFailed(result.text)
        return [TextContent(type="text", text=block["text"]) for block in result.content]

    return server


async def run_stdio(registry: ToolRegistry) -> None:
    """Serve the MCP protocol over stdin/stdout until the client disconnects."""
    server = create_mcp_server(registry)
    logger.info("Serving MCP over stdio")
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
