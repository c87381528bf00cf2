"""
Transports for the Sales Arsenal MCP server: stdio, SSE stream and
synchronous JSON-RPC over HTTP.
"""

from .sessions import Session, SessionRegistry
from .jsonrpc import DispatchResult, JsonRpcDispatcher, JsonRpcError
from .mcp_bridge import create_mcp_server, run_stdio
from .http_app import create_http_app

__all__ = [
    "Session",
    "SessionRegistry",
    "DispatchResult",
    "JsonRpcDispatcher",
    "JsonRpcError",
    "create_mcp_server",
    "run_stdio",
    "create_http_app",
]
