"""
Synchronous JSON-RPC 2.0 dispatcher used by `POST /sse`.

Supports initialize, ping, tools/list, tools/call and notifications. Tool
failures stay inside the tool envelope (`isError: true`); JSON-RPC errors are
only used for malformed requests, unknown methods and unexpected faults.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .. import __version__, constants
from ..errors import TransportStateError
from ..tools import ToolRegistry
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class JsonRpcError(Exception):
    """Request-level failure answered with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, http_status: int = 200, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status
        self.data = data

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


@dataclass
class DispatchResult:
    """HTTP-level outcome of one JSON-RPC message; `body` is None for 204."""

    status: int
    body: Optional[Dict[str, Any]] = None
    session_id: Optional[str] = None


def error_response(request_id: Any, error: JsonRpcError) -> DispatchResult:
    return DispatchResult(
        status=error.http_status,
        body={"jsonrpc": "2.0", "id": request_id, "error": error.to_dict()},
    )


class JsonRpcDispatcher:
    """
    Routes JSON-RPC messages to the tool registry.

    Usage:
        dispatcher = JsonRpcDispatcher(registry, sessions)
        result = await dispatcher.dispatch(body, session_id=request.headers.get(...))
    """

    def __init__(self, registry: ToolRegistry, sessions: SessionRegistry):
        self.registry = registry
        self.sessions = sessions

    async def dispatch(self, message: Any, session_id: Optional[str] = None) -> DispatchResult:
        request_id = message.get("id") if isinstance(message, dict) else None
        try:
            return await self._dispatch(message, session_id)
        except JsonRpcError as e:
            logger.warning(f"JSON-RPC error {e.code}: {e.message}")
            return error_response(request_id, e)
        except TransportStateError as e:
            logger.warning(f"Transport state error: {e.message}")
            return error_response(request_id, JsonRpcError(INVALID_REQUEST, e.message, 404))
        except Exception as e:
            logger.error(f"Error processing JSON-RPC request: {e}", exc_info=True)
            return error_response(
                request_id, JsonRpcError(INTERNAL_ERROR, "Internal error", 500, data=str(e))
            )

    async def _dispatch(self, message: Any, session_id: Optional[str]) -> DispatchResult:
        if not isinstance(message, dict):
            raise JsonRpcError(INVALID_REQUEST, "Invalid Request", 400)
        method = message.get("method")
        if message.get("jsonrpc") != "2.0" or not isinstance(method, str) or not method:
            raise JsonRpcError(INVALID_REQUEST, "Invalid Request", 400)

        params = message.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise JsonRpcError(INVALID_PARAMS, "params must be an object")

        logger.info(f"JSON-RPC method={method} id={message.get('id')}")

        if "id" not in message:
            # Notifications never get a reply
            logger.debug(f"Notification received: {method}")
            return DispatchResult(status=204, session_id=session_id)

        if method == "initialize":
            session = await self.sessions.create("http", params.get("clientInfo"))
            return self._result(message["id"], self._initialize_result(), session.session_id)

        if session_id:
            await self.sessions.get(session_id)

        if method == "ping":
            return self._result(message["id"], {}, session_id)
        if method == "tools/list":
            return self._result(message["id"], {"tools": self.registry.list_tools()}, session_id)
        if method == "tools/call":
            name = params.get("name")
            arguments = params.get("arguments")
            if not isinstance(name, str) or not name:
                raise JsonRpcError(INVALID_PARAMS, "params.name must be a non-empty string")
            if arguments is not None and not isinstance(arguments, dict):
                raise JsonRpcError(INVALID_PARAMS, "params.arguments must be an object")
            result = await self.registry.call(name, arguments)
            return self._result(message["id"], result.to_dict(), session_id)

        raise JsonRpcError(METHOD_NOT_FOUND, f"Method not found: {method}")

    @staticmethod
    def _initialize_result() -> Dict[str, Any]:
        return {
            "protocolVersion": constants.PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": constants.SERVER_NAME, "version": __version__},
        }

    @staticmethod
    def _result(request_id: Any, result: Dict[str, Any], session_id: Optional[str]) -> DispatchResult:
        return DispatchResult(
            status=200,
            body={"jsonrpc": "2.0", "id": request_id, "result": result},
            session_id=session_id,
        )
