"""
HTTP surface of the Sales Arsenal MCP server.

Routes:
- POST /sse        synchronous JSON-RPC 2.0 (one request, one JSON response)
- GET  /sse        SSE stream when the client accepts text/event-stream,
                   usage instructions otherwise
- POST /messages/  client-to-server messages of an open SSE stream
- GET  /health     liveness, database and Vertex AI reachability, active sessions
- GET  /tools      tool list as plain JSON
- POST /<tool>     direct JSON call of buscar_arsenal, buscar_lead, atualizar_lead
- GET  /           endpoint overview
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Optional

from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from .. import __version__, constants
from ..errors import ErrorKind, InvalidArgumentError
from ..tools import ToolRegistry, ToolResult
from ..utils import BridgeContext, error_result
from .jsonrpc import PARSE_ERROR, JsonRpcDispatcher
from .mcp_bridge import create_mcp_server
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)

DISCONNECT_POLL_SECONDS = 0.5

# Nothing is sent when the client has already gone
CLIENT_CLOSED_STATUS = 499

REST_ERROR_STATUS = {
    ErrorKind.INVALID_ARGUMENT.value: 400,
    ErrorKind.NOT_FOUND.value: 404,
    ErrorKind.TOOL_NOT_FOUND.value: 404,
    ErrorKind.UPSTREAM_UNAVAILABLE.value: 502,
}

USAGE_EXAMPLE = {
    "jsonrpc": "2.0",
    "method": "initialize",
    "params": {
        "protocolVersion": constants.PROTOCOL_VERSION,
        "capabilities": {},
        "clientInfo": {"name": "n8n-client", "version": "1.0.0"},
    },
    "id": 1,
}


class RequestLoggingMiddleware:
    """Log method and path of every HTTP request (plain ASGI so SSE streams are untouched)."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http":
            logger.info(f"{scope['method']} {scope['path']}")
        await self.app(scope, receive, send)


async def run_until_disconnect(request: Request, awaitable: Awaitable[Any]) -> Optional[Any]:
    """
    Await `awaitable`, cancelling it if the client goes away first.

    Returns:
        The awaited value, or None when the client disconnected
    """
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning(f"Client disconnected, cancelling {request.method} {request.url.path}")
                task.cancel()
                return None
    finally:
        if not task.done():
            task.cancel()


def create_http_app(
    registry: ToolRegistry,
    sessions: SessionRegistry,
    context: Optional[BridgeContext] = None,
) -> Starlette:
    """
    Build the Starlette application.

    Args:
        registry: Tools shared by the JSON-RPC and SSE transports
        sessions: Session table for both transports
        context: Clients reported on by /health, when given
    """
    dispatcher = JsonRpcDispatcher(registry, sessions)
    mcp_server = create_mcp_server(registry)
    sse = SseServerTransport("/messages/")

    async def handle_jsonrpc(request: Request) -> Response:
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(
                {"jsonrpc": "2.0", "id": None, "error": {"code": PARSE_ERROR, "message": "Parse error"}},
                status_code=400,
            )

        result = await run_until_disconnect(
            request, dispatcher.dispatch(body, request.headers.get(constants.SESSION_HEADER))
        )
        if result is None:
            return Response(status_code=204)

        headers = {constants.SESSION_HEADER: result.session_id} if result.session_id else None
        if result.body is None:
            return Response(status_code=result.status, headers=headers)
        return JSONResponse(result.body, status_code=result.status, headers=headers)

    async def handle_sse_stream(request: Request) -> Response:
        session = await sessions.create(
            "sse", {"user_agent": request.headers.get("user-agent")}, streaming=True
        )
        try:
            async with sse.connect_sse(request.scope, request.receive, request._send) as streams:
                await mcp_server.run(
                    streams[0], streams[1], mcp_server.create_initialization_options()
                )
        finally:
            await sessions.remove(session.session_id)
        return Response()

    async def handle_sse(request: Request) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200)
        if request.method == "POST":
            return await handle_jsonrpc(request)
        if "text/event-stream" in request.headers.get("accept", ""):
            return await handle_sse_stream(request)
        return JSONResponse(
            {
                "mensagem": "Este é um servidor MCP",
                "instrucoes": "Use POST /sse com corpo JSON-RPC 2.0, "
                "ou GET /sse com Accept: text/event-stream para o stream SSE",
                "exemplo": USAGE_EXAMPLE,
            }
        )

    def rest_response(result: ToolResult) -> JSONResponse:
        payload = json.loads(result.text)
        if not result.is_error:
            return JSONResponse(payload)
        status = REST_ERROR_STATUS.get(payload["erro"]["tipo"], 500)
        return JSONResponse(payload, status_code=status)

    def rest_tool(name: str):
        async def endpoint(request: Request) -> Response:
            try:
                arguments = await request.json()
            except ValueError:
                arguments = None
            if not isinstance(arguments, dict):
                return rest_response(
                    error_result(InvalidArgumentError("Envie um objeto JSON no corpo da requisição"))
                )

            result = await run_until_disconnect(request, registry.call(name, arguments))
            if result is None:
                return Response(status_code=CLIENT_CLOSED_STATUS)
            return rest_response(result)

        return endpoint

    async def list_tools(request: Request) -> JSONResponse:
        return JSONResponse({"tools": registry.list_tools()})

    async def vertex_status() -> str:
        if context.embedder is None:
            return "não configurado"
        try:
            ok = await asyncio.to_thread(context.embedder.check_credentials)
        except Exception as e:
            logger.warning(f"Health check Vertex AI token failed: {e}")
            return f"erro: {e}"
        return "ok" if ok else "erro: token vazio"

    async def health(request: Request) -> JSONResponse:
        payload = {
            "status": "online",
            "servidor": constants.SERVER_NAME,
            "versao": __version__,
            "ferramentas": len(registry),
            "sessoes_ativas": len(sessions),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if context is not None:
            try:
                await asyncio.to_thread(context.backend.ping, context.settings.arsenal_table)
                payload["banco_de_dados"] = "conectado"
            except Exception as e:
                logger.warning(f"Health check database ping failed: {e}")
                payload["banco_de_dados"] = f"erro: {e}"
            payload["vertex_ai"] = await vertex_status()
            payload["rerank"] = context.reranker is not None
        return JSONResponse(payload)

    async def root(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "mensagem": f"Servidor MCP {constants.SERVER_NAME}",
                "endpoints": {
                    "mcp": "POST /sse - JSON-RPC 2.0 síncrono",
                    "sse": "GET /sse (Accept: text/event-stream) + POST /messages/",
                    "health": "GET /health - status do servidor",
                    "tools": "GET /tools - lista de ferramentas",
                    **{tool: f"POST /{tool} - chamada direta com corpo JSON" for tool in constants.REST_TOOLS},
                },
                "status": "rodando",
            }
        )

    middleware = [
        Middleware(RequestLoggingMiddleware),
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=[constants.SESSION_HEADER],
        ),
    ]

    return Starlette(
        routes=[
            Route("/", root, methods=["GET"]),
            Route("/health", health, methods=["GET"]),
            Route("/tools", list_tools, methods=["GET"]),
            *[Route(f"/{tool}", rest_tool(tool), methods=["POST"]) for tool in constants.REST_TOOLS],
            Route("/sse", handle_sse, methods=["GET", "POST", "OPTIONS"]),
            Mount("/messages/", app=sse.handle_post_message),
        ],
        middleware=middleware,
    )
