"""
Decorator-based error handling for MCP tool handlers.

Every tool handler returns a ToolResult. This module converts exceptions
raised inside a handler into the error envelope (`isError: true`), so the
caller always receives a well-formed response and never a transport fault.
"""

import functools
import logging
from typing import Any, Awaitable, Callable, Dict

from ..errors import BridgeError
from .response_formatter import ResponseFormatter

logger = logging.getLogger(__name__)


def error_result(exc: BaseException):
    """
    Build the ToolResult for an exception.

    BridgeError subclasses carry their kind; anything else is reported as an
    internal error.
    """
    from ..tools.registry import ToolResult

    if isinstance(exc, BridgeError):
        error: Dict[str, Any] = exc.to_dict()
    else:
        error = {"tipo": "INTERNAL", "mensagem": str(exc) or exc.__class__.__name__}
    return ToolResult.from_text(
        ResponseFormatter.to_json({"sucesso": False, "erro": error}), is_error=True
    )


def handle_tool_errors(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
    """
    Decorator to handle exceptions in tool handlers consistently.

    Example:
        @handle_tool_errors
        async def buscar_lead(args):
            return ToolResult.from_json(await service.find_lead(args.get("telefone")))
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except BridgeError as e:
            logger.warning(f"Tool {func.__name__} failed: [{e.kind.value}] {e.message}")
            return error_result(e)
        except Exception as e:
            logger.error(f"Tool {func.__name__} raised unexpectedly: {e}", exc_info=True)
            return error_result(e)

    return wrapper
