"""
Error taxonomy for the Sales Arsenal MCP server.

Handlers raise these exceptions; they are translated to the tool error
envelope (or to a JSON-RPC error) only at the outermost layer.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds reported to clients."""

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    TRANSPORT_STATE = "TRANSPORT_STATE"


class BridgeError(Exception):
    """Base exception for all expected bridge failures."""

    kind: ErrorKind = ErrorKind.UPSTREAM_UNAVAILABLE

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to the payload sent back to the client."""
        payload: Dict[str, Any] = {"tipo": self.kind.value, "mensagem": self.message}
        if self.details:
            payload["detalhes"] = self.details
        return payload


class InvalidArgumentError(BridgeError):
    """Missing or malformed argument (caller error, never retried)."""

    kind = ErrorKind.INVALID_ARGUMENT


class NotFoundError(BridgeError):
    """Natural-key lookup miss."""

    kind = ErrorKind.NOT_FOUND


class UpstreamUnavailableError(BridgeError):
    """Database, embedding, re-rank or storage call failed or timed out."""

    kind = ErrorKind.UPSTREAM_UNAVAILABLE

    def __init__(self, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{service}: {message}", details)
        self.service = service


class ToolNotFoundError(BridgeError):
    """Invocation of a tool name that is not registered."""

    kind = ErrorKind.TOOL_NOT_FOUND

    def __init__(self, name: str):
        super().__init__(f"Ferramenta desconhecida: {name}")
        self.name = name


class TransportStateError(BridgeError):
    """Message received for a session that does not exist."""

    kind = ErrorKind.TRANSPORT_STATE


class ConfigurationError(Exception):
    """Required startup configuration is missing or invalid (fatal)."""

    pass
