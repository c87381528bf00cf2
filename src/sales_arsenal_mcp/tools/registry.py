"""
Tool registry: the set of callable tools, their schemas and handlers.

The registry is the single source the transports read from; stdio, SSE and
the synchronous HTTP endpoint all list and invoke tools through it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..errors import ToolNotFoundError
from ..utils.error_handler import error_result, handle_tool_errors
from ..utils.response_formatter import ResponseFormatter

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Awaitable["ToolResult"]]


@dataclass
class ToolResult:
    """
    Tool invocation result in the protocol envelope shape.

    Attributes:
        content: Content blocks, each {"type": "text", "text": ...}
        is_error: True when the tool failed
    """

    content: List[Dict[str, str]] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def from_text(cls, text: str, is_error: bool = False) -> "ToolResult":
        return cls(content=[{"type": "text", "text": text}], is_error=is_error)

    @classmethod
    def from_json(cls, payload: Any) -> "ToolResult":
        return cls.from_text(ResponseFormatter.to_json(payload))

    @property
    def text(self) -> str:
        """Concatenated text of all content blocks."""
        return "\n".join(block.get("text", "") for block in self.content)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"content": list(self.content)}
        if self.is_error:
            result["isError"] = True
        return result


@dataclass
class ToolSpec:
    """A registered tool."""

    name: str
    description: str
    input_schema: Dict[str, Any]
    handler: ToolHandler

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class ToolRegistry:
    """
    Ordered collection of tools.

    Usage:
        registry = ToolRegistry()

        @registry.tool("buscar_lead", "Busca lead pelo telefone", schema)
        async def buscar_lead(args):
            ...

        result = await registry.call("buscar_lead", {"telefone": "5511..."})
    """

    def __init__(self):
        self._tools: Dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> ToolSpec:
        """
        Register a tool. Its handler is wrapped with the tool error boundary.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        spec.handler = handle_tool_errors(spec.handler)
        self._tools[spec.name] = spec
        logger.debug(f"Registered tool {spec.name}")
        return spec

    def tool(self, name: str, description: str, input_schema: Dict[str, Any]):
        """Decorator form of register()."""

        def decorator(func: ToolHandler) -> ToolHandler:
            self.register(ToolSpec(name, description, input_schema, func))
            return func

        return decorator

    def get(self, name: str) -> ToolSpec:
        """
        Raises:
            ToolNotFoundError: If no tool has this name
        """
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def names(self) -> List[str]:
        return list(self._tools)

    def list_tools(self) -> List[Dict[str, Any]]:
        """All tools in registration order, as protocol tool descriptors."""
        return [spec.to_dict() for spec in self._tools.values()]

    async def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """
        Invoke a tool by name.

        Never raises for tool failures: an unknown name or a failing handler
        yields a ToolResult with is_error set.
        """
        try:
            spec = self.get(name)
        except ToolNotFoundError as e:
            logger.warning(f"Unknown tool requested: {name}")
            return error_result(e)

        logger.info(f"Calling tool {name}")
        return await spec.handler(arguments or {})

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
