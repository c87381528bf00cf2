"""
Utility modules for the Sales Arsenal MCP server.

- error_handler: tool error boundary (exceptions -> error envelope)
- context_helper: shared dependencies and guarded upstream calls
- validation: argument validators
- response_formatter: JSON payload formatting
"""

from .context_helper import BridgeContext, ContextHelper
from .error_handler import error_result, handle_tool_errors
from .response_formatter import ResponseFormatter
from .validation import ValidationHelper

__all__ = [
    "BridgeContext",
    "ContextHelper",
    "error_result",
    "handle_tool_errors",
    "ResponseFormatter",
    "ValidationHelper",
]
