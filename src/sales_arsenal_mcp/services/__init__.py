"""
Service layer for the Sales Arsenal MCP server.

Services hold the business logic behind each tool; handlers in tools/ only
unpack arguments and wrap results.
"""

from .base_service import BaseService
from .arsenal_search_service import ArsenalSearchService
from .lead_service import LeadService
from .table_service import TableService
from .storage_service import StorageService

__all__ = [
    "BaseService",
    "ArsenalSearchService",
    "LeadService",
    "TableService",
    "StorageService",
]
