"""
Backend package: data access to the managed Postgres database.
"""

from .postgres import (
    ROW_NOT_FOUND,
    BackendError,
    Filter,
    PostgresBackend,
    RecordNotFoundError,
    escape_like,
    is_valid_identifier,
)

__all__ = [
    "PostgresBackend",
    "Filter",
    "BackendError",
    "RecordNotFoundError",
    "ROW_NOT_FOUND",
    "escape_like",
    "is_valid_identifier",
]
