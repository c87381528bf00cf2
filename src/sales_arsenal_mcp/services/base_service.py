"""
Base service class providing common functionality for all services.

This module defines the base service pattern that all domain services inherit from,
ensuring consistent behavior and shared functionality across the service layer.
"""

from abc import ABC
from typing import Any, List, Optional

from ..errors import InvalidArgumentError
from ..utils import BridgeContext, ContextHelper, ValidationHelper


class BaseService(ABC):
    """
    Base class for all tool services.

    This class provides common functionality that all services need:
    - Access to shared clients through ContextHelper
    - Common validation patterns raising InvalidArgumentError
    - Table allow-list enforcement

    Services are stateless; one instance can serve concurrent calls.
    """

    def __init__(self, context: BridgeContext):
        """
        Initialize the base service.

        Args:
            context: Settings and clients built at startup
        """
        self.context = context
        self.helper = ContextHelper(context)

    @staticmethod
    def _raise_if(error: Optional[str]) -> None:
        if error:
            raise InvalidArgumentError(error)

    def _require_string(self, value: Any, field: str) -> str:
        """
        Ensure a required argument is a non-blank string.

        Raises:
            InvalidArgumentError: If the value is missing, blank or not a string
        """
        self._raise_if(ValidationHelper.validate_required_string(value, field))
        return value.strip()

    def _optional_string(self, value: Any, field: str) -> Optional[str]:
        self._raise_if(ValidationHelper.validate_optional_string(value, field))
        return value

    def _require_limit(self, value: Any, field: str, default: int, maximum: int) -> int:
        limit, error = ValidationHelper.parse_limit(value, field, default, maximum)
        self._raise_if(error)
        return limit

    def _require_table(self, name: Any) -> str:
        """
        Validate a table name and check it against the configured allow-list.

        Raises:
            InvalidArgumentError: If the name is malformed or not allow-listed
        """
        self._raise_if(ValidationHelper.validate_table_name(name))
        table = name.strip()
        if not self.settings.tables_unrestricted and table not in self.settings.table_allowlist:
            raise InvalidArgumentError(f"Tabela não permitida: {table}")
        return table

    def _filter_allowed(self, tables: List[str]) -> List[str]:
        if self.settings.tables_unrestricted:
            return tables
        return [t for t in tables if t in self.settings.table_allowlist]

    @property
    def settings(self):
        """
        Convenient access to the bridge settings.

        Returns:
            The BridgeSettings instance
        """
        return self.helper.settings

    @property
    def backend(self):
        return self.helper.backend
