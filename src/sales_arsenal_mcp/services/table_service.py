"""
Generic table access: ler_tabela, modificar_dados and listar_tabelas.

Reach is bounded by TABLE_ALLOWLIST (every table when empty) and WRITE_ACTIONS.
"""

import logging
from typing import Any, Dict, List

from .. import constants
from ..backend import Filter
from ..errors import InvalidArgumentError
from ..utils import ValidationHelper
from .base_service import BaseService

logger = logging.getLogger(__name__)


class TableService(BaseService):
    """
    Service for generic reads and writes against allow-listed tables.
    """

    async def read_table(self, tabela: Any, colunas: Any = None, limite: Any = None) -> List[Dict[str, Any]]:
        """
        Read up to `limite` rows of `tabela`.

        Args:
            tabela: Table name
            colunas: Column list or comma-separated string (default all)
            limite: Row cap (default 10)

        Returns:
            List of rows
        """
        table = self._require_table(tabela)
        columns, error = ValidationHelper.parse_columns(colunas)
        self._raise_if(error)
        limit = self._require_limit(
            limite, "limite", constants.DEFAULT_READ_LIMIT, constants.MAX_READ_LIMIT
        )

        rows = await self.helper.call_upstream(
            "database", self.backend.select, table, columns=columns, limit=limit
        )
        logger.info(f"Read {len(rows)} row(s) from {table}")
        return rows

    async def modify_data(
        self,
        acao: Any,
        tabela: Any,
        dados: Any = None,
        id_alvo: Any = None,
    ) -> Dict[str, Any]:
        """
        Insert, update or delete rows of `tabela`.

        Update and delete target the row whose `id` equals `id_alvo`.

        Raises:
            InvalidArgumentError: Unknown or disabled action, missing data or target
        """
        action = self._require_string(acao, "acao").lower()
        if action not in constants.WRITE_ACTIONS:
            raise InvalidArgumentError(
                f"Ação inválida: {action}. Use {', '.join(constants.WRITE_ACTIONS)}"
            )
        if action not in self.settings.write_actions:
            raise InvalidArgumentError(f"Ação não permitida: {action}")
        table = self._require_table(tabela)

        if action in ("insert", "update"):
            self._raise_if(ValidationHelper.validate_data_object(dados))
        if action in ("update", "delete") and (id_alvo is None or id_alvo == ""):
            raise InvalidArgumentError(f"Campo id_alvo é obrigatório para {action}")

        if action == "insert":
            rows = await self.helper.call_upstream("database", self.backend.insert, table, dados)
        else:
            target = [Filter(constants.ROW_ID_COLUMN, id_alvo)]
            if action == "update":
                rows = await self.helper.call_upstream(
                    "database", self.backend.update, table, dados, target
                )
            else:
                rows = await self.helper.call_upstream(
                    "database", self.backend.delete, table, target
                )

        logger.info(f"{action} on {table} affected {len(rows)} row(s)")
        return {"status": "sucesso", "acao": action, "afetados": len(rows), "registros": rows}

    async def list_tables(self) -> Dict[str, Any]:
        """List the tables of the public schema reachable by the generic tools."""
        tables = await self.helper.call_upstream("database", self.backend.list_tables)
        tables = self._filter_allowed(tables)
        return {"total": len(tables), "tabelas": tables}
