"""
Lead lookup and upsert, keyed on the phone number.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .. import constants
from ..backend import Filter, RecordNotFoundError
from ..errors import InvalidArgumentError
from .base_service import BaseService

logger = logging.getLogger(__name__)


class LeadService(BaseService):
    """
    Service for reading and writing CRM leads.

    Writes only ever send the natural key, the interaction timestamp and the
    fields the caller supplied, so repeated upserts merge over the stored row.
    """

    @property
    def table(self) -> str:
        return self.settings.leads_table

    async def find_lead(self, telefone: Any) -> Dict[str, Any]:
        """
        Look up a lead by phone number.

        Returns:
            {"found": True, "lead": row} or {"found": False, "lead": None}
        """
        telefone = self._require_string(telefone, "telefone")
        try:
            lead = await self.helper.call_upstream(
                "database",
                self.backend.select_one,
                self.table,
                [Filter(constants.LEAD_NATURAL_KEY, telefone)],
                passthrough=(RecordNotFoundError,),
            )
        except RecordNotFoundError:
            logger.info(f"Lead {telefone} not found")
            return {"found": False, "lead": None}
        return {"found": True, "lead": lead}

    async def update_lead(
        self,
        telefone: Any,
        funnel_stage: Any = None,
        perfil_completo_ia: Any = None,
    ) -> Dict[str, Any]:
        """Upsert the funnel stage and/or AI profile of a lead."""
        data = self._base_record(telefone)
        stage = self._optional_string(funnel_stage, "funnel_stage")
        if stage is not None:
            data["funnel_stage"] = stage
        if perfil_completo_ia is not None:
            if not isinstance(perfil_completo_ia, (dict, list, str)):
                raise InvalidArgumentError("Campo perfil_completo_ia deve ser objeto ou texto")
            data["perfil_completo_ia"] = perfil_completo_ia

        lead = await self._upsert(data)
        return {"status": "atualizado", "lead": lead}

    async def save_lead(
        self,
        telefone: Any,
        nome: Any = None,
        interesse: Any = None,
        stage: Any = None,
    ) -> Dict[str, Any]:
        """Create or update a lead with name, interest and funnel stage."""
        data = self._base_record(telefone)
        for field, value in (("nome", nome), ("interesse", interesse), ("funnel_stage", stage)):
            value = self._optional_string(value, "stage" if field == "funnel_stage" else field)
            if value is not None:
                data[field] = value

        lead = await self._upsert(data)
        return {"status": "salvo", "lead": lead}

    def _base_record(self, telefone: Any) -> Dict[str, Any]:
        return {
            constants.LEAD_NATURAL_KEY: self._require_string(telefone, "telefone"),
            "last_interaction": datetime.now(timezone.utc).isoformat(),
        }

    async def _upsert(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        logger.info(f"Upserting lead {data[constants.LEAD_NATURAL_KEY]} ({', '.join(data)})")
        return await self.helper.call_upstream(
            "database",
            self.backend.upsert,
            self.table,
            data,
            constants.LEAD_NATURAL_KEY,
        )
