"""
Signed download links for arsenal files.
"""

import logging
from typing import Any, Dict

from .. import constants
from ..errors import UpstreamUnavailableError
from .base_service import BaseService

logger = logging.getLogger(__name__)


class StorageService(BaseService):
    """Service generating time-limited download URLs (never persisted)."""

    async def create_download_link(self, bucket: Any, caminho: Any) -> Dict[str, Any]:
        bucket = self._require_string(bucket, "bucket")
        path = self._require_string(caminho, "caminho")
        if self.helper.storage is None:
            raise UpstreamUnavailableError("storage", "object storage is not configured")

        link = await self.helper.call_upstream(
            "storage",
            self.helper.storage.create_signed_url,
            bucket,
            path,
            constants.SIGNED_URL_TTL_SECONDS,
        )
        return link.to_dict()
