"""
Base Storage Adapter Interface for the Sales Arsenal MCP server.

Defines the interface blob storage backends implement to hand out
time-limited download links. Links are generated on demand and never stored.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


@dataclass
class SignedUrl:
    """A credential-bearing link valid for `expires_in` seconds from `expires_at`."""

    bucket: str
    path: str
    url: str
    expires_in: int
    expires_at: str

    def to_dict(self) -> dict:
        return {
            "bucket": self.bucket,
            "caminho": self.path,
            "url": self.url,
            "expira_em_segundos": self.expires_in,
            "expira_em": self.expires_at,
        }


class BaseStorageAdapter(ABC):
    """
    Abstract base class for storage adapters.

    Path Format:
    - Object paths relative to the bucket root: "catalogo/modelo-x.png"
    - Leading slashes are stripped
    """

    @abstractmethod
    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> SignedUrl:
        """
        Generate a signed GET URL for an object.

        Args:
            bucket: Bucket name
            path: Object path inside the bucket
            expires_in: Validity in seconds

        Returns:
            SignedUrl

        Raises:
            StorageError: If signing fails
        """
        pass
