"""
Storage package for the Sales Arsenal MCP server.

Architecture:
- BaseStorageAdapter: Abstract interface for signed download links
- GCSAdapter: Google Cloud Storage implementation

Usage:
    storage = GCSAdapter(project_id="my-gcp-project")
    link = storage.create_signed_url("arsenal", "catalogo/modelo-x.png", 3600)
"""

from .base_adapter import BaseStorageAdapter, SignedUrl, StorageError
from .gcs_adapter import GCSAdapter

__all__ = ["BaseStorageAdapter", "SignedUrl", "StorageError", "GCSAdapter"]
