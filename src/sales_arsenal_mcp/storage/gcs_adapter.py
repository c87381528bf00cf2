"""
Google Cloud Storage Adapter for the Sales Arsenal MCP server.

Generates V4 signed GET URLs for arsenal files. Works with:
- Service account key files (GOOGLE_APPLICATION_CREDENTIALS): signed locally
- Workload Identity / metadata credentials: signed through the IAM signBlob API
  using the credential's service account email and a fresh access token
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import google.auth
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.cloud import storage
from google.cloud.exceptions import GoogleCloudError

from .base_adapter import BaseStorageAdapter, SignedUrl, StorageError

logger = logging.getLogger(__name__)


class GCSAdapter(BaseStorageAdapter):
    """
    Google Cloud Storage adapter.

    Usage:
        adapter = GCSAdapter(project_id="my-gcp-project")
        link = adapter.create_signed_url("arsenal", "catalogo/modelo-x.png", 3600)
        print(link.url)
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        service_account_file: Optional[str] = None,
        client: Optional[storage.Client] = None,
    ):
        self.project_id = project_id
        self.service_account_file = service_account_file
        self._client = client
        self._credentials = None

    @property
    def client(self) -> storage.Client:
        """GCS client, created on first use so startup does not need credentials."""
        if self._client is None:
            try:
                if self.service_account_file:
                    credentials = service_account.Credentials.from_service_account_file(
                        self.service_account_file
                    )
                    default_project = credentials.project_id
                else:
                    credentials, default_project = google.auth.default()
                self._client = storage.Client(
                    project=self.project_id or default_project, credentials=credentials
                )
                self._credentials = credentials
                logger.info(f"Initialized GCS client (project={self._client.project})")
            except Exception as e:
                logger.error(f"Failed to initialize GCS client: {e}")
                raise StorageError(f"GCS initialization failed: {e}") from e
        return self._client

    def _signing_kwargs(self) -> dict:
        """Extra arguments for signing when the credentials cannot sign locally."""
        credentials = self._credentials
        if credentials is None or getattr(credentials, "signer", None) is not None:
            return {}

        if not credentials.valid:
            credentials.refresh(Request())
        email = getattr(credentials, "service_account_email", None)
        if not email:
            raise StorageError(
                "Credentials cannot sign URLs. Use a service account key or Workload Identity."
            )
        return {"service_account_email": email, "access_token": credentials.token}

    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> SignedUrl:
        path = path.lstrip("/")
        try:
            blob = self.client.bucket(bucket).blob(path)
            url = blob.generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=expires_in),
                method="GET",
                **self._signing_kwargs(),
            )
        except StorageError:
            raise
        except (GoogleCloudError, GoogleAuthError, ValueError) as e:
            logger.error(f"Failed to generate signed URL for {bucket}/{path}: {e}")
            raise StorageError(
                f"Signed URL generation failed: {e}. "
                f"Ensure service account has signing permissions."
            ) from e

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        logger.info(f"Signed URL generated for {bucket}/{path} (expires_in={expires_in}s)")
        return SignedUrl(
            bucket=bucket,
            path=path,
            url=url,
            expires_in=expires_in,
            expires_at=expires_at.isoformat(),
        )


__all__ = ["GCSAdapter"]
