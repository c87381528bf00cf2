"""
Vertex AI embedding generation for sales arsenal search.

This module wraps Google Cloud Vertex AI's text embedding models. Credentials
are resolved in this order: a static bearer token, a token printed by the
local gcloud CLI, a service account key file, and finally Application Default
Credentials.
"""

import logging
import subprocess  # nosec B404
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .. import constants

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

# gcloud access tokens live for one hour
GCLOUD_TOKEN_MAX_AGE_SECONDS = 50 * 60


@dataclass
class EmbeddingConfig:
    """
    Configuration for Vertex AI embedding generation.

    Attributes:
        model_name: Vertex AI model to use (e.g., 'text-embedding-004')
        dimensions: Embedding vector dimensions
        task_type: Default task type ('RETRIEVAL_QUERY', 'RETRIEVAL_DOCUMENT', ...)
        batch_size: Number of texts per request in batch mode
        max_retries: Attempts per request (1 = no retry)
        retry_delay: Base delay between retries (exponential backoff)
        rate_limit_rpm: Requests per minute limit (0 = no limit)
        project_id: GCP project ID
        location: GCP location (default: us-central1)
        static_token: Pre-issued bearer token (optional)
        use_gcloud: Obtain the bearer token from `gcloud auth print-access-token`
        service_account_file: Service account key file (optional)
        request_timeout: Deadline in seconds for each Vertex AI request
    """

    model_name: str = "text-embedding-004"
    dimensions: int = 768
    task_type: str = "RETRIEVAL_QUERY"
    batch_size: int = 5
    max_retries: int = 1
    retry_delay: float = 1.0
    rate_limit_rpm: int = 300  # Vertex AI default limit
    project_id: Optional[str] = None
    location: str = "us-central1"
    static_token: Optional[str] = None
    use_gcloud: bool = False
    service_account_file: Optional[str] = None
    request_timeout: float = constants.DEFAULT_UPSTREAM_TIMEOUT_SECONDS

    @classmethod
    def from_settings(cls, settings, **overrides) -> "EmbeddingConfig":
        """Build the embedding config from BridgeSettings."""
        values = dict(
            model_name=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            project_id=settings.vertex_project,
            location=settings.vertex_location,
            static_token=settings.vertex_token,
            use_gcloud=settings.vertex_use_gcloud,
            service_account_file=settings.service_account_file,
            request_timeout=settings.upstream_timeout,
        )
        values.update(overrides)
        return cls(**values)


def fetch_gcloud_token(timeout: float = 15.0) -> str:
    """Return an access token from the locally authenticated gcloud CLI."""
    try:
        completed = subprocess.run(  # nosec B603 B607
            ["gcloud", "auth", "print-access-token"],
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise RuntimeError("gcloud CLI not found on PATH") from e
    except subprocess.CalledProcessError as e:
        raise RuntimeError(f"gcloud auth print-access-token failed: {e.stderr.strip()}") from e

    token = completed.stdout.strip()
    if not token:
        raise RuntimeError("gcloud returned an empty access token")
    return token


def resolve_credentials(config: EmbeddingConfig):
    """
    Resolve Google credentials for Vertex AI.

    Returns:
        A google.auth credentials object, or None to use Application Default Credentials
    """
    if config.static_token:
        from google.oauth2.credentials import Credentials

        logger.info("Vertex AI credentials: static bearer token")
        return Credentials(token=config.static_token)

    if config.use_gcloud:
        from google.oauth2.credentials import Credentials

        logger.info("Vertex AI credentials: gcloud CLI access token")
        return Credentials(token=fetch_gcloud_token())

    if config.service_account_file:
        from google.oauth2 import service_account

        logger.info(f"Vertex AI credentials: service account {config.service_account_file}")
        return service_account.Credentials.from_service_account_file(
            config.service_account_file, scopes=[CLOUD_PLATFORM_SCOPE]
        )

    logger.info("Vertex AI credentials: application default credentials")
    return None


def build_document_text(item: Mapping[str, Any]) -> str:
    """
    Build the text representing an arsenal item for embedding and re-ranking.

    Args:
        item: Arsenal row as a mapping

    Returns:
        Newline-joined "column: value" lines for the non-empty descriptive columns
    """
    parts = []
    for column in constants.ARSENAL_DOCUMENT_COLUMNS:
        value = item.get(column)
        if value:
            parts.append(f"{column}: {value}")
    return "\n".join(parts)


class VertexAIEmbedder:
    """
    Vertex AI embedding generator.

    Handles:
    - Lazy SDK initialization with the resolved credentials
    - Single and batch embedding generation
    - Rate limiting and optional retries with exponential backoff
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        self.config = config or EmbeddingConfig()
        self._model = None
        self._text_input_cls = None
        self._initialized_at: Optional[float] = None
        self._request_times: List[float] = []
        self._lock = threading.Lock()
        self._rate_lock = threading.Lock()

    def _token_expired(self) -> bool:
        if not self.config.use_gcloud or self.config.static_token:
            return False
        return time.time() - self._initialized_at > GCLOUD_TOKEN_MAX_AGE_SECONDS

    def _initialize_vertexai(self):
        """Initialize Vertex AI SDK (lazy loading, re-run when a gcloud token ages out)."""
        with self._lock:
            if self._model is not None and not self._token_expired():
                return

            try:
                import vertexai
                from vertexai.language_models import TextEmbeddingInput, TextEmbeddingModel
            except ImportError as e:
                raise ImportError(
                    "Vertex AI SDK not installed. Install with: pip install google-cloud-aiplatform"
                ) from e

            try:
                vertexai.init(
                    project=self.config.project_id,
                    location=self.config.location,
                    credentials=resolve_credentials(self.config),
                    request_timeout=self.config.request_timeout,
                )
                self._model = TextEmbeddingModel.from_pretrained(self.config.model_name)
            except Exception as e:
                raise RuntimeError(f"Failed to initialize Vertex AI: {e}") from e

            self._text_input_cls = TextEmbeddingInput
            self._initialized_at = time.time()
            logger.info(f"Vertex AI initialized with model: {self.config.model_name}")

    def _enforce_rate_limit(self):
        """Enforce rate limiting based on requests per minute."""
        if self.config.rate_limit_rpm <= 0:
            return

        window = 60.0
        sleep_time = 0.0
        with self._rate_lock:
            now = time.time()
            self._request_times = [t for t in self._request_times if now - t < window]
            if len(self._request_times) >= self.config.rate_limit_rpm:
                sleep_time = max(0.0, window - (now - self._request_times[0]) + 0.1)
            # Reserve the slot at the time the request will actually run
            self._request_times.append(now + sleep_time)

        if sleep_time > 0:
            logger.debug(f"Rate limit reached, sleeping {sleep_time:.2f}s")
            time.sleep(sleep_time)

    def _embed(self, texts: List[str], task_type: str) -> List[List[float]]:
        attempts = max(1, self.config.max_retries)
        for attempt in range(attempts):
            try:
                self._enforce_rate_limit()
                inputs = [self._text_input_cls(text=text, task_type=task_type) for text in texts]
                embeddings = self._model.get_embeddings(
                    inputs, output_dimensionality=self.config.dimensions
                )
                return [list(embedding.values) for embedding in embeddings]
            except Exception as e:
                logger.warning(f"Embedding attempt {attempt + 1} failed: {e}")
                if attempt < attempts - 1:
                    delay = self.config.retry_delay * (2**attempt)
                    logger.info(f"Retrying in {delay:.2f}s...")
                    time.sleep(delay)
                else:
                    raise RuntimeError(
                        f"Failed to generate embedding after {attempts} attempt(s): {e}"
                    ) from e

    def generate_embedding(self, text: str, task_type: Optional[str] = None) -> List[float]:
        """
        Generate embedding for a single text.

        Raises:
            RuntimeError: If embedding generation fails
        """
        self._initialize_vertexai()
        logger.debug(f"Generating embedding (text_length={len(text)})")
        vector = self._embed([text], task_type or self.config.task_type)[0]
        logger.debug(f"Embedding generated (dimensions={len(vector)})")
        return vector

    def generate_embeddings_batch(
        self,
        texts: List[str],
        task_type: Optional[str] = None,
        show_progress: bool = False,
    ) -> List[List[float]]:
        """Generate embeddings for multiple texts in batches of `batch_size`."""
        self._initialize_vertexai()
        task_type = task_type or self.config.task_type
        all_embeddings: List[List[float]] = []

        total_batches = (len(texts) + self.config.batch_size - 1) // self.config.batch_size
        for i in range(0, len(texts), self.config.batch_size):
            batch = texts[i : i + self.config.batch_size]
            if show_progress:
                batch_num = i // self.config.batch_size + 1
                logger.info(f"Processing batch {batch_num}/{total_batches} ({len(batch)} texts)")
            all_embeddings.extend(self._embed(batch, task_type))

        return all_embeddings

    def check_credentials(self) -> bool:
        """
        Obtain an access token with the configured credentials.

        Returns:
            True when a token was obtained

        Raises:
            google.auth.exceptions.GoogleAuthError: If the credentials cannot be refreshed
        """
        import google.auth
        from google.auth.transport.requests import Request

        credentials = resolve_credentials(self.config)
        if credentials is None:
            credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
        if not credentials.token:
            credentials.refresh(Request())
        return bool(credentials.token)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "model": self.config.model_name,
            "dimensions": self.config.dimensions,
            "project": self.config.project_id,
            "location": self.config.location,
            "initialized": self._model is not None,
        }


def to_vector_literal(embedding: List[float]) -> str:
    """Convert an embedding to pgvector's text format."""
    return "[" + ",".join(str(x) for x in embedding) + "]"
