"""
Environment configuration for the Sales Arsenal MCP server.

All settings are read once at startup into a BridgeSettings instance. Only the
database URL and service key are required; everything else has a default or
switches an optional feature off (embeddings, re-rank).
"""

import logging
import os
from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional

from . import constants
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def _first_env(env: Mapping[str, str], *names: str) -> Optional[str]:
    """Return the first non-empty value among several variable names."""
    for name in names:
        value = env.get(name)
        if value and value.strip():
            return value.strip()
    return None


def _env_bool(env: Mapping[str, str], name: str, default: str = "false") -> bool:
    return env.get(name, default).strip().lower() == "true"


def _env_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from e


def _env_list(env: Mapping[str, str], name: str) -> List[str]:
    raw = env.get(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class BridgeSettings:
    """
    Runtime settings for the bridge.

    Attributes:
        database_url: Postgres DSN of the managed database
        service_key: Service credential, used as the connection password
        vertex_project: GCP project for embeddings (None disables embeddings)
        vertex_location: Vertex AI region
        vertex_token: Static bearer token for Vertex AI (optional)
        vertex_use_gcloud: Obtain the bearer token from the local gcloud CLI
        service_account_file: Service account JSON for Vertex AI / GCS (optional)
        rerank_api_key: Re-rank API key (None disables re-ranking)
        match_threshold: Minimum similarity passed to the match function
        overfetch_factor: Candidate multiplier fed to the re-ranker
        table_allowlist: Tables reachable by generic tools (empty = all)
        write_actions: Actions permitted for modificar_dados
    """

    database_url: str
    service_key: str
    vertex_project: Optional[str] = None
    vertex_location: str = "us-central1"
    vertex_token: Optional[str] = None
    vertex_use_gcloud: bool = False
    service_account_file: Optional[str] = None
    embedding_model: str = "text-embedding-004"
    embedding_dimensions: int = 768
    rerank_api_key: Optional[str] = None
    rerank_url: str = constants.DEFAULT_RERANK_URL
    rerank_model: str = constants.DEFAULT_RERANK_MODEL
    match_threshold: float = constants.DEFAULT_MATCH_THRESHOLD
    overfetch_factor: int = constants.DEFAULT_OVERFETCH_FACTOR
    arsenal_table: str = constants.ARSENAL_TABLE
    arsenal_match_function: str = constants.ARSENAL_MATCH_FUNCTION
    leads_table: str = constants.LEADS_TABLE
    table_allowlist: FrozenSet[str] = field(default_factory=frozenset)
    write_actions: FrozenSet[str] = field(
        default_factory=lambda: frozenset(constants.WRITE_ACTIONS)
    )
    upstream_timeout: float = constants.DEFAULT_UPSTREAM_TIMEOUT_SECONDS
    session_ttl: float = constants.DEFAULT_SESSION_TTL_SECONDS
    transport: str = "stdio"
    host: str = "0.0.0.0"  # nosec B104
    port: int = constants.DEFAULT_PORT
    log_level: str = "INFO"
    startup_db_check: bool = True

    @property
    def embeddings_enabled(self) -> bool:
        return bool(self.vertex_project)

    @property
    def rerank_enabled(self) -> bool:
        return bool(self.rerank_api_key)

    @property
    def tables_unrestricted(self) -> bool:
        return not self.table_allowlist

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "BridgeSettings":
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: If a required variable is missing or a value is malformed
        """
        env = os.environ if env is None else env

        database_url = _first_env(env, "DATABASE_URL", "SUPABASE_DB_URL")
        service_key = _first_env(
            env, "DATABASE_SERVICE_KEY", "SUPABASE_SERVICE_KEY", "SUPABASE_KEY"
        )
        missing = []
        if not database_url:
            missing.append("DATABASE_URL")
        if not service_key:
            missing.append("DATABASE_SERVICE_KEY")
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        write_actions = _env_list(env, "WRITE_ACTIONS") or list(constants.WRITE_ACTIONS)
        unknown_actions = set(write_actions) - set(constants.WRITE_ACTIONS)
        if unknown_actions:
            raise ConfigurationError(
                f"WRITE_ACTIONS contains unknown actions: {', '.join(sorted(unknown_actions))}"
            )

        transport = env.get("MCP_TRANSPORT", "stdio").strip().lower()
        if transport not in ("stdio", "http"):
            raise ConfigurationError(f"MCP_TRANSPORT must be 'stdio' or 'http', got '{transport}'")

        overfetch = _env_number(
            env, "SEARCH_OVERFETCH_FACTOR", constants.DEFAULT_OVERFETCH_FACTOR, int
        )
        if overfetch < 1:
            raise ConfigurationError("SEARCH_OVERFETCH_FACTOR must be >= 1")

        return cls(
            database_url=database_url,
            service_key=service_key,
            vertex_project=_first_env(env, "VERTEX_PROJECT", "GCP_PROJECT_ID"),
            vertex_location=_first_env(env, "VERTEX_LOCATION") or "us-central1",
            vertex_token=_first_env(env, "VERTEX_TOKEN"),
            vertex_use_gcloud=_env_bool(env, "VERTEX_USE_GCLOUD"),
            service_account_file=_first_env(env, "GOOGLE_APPLICATION_CREDENTIALS"),
            embedding_model=_first_env(env, "EMBEDDING_MODEL") or "text-embedding-004",
            embedding_dimensions=_env_number(env, "EMBEDDING_DIMENSIONS", 768, int),
            rerank_api_key=_first_env(env, "RERANK_API_KEY"),
            rerank_url=_first_env(env, "RERANK_URL") or constants.DEFAULT_RERANK_URL,
            rerank_model=_first_env(env, "RERANK_MODEL") or constants.DEFAULT_RERANK_MODEL,
            match_threshold=_env_number(
                env, "SEARCH_MATCH_THRESHOLD", constants.DEFAULT_MATCH_THRESHOLD, float
            ),
            overfetch_factor=overfetch,
            arsenal_table=_first_env(env, "ARSENAL_TABLE") or constants.ARSENAL_TABLE,
            arsenal_match_function=(
                _first_env(env, "ARSENAL_MATCH_FUNCTION") or constants.ARSENAL_MATCH_FUNCTION
            ),
            leads_table=_first_env(env, "LEADS_TABLE") or constants.LEADS_TABLE,
            table_allowlist=frozenset(_env_list(env, "TABLE_ALLOWLIST")),
            write_actions=frozenset(write_actions),
            upstream_timeout=_env_number(
                env,
                "UPSTREAM_TIMEOUT_SECONDS",
                constants.DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
                float,
            ),
            session_ttl=_env_number(
                env, "SESSION_TTL_SECONDS", constants.DEFAULT_SESSION_TTL_SECONDS, float
            ),
            transport=transport,
            host=env.get("HOST", "0.0.0.0"),  # nosec B104
            port=_env_number(env, "PORT", constants.DEFAULT_PORT, int),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            startup_db_check=_env_bool(env, "STARTUP_DB_CHECK", "true"),
        )

    def log_summary(self) -> None:
        """Log the effective configuration without secrets."""
        logger.info(f"Transport: {self.transport} (host={self.host}, port={self.port})")
        logger.info(
            f"Embeddings: {'enabled' if self.embeddings_enabled else 'disabled'} "
            f"(project={self.vertex_project or '-'}, model={self.embedding_model})"
        )
        logger.info(f"Re-rank: {'enabled' if self.rerank_enabled else 'disabled'}")
        logger.info(
            f"Search: threshold={self.match_threshold}, overfetch={self.overfetch_factor}"
        )
        if self.tables_unrestricted:
            logger.warning(
                "⚠️  TABLE_ALLOWLIST not set - generic table tools can reach every table "
                "the service credentials can access"
            )
        else:
            logger.info(f"Table allow-list: {', '.join(sorted(self.table_allowlist))}")
        logger.info(f"Write actions: {', '.join(sorted(self.write_actions)) or 'none'}")
