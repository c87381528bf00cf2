"""
Sales Arsenal MCP Server

This MCP server lets sales agents search the sales arsenal (images, scripts,
arguments) semantically, read and update CRM leads, access allow-listed tables
and generate temporary download links.

Clients are built once at startup and passed to the tool handlers through a
BridgeContext. Transport is chosen with MCP_TRANSPORT: "stdio" (default) or
"http" (synchronous JSON-RPC on POST /sse plus an SSE stream on GET /sse).
"""

import asyncio
import logging
import sys

import uvicorn

from . import __version__, constants
from .backend import BackendError, PostgresBackend
from .config import BridgeSettings
from .embeddings import EmbeddingConfig, VertexAIEmbedder
from .errors import ConfigurationError
from .rerank import RerankClient, RerankConfig
from .storage import GCSAdapter
from .tools import build_tool_registry
from .transport import SessionRegistry, create_http_app, run_stdio
from .utils import BridgeContext

logger = logging.getLogger(__name__)


def setup_logging(transport: str = "stdio", level: str = "INFO") -> None:
    """
    Setup logging without writing to files.

    In http mode INFO goes to stdout and ERROR to stderr (Cloud Run captures
    both). In stdio mode stdout carries the protocol, so everything goes to stderr.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if transport == "http":
        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setFormatter(formatter)
        stdout_handler.addFilter(lambda record: record.levelno < logging.ERROR)
        root_logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(logging.ERROR if transport == "http" else logging.DEBUG)
    root_logger.addHandler(stderr_handler)

    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def check_database_connection(backend: PostgresBackend, settings: BridgeSettings) -> bool:
    """
    Check the database on startup.

    Failures are logged but not fatal: the bridge starts and each tool call
    reports the database as unavailable until it recovers.

    Returns:
        True if every check passed
    """
    logger.info("Checking database connection on startup...")
    try:
        version = backend.server_version()
        logger.info(f"✅ Database connection successful: {version[:50]}...")

        if not backend.has_extension("vector"):
            logger.warning("⚠️  pgvector extension not installed - vector search will fail")

        for table in (settings.arsenal_table, settings.leads_table):
            backend.ping(table)
            logger.info(f"✅ Table {table} reachable")
        return True
    except BackendError as e:
        logger.error(f"❌ Database check failed: {e}")
        return False


def build_context(settings: BridgeSettings) -> BridgeContext:
    """Construct every client once; optional clients are None when not configured."""
    backend = PostgresBackend(
        settings.database_url,
        settings.service_key,
        statement_timeout_ms=int(settings.upstream_timeout * 1000),
    )

    embedder = None
    if settings.embeddings_enabled:
        embedder = VertexAIEmbedder(EmbeddingConfig.from_settings(settings))
    else:
        logger.warning("VERTEX_PROJECT not set - buscar_arsenal will use keyword search only")

    reranker = None
    if settings.rerank_enabled:
        reranker = RerankClient(
            RerankConfig(
                api_key=settings.rerank_api_key,
                url=settings.rerank_url,
                model=settings.rerank_model,
                timeout=settings.upstream_timeout,
            )
        )

    storage = GCSAdapter(
        project_id=settings.vertex_project,
        service_account_file=settings.service_account_file,
    )

    return BridgeContext(
        settings=settings,
        backend=backend,
        embedder=embedder,
        reranker=reranker,
        storage=storage,
    )


def main():
    """Main function to run the MCP server."""
    try:
        settings = BridgeSettings.from_env()
    except ConfigurationError as e:
        setup_logging()
        logger.error(f"❌ {e}")
        sys.exit(1)

    setup_logging(settings.transport, settings.log_level)
    logger.info(f"Starting {constants.SERVER_NAME} v{__version__}")
    settings.log_summary()

    context = build_context(settings)
    if settings.startup_db_check:
        check_database_connection(context.backend, settings)

    registry = build_tool_registry(context)
    logger.info(f"Registered {len(registry)} tools: {', '.join(registry.names())}")

    if settings.transport == "http":
        # nosec B104: Binding to 0.0.0.0 is required for containerized deployments
        sessions = SessionRegistry(ttl=settings.session_ttl)
        app = create_http_app(registry, sessions, context)
        logger.info(f"Starting MCP server in HTTP mode on {settings.host}:{settings.port}")
        logger.info(f"📍 MCP endpoint: POST http://{settings.host}:{settings.port}/sse")
        logger.info(f"📍 Health check: http://{settings.host}:{settings.port}/health")
        uvicorn.run(app, host=settings.host, port=settings.port, log_level="warning")
    else:
        logger.info("Starting MCP server in stdio mode")
        asyncio.run(run_stdio(registry))


if __name__ == "__main__":
    main()
