#!/usr/bin/env python3
"""Standalone embedding backfill for the sales arsenal.

Designed to be run by hand or as a scheduled job after the ingestion process
has added arsenal items without embeddings.

Usage:
    sales-arsenal-backfill [--batch-size N] [--limit N] [--dry-run] [--json]

Examples:
    # See how many rows would be embedded
    sales-arsenal-backfill --dry-run

    # Embed at most 100 rows, 10 per request
    sales-arsenal-backfill --limit 100 --batch-size 10

Environment Variables:
    DATABASE_URL, DATABASE_SERVICE_KEY: Database access (required)
    VERTEX_PROJECT: GCP project for Vertex AI embeddings (required for this job)
    ARSENAL_TABLE: Arsenal table name (default: arsenal_vendas)

Exit codes: 0 success, 1 configuration error, 2 runtime error.
"""

import argparse
import json
import logging
import sys

from ..config import BridgeSettings
from ..embeddings import EmbeddingConfig, VertexAIEmbedder
from ..errors import ConfigurationError
from ..server import build_context
from .backfill import backfill_missing_embeddings

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main entry point for the backfill script."""
    parser = argparse.ArgumentParser(
        description="Generate missing embeddings for arsenal items",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=20,
        help="Rows embedded per batch (default: 20)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of rows to process (default: all)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report how many rows would be embedded",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results in JSON format for programmatic processing",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr if args.json else sys.stdout,
    )

    try:
        settings = BridgeSettings.from_env()
        if not settings.embeddings_enabled:
            raise ConfigurationError("VERTEX_PROJECT must be set to generate embeddings")
        if args.batch_size < 1 or (args.limit is not None and args.limit < 1):
            raise ConfigurationError("--batch-size and --limit must be positive")
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        if args.json:
            print(json.dumps({"status": "error", "error_type": "configuration", "message": str(e)}, indent=2))
        else:
            print(f"\nERROR: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        context = build_context(settings)
        embedder = VertexAIEmbedder(
            EmbeddingConfig.from_settings(settings, task_type="RETRIEVAL_DOCUMENT", max_retries=3)
        )
        logger.info(f"Embedding model: {embedder.get_stats()}")

        result = backfill_missing_embeddings(
            context.backend,
            embedder,
            table=settings.arsenal_table,
            batch_size=args.batch_size,
            limit=args.limit,
            dry_run=args.dry_run,
        )

        if args.json:
            print(json.dumps({"status": "success", "backfill_result": result.to_dict()}, indent=2))
        else:
            print("\n" + "=" * 60)
            print(f"Backfill {'Dry Run ' if args.dry_run else ''}Complete")
            print("=" * 60)
            print(f"Scanned:  {result.scanned_count} rows without embedding")
            print(f"Updated:  {result.updated_count} rows")
            print(f"Skipped:  {result.skipped_count} rows (no text)")
            print(f"Errors:   {result.error_count}")
            print(f"Duration: {result.execution_time_ms:.2f} ms")
            if result.errors:
                print("\nErrors encountered:")
                for error in result.errors:
                    print(f"  - {error}")
            print("=" * 60)

        sys.exit(0)

    except Exception as e:
        logger.error(f"Backfill failed: {e}", exc_info=True)
        if args.json:
            print(json.dumps({"status": "error", "error_type": "runtime", "message": str(e)}, indent=2))
        else:
            print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
