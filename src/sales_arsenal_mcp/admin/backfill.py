"""Backfill of missing arsenal embeddings.

Arsenal items are created by an external ingestion process, sometimes without
an embedding vector. This module finds those rows, embeds their descriptive
text with Vertex AI (task type RETRIEVAL_DOCUMENT) and stores the vector.

Rows are processed in batches; a failing batch is recorded and skipped so the
remaining rows are still processed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .. import constants
from ..backend import BackendError, Filter
from ..embeddings import build_document_text, to_vector_literal

logger = logging.getLogger(__name__)


@dataclass
class BackfillResult:
    """Result of a backfill run.

    Attributes:
        scanned_count: Rows found without an embedding
        updated_count: Rows whose embedding was stored
        skipped_count: Rows with no text to embed
        error_count: Number of failed batches or updates
        updated_ids: Identifiers of updated rows
        errors: Error messages
        execution_time_ms: Total execution time in milliseconds
    """

    scanned_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    updated_ids: List[Any] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    execution_time_ms: float = 0.0

    def to_dict(self) -> dict:
        """Convert result to dictionary for JSON serialization."""
        return {
            "scanned_count": self.scanned_count,
            "updated_count": self.updated_count,
            "skipped_count": self.skipped_count,
            "error_count": self.error_count,
            "updated_ids": [str(i) for i in self.updated_ids],
            "errors": self.errors,
            "execution_time_ms": round(self.execution_time_ms, 2),
        }


def backfill_missing_embeddings(
    backend,
    embedder,
    table: str = constants.ARSENAL_TABLE,
    batch_size: int = 20,
    limit: Optional[int] = None,
    dry_run: bool = False,
) -> BackfillResult:
    """Embed arsenal rows whose embedding column is NULL.

    Args:
        backend: PostgresBackend (or compatible) used to read and update rows
        embedder: VertexAIEmbedder used to generate document embeddings
        table: Arsenal table name
        batch_size: Rows embedded per batch
        limit: Maximum number of rows to process (None = all)
        dry_run: Only count the rows that would be updated

    Returns:
        BackfillResult with counts and errors

    Raises:
        ValueError: If batch_size or limit is not positive
        BackendError: If the rows to backfill cannot be read
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    if limit is not None and limit < 1:
        raise ValueError("limit must be >= 1")

    start_time = datetime.now(timezone.utc)
    result = BackfillResult()

    logger.info(
        f"Starting embedding backfill: table={table}, batch_size={batch_size}, "
        f"limit={limit}, dry_run={dry_run}"
    )

    rows = backend.select(
        table,
        columns=[constants.ROW_ID_COLUMN] + constants.ARSENAL_DOCUMENT_COLUMNS,
        filters=[Filter(constants.EMBEDDING_COLUMN, op="is_null")],
        limit=limit,
        order_by=constants.ROW_ID_COLUMN,
    )
    result.scanned_count = len(rows)
    logger.info(f"Found {len(rows)} row(s) without embedding")

    pending: List[Dict[str, Any]] = []
    for row in rows:
        text = build_document_text(row)
        if not text.strip():
            result.skipped_count += 1
            logger.warning(f"Row {row.get(constants.ROW_ID_COLUMN)} has no text to embed")
            continue
        pending.append({"id": row[constants.ROW_ID_COLUMN], "text": text})

    if dry_run:
        result.updated_ids = [item["id"] for item in pending]
        result.updated_count = len(pending)
        logger.info(f"[DRY RUN] Would embed {len(pending)} row(s)")
    else:
        for offset in range(0, len(pending), batch_size):
            _process_batch(backend, embedder, table, pending[offset:offset + batch_size], result)

    result.execution_time_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
    logger.info(
        f"Backfill complete: scanned={result.scanned_count}, updated={result.updated_count}, "
        f"skipped={result.skipped_count}, errors={result.error_count}, "
        f"time={result.execution_time_ms:.2f}ms"
    )
    return result


def _process_batch(backend, embedder, table: str, batch: List[Dict[str, Any]], result: BackfillResult):
    try:
        embeddings = embedder.generate_embeddings_batch(
            [item["text"] for item in batch], task_type="RETRIEVAL_DOCUMENT"
        )
    except Exception as e:
        result.error_count += 1
        message = f"Embedding batch starting at id {batch[0]['id']} failed: {e}"
        result.errors.append(message)
        logger.error(message)
        return

    for item, embedding in zip(batch, embeddings):
        try:
            backend.update(
                table,
                {constants.EMBEDDING_COLUMN: to_vector_literal(embedding)},
                [Filter(constants.ROW_ID_COLUMN, item["id"])],
            )
            result.updated_count += 1
            result.updated_ids.append(item["id"])
        except BackendError as e:
            result.error_count += 1
            message = f"Failed to store embedding for id {item['id']}: {e}"
            result.errors.append(message)
            logger.error(message)
