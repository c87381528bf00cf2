"""Administrative jobs for the Sales Arsenal MCP server.

- backfill: generate embeddings for arsenal items that have none
"""

from .backfill import BackfillResult, backfill_missing_embeddings

__all__ = ["BackfillResult", "backfill_missing_embeddings"]
