"""
Semantic search over the sales arsenal.

Flow for buscar_arsenal:
1. Validate the query (before any network call)
2. Embed the query with Vertex AI
3. Call the similarity match function (over-fetching when re-rank is on or a
   category filter is set), then apply the category filter
4. Optionally re-rank the candidates and keep the top `limit`
5. Fall back to a case-insensitive keyword match when nothing was found
   or embeddings are not configured
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from .. import constants
from ..backend import Filter, escape_like
from ..embeddings import build_document_text, to_vector_literal
from ..utils import ResponseFormatter
from .base_service import BaseService

logger = logging.getLogger(__name__)

MODE_VECTOR = "vetorial"
MODE_RERANK = "vetorial+rerank"
MODE_KEYWORD = "palavra_chave"


def _matches_category(item: Mapping[str, Any], category: Optional[str]) -> bool:
    if not category:
        return True
    value = item.get("categoria") or ""
    return category.lower() in str(value).lower()


class ArsenalSearchService(BaseService):
    """
    Service for searching arsenal items (images, scripts, arguments).

    Usage:
        service = ArsenalSearchService(context)
        payload = await service.search("mesa de jantar rústica", limit=3)
    """

    async def search(
        self,
        query: Any,
        limit: Any = None,
        category: Any = None,
    ) -> Dict[str, Any]:
        """
        Search the arsenal.

        Args:
            query: Natural-language query (required, non-blank)
            limit: Number of results (default 5)
            category: Optional case-insensitive category filter

        Returns:
            Search payload with status, mode and formatted results; an empty
            result set yields status "sem_resultados", not an error

        Raises:
            InvalidArgumentError: Blank query or malformed limit
            UpstreamUnavailableError: Embedding, match function or re-rank failed
        """
        query = self._require_string(query, "query")
        limit = self._require_limit(
            limit, "limit", constants.DEFAULT_SEARCH_LIMIT, constants.MAX_SEARCH_LIMIT
        )
        category = self._optional_string(category, "category")
        category = category.strip() if category and category.strip() else None

        logger.info(f"Arsenal search: query='{query}', limit={limit}, category={category}")

        mode = MODE_KEYWORD
        items: List[Dict[str, Any]] = []
        if self.helper.embedder is not None:
            items, mode = await self._vector_search(query, limit, category)
        else:
            logger.info("Embeddings not configured, using keyword search")

        if not items:
            if mode != MODE_KEYWORD:
                logger.info("Vector search returned no rows, falling back to keyword search")
            mode = MODE_KEYWORD
            items = await self._keyword_search(query, limit, category)

        logger.info(f"Arsenal search returned {len(items)} result(s) (mode={mode})")
        return ResponseFormatter.arsenal_results(query, items, mode)

    async def _vector_search(
        self, query: str, limit: int, category: Optional[str]
    ) -> tuple:
        embedding = await self.helper.call_upstream(
            "embeddings", self.helper.embedder.generate_embedding, query
        )

        rerank = self.helper.reranker is not None
        overfetch = rerank or category is not None
        match_count = limit * self.settings.overfetch_factor if overfetch else limit
        rows = await self.helper.call_upstream(
            "database",
            self.backend.call_function,
            self.settings.arsenal_match_function,
            {
                "query_embedding": to_vector_literal(embedding),
                "match_threshold": self.settings.match_threshold,
                "match_count": match_count,
            },
        )
        candidates = [row for row in rows if _matches_category(row, category)]
        logger.debug(f"Match function returned {len(rows)} row(s), {len(candidates)} after filter")

        if not candidates:
            return [], MODE_VECTOR
        if not rerank:
            return candidates[:limit], MODE_VECTOR
        return await self._rerank(query, candidates, limit), MODE_RERANK

    async def _rerank(
        self, query: str, candidates: List[Dict[str, Any]], limit: int
    ) -> List[Dict[str, Any]]:
        """Re-order candidates by the re-rank score; the records are restored by index."""
        documents = [build_document_text(item) for item in candidates]
        ranked = await self.helper.call_upstream(
            "rerank", self.helper.reranker.rerank, query, documents, limit
        )
        items = []
        for result in ranked[:limit]:
            item = dict(candidates[result.index])
            item["relevance_score"] = result.relevance_score
            items.append(item)
        return items

    async def _keyword_search(
        self, query: str, limit: int, category: Optional[str]
    ) -> List[Dict[str, Any]]:
        pattern = f"%{escape_like(query)}%"
        filters = [Filter("categoria", f"%{escape_like(category)}%", "ilike")] if category else []
        any_of = [Filter(column, pattern, "ilike") for column in constants.KEYWORD_SEARCH_COLUMNS]
        return await self.helper.call_upstream(
            "database",
            self.backend.select,
            self.settings.arsenal_table,
            filters=filters,
            any_of=any_of,
            limit=limit,
        )
