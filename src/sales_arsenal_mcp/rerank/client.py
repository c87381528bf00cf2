"""
Re-rank API client.

Sends a query plus candidate documents to a Jina/Cohere-compatible re-rank
endpoint and returns (index, relevance_score) pairs in relevance order.

Request:  {"model", "query", "documents": [str], "top_n"}
Response: {"results": [{"index": int, "relevance_score": float}, ...]}
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import requests

from .. import constants

logger = logging.getLogger(__name__)


class RerankError(Exception):
    """Re-rank request failed or returned an unexpected payload."""

    pass


@dataclass
class RerankConfig:
    api_key: str
    url: str = constants.DEFAULT_RERANK_URL
    model: str = constants.DEFAULT_RERANK_MODEL
    timeout: float = constants.DEFAULT_UPSTREAM_TIMEOUT_SECONDS


@dataclass
class RerankResult:
    index: int
    relevance_score: float


class RerankClient:
    """
    Usage:
        client = RerankClient(RerankConfig(api_key="..."))
        ranked = client.rerank("prova social", ["doc a", "doc b"], top_n=1)
    """

    def __init__(self, config: RerankConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def rerank(self, query: str, documents: List[str], top_n: int) -> List[RerankResult]:
        """
        Rank `documents` against `query`.

        Returns:
            At most `top_n` results, most relevant first, indices into `documents`

        Raises:
            RerankError: On HTTP errors, timeouts or malformed responses
        """
        if not documents:
            return []

        payload = {
            "model": self.config.model,
            "query": query,
            "documents": documents,
            "top_n": min(top_n, len(documents)),
        }
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        logger.debug(f"Re-ranking {len(documents)} candidates (top_n={payload['top_n']})")
        try:
            response = self.session.post(
                self.config.url, json=payload, headers=headers, timeout=self.config.timeout
            )
        except requests.exceptions.Timeout as e:
            raise RerankError(f"Re-rank request timed out after {self.config.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise RerankError(f"Re-rank request failed: {e}") from e

        if response.status_code != 200:
            raise RerankError(
                f"Re-rank API returned {response.status_code}: {response.text[:200]}"
            )

        try:
            results = response.json()["results"]
            ranked = [
                RerankResult(index=int(r["index"]), relevance_score=float(r["relevance_score"]))
                for r in results
            ]
        except (ValueError, KeyError, TypeError) as e:
            raise RerankError(f"Unexpected re-rank response: {e}") from e

        ranked = [r for r in ranked if 0 <= r.index < len(documents)]
        ranked.sort(key=lambda r: r.relevance_score, reverse=True)
        return ranked[:top_n]
