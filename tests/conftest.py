"""Shared fixtures: settings and in-memory fakes for the backend and clients."""

import re
import sys
from types import SimpleNamespace
from pathlib import Path as _TestPath
from typing import Any, Dict, List

import pytest

ROOT = _TestPath(__file__).resolve().parents[1]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from sales_arsenal_mcp.backend import RecordNotFoundError  # noqa: E402
from sales_arsenal_mcp.config import BridgeSettings  # noqa: E402
from sales_arsenal_mcp.rerank import RerankResult  # noqa: E402
from sales_arsenal_mcp.storage import BaseStorageAdapter, SignedUrl  # noqa: E402
from sales_arsenal_mcp.utils import BridgeContext  # noqa: E402


def _like_needle(pattern):
    """Literal text of a `%text%` ILIKE pattern with its escapes removed."""
    return re.sub(r"\\(.)", r"\1", pattern[1:-1]).lower()


class FakeBackend:
    """In-memory stand-in for PostgresBackend keyed by table name."""

    def __init__(self, tables: Dict[str, List[Dict[str, Any]]] = None):
        self.tables = tables if tables is not None else {}
        self.match_rows: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []
        self.fail_with: Exception = None

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.fail_with is not None:
            raise self.fail_with

    @staticmethod
    def _matches(row, filters):
        for flt in filters or []:
            value = row.get(flt.column)
            if flt.op == "is_null" and value is not None:
                return False
            if flt.op == "eq" and value != flt.value:
                return False
            if flt.op == "ilike" and _like_needle(flt.value) not in str(value or "").lower():
                return False
        return True

    def select(self, table, columns=None, filters=None, any_of=None, limit=None, order_by=None):
        self._record("select", table, columns=columns, filters=filters, any_of=any_of, limit=limit)
        rows = [r for r in self.tables.get(table, []) if self._matches(r, filters)]
        if any_of:
            rows = [r for r in rows if any(self._matches(r, [f]) for f in any_of)]
        if columns:
            rows = [{c: r.get(c) for c in columns} for r in rows]
        if limit is not None:
            rows = rows[:limit]
        return [dict(r) for r in rows]

    def select_one(self, table, filters, columns=None):
        self._record("select_one", table, filters)
        rows = [r for r in self.tables.get(table, []) if self._matches(r, filters)]
        if not rows:
            raise RecordNotFoundError()
        return dict(rows[0])

    def call_function(self, name, params):
        self._record("call_function", name, params)
        rows = self.match_rows[: params.get("match_count", len(self.match_rows))]
        return [dict(r) for r in rows]

    def list_tables(self, schema="public"):
        self._record("list_tables", schema)
        return sorted(self.tables)

    def ping(self, table):
        self._record("ping", table)

    def insert(self, table, data):
        self._record("insert", table, data)
        row = dict(data)
        self.tables.setdefault(table, []).append(row)
        return [dict(row)]

    def update(self, table, data, filters):
        self._record("update", table, data, filters)
        updated = []
        for row in self.tables.get(table, []):
            if self._matches(row, filters):
                row.update(data)
                updated.append(dict(row))
        return updated

    def delete(self, table, filters):
        self._record("delete", table, filters)
        rows = self.tables.get(table, [])
        removed = [dict(r) for r in rows if self._matches(r, filters)]
        self.tables[table] = [r for r in rows if not self._matches(r, filters)]
        return removed

    def upsert(self, table, data, on_conflict):
        self._record("upsert", table, data, on_conflict)
        for row in self.tables.setdefault(table, []):
            if row.get(on_conflict) == data[on_conflict]:
                row.update(data)
                return dict(row)
        self.tables[table].append(dict(data))
        return dict(data)


class FakeEmbedder:
    def __init__(self, vector=None, error: Exception = None):
        self.vector = vector or [0.1, 0.2, 0.3]
        self.error = error
        self.calls: List[str] = []

    def generate_embedding(self, text, task_type=None):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.vector)

    def generate_embeddings_batch(self, texts, task_type=None, show_progress=False):
        self.calls.extend(texts)
        if self.error is not None:
            raise self.error
        return [list(self.vector) for _ in texts]

    def check_credentials(self):
        if self.error is not None:
            raise self.error
        return True


class FakeReranker:
    """Ranks documents by the order of indices given in `order`."""

    def __init__(self, order: List[int]):
        self.order = order
        self.calls: List[tuple] = []

    def rerank(self, query, documents, top_n):
        self.calls.append((query, documents, top_n))
        return [
            RerankResult(index=i, relevance_score=1.0 - n * 0.1)
            for n, i in enumerate(self.order[:top_n])
        ]


class FakeStorage(BaseStorageAdapter):
    def __init__(self):
        self.calls: List[tuple] = []

    def create_signed_url(self, bucket, path, expires_in):
        self.calls.append((bucket, path, expires_in))
        return SignedUrl(
            bucket=bucket,
            path=path,
            url=f"https://storage.example.com/{bucket}/{path}?sig=abc",
            expires_in=expires_in,
            expires_at="2030-01-01T00:00:00+00:00",
        )


@pytest.fixture
def settings():
    return BridgeSettings(database_url="postgresql://localhost/test", service_key="service-key")


@pytest.fixture
def backend():
    return FakeBackend(
        {
            "leads": [],
            "arsenal_vendas": [],
        }
    )


@pytest.fixture
def context(settings, backend):
    return BridgeContext(settings=settings, backend=backend, storage=FakeStorage())


@pytest.fixture
def fakes():
    """Fake client classes, for tests that build their own instances."""
    return SimpleNamespace(
        Backend=FakeBackend,
        Embedder=FakeEmbedder,
        Reranker=FakeReranker,
        Storage=FakeStorage,
    )
