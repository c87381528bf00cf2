"""
Unit tests for the embedding backfill job.

Run with:
    pytest tests/admin/test_backfill.py -v
"""

import json

import pytest

from sales_arsenal_mcp.admin import backfill_missing_embeddings
from sales_arsenal_mcp.admin import run_backfill
from sales_arsenal_mcp.backend import BackendError


@pytest.fixture
def arsenal(fakes):
    return fakes.Backend(
        {
            "arsenal_vendas": [
                {"id": 1, "nome_arquivo": "a.png", "conteudo_texto": "Mesa", "embedding": None},
                {"id": 2, "nome_arquivo": "b.png", "conteudo_texto": "Cadeira", "embedding": "[1]"},
                {"id": 3, "nome_arquivo": "c.png", "embedding": None},
                {"id": 4, "embedding": None},
            ]
        }
    )


def test_backfill_updates_missing_rows(arsenal, fakes):
    embedder = fakes.Embedder(vector=[0.25, 0.75])

    result = backfill_missing_embeddings(arsenal, embedder, batch_size=1)

    assert result.scanned_count == 3
    assert result.skipped_count == 1
    assert result.updated_count == 2
    assert result.updated_ids == [1, 3]
    assert result.error_count == 0
    rows = {row["id"]: row for row in arsenal.tables["arsenal_vendas"]}
    assert rows[1]["embedding"] == "[0.25,0.75]"
    assert rows[3]["embedding"] == "[0.25,0.75]"
    assert rows[4]["embedding"] is None


def test_dry_run_does_not_write(arsenal, fakes):
    embedder = fakes.Embedder()

    result = backfill_missing_embeddings(arsenal, embedder, dry_run=True)

    assert result.updated_count == 2
    assert embedder.calls == []
    assert all(call[0] != "update" for call in arsenal.calls)


def test_failed_batch_is_recorded(arsenal, fakes):
    embedder = fakes.Embedder(error=RuntimeError("quota"))

    result = backfill_missing_embeddings(arsenal, embedder, batch_size=10)

    assert result.updated_count == 0
    assert result.error_count == 1
    assert "quota" in result.errors[0]


def test_limit_and_validation(arsenal, fakes):
    result = backfill_missing_embeddings(arsenal, fakes.Embedder(), limit=1)
    assert result.scanned_count == 1

    with pytest.raises(ValueError):
        backfill_missing_embeddings(arsenal, fakes.Embedder(), batch_size=0)


def test_read_failure_propagates(arsenal, fakes):
    arsenal.fail_with = BackendError("connection refused")

    with pytest.raises(BackendError):
        backfill_missing_embeddings(arsenal, fakes.Embedder())


def test_result_to_dict(arsenal, fakes):
    payload = backfill_missing_embeddings(arsenal, fakes.Embedder()).to_dict()

    assert payload["updated_ids"] == ["1", "3"]
    assert set(payload) >= {"scanned_count", "updated_count", "errors", "execution_time_ms"}


class TestCli:
    def test_missing_vertex_project_exits_1(self, monkeypatch, capsys):
        monkeypatch.setenv("DATABASE_URL", "postgresql://db/postgres")
        monkeypatch.setenv("DATABASE_SERVICE_KEY", "key")
        monkeypatch.delenv("VERTEX_PROJECT", raising=False)
        monkeypatch.delenv("GCP_PROJECT_ID", raising=False)

        with pytest.raises(SystemExit) as exc_info:
            run_backfill.main(["--json"])

        assert exc_info.value.code == 1
        output = json.loads(capsys.readouterr().out)
        assert output["error_type"] == "configuration"

    def test_success_exits_0(self, monkeypatch, capsys, arsenal, fakes):
        monkeypatch.setenv("DATABASE_URL", "postgresql://db/postgres")
        monkeypatch.setenv("DATABASE_SERVICE_KEY", "key")
        monkeypatch.setenv("VERTEX_PROJECT", "proj")
        monkeypatch.setattr(
            run_backfill, "build_context", lambda settings: type("Ctx", (), {"backend": arsenal})()
        )
        monkeypatch.setattr(run_backfill, "VertexAIEmbedder", lambda config: _StatsEmbedder())

        with pytest.raises(SystemExit) as exc_info:
            run_backfill.main(["--json", "--dry-run"])

        assert exc_info.value.code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["status"] == "success"
        assert output["backfill_result"]["updated_count"] == 2


class _StatsEmbedder:
    def get_stats(self):
        return {"model": "fake"}

    def generate_embeddings_batch(self, texts, task_type=None, show_progress=False):
        return [[0.0] for _ in texts]
