"""Tests for environment configuration."""

import pytest

from sales_arsenal_mcp.config import BridgeSettings
from sales_arsenal_mcp.errors import ConfigurationError

REQUIRED = {"DATABASE_URL": "postgresql://db/postgres", "DATABASE_SERVICE_KEY": "key"}


def test_defaults():
    settings = BridgeSettings.from_env(dict(REQUIRED))

    assert settings.transport == "stdio"
    assert settings.port == 3000
    assert settings.match_threshold == 0.3
    assert settings.overfetch_factor == 5
    assert settings.embeddings_enabled is False
    assert settings.rerank_enabled is False
    assert settings.tables_unrestricted is True
    assert settings.write_actions == frozenset({"insert", "update", "delete"})


def test_supabase_aliases():
    settings = BridgeSettings.from_env(
        {"SUPABASE_DB_URL": "postgresql://db/postgres", "SUPABASE_SERVICE_KEY": "key"}
    )

    assert settings.database_url == "postgresql://db/postgres"
    assert settings.service_key == "key"


@pytest.mark.parametrize("missing", ["DATABASE_URL", "DATABASE_SERVICE_KEY"])
def test_missing_required(missing):
    env = dict(REQUIRED)
    del env[missing]

    with pytest.raises(ConfigurationError, match=missing):
        BridgeSettings.from_env(env)


def test_optional_features_and_lists():
    settings = BridgeSettings.from_env(
        dict(
            REQUIRED,
            VERTEX_PROJECT="proj",
            RERANK_API_KEY="jina",
            TABLE_ALLOWLIST="leads, arsenal_vendas",
            WRITE_ACTIONS="insert,update",
            MCP_TRANSPORT="HTTP",
            PORT="8080",
            SEARCH_MATCH_THRESHOLD="0.5",
        )
    )

    assert settings.embeddings_enabled and settings.rerank_enabled
    assert settings.table_allowlist == frozenset({"leads", "arsenal_vendas"})
    assert settings.write_actions == frozenset({"insert", "update"})
    assert settings.transport == "http"
    assert settings.port == 8080
    assert settings.match_threshold == 0.5


@pytest.mark.parametrize(
    "extra",
    [
        {"PORT": "eighty"},
        {"MCP_TRANSPORT": "websocket"},
        {"WRITE_ACTIONS": "insert,truncate"},
        {"SEARCH_OVERFETCH_FACTOR": "0"},
    ],
)
def test_malformed_values(extra):
    with pytest.raises(ConfigurationError):
        BridgeSettings.from_env(dict(REQUIRED, **extra))


def test_unrestricted_tables_warned(caplog):
    settings = BridgeSettings.from_env(dict(REQUIRED))

    with caplog.at_level("WARNING"):
        settings.log_summary()

    assert "TABLE_ALLOWLIST" in caplog.text
