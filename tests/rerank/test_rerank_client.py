"""Tests for the re-rank HTTP client."""

from unittest.mock import MagicMock

import pytest
import requests

from sales_arsenal_mcp.rerank import RerankClient, RerankConfig, RerankError


def _client(response=None, error=None):
    session = MagicMock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = response
    return RerankClient(RerankConfig(api_key="jina-key", timeout=3), session=session), session


def _response(status=200, payload=None):
    response = MagicMock()
    response.status_code = status
    response.text = "error body"
    response.json.return_value = payload
    return response


def test_request_and_ordering():
    client, session = _client(
        _response(
            payload={
                "results": [
                    {"index": 0, "relevance_score": 0.2},
                    {"index": 2, "relevance_score": 0.9},
                    {"index": 7, "relevance_score": 0.99},
                ]
            }
        )
    )

    ranked = client.rerank("mesa", ["a", "b", "c"], top_n=2)

    assert [(r.index, r.relevance_score) for r in ranked] == [(2, 0.9), (0, 0.2)]
    url = session.post.call_args[0][0]
    kwargs = session.post.call_args.kwargs
    assert url == "https://api.jina.ai/v1/rerank"
    assert kwargs["headers"]["Authorization"] == "Bearer jina-key"
    assert kwargs["json"]["top_n"] == 2
    assert kwargs["json"]["documents"] == ["a", "b", "c"]
    assert kwargs["timeout"] == 3


def test_empty_documents_skip_request():
    client, session = _client(_response(payload={"results": []}))

    assert client.rerank("mesa", [], top_n=5) == []
    session.post.assert_not_called()


@pytest.mark.parametrize(
    "response,error",
    [
        (None, requests.exceptions.Timeout()),
        (None, requests.exceptions.ConnectionError("refused")),
        (_response(status=401), None),
        (_response(payload={"unexpected": True}), None),
    ],
)
def test_failures_raise_rerank_error(response, error):
    client, _ = _client(response, error)

    with pytest.raises(RerankError):
        client.rerank("mesa", ["a"], top_n=1)
