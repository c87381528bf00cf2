"""
Tests for the event-stream transport (GET /sse + POST /messages/) and for
cancelling work when an HTTP client goes away.

The stream is driven at the ASGI level so the open connection and the
message posts share one event loop.

Run with:
    pytest tests/transport/test_sse_stream.py -v
"""

import asyncio
import re
from types import SimpleNamespace

import httpx
import pytest

from sales_arsenal_mcp.tools import build_tool_registry
from sales_arsenal_mcp.transport import SessionRegistry, create_http_app
from sales_arsenal_mcp.transport import http_app


class StreamingClient:
    """ASGI receive/send pair for one long-lived GET /sse connection."""

    def __init__(self):
        self.chunks = []
        self.disconnect = asyncio.Event()

    def scope(self):
        return {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": "/sse",
            "raw_path": b"/sse",
            "root_path": "",
            "query_string": b"",
            "headers": [(b"host", b"testserver"), (b"accept", b"text/event-stream")],
            "client": ("testclient", 50000),
            "server": ("testserver", 80),
        }

    async def receive(self):
        await self.disconnect.wait()
        return {"type": "http.disconnect"}

    async def send(self, message):
        if message["type"] == "http.response.body":
            self.chunks.append(message.get("body", b"").decode())

    @property
    def text(self):
        return "".join(self.chunks)

    async def wait_for(self, needle, timeout=5.0):
        async def poll():
            while needle not in self.text:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(poll(), timeout)


@pytest.fixture
def sessions():
    return SessionRegistry(ttl=60)


@pytest.fixture
def app(context, sessions):
    return create_http_app(build_tool_registry(context), sessions, context)


class TestEventStream:
    @pytest.mark.asyncio
    async def test_stream_session_lifecycle(self, app, sessions):
        client = StreamingClient()
        stream = asyncio.ensure_future(app(client.scope(), client.receive, client.send))

        await client.wait_for("event: endpoint")
        match = re.search(r"(/messages/\?session_id=[0-9a-f]+)", client.text)
        assert match
        assert len(sessions) == 1

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            response = await http.post(
                match.group(1),
                json={
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "initialize",
                    "params": {
                        "protocolVersion": "2024-11-05",
                        "capabilities": {},
                        "clientInfo": {"name": "n8n", "version": "1.0.0"},
                    },
                },
            )
        assert response.status_code == 202

        await client.wait_for("serverInfo")
        assert "sales-arsenal-mcp" in client.text

        client.disconnect.set()
        await asyncio.wait_for(stream, 5.0)
        assert len(sessions) == 0

    @pytest.mark.asyncio
    async def test_unknown_stream_session_rejected(self, app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            response = await http.post(
                "/messages/?session_id=" + "0" * 32,
                json={"jsonrpc": "2.0", "id": 1, "method": "ping"},
            )

        assert response.status_code == 404


def _request(disconnected):
    async def is_disconnected():
        return disconnected

    return SimpleNamespace(
        method="POST", url=SimpleNamespace(path="/sse"), is_disconnected=is_disconnected
    )


class TestRunUntilDisconnect:
    @pytest.mark.asyncio
    async def test_returns_result_while_connected(self):
        async def work():
            return {"ok": True}

        assert await http_app.run_until_disconnect(_request(False), work()) == {"ok": True}

    @pytest.mark.asyncio
    async def test_cancels_work_when_client_leaves(self, monkeypatch):
        monkeypatch.setattr(http_app, "DISCONNECT_POLL_SECONDS", 0.01)
        cancelled = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        result = await http_app.run_until_disconnect(_request(True), slow())

        assert result is None
        await asyncio.wait_for(cancelled.wait(), 1.0)

