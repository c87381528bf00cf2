"""Tests for the MCP protocol server built from the tool registry."""

import json
from importlib.metadata import version

import pytest
from mcp import types

from sales_arsenal_mcp.tools import build_tool_registry
from sales_arsenal_mcp.transport import create_mcp_server


@pytest.fixture
def server(context):
    return create_mcp_server(build_tool_registry(context))


async def _call(server, name, arguments):
    handler = server.request_handlers[types.CallToolRequest]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )
    return (await handler(request)).root


def test_installed_sdk_provides_decorator_handlers():
    from mcp.server import Server

    assert int(version("mcp").split(".")[0]) == 1
    assert callable(getattr(Server, "list_tools", None))
    assert callable(getattr(Server, "call_tool", None))


@pytest.mark.asyncio
async def test_list_tools_mirrors_registry(server):
    handler = server.request_handlers[types.ListToolsRequest]

    result = await handler(types.ListToolsRequest(method="tools/list"))

    tools = {tool.name: tool for tool in result.root.tools}
    assert len(tools) == 8
    assert tools["buscar_lead"].inputSchema["required"] == ["telefone"]


@pytest.mark.asyncio
async def test_call_tool_success(server, backend):
    backend.tables["leads"].append({"telefone": "5511", "nome": "Ana"})

    result = await _call(server, "buscar_lead", {"telefone": "5511"})

    assert not result.isError
    assert json.loads(result.content[0].text) == {
        "found": True,
        "lead": {"telefone": "5511", "nome": "Ana"},
    }


@pytest.mark.asyncio
async def test_call_tool_error_sets_is_error(server):
    result = await _call(server, "buscar_arsenal", {"query": "   "})

    assert result.isError is True
    assert "INVALID_ARGUMENT" in result.content[0].text
