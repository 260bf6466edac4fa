import json
import sys
from io import StringIO

import httpx
import pytest

from aem_mcp.mcp_runtime import MCPServer, ToolResult
from aem_mcp.transport.protocol import ProtocolDispatcher


@pytest.fixture
def server(make_context):
    context, _ = make_context(lambda request: httpx.Response(200, json={}))
    return MCPServer(ProtocolDispatcher.create(context))


def test_tool_result_payload():
    assert ToolResult.text("ok").to_payload() == {"content": [{"type": "text", "text": "ok"}]}

    payload = ToolResult.text("bad", metadata={"success": False}, is_error=True).to_payload()
    assert payload["metadata"] == {"success": False}
    assert payload["isError"] is True


def test_stdio_initialize(server, monkeypatch):
    stdin = StringIO(
        json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}) + "\n"
    )
    stdout = StringIO()

    monkeypatch.setattr(sys, "stdin", stdin)
    monkeypatch.setattr(sys, "stdout", stdout)

    server.run()

    msg = json.loads(stdout.getvalue())
    assert msg["id"] == 1
    assert msg["result"]["serverInfo"]["name"] == "aem-mcp-server"


def test_stdio_skips_blank_lines_and_notifications(server):
    lines = [
        "",
        json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}),
        json.dumps({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}),
        "not json",
    ]
    stdout = StringIO()

    server.run(StringIO("\n".join(lines) + "\n"), stdout)

    out = [json.loads(line) for line in stdout.getvalue().splitlines()]
    assert len(out) == 2
    assert len(out[0]["result"]["tools"]) == 13
    assert out[1]["error"]["code"] == -32700


def test_stdio_tool_call(server):
    stdin = StringIO(
        json.dumps(
            {
                "jsonrpc": "2.0",
                "id": 3,
                "method": "tools/call",
                "params": {"name": "aem-list-sites", "arguments": {}},
            }
        )
        + "\n"
    )
    stdout = StringIO()

    server.run(stdin, stdout)

    msg = json.loads(stdout.getvalue())
    assert msg["result"]["content"][0]["text"] == "No sites found under /content"
