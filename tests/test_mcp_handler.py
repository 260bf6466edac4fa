from __future__ import annotations

import httpx
import pytest
from starlette.testclient import TestClient

from aem_mcp.config import Settings
from aem_mcp.transport.http_server import create_http_app


@pytest.fixture
def client(make_context) -> TestClient:
    context, _ = make_context(lambda request: httpx.Response(200, json={}))
    return TestClient(create_http_app(Settings(), context))


def test_get_is_health_probe(client: TestClient) -> None:
    response = client.get("/mcp")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["server"] == "aem-mcp-server"
    assert body["transport"] == "StreamableHTTP"
    assert body["timestamp"].endswith("Z")
    assert response.headers["access-control-allow-origin"] == "*"


def test_options_preflight(client: TestClient) -> None:
    response = client.options("/", headers={"mcp-session-id": "s-1"})

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-methods"] == "GET, POST, OPTIONS, DELETE"
    assert response.headers["mcp-session-id"] == "s-1"


@pytest.mark.parametrize("method", ["PUT", "DELETE", "PATCH"])
def test_unsupported_methods(client: TestClient, method: str) -> None:
    response = client.request(method, "/mcp")

    assert response.status_code == 405
    assert response.json()["error"] == {
        "code": -32000,
        "message": f"Method '{method}' not allowed. Supported: GET, POST, OPTIONS",
    }


@pytest.mark.parametrize("body", [b"", b"{broken"])
def test_unparseable_post(client: TestClient, body: bytes) -> None:
    response = client.post("/mcp", content=body, headers={"content-type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32700


def test_post_echoes_session_and_protocol_version(client: TestClient) -> None:
    response = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 7, "method": "ping"},
        headers={"mcp-session-id": "abc", "MCP-Protocol-Version": "2024-11-05"},
    )

    assert response.status_code == 200
    assert response.json() == {"jsonrpc": "2.0", "id": 7, "result": {}}
    assert response.headers["mcp-session-id"] == "abc"
    assert response.headers["mcp-protocol-version"] == "2024-11-05"


def test_unknown_protocol_version_header_falls_back(client: TestClient) -> None:
    response = client.post(
        "/", json={"jsonrpc": "2.0", "id": 1, "method": "ping"}, headers={"MCP-Protocol-Version": "x"}
    )

    assert response.headers["mcp-protocol-version"] == "2025-03-26"


def test_notification_is_accepted(client: TestClient) -> None:
    response = client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})

    assert response.status_code == 202
    assert response.content == b""


def test_tool_call_over_http(client: TestClient) -> None:
    response = client.post(
        "/mcp",
        json={
            "jsonrpc": "2.0",
            "id": 2,
            "method": "tools/call",
            "params": {"name": "aem-list-sites", "arguments": {}},
        },
    )

    assert response.json()["result"]["content"][0]["text"] == "No sites found under /content"
