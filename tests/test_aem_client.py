from __future__ import annotations

import base64

import httpx
import pytest

from aem_mcp.auth.credentials import ResolvedTarget, TokenCredentials
from aem_mcp.config import AEMSettings
from aem_mcp.errors import RemoteCallError
from aem_mcp.execution.aem_client import AEMCaller, AEMConnection
from aem_mcp.execution.form import FORM_CONTENT_TYPE, NodePayload


@pytest.mark.asyncio
async def test_bearer_token_header(make_caller) -> None:
    caller, transport = make_caller(lambda request: httpx.Response(200, json={"ok": True}))

    assert await caller.get_json("/content.json") == {"ok": True}

    request = transport.requests[0]
    assert request.headers["Authorization"] == "Bearer tok"
    assert str(request.url) == "http://author.test/content.json"


@pytest.mark.asyncio
async def test_basic_auth_header(make_caller) -> None:
    caller, transport = make_caller(lambda request: httpx.Response(200, json={}), basic=True)

    await caller.get_json("/content.json")

    expected = base64.b64encode(b"admin:admin").decode()
    assert transport.requests[0].headers["Authorization"] == f"Basic {expected}"
    assert caller.auth_scheme == "basic"


@pytest.mark.asyncio
async def test_non_success_status_raises_with_body(make_caller) -> None:
    caller, _ = make_caller(lambda request: httpx.Response(409, text="x" * 5000))

    with pytest.raises(RemoteCallError) as excinfo:
        await caller.get_json("/content/site.json")

    assert excinfo.value.status_code == 409
    assert excinfo.value.message == "Request failed with status code 409"
    assert len(excinfo.value.body) == 2000


@pytest.mark.asyncio
async def test_transport_failure_becomes_remote_call_error(make_caller) -> None:
    def _boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    caller, _ = make_caller(_boom)

    with pytest.raises(RemoteCallError, match="ConnectError") as excinfo:
        await caller.head("/content/dam/a.png")

    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_timeout_becomes_remote_call_error(make_caller) -> None:
    def _slow(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    caller, _ = make_caller(_slow)

    with pytest.raises(RemoteCallError, match="timeout of 30s exceeded"):
        await caller.get_json("/bin/querybuilder.json")


@pytest.mark.asyncio
async def test_invalid_json_raises(make_caller) -> None:
    caller, _ = make_caller(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(RemoteCallError, match="Invalid JSON"):
        await caller.get_json("/content.json")


@pytest.mark.asyncio
async def test_post_form_sends_encoded_payload(make_caller) -> None:
    caller, transport = make_caller(lambda request: httpx.Response(201))

    await caller.post_form("/content/site", NodePayload().set("jcr:primaryType", "cq:Page"))

    request = transport.requests[0]
    assert request.method == "POST"
    assert request.headers["Content-Type"] == FORM_CONTENT_TYPE
    assert request.content == b"jcr%3AprimaryType=cq%3APage"


@pytest.mark.asyncio
async def test_custom_accept_allows_status(make_caller) -> None:
    caller, _ = make_caller(lambda request: httpx.Response(404))

    response = await caller.delete("/content/gone", accept=lambda status: status < 500)

    assert response.status_code == 404


def test_connection_from_target_uses_settings_timeout() -> None:
    target = ResolvedTarget("http://author.test/", TokenCredentials("t"))

    connection = AEMConnection.from_target(target, AEMSettings(timeout_seconds=5))

    assert connection.endpoint == "http://author.test"
    assert connection.timeout_seconds == 5
    caller = AEMCaller(connection)
    assert caller.editor_url("/content/site") == "http://author.test/editor.html/content/site.html"
    assert "TokenCredentials(token=***)" in repr(connection)
