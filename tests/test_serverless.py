from __future__ import annotations

import base64
import json

import httpx
import pytest

from aem_mcp.config import Settings
from aem_mcp.errors import ProtocolError
from aem_mcp.transport import serverless
from aem_mcp.transport.serverless import (
    BodyParseError,
    ResponseSink,
    decode_body,
    handle_invocation,
    main,
    request_headers,
)

PING = {"jsonrpc": "2.0", "id": 1, "method": "ping"}


@pytest.fixture
def settings(aem_settings) -> Settings:
    return Settings(aem=aem_settings)


def _encoded(payload: object) -> str:
    return base64.b64encode(json.dumps(payload).encode()).decode()


def test_decode_body_variants() -> None:
    assert decode_body(None) == b""
    assert decode_body("") == b""
    assert json.loads(decode_body(PING)) == PING
    assert json.loads(decode_body([PING])) == [PING]
    assert json.loads(decode_body(_encoded(PING))) == PING
    assert json.loads(decode_body(json.dumps(PING))) == PING


@pytest.mark.parametrize("raw", ["{not json", 42])
def test_decode_body_rejects_garbage(raw: object) -> None:
    with pytest.raises(BodyParseError, match="Failed to parse request body"):
        decode_body(raw)


def test_request_headers_merge_defaults() -> None:
    headers = request_headers(
        {"__ow_headers": {"Content-Type": "text/plain", "X-Extra": "1"}, "mcp-session-id": "s"}
    )

    assert headers["content-type"] == "text/plain"
    assert headers["accept"] == "application/json, text/event-stream"
    assert headers["x-extra"] == "1"
    assert headers["mcp-session-id"] == "s"


def test_response_sink_finalizes_once() -> None:
    sink = ResponseSink()
    sink.set_status(201)
    sink.set_header("Content-Type", "application/json")
    sink.append_body(b'{"a":')
    sink.append_body("1}")

    assert sink.has_header("content-type")
    assert sink.finalize() == {
        "statusCode": 201,
        "headers": {"Content-Type": "application/json"},
        "body": '{"a":1}',
    }
    with pytest.raises(ProtocolError):
        sink.append_body(b"late")


def test_main_answers_health_probe() -> None:
    result = main({"__ow_method": "get"})

    assert result["statusCode"] == 200
    assert json.loads(result["body"])["status"] == "healthy"
    assert result["headers"]["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_options(settings: Settings) -> None:
    result = await handle_invocation({"__ow_method": "OPTIONS"}, settings=settings)

    assert result["statusCode"] == 200
    assert result["body"] == ""
    assert result["headers"]["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
async def test_unsupported_method(settings: Settings) -> None:
    result = await handle_invocation({"__ow_method": "put"}, settings=settings)

    assert result["statusCode"] == 405
    assert "Method 'put' not allowed" in json.loads(result["body"])["error"]["message"]


@pytest.mark.asyncio
async def test_missing_method_is_not_allowed(settings: Settings) -> None:
    result = await handle_invocation({}, settings=settings)

    assert result["statusCode"] == 405
    assert json.loads(result["body"])["error"]["code"] == -32000


@pytest.mark.asyncio
async def test_post_exchange_with_base64_body(settings: Settings) -> None:
    result = await handle_invocation(
        {
            "__ow_method": "post",
            "__ow_body": _encoded(PING),
            "__ow_headers": {"mcp-session-id": "sess-9"},
        },
        settings=settings,
    )

    assert result["statusCode"] == 200
    assert json.loads(result["body"]) == {"jsonrpc": "2.0", "id": 1, "result": {}}
    assert result["headers"]["mcp-session-id"] == "sess-9"
    assert result["headers"]["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_post_session_id_from_params(settings: Settings) -> None:
    result = await handle_invocation(
        {"__ow_method": "POST", "__ow_body": PING, "mcp-session-id": "from-param"},
        settings=settings,
    )

    assert result["headers"]["mcp-session-id"] == "from-param"


@pytest.mark.asyncio
async def test_post_notification(settings: Settings) -> None:
    result = await handle_invocation(
        {"__ow_method": "POST", "__ow_body": {"jsonrpc": "2.0", "method": "notifications/initialized"}},
        settings=settings,
    )

    assert result["statusCode"] == 202
    assert result["body"] == ""


@pytest.mark.asyncio
async def test_empty_post_is_parse_error(settings: Settings) -> None:
    result = await handle_invocation({"__ow_method": "POST"}, settings=settings)

    assert result["statusCode"] == 400
    assert json.loads(result["body"])["error"]["code"] == -32700


@pytest.mark.asyncio
async def test_tool_call_reaches_injected_transport(settings: Settings) -> None:
    seen: list[str] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json={})

    result = await handle_invocation(
        {
            "__ow_method": "POST",
            "__ow_body": {
                "jsonrpc": "2.0",
                "id": 4,
                "method": "tools/call",
                "params": {"name": "aem-list-sites", "arguments": {}},
            },
        },
        settings=settings,
        transport=httpx.MockTransport(_handler),
    )

    body = json.loads(result["body"])
    assert body["result"]["content"][0]["text"] == "No sites found under /content"
    assert seen == ["/content.1.json"]


@pytest.mark.asyncio
@pytest.mark.parametrize(("level", "has_data"), [("debug", True), ("info", False)])
async def test_unparseable_body_is_internal_error(settings: Settings, level: str, has_data: bool) -> None:
    result = await handle_invocation(
        {"__ow_method": "POST", "__ow_body": "{oops", "LOG_LEVEL": level},
        settings=settings,
    )

    assert result["statusCode"] == 500
    error = json.loads(result["body"])["error"]
    assert error["code"] == -32603
    assert error["message"].startswith("Internal server error: Failed to parse request body")
    assert ("data" in error) is has_data
    if has_data:
        assert error["data"]["name"] == "BodyParseError"


@pytest.mark.asyncio
async def test_every_invocation_builds_a_new_app(settings: Settings, monkeypatch) -> None:
    built = []
    original = serverless.create_http_app

    def _tracking(*args, **kwargs):
        app = original(*args, **kwargs)
        built.append(app)
        return app

    monkeypatch.setattr(serverless, "create_http_app", _tracking)

    for _ in range(2):
        await handle_invocation({"__ow_method": "POST", "__ow_body": PING}, settings=settings)

    assert len(built) == 2
    assert built[0] is not built[1]
