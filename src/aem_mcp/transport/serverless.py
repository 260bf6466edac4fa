"""Serverless entry: one invocation dict in, one ``{statusCode, headers, body}`` out.

The platform hands over the HTTP request as flat parameters (``__ow_method``,
``__ow_body``, ``__ow_headers``). GET and OPTIONS are answered here; POST is
replayed through a freshly built Starlette app over ASGI, with the app's
``send`` messages collected into a ``ResponseSink``. Nothing survives between
invocations.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import traceback
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from aem_mcp.config import Settings, load_settings
from aem_mcp.errors import ProtocolError
from aem_mcp.logging_utils import configure_logging, get_logger
from aem_mcp.tools import ToolContext
from aem_mcp.transport.http_server import create_http_app
from aem_mcp.transport.protocol import INTERNAL_ERROR
from aem_mcp.transport.responses import (
    SESSION_HEADER,
    cors_headers,
    health_payload,
    method_not_allowed_body,
)
from aem_mcp.utils.serialization import json_default

COMPLETION_GRACE_SECONDS = 0.01

DEFAULT_REQUEST_HEADERS = {
    "content-type": "application/json",
    "accept": "application/json, text/event-stream",
}

Invocation = Mapping[str, Any]
InvocationResult = dict[str, Any]
Message = dict[str, Any]
Send = Callable[[Message], Awaitable[None]]
Receive = Callable[[], Awaitable[Message]]


class BodyParseError(ProtocolError):
    pass


@dataclass
class ResponseSink:
    """Accumulates one HTTP response as the app emits it."""

    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    _chunks: list[bytes] = field(default_factory=list)
    finalized: bool = False

    def set_status(self, status_code: int) -> None:
        self.status_code = status_code

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def has_header(self, name: str) -> bool:
        lowered = name.lower()
        return any(key.lower() == lowered for key in self.headers)

    def append_body(self, chunk: bytes | str) -> None:
        if self.finalized:
            raise ProtocolError("Response already finalized")
        self._chunks.append(chunk.encode("utf-8") if isinstance(chunk, str) else chunk)

    def finalize(self) -> InvocationResult:
        self.finalized = True
        return {
            "statusCode": self.status_code,
            "headers": dict(self.headers),
            "body": b"".join(self._chunks).decode("utf-8", errors="replace"),
        }


def decode_body(raw: object) -> bytes:
    """Return the request body bytes for ``__ow_body``.

    Strings are tried as base64-wrapped JSON first, then as JSON text;
    decoded objects are re-serialized; a missing body is empty.
    """
    if raw is None or raw == "":
        return b""
    if isinstance(raw, (dict, list)):
        return json.dumps(raw).encode("utf-8")
    if not isinstance(raw, str):
        raise BodyParseError(f"Failed to parse request body: unsupported type {type(raw).__name__}")

    try:
        decoded = base64.b64decode(raw, validate=True)
        json.loads(decoded)
        return decoded
    except (binascii.Error, ValueError):
        pass
    try:
        json.loads(raw)
    except ValueError as exc:
        raise BodyParseError(f"Failed to parse request body: {exc}") from exc
    return raw.encode("utf-8")


def request_headers(params: Invocation) -> dict[str, str]:
    headers = dict(DEFAULT_REQUEST_HEADERS)
    raw_headers = params.get("__ow_headers")
    if isinstance(raw_headers, Mapping):
        headers.update({str(key).lower(): str(value) for key, value in raw_headers.items()})
    session_id = params.get(SESSION_HEADER) or headers.get(SESSION_HEADER)
    if session_id:
        headers[SESSION_HEADER] = str(session_id)
    return headers


def build_scope(method: str, headers: Mapping[str, str], path: str = "/") -> dict[str, Any]:
    return {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": "2.3"},
        "http_version": "1.1",
        "method": method,
        "scheme": "https",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "root_path": "",
        "query_string": b"",
        "headers": [
            (name.encode("latin-1"), value.encode("latin-1")) for name, value in headers.items()
        ],
        "client": None,
        "server": None,
    }


def bind_sink(sink: ResponseSink, completed: asyncio.Event) -> Send:
    """Adapt *sink* to an ASGI ``send`` callable; the final body chunk sets *completed*."""

    async def send(message: Message) -> None:
        message_type = message.get("type")
        if message_type == "http.response.start":
            sink.set_status(int(message["status"]))
            for name, value in message.get("headers", []):
                sink.set_header(name.decode("latin-1"), value.decode("latin-1"))
        elif message_type == "http.response.body":
            sink.append_body(message.get("body", b""))
            if not message.get("more_body", False):
                completed.set()

    return send


def _receive_once(body: bytes, completed: asyncio.Event) -> Receive:
    sent = False

    async def receive() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        await completed.wait()
        return {"type": "http.disconnect"}

    return receive


def _json_result(
    status_code: int,
    payload: object,
    headers: Mapping[str, str] | None = None,
) -> InvocationResult:
    return {
        "statusCode": status_code,
        "headers": {**(headers or cors_headers()), "Content-Type": "application/json"},
        "body": json.dumps(payload, default=json_default),
    }


def _internal_error(exc: BaseException, *, debug: bool) -> InvocationResult:
    error: dict[str, object] = {"code": INTERNAL_ERROR, "message": f"Internal server error: {exc}"}
    if debug:
        error["data"] = {
            "name": type(exc).__name__,
            "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }
    return _json_result(500, {"jsonrpc": "2.0", "id": None, "error": error})


async def exchange(
    params: Invocation,
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    logger: logging.Logger | None = None,
) -> InvocationResult:
    """Replay one POST through a new app and return what it sent."""
    logger = logger or get_logger(__name__)
    body = decode_body(params.get("__ow_body"))
    headers = request_headers(params)

    context = ToolContext(settings=settings.aem, transport=transport, logger=logger)
    app = create_http_app(settings, context)
    sink = ResponseSink()
    completed = asyncio.Event()

    await app(
        build_scope("POST", headers),
        _receive_once(body, completed),
        bind_sink(sink, completed),
    )
    if not completed.is_set():
        raise ProtocolError("Transport finished without completing the response")
    await asyncio.sleep(COMPLETION_GRACE_SECONDS)

    session_id = headers.get(SESSION_HEADER)
    if session_id and not sink.has_header(SESSION_HEADER):
        sink.set_header(SESSION_HEADER, session_id)
    result = sink.finalize()
    logger.info(
        "Final response - status=%s body_length=%d", result["statusCode"], len(result["body"])
    )
    return result


async def handle_invocation(
    params: Invocation,
    *,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> InvocationResult:
    settings = settings or load_settings()
    log_level = str(params.get("LOG_LEVEL") or settings.logging.level)
    configure_logging(log_level)
    logger = get_logger("aem_mcp.serverless")
    debug = log_level.lower() == "debug"

    raw_method = params.get("__ow_method")
    method = str(raw_method or "").upper()
    logger.info("Request method: %s", method)

    try:
        if method == "GET":
            return _json_result(200, health_payload(settings.server.name))
        if method == "OPTIONS":
            return {"statusCode": 200, "headers": cors_headers(), "body": ""}
        if method == "POST":
            return await exchange(params, settings, transport=transport, logger=logger)
        logger.warning("Method not allowed: %s", raw_method)
        return _json_result(405, method_not_allowed_body(str(raw_method or "")))
    except Exception as exc:
        logger.exception("Error handling %s invocation", method)
        return _internal_error(exc, debug=debug)


def main(params: Invocation) -> InvocationResult:
    """Platform entry point."""
    return asyncio.run(handle_invocation(params))
