"""HTTP JSON-RPC handler for MCP tools."""

from __future__ import annotations

import json
import logging

from starlette.requests import Request
from starlette.responses import Response

from aem_mcp.transport.protocol import (
    DEFAULT_PROTOCOL_VERSION,
    PARSE_ERROR,
    SUPPORTED_PROTOCOL_VERSIONS,
    ProtocolDispatcher,
    error_body,
)
from aem_mcp.transport.responses import (
    SESSION_HEADER,
    cors_headers,
    health_payload,
    method_not_allowed_body,
)
from aem_mcp.utils.serialization import json_default

logger = logging.getLogger(__name__)


async def handle_mcp_request(request: Request) -> Response:
    """Serve one MCP exchange.

    GET is a health probe, OPTIONS a CORS preflight, POST a JSON-RPC message
    or batch. Every response carries the CORS headers and echoes the
    caller's ``mcp-session-id``.
    """
    headers = cors_headers(request.headers.get(SESSION_HEADER))
    headers["MCP-Protocol-Version"] = _protocol_version(request)
    dispatcher: ProtocolDispatcher = request.app.state.dispatcher

    if request.method == "OPTIONS":
        return Response(status_code=200, headers=headers)
    if request.method == "GET":
        return _json_response(health_payload(request.app.state.server_name), headers=headers)
    if request.method != "POST":
        return _json_response(
            method_not_allowed_body(request.method), status_code=405, headers=headers
        )

    body = await request.body()
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _json_response(
            error_body(None, "Parse error", code=PARSE_ERROR), status_code=400, headers=headers
        )

    result = await dispatcher.handle_payload(payload)
    if result is None:
        return Response(status_code=202, headers=headers)
    return _json_response(result, headers=headers)


def _json_response(
    payload: object,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
) -> Response:
    """Serialize *payload* once and return a Response."""
    body = json.dumps(payload, default=json_default, ensure_ascii=False)
    return Response(
        content=body,
        status_code=status_code,
        media_type="application/json",
        headers=headers,
    )


def _protocol_version(request: Request) -> str:
    version = request.headers.get("MCP-Protocol-Version")
    if version in SUPPORTED_PROTOCOL_VERSIONS:
        return version
    return DEFAULT_PROTOCOL_VERSION
