"""Headers and bodies shared by the Starlette endpoint and the serverless adapter."""

from __future__ import annotations

from aem_mcp import __version__
from aem_mcp.transport.protocol import SERVER_ERROR, error_body
from aem_mcp.utils.time import utc_now_iso

SESSION_HEADER = "mcp-session-id"
TRANSPORT_NAME = "StreamableHTTP"
SUPPORTED_METHODS = ("GET", "POST", "OPTIONS")
SERVER_DESCRIPTION = "MCP server for Adobe Experience Manager content and asset provisioning"

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS, DELETE",
    "Access-Control-Allow-Headers": (
        "Content-Type, Accept, Authorization, x-api-key, mcp-session-id, Last-Event-ID"
    ),
    "Access-Control-Expose-Headers": "Content-Type, mcp-session-id, Last-Event-ID",
    "Access-Control-Max-Age": "86400",
}


def cors_headers(session_id: str | None = None) -> dict[str, str]:
    headers = dict(CORS_HEADERS)
    if session_id:
        headers[SESSION_HEADER] = session_id
    return headers


def health_payload(server_name: str) -> dict[str, object]:
    return {
        "status": "healthy",
        "server": server_name,
        "version": __version__,
        "description": SERVER_DESCRIPTION,
        "timestamp": utc_now_iso(),
        "transport": TRANSPORT_NAME,
    }


def method_not_allowed_body(method: str) -> dict[str, object]:
    return error_body(
        None,
        f"Method '{method}' not allowed. Supported: {', '.join(SUPPORTED_METHODS)}",
        code=SERVER_ERROR,
    )
