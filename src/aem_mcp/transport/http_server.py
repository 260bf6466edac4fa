"""Starlette HTTP server assembly."""

from __future__ import annotations

import logging

from starlette.applications import Starlette
from starlette.routing import Route

from aem_mcp.config import Settings, load_settings
from aem_mcp.tools import ToolContext
from aem_mcp.transport.mcp_handler import handle_mcp_request
from aem_mcp.transport.protocol import ProtocolDispatcher

logger = logging.getLogger(__name__)

MCP_PATHS = ("/", "/mcp")
# Routed explicitly so the handler, not the router, rejects the unsupported ones.
ROUTED_METHODS = ["GET", "POST", "OPTIONS", "DELETE", "PUT", "PATCH"]


def create_http_app(
    settings: Settings | None = None,
    context: ToolContext | None = None,
) -> Starlette:
    """Create the HTTP MCP application."""
    settings = settings or load_settings()
    dispatcher = ProtocolDispatcher.create(context=context, settings=settings)

    app = Starlette(
        routes=[Route(path, handle_mcp_request, methods=ROUTED_METHODS) for path in MCP_PATHS],
    )
    app.state.dispatcher = dispatcher
    app.state.server_name = settings.server.name
    logger.debug("HTTP app created with %d tools", len(dispatcher.tools))
    return app
