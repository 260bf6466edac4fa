"""Entrypoint for the AEM MCP server."""

from __future__ import annotations

import json
import logging
import sys

from aem_mcp import __version__
from aem_mcp.config import load_settings
from aem_mcp.logging_utils import configure_logging
from aem_mcp.mcp_runtime import MCPServer
from aem_mcp.transport.protocol import ProtocolDispatcher


def build_server() -> MCPServer:
    """Create the stdio MCP server with every tool registered."""
    settings = load_settings()
    configure_logging()
    dispatcher = ProtocolDispatcher.create(settings=settings)
    logging.info("Initializing AEM MCP Server v%s", __version__)
    logging.info("Registered %d tools: %s", len(dispatcher.tools), ", ".join(dispatcher.tools))
    return MCPServer(dispatcher)


def run_entrypoint() -> None:
    """Run the server based on transport settings."""
    mode = load_settings().server.transport_mode
    if mode == "http":
        _run_http()
    elif mode == "serverless":
        _run_serverless_once()
    else:
        build_server().run()


def _run_http() -> None:
    settings = load_settings()
    configure_logging()
    from aem_mcp.transport.http_server import create_http_app

    import uvicorn

    app = create_http_app(settings)
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        ws="none",
        log_config=None,
    )


def _run_serverless_once() -> None:
    """Read one invocation object from stdin and print its result."""
    from aem_mcp.transport.serverless import main

    params = json.load(sys.stdin)
    json.dump(main(params), sys.stdout)
    sys.stdout.write("\n")


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()
