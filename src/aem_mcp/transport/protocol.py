"""Transport-independent MCP JSON-RPC dispatch."""

from __future__ import annotations

import json
import logging

from aem_mcp import __version__
from aem_mcp.config import Settings, load_settings
from aem_mcp.errors import NotFoundError
from aem_mcp.mcp_runtime import ToolResult, ToolSpec
from aem_mcp.tools import ToolContext, get_tool_registry
from aem_mcp.tools import resources as resource_catalog

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000

SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")
DEFAULT_PROTOCOL_VERSION = "2025-03-26"
MAX_BATCH_REQUESTS = 50

# MCP log levels (RFC 5424 names) onto stdlib levels.
_MCP_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "emergency": logging.CRITICAL,
}


def error_body(request_id: object, message: str, code: int = SERVER_ERROR) -> dict[str, object]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": code, "message": message},
    }


def result_body(request_id: object, result: dict[str, object]) -> dict[str, object]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def negotiate_protocol_version(requested: object) -> str:
    if isinstance(requested, str) and requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return SUPPORTED_PROTOCOL_VERSIONS[-1]


class ProtocolDispatcher:
    """Answers MCP requests from a fixed tool registry.

    Holds no per-session state; build one per exchange or share it freely.
    """

    def __init__(
        self,
        tools: dict[str, ToolSpec],
        *,
        server_name: str = "aem-mcp-server",
        instructions: str = "",
    ) -> None:
        self._tools = tools
        self._server_name = server_name
        self._instructions = instructions

    @classmethod
    def create(
        cls,
        context: ToolContext | None = None,
        settings: Settings | None = None,
    ) -> ProtocolDispatcher:
        settings = settings or load_settings()
        context = context or ToolContext(settings=settings.aem)
        return cls(
            get_tool_registry(context),
            server_name=settings.server.name,
            instructions=settings.server.instructions,
        )

    @property
    def tools(self) -> dict[str, ToolSpec]:
        return self._tools

    async def handle_text(self, text: str | bytes) -> dict[str, object] | list[object] | None:
        try:
            payload = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return error_body(None, "Parse error", code=PARSE_ERROR)
        return await self.handle_payload(payload)

    async def handle_payload(self, payload: object) -> dict[str, object] | list[object] | None:
        """Dispatch a decoded message or batch; None means nothing to send back."""
        if isinstance(payload, list):
            return await self._handle_batch(payload)
        if not isinstance(payload, dict):
            return error_body(None, "Invalid JSON-RPC request", code=INVALID_REQUEST)
        return await self.handle_single(payload)

    async def _handle_batch(self, payloads: list[object]) -> dict[str, object] | list[object] | None:
        if not payloads:
            return error_body(None, "Invalid JSON-RPC batch request", code=INVALID_REQUEST)
        if len(payloads) > MAX_BATCH_REQUESTS:
            return error_body(
                None,
                f"Batch request too large (max {MAX_BATCH_REQUESTS})",
                code=INVALID_REQUEST,
            )
        responses: list[object] = []
        for item in payloads:
            if not isinstance(item, dict):
                responses.append(
                    error_body(None, "Invalid JSON-RPC batch entry", code=INVALID_REQUEST)
                )
                continue
            response = await self.handle_single(item)
            if response is not None:
                responses.append(response)
        return responses or None

    async def handle_single(self, payload: dict[str, object]) -> dict[str, object] | None:
        request_id = payload.get("id")
        method = payload.get("method")
        params = payload.get("params", {})
        params_dict = params if isinstance(params, dict) else {}

        # Notifications and client responses get no reply.
        if request_id is None:
            return None
        if method is None and ("result" in payload or "error" in payload):
            return None
        if not isinstance(method, str):
            return error_body(request_id, "Invalid JSON-RPC method", code=INVALID_REQUEST)

        if method == "initialize":
            return result_body(
                request_id,
                {
                    "protocolVersion": negotiate_protocol_version(
                        params_dict.get("protocolVersion")
                    ),
                    "serverInfo": {"name": self._server_name, "version": __version__},
                    "instructions": self._instructions,
                    "capabilities": {
                        "tools": {"listChanged": False},
                        "resources": {"listChanged": False},
                        "prompts": {"listChanged": False},
                        "logging": {},
                    },
                },
            )
        if method == "ping":
            return result_body(request_id, {})
        if method == "tools/list":
            tools = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "inputSchema": tool.input_schema,
                }
                for tool in self._tools.values()
            ]
            return result_body(request_id, {"tools": tools})
        if method == "tools/call":
            return await self._call_tool(request_id, params_dict)
        if method == "resources/list":
            return result_body(request_id, {"resources": resource_catalog.list_resources()})
        if method == "resources/read":
            uri = params_dict.get("uri")
            if not isinstance(uri, str):
                return error_body(request_id, "Missing resource uri", code=INVALID_PARAMS)
            try:
                contents = resource_catalog.read_resource(uri, list(self._tools.values()))
            except NotFoundError as exc:
                return error_body(request_id, exc.message, code=INVALID_PARAMS)
            return result_body(request_id, contents)
        if method == "prompts/list":
            return result_body(request_id, {"prompts": resource_catalog.list_prompts()})
        if method == "prompts/get":
            name = params_dict.get("name")
            raw_arguments = params_dict.get("arguments", {})
            arguments = raw_arguments if isinstance(raw_arguments, dict) else {}
            try:
                prompt = resource_catalog.get_prompt(str(name), arguments)
            except NotFoundError as exc:
                return error_body(request_id, exc.message, code=INVALID_PARAMS)
            return result_body(request_id, prompt)
        if method == "logging/setLevel":
            level = params_dict.get("level")
            if not isinstance(level, str) or level.lower() not in _MCP_LOG_LEVELS:
                return error_body(request_id, f"Invalid log level: {level!r}", code=INVALID_PARAMS)
            logging.getLogger("aem_mcp").setLevel(_MCP_LOG_LEVELS[level.lower()])
            return result_body(request_id, {})

        return error_body(request_id, f"Method not found: {method[:256]}", code=METHOD_NOT_FOUND)

    async def _call_tool(
        self,
        request_id: object,
        params: dict[str, object],
    ) -> dict[str, object]:
        name = params.get("name")
        if not isinstance(name, str):
            return error_body(request_id, "Invalid tool name", code=INVALID_PARAMS)
        arguments = params.get("arguments", {})
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return error_body(request_id, "Invalid tool arguments", code=INVALID_PARAMS)
        tool = self._tools.get(name)
        if tool is None:
            return error_body(request_id, f"Unknown tool: {name}", code=INVALID_PARAMS)

        try:
            result = await tool.handler(arguments)
            if not isinstance(result, ToolResult):
                raise TypeError("Tool handler did not return ToolResult")
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception:
            logger.exception("Tool handler error: %s", name)
            return error_body(request_id, "Internal tool error")
        return result_body(request_id, result.to_payload())
