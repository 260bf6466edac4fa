"""MCP runtime primitives and the stdio JSON-RPC loop."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TextIO

from pydantic import BaseModel

from aem_mcp.utils.serialization import json_default

if TYPE_CHECKING:
    from aem_mcp.transport.protocol import ProtocolDispatcher

logger = logging.getLogger(__name__)


@dataclass
class ToolSpec:
    name: str
    description: str
    input_schema: dict[str, object]
    handler: Callable[[dict[str, object]], Awaitable[ToolResult]]


class ToolResult(BaseModel):
    content: list[dict[str, object]]
    metadata: dict[str, object] | None = None
    is_error: bool = False

    @classmethod
    def text(
        cls,
        text: str,
        metadata: dict[str, object] | None = None,
        *,
        is_error: bool = False,
    ) -> ToolResult:
        return cls(content=[{"type": "text", "text": text}], metadata=metadata, is_error=is_error)

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"content": self.content}
        if self.metadata is not None:
            payload["metadata"] = self.metadata
        if self.is_error:
            payload["isError"] = True
        return payload


class MCPServer:
    """Line-delimited JSON-RPC over stdin/stdout.

    Every line is one message (or batch) handed to the same dispatcher the
    HTTP transports use; notifications produce no output.
    """

    def __init__(self, dispatcher: ProtocolDispatcher) -> None:
        self._dispatcher = dispatcher

    def run(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        asyncio.run(self.serve(stdin or sys.stdin, stdout or sys.stdout))

    async def serve(self, stdin: TextIO, stdout: TextIO) -> None:
        for raw_line in stdin:
            line = raw_line.strip()
            if not line:
                continue
            response = await self._dispatcher.handle_text(line)
            if response is None:
                continue
            stdout.write(json.dumps(response, default=json_default) + "\n")
            stdout.flush()
        logger.info("stdin closed, stopping stdio server")
