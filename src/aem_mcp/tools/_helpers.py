"""Shared helper functions for the AEM tools."""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

import httpx

from aem_mcp.auth.credentials import TokenCredentials, require_target
from aem_mcp.config import AEMSettings, load_settings
from aem_mcp.errors import AEMError, InputValidationError
from aem_mcp.execution.aem_client import AEMCaller, AEMConnection
from aem_mcp.logging_utils import get_logger
from aem_mcp.mcp_runtime import ToolResult
from aem_mcp.tools.base import bullet_list, validate_or_raise
from aem_mcp.utils.masking import redact_sensitive_fields

ToolHandler = Callable[["ToolContext", dict[str, object]], Awaitable[ToolResult]]

GENERIC_CAUSES = (
    "Invalid credentials",
    "Network connectivity issues",
    "AEM instance not accessible",
    "Insufficient permissions",
)


@dataclass
class ToolContext:
    """What a tool call needs besides its arguments.

    ``transport`` replaces the network for every client built from this
    context; tests pass an ``httpx.MockTransport``.
    """

    settings: AEMSettings
    transport: httpx.AsyncBaseTransport | None = None
    logger: logging.Logger = field(default_factory=lambda: get_logger("aem_mcp.tools"))

    @classmethod
    def from_environment(cls, transport: httpx.AsyncBaseTransport | None = None) -> ToolContext:
        return cls(settings=load_settings().aem, transport=transport)

    def caller(self, arguments: Mapping[str, object]) -> AEMCaller:
        """Resolve endpoint and credentials for one call; raises ConfigurationError."""
        target = require_target(arguments, self.settings)
        connection = AEMConnection.from_target(target, self.settings, transport=self.transport)
        return AEMCaller(connection, self.logger)


def _redact(arguments: Mapping[str, object]) -> object:
    return redact_sensitive_fields(dict(arguments), mask="***")


def bind_handler(
    handler: ToolHandler,
    schema: dict[str, object],
    context: ToolContext,
) -> Callable[[dict[str, object]], Awaitable[ToolResult]]:
    """Close *handler* over *context*, validating arguments against *schema* first."""

    @functools.wraps(handler)
    async def _bound(arguments: dict[str, object]) -> ToolResult:
        context.logger.debug("Tool %s called with %s", handler.__name__, _redact(arguments))
        try:
            validate_or_raise(schema, arguments)
        except InputValidationError as exc:
            return error_result("Invalid tool arguments", exc)
        return await handler(context, arguments)

    return _bound


def error_result(
    title: str,
    error: AEMError,
    causes: tuple[str, ...] | list[str] = (),
    *,
    advice: str | None = None,
) -> ToolResult:
    """Render an ``AEMError`` as tool text with ``success: false`` metadata."""
    text = f"{title}\n\nError: {error.message}\n"
    if error.hint:
        text += f"\nHint: {error.hint}\n"
    if advice:
        text += f"\n{advice}\n"
    if causes:
        text += f"\nPossible causes:\n{bullet_list(list(causes))}\n"
    return ToolResult.text(
        text.rstrip("\n"),
        metadata={"success": False, "error": error.to_payload()},
        is_error=True,
    )


def basic_auth_advice(caller: AEMCaller | None, settings: AEMSettings) -> str | None:
    """Suggest username/password when a bearer call was refused and both are configured."""
    if caller is None or not isinstance(caller.credentials, TokenCredentials):
        return None
    if not (settings.username and settings.password):
        return None
    return (
        "Authentication issue detected: bearer tokens may expire after 24 hours, and "
        "AEM as a Cloud Service may require username/password. Pass username and "
        "password as tool parameters, or set AEM_USERNAME and AEM_PASSWORD."
    )


def string_arg(arguments: Mapping[str, object], key: str, default: str | None = None) -> str | None:
    value = arguments.get(key)
    if isinstance(value, str) and value:
        return value
    return default


def int_arg(arguments: Mapping[str, object], key: str, default: int) -> int:
    value = arguments.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value)


def mapping_arg(arguments: Mapping[str, object], key: str) -> dict[str, object]:
    value = arguments.get(key)
    return dict(value) if isinstance(value, dict) else {}
