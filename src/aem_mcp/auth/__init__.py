"""Credential resolution for outbound AEM calls."""

from __future__ import annotations

from aem_mcp.auth.credentials import (
    AuthenticationMissing,
    BasicCredentials,
    Credentials,
    ResolvedTarget,
    TokenCredentials,
    require_target,
    resolve_credentials,
)

__all__ = [
    "AuthenticationMissing",
    "BasicCredentials",
    "Credentials",
    "ResolvedTarget",
    "TokenCredentials",
    "require_target",
    "resolve_credentials",
]
