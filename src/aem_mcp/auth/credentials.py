"""Resolve the AEM endpoint and authentication scheme for a single call."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Union

from aem_mcp.config import AEMSettings
from aem_mcp.errors import ConfigurationError

TOKEN_ENV = "AEM_TOKEN"
USERNAME_ENV = "AEM_USERNAME"
PASSWORD_ENV = "AEM_PASSWORD"


@dataclass(frozen=True)
class TokenCredentials:
    token: str

    scheme = "bearer"

    def __repr__(self) -> str:
        return "TokenCredentials(token=***)"


@dataclass(frozen=True)
class BasicCredentials:
    username: str
    password: str

    scheme = "basic"

    def __repr__(self) -> str:
        return f"BasicCredentials(username={self.username!r}, password=***)"


Credentials = Union[TokenCredentials, BasicCredentials]


@dataclass(frozen=True)
class ResolvedTarget:
    endpoint: str
    credentials: Credentials


@dataclass(frozen=True)
class AuthenticationMissing:
    message: str
    missing: tuple[str, ...]


def _param(params: Mapping[str, object], key: str) -> str | None:
    value = params.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def prefers_basic_auth(endpoint: str, hosts: tuple[str, ...]) -> bool:
    """Return True when *endpoint* matches a basic-auth-preferred host pattern."""
    lowered = endpoint.lower()
    return any(host.lower() in lowered for host in hosts if host)


def resolve_endpoint(params: Mapping[str, object], env: AEMSettings) -> str:
    endpoint = (
        _param(params, "authorUrl")
        or _param(params, "server")
        or env.author_url
        or env.default_author_url
    )
    return endpoint.rstrip("/")


def resolve_credentials(
    params: Mapping[str, object],
    env: AEMSettings,
) -> ResolvedTarget | AuthenticationMissing:
    """Pick bearer or basic credentials from tool parameters and environment.

    Per-call parameters win over environment values. Username/password is
    selected when both are present and either the endpoint matches one of
    ``env.basic_auth_hosts`` or no token is available.
    """
    endpoint = resolve_endpoint(params, env)
    token = _param(params, "token") or env.token
    username = _param(params, "username") or env.username
    password = _param(params, "password") or env.password

    if username and password and (prefers_basic_auth(endpoint, env.basic_auth_hosts) or not token):
        return ResolvedTarget(endpoint=endpoint, credentials=BasicCredentials(username, password))
    if token:
        return ResolvedTarget(endpoint=endpoint, credentials=TokenCredentials(token))

    status = {
        TOKEN_ENV: bool(env.token),
        USERNAME_ENV: bool(env.username),
        PASSWORD_ENV: bool(env.password),
    }
    missing = tuple(name for name, is_set in status.items() if not is_set)
    message = (
        "Authentication required. Please provide token or username/password as tool "
        f"parameters, or set environment variables: {', '.join(missing)}. "
        "Current env vars status: "
        + ", ".join(f"{name}={str(is_set).lower()}" for name, is_set in status.items())
    )
    return AuthenticationMissing(message=message, missing=missing)


def require_target(params: Mapping[str, object], env: AEMSettings) -> ResolvedTarget:
    resolved = resolve_credentials(params, env)
    if isinstance(resolved, AuthenticationMissing):
        raise ConfigurationError(
            resolved.message,
            hint="Pass token, or username and password, with the tool call.",
        )
    return resolved
