"""Configuration management for the AEM MCP server."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")

    @property
    def is_debug(self) -> bool:
        return self.level.strip().lower() == "debug"


class AEMSettings(BaseModel):
    """Connection defaults for the AEM author instance.

    Every field is a fallback beneath explicit per-call tool parameters.
    ``basic_auth_hosts`` lists host fragments for which username/password is
    preferred over a bearer token when both are available; some AEM as a
    Cloud Service deployments reject bearer tokens on the QueryBuilder API.
    """

    author_url: str | None = Field(default=None)
    default_author_url: str = Field(default="http://localhost:4502")
    token: str | None = Field(default=None, repr=False)
    username: str | None = Field(default=None)
    password: str | None = Field(default=None, repr=False)
    basic_auth_hosts: tuple[str, ...] = Field(default=("adobeaemcloud.com",))
    timeout_seconds: float = Field(default=30.0, gt=0, le=300)
    settle_delay_seconds: float = Field(default=0.5, ge=0, le=30)
    asset_root: str = Field(default="/content/dam")

    @field_validator("asset_root")
    @classmethod
    def _validate_asset_root(cls, value: str) -> str:
        stripped = value.strip().rstrip("/")
        if not stripped.startswith("/"):
            raise ValueError("asset_root must be an absolute repository path")
        return stripped


class ServerSettings(BaseModel):
    name: str = Field(default="aem-mcp-server")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1024, le=65535)
    instructions: str = Field(
        default=(
            "Use these tools to provision AEM sites, pages, components and content "
            "fragments, and to search, rename and annotate DAM assets. "
            "Destructive tools require explicit confirmation."
        )
    )
    transport_mode: Literal["stdio", "http", "serverless"] = Field(default="stdio")


class Settings(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    aem: AEMSettings = Field(default_factory=AEMSettings)


ENV_KEYS = {
    "host": "MCP_HOST",
    "port": "MCP_PORT",
    "instructions": "MCP_INSTRUCTIONS",
    "transport_mode": "TRANSPORT_MODE",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "author_url": "AEM_AUTHOR_URL",
    "default_author_url": "AEM_DEFAULT_AUTHOR_URL",
    "token": "AEM_TOKEN",
    "username": "AEM_USERNAME",
    "password": "AEM_PASSWORD",
    "basic_auth_hosts": "AEM_BASIC_AUTH_HOSTS",
    "timeout_seconds": "AEM_TIMEOUT_SECONDS",
    "settle_delay_seconds": "AEM_SETTLE_DELAY_SECONDS",
    "asset_root": "AEM_ASSET_ROOT",
}


def _split_csv_preserve_case(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_str(key: str) -> str | None:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])
    basic_auth_hosts = _split_csv_preserve_case(os.getenv(ENV_KEYS["basic_auth_hosts"]))

    settings_data: dict[str, object] = {
        "server": {
            "host": os.getenv(ENV_KEYS["host"], ServerSettings().host),
            "port": _env_int(ENV_KEYS["port"], ServerSettings().port),
            "instructions": os.getenv(ENV_KEYS["instructions"], ServerSettings().instructions),
            "transport_mode": os.getenv(
                ENV_KEYS["transport_mode"], ServerSettings().transport_mode
            ),
        },
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "aem": {
            "author_url": _env_str(ENV_KEYS["author_url"]),
            "default_author_url": os.getenv(
                ENV_KEYS["default_author_url"], AEMSettings().default_author_url
            ),
            "token": _env_str(ENV_KEYS["token"]),
            "username": _env_str(ENV_KEYS["username"]),
            "password": _env_str(ENV_KEYS["password"]),
            "basic_auth_hosts": (
                tuple(basic_auth_hosts) if basic_auth_hosts else AEMSettings().basic_auth_hosts
            ),
            "timeout_seconds": _env_float(
                ENV_KEYS["timeout_seconds"], AEMSettings().timeout_seconds
            ),
            "settle_delay_seconds": _env_float(
                ENV_KEYS["settle_delay_seconds"], AEMSettings().settle_delay_seconds
            ),
            "asset_root": os.getenv(ENV_KEYS["asset_root"], AEMSettings().asset_root),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    return settings
