from __future__ import annotations

import pytest

from aem_mcp import config


def test_split_csv_preserve_case() -> None:
    values = config._split_csv_preserve_case(" A, B ,,C ")
    assert values == ["A", "B", "C"]


def test_resolve_path_absolute_outside_project_rejected() -> None:
    with pytest.raises(ValueError, match="Path traversal detected"):
        config._resolve_path("/tmp/example")


def test_resolve_path_relative_is_anchored_at_project_root() -> None:
    root = config._project_root().resolve()
    assert config._resolve_path("logs/server.log") == str(root / "logs" / "server.log")


def test_env_float_invalid_value_returns_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_FLOAT_INVALID", "soon")
    assert config._env_float("TEST_FLOAT_INVALID", 2.5) == 2.5


def test_env_int_uses_default_for_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_INT_VALUE", "")
    assert config._env_int("TEST_INT_VALUE", 7) == 7


def test_defaults_without_environment() -> None:
    settings = config.load_settings()

    assert settings.server.name == "aem-mcp-server"
    assert settings.server.transport_mode == "stdio"
    assert settings.aem.author_url is None
    assert settings.aem.default_author_url == "http://localhost:4502"
    assert settings.aem.basic_auth_hosts == ("adobeaemcloud.com",)
    assert settings.aem.timeout_seconds == 30.0
    assert settings.aem.settle_delay_seconds == 0.5
    assert settings.aem.asset_root == "/content/dam"


def test_aem_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AEM_AUTHOR_URL", "https://author.example.com")
    monkeypatch.setenv("AEM_TOKEN", "  secret-token  ")
    monkeypatch.setenv("AEM_BASIC_AUTH_HOSTS", "example.com, adobeaemcloud.com")
    monkeypatch.setenv("AEM_SETTLE_DELAY_SECONDS", "1.25")
    monkeypatch.setenv("AEM_ASSET_ROOT", "/content/dam/brand/")

    settings = config.load_settings()

    assert settings.aem.author_url == "https://author.example.com"
    assert settings.aem.token == "secret-token"
    assert settings.aem.basic_auth_hosts == ("example.com", "adobeaemcloud.com")
    assert settings.aem.settle_delay_seconds == 1.25
    assert settings.aem.asset_root == "/content/dam/brand"


def test_secrets_hidden_from_repr(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AEM_TOKEN", "secret-token")
    monkeypatch.setenv("AEM_PASSWORD", "hunter2")

    rendered = repr(config.load_settings().aem)

    assert "secret-token" not in rendered
    assert "hunter2" not in rendered


def test_load_settings_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    first = config.load_settings()
    monkeypatch.setenv("AEM_AUTHOR_URL", "https://other.example.com")
    assert config.load_settings() is first


def test_load_settings_raises_runtime_error_on_validation(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("TRANSPORT_MODE", "carrier-pigeon")

    with pytest.raises(RuntimeError, match="Invalid configuration"):
        config.load_settings()


def test_relative_asset_root_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AEM_ASSET_ROOT", "content/dam")

    with pytest.raises(RuntimeError, match="asset_root"):
        config.load_settings()


def test_is_debug_flag() -> None:
    assert config.LoggingSettings(level="debug").is_debug
    assert not config.LoggingSettings(level="INFO").is_debug
