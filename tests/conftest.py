from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable, Iterator

import httpx
import pytest

from aem_mcp.auth.credentials import BasicCredentials, TokenCredentials
from aem_mcp.config import AEMSettings, ENV_KEYS, _load_settings_cached
from aem_mcp.execution.aem_client import AEMCaller, AEMConnection
from aem_mcp.tools import ToolContext

AUTHOR = "http://author.test"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in ENV_KEYS.values():
        monkeypatch.delenv(key, raising=False)
    # keep a developer's .env out of the settings under test
    monkeypatch.setattr("aem_mcp.config.load_dotenv", lambda *args, **kwargs: False)
    _load_settings_cached.cache_clear()
    yield
    _load_settings_cached.cache_clear()


@pytest.fixture(autouse=True)
def _close_default_event_loop() -> Iterator[None]:
    yield
    policy = asyncio.get_event_loop_policy()
    local = getattr(policy, "_local", None)
    loop = getattr(local, "_loop", None) if local is not None else None
    if loop is not None and not loop.is_running() and not loop.is_closed():
        with contextlib.suppress(Exception):
            loop.close()
    if loop is not None:
        with contextlib.suppress(Exception):
            policy.set_event_loop(None)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Handler) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            request.read()
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def calls(self) -> list[tuple[str, str]]:
        return [(request.method, request.url.path) for request in self.requests]


@pytest.fixture
def make_caller() -> Callable[..., tuple[AEMCaller, RecordingTransport]]:
    def _make(handler: Handler, *, basic: bool = False) -> tuple[AEMCaller, RecordingTransport]:
        transport = RecordingTransport(handler)
        credentials = BasicCredentials("admin", "admin") if basic else TokenCredentials("tok")
        connection = AEMConnection(
            endpoint=AUTHOR, credentials=credentials, transport=transport
        )
        return AEMCaller(connection), transport

    return _make


@pytest.fixture
def aem_settings() -> AEMSettings:
    return AEMSettings(author_url=AUTHOR, token="tok", settle_delay_seconds=0.0)


@pytest.fixture
def make_context(aem_settings: AEMSettings) -> Callable[..., tuple[ToolContext, RecordingTransport]]:
    def _make(handler: Handler, **overrides: object) -> tuple[ToolContext, RecordingTransport]:
        transport = RecordingTransport(handler)
        settings = aem_settings.model_copy(update=overrides) if overrides else aem_settings
        return ToolContext(settings=settings, transport=transport), transport

    return _make
