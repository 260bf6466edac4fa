"""Authenticated HTTP access to an AEM author instance."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

import httpx

from aem_mcp.auth.credentials import (
    BasicCredentials,
    Credentials,
    ResolvedTarget,
    TokenCredentials,
)
from aem_mcp.config import AEMSettings
from aem_mcp.errors import RemoteCallError
from aem_mcp.execution.form import FORM_CONTENT_TYPE, NodePayload
from aem_mcp.logging_utils import null_logger

DEFAULT_TIMEOUT_SECONDS = 30.0
_MAX_ERROR_BODY_CHARS = 2000

StatusCheck = Callable[[int], bool]
QueryParams = Mapping[str, str] | Sequence[tuple[str, str]]


def is_success(status: int) -> bool:
    return 200 <= status < 300


@dataclass(frozen=True)
class AEMConnection:
    """Endpoint, credentials and timeout shared by every client."""

    endpoint: str
    credentials: Credentials
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_target(
        cls,
        target: ResolvedTarget,
        settings: AEMSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> AEMConnection:
        return cls(
            endpoint=target.endpoint.rstrip("/"),
            credentials=target.credentials,
            timeout_seconds=settings.timeout_seconds,
            transport=transport,
        )


class AEMCaller:
    """Issues authenticated calls; one ``httpx.AsyncClient`` per call."""

    def __init__(self, connection: AEMConnection, logger: logging.Logger | None = None) -> None:
        self._connection = connection
        self._logger = logger or null_logger()

    @property
    def endpoint(self) -> str:
        return self._connection.endpoint

    @property
    def credentials(self) -> Credentials:
        return self._connection.credentials

    @property
    def auth_scheme(self) -> str:
        return self._connection.credentials.scheme

    def url_for(self, path: str) -> str:
        return f"{self.endpoint}{path}"

    def editor_url(self, path: str) -> str:
        return f"{self.endpoint}/editor.html{path}.html"

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json, */*"}
        auth: httpx.Auth | None = None
        credentials = self._connection.credentials
        if isinstance(credentials, TokenCredentials):
            headers["Authorization"] = f"Bearer {credentials.token}"
        elif isinstance(credentials, BasicCredentials):
            auth = httpx.BasicAuth(credentials.username, credentials.password)
        return httpx.AsyncClient(
            base_url=self.endpoint,
            headers=headers,
            auth=auth,
            timeout=self._connection.timeout_seconds,
            follow_redirects=True,
            transport=self._connection.transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: QueryParams | None = None,
        content: str | bytes | None = None,
        files: Mapping[str, object] | None = None,
        data: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        accept: StatusCheck = is_success,
        follow_redirects: bool = True,
    ) -> httpx.Response:
        """Send one request and return the response when ``accept`` allows it.

        Raises ``RemoteCallError`` for transport failures and for responses
        whose status ``accept`` rejects.
        """
        self._logger.debug("AEM %s %s", method, path)
        try:
            async with self._client() as client:
                response = await client.request(
                    method,
                    path,
                    params=params,
                    content=content,
                    files=files,
                    data=data,
                    headers=headers,
                    follow_redirects=follow_redirects,
                )
        except httpx.TimeoutException as exc:
            raise RemoteCallError(
                f"timeout of {self._connection.timeout_seconds:g}s exceeded ({method} {path})"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteCallError(f"{type(exc).__name__}: {exc}") from exc

        if not accept(response.status_code):
            body = response.text[:_MAX_ERROR_BODY_CHARS]
            self._logger.debug(
                "AEM %s %s failed: status=%s body=%s", method, path, response.status_code, body
            )
            raise RemoteCallError(
                f"Request failed with status code {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return response

    async def get_json(self, path: str, *, params: QueryParams | None = None) -> object:
        response = await self.request("GET", path, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteCallError(
                f"Invalid JSON response from {path}",
                status_code=response.status_code,
                body=response.text[:_MAX_ERROR_BODY_CHARS],
            ) from exc

    async def post_form(
        self,
        path: str,
        payload: NodePayload,
        *,
        accept: StatusCheck = is_success,
        follow_redirects: bool = True,
    ) -> httpx.Response:
        return await self.request(
            "POST",
            path,
            content=payload.encode(),
            headers={"Content-Type": FORM_CONTENT_TYPE},
            accept=accept,
            follow_redirects=follow_redirects,
        )

    async def delete(self, path: str, *, accept: StatusCheck = is_success) -> httpx.Response:
        return await self.request("DELETE", path, accept=accept)

    async def head(self, path: str) -> httpx.Response:
        return await self.request("HEAD", path)
