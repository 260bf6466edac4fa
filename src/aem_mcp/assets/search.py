"""DAM asset search through the QueryBuilder API.

Predicates are numbered groups (``1_group.2_property``) combined with AND
unless a group sets ``or=true``. Node-name predicates take glob patterns and
property predicates with ``operation=like`` take SQL LIKE patterns; the two
need different escaping and must not share an escape function.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from aem_mcp.errors import InputValidationError, RemoteCallError, SearchError
from aem_mcp.execution.aem_client import AEMCaller
from aem_mcp.logging_utils import null_logger

QUERY_BUILDER_PATH = "/bin/querybuilder.json"
DEFAULT_DAM_PATH = "/content/dam"
DEFAULT_LIMIT = 50
DEFAULT_OFFSET = 0

METADATA_PREFIX = "jcr:content/metadata/"
TITLE_FIELD = "dc:title"
GENERAL_QUERY_FIELDS = (
    "dc:title",
    "dc:description",
    "dc:subject",
    "product:brand",
    "product:sku",
)

_GLOB_SPECIAL = re.compile(r"([\\*?\[\]{}])")
_LIKE_SPECIAL = re.compile(r"([\\%_])")


def escape_glob(value: str | None) -> str:
    """Escape ``\\ * ? [ ] { }`` for node-name glob predicates."""
    if not value:
        return ""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


def escape_like(value: str | None) -> str:
    """Escape ``\\ % _`` for LIKE property predicates."""
    if not value:
        return ""
    return _LIKE_SPECIAL.sub(r"\\\1", value)


@dataclass
class SearchQuery:
    query: str | None = None
    filename: str | None = None
    title: str | None = None
    dam_path: str = DEFAULT_DAM_PATH
    limit: int = DEFAULT_LIMIT
    offset: int = DEFAULT_OFFSET
    search_value: str | None = None
    replace_value: str | None = None

    @property
    def replaces(self) -> bool:
        return bool(self.search_value)

    def validate(self) -> None:
        if not (self.query or self.filename or self.title):
            raise InputValidationError(
                "Please provide at least one of: query, filename, title",
                hint="query searches filename and metadata; filename and title narrow the search.",
            )
        if self.search_value and self.replace_value is None:
            raise InputValidationError(
                "When using searchValue, you must also provide replaceValue",
                hint='Use replaceValue="" to remove matches.',
            )
        if self.limit < 1:
            raise InputValidationError("limit must be a positive integer")
        if self.offset < 0:
            raise InputValidationError("offset must not be negative")


def build_query_params(query: SearchQuery) -> list[tuple[str, str]]:
    """Return the ordered QueryBuilder parameters for *query*."""
    params: list[tuple[str, str]] = [
        ("type", "dam:Asset"),
        ("path", query.dam_path),
    ]

    if query.query:
        glob = escape_glob(query.query)
        like = escape_like(query.query)
        params.append(("1_group.p.or", "true"))
        params.append(("1_group.1_nodename", f"*{glob}*"))
        for index, field_name in enumerate(GENERAL_QUERY_FIELDS, start=2):
            prefix = f"1_group.{index}_property"
            params.append((prefix, f"{METADATA_PREFIX}{field_name}"))
            params.append((f"{prefix}.operation", "like"))
            params.append((f"{prefix}.value", f"%{like}%"))

    if query.filename:
        params.append(("2_nodename", f"*{escape_glob(query.filename)}*"))

    if query.title:
        params.append(("3_property", f"{METADATA_PREFIX}{TITLE_FIELD}"))
        params.append(("3_property.operation", "like"))
        params.append(("3_property.value", f"%{escape_like(query.title)}%"))

    params.append(("p.limit", str(query.limit)))
    params.append(("p.offset", str(query.offset)))
    params.append(("orderby", "@jcr:content/jcr:lastModified"))
    params.append(("orderby.sort", "desc"))
    return params


def replace_values(value: object, search_value: str, replace_value: str) -> object:
    """Replace *search_value* case-insensitively in every string leaf."""
    if not search_value:
        return value
    pattern = re.compile(re.escape(search_value), re.IGNORECASE)
    return _replace(value, pattern, replace_value)


def _replace(value: object, pattern: re.Pattern[str], replacement: str) -> object:
    if isinstance(value, str):
        return pattern.sub(lambda _match: replacement, value)
    if isinstance(value, dict):
        return {key: _replace(item, pattern, replacement) for key, item in value.items()}
    if isinstance(value, list):
        return [_replace(item, pattern, replacement) for item in value]
    return value


def _basename(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1]


def _auth_failure_message(caller: AEMCaller, url: str) -> tuple[str, str]:
    if caller.auth_scheme == "bearer":
        method = "Bearer token"
        causes = (
            "Possible causes:\n"
            "- Bearer token has expired (tokens typically expire after 24 hours)\n"
            "- Token does not have required permissions/scopes\n"
            "- AEM Cloud Service may require username/password authentication "
            "for QueryBuilder API\n"
            "- Invalid or malformed token\n"
        )
        hint = (
            "Try username/password authentication instead: set AEM_USERNAME and "
            "AEM_PASSWORD, or pass them as tool parameters."
        )
    else:
        method = "username/password"
        causes = (
            "Possible causes:\n"
            "- Invalid username or password\n"
            "- Account does not have required permissions\n"
            "- AEM instance is not accessible\n"
        )
        hint = "Check the credentials, or try a bearer token via AEM_TOKEN."
    message = (
        "Failed to search assets: Request failed with status code 401\n\n"
        f"Authentication Method: {method}\n"
        f"Request URL: {url}\n\n"
        f"{causes}"
    )
    return message, hint


class AssetSearch:
    """Runs QueryBuilder searches and enriches each hit with its metadata."""

    def __init__(self, caller: AEMCaller, logger: logging.Logger | None = None) -> None:
        self._caller = caller
        self._logger = logger or null_logger()

    async def search_assets(self, query: SearchQuery) -> dict[str, object]:
        query.validate()
        params = build_query_params(query)

        try:
            data = await self._caller.get_json(QUERY_BUILDER_PATH, params=params)
        except RemoteCallError as exc:
            if exc.status_code == 401:
                message, hint = _auth_failure_message(
                    self._caller, self._caller.url_for(QUERY_BUILDER_PATH)
                )
                raise SearchError(
                    message,
                    auth_scheme=self._caller.auth_scheme,
                    status_code=401,
                    hint=hint,
                ) from exc
            raise SearchError(
                f"Failed to search assets: {exc.message}",
                auth_scheme=self._caller.auth_scheme,
                status_code=exc.status_code,
            ) from exc

        hits = data.get("hits") if isinstance(data, dict) else None
        results: list[dict[str, object]] = []
        for hit in hits or []:
            if not isinstance(hit, dict) or not isinstance(hit.get("path"), str):
                continue
            results.append(await self._build_result(hit["path"], query))

        total = data.get("total", 0) if isinstance(data, dict) else 0
        return {
            "success": True,
            "query": query.query or {"filename": query.filename, "title": query.title},
            "damPath": query.dam_path,
            "total": total or 0,
            "results": results,
            "count": len(results),
            "limit": query.limit,
            "offset": query.offset,
            "message": f"Found {len(results)} asset(s)",
        }

    async def _build_result(self, asset_path: str, query: SearchQuery) -> dict[str, object]:
        name = _basename(asset_path)
        metadata = await self.fetch_metadata(asset_path)
        title = metadata.get(TITLE_FIELD) or name

        if query.replaces:
            metadata = replace_values(metadata, query.search_value or "", query.replace_value or "")
            replaced_title = metadata.get(TITLE_FIELD) if isinstance(metadata, dict) else None
            if replaced_title:
                title = replaced_title

        return {
            "path": asset_path,
            "name": name,
            "title": title,
            "metadata": metadata,
            "url": self._caller.url_for(asset_path),
        }

    async def fetch_metadata(self, asset_path: str) -> dict[str, object]:
        """Return the asset's metadata node, or ``{}`` when it cannot be read."""
        try:
            data = await self._caller.get_json(f"{asset_path}/jcr:content/metadata.json")
        except RemoteCallError as exc:
            if exc.status_code in (401, 403):
                self._logger.warning(
                    "Could not fetch metadata for %s due to authentication error", asset_path
                )
            else:
                self._logger.debug("No metadata for %s: %s", asset_path, exc)
            return {}
        return data if isinstance(data, dict) else {}
