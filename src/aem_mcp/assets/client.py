"""Rename, annotate and upload DAM assets."""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx

from aem_mcp.errors import (
    AEMError,
    InputValidationError,
    NotFoundError,
    ProvisioningError,
    RemoteCallError,
)
from aem_mcp.execution.aem_client import AEMCaller
from aem_mcp.execution.form import NodePayload
from aem_mcp.logging_utils import null_logger

DEFAULT_ASSET_ROOT = "/content/dam"
PRECONDITION_FAILED = 412

# Properties the repository manages itself; never posted back.
PROTECTED_PROPERTIES = frozenset(
    {"jcr:primaryType", "jcr:mixinTypes", "jcr:created", "jcr:createdBy", "jcr:uuid"}
)

_DOWNLOAD_TIMEOUT_SECONDS = 30.0


def _accept_metadata_write(status: int) -> bool:
    return status < 400 or status == PRECONDITION_FAILED


def _unique(values: list[object]) -> list[object]:
    seen: list[object] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def merge_metadata(
    existing: Mapping[str, object],
    updates: Mapping[str, object],
) -> dict[str, object]:
    """Shallow-merge *updates* over *existing*; list values become sets."""
    merged = {**existing, **updates}
    return {
        key: _unique(list(value)) if isinstance(value, list) else value
        for key, value in merged.items()
    }


def build_metadata_payload(metadata: Mapping[str, object]) -> NodePayload:
    payload = NodePayload()
    for key, value in metadata.items():
        if value is None or key in PROTECTED_PROPERTIES:
            continue
        if isinstance(value, list):
            payload.set(key, [str(item) for item in value])
        elif isinstance(value, dict):
            continue
        else:
            payload.set(key, value if isinstance(value, bool) else str(value))
    return payload


@dataclass
class UploadConfig:
    asset_name: str
    dam_path: str
    asset_url: str | None = None
    asset_data: str | None = None
    mime_type: str = "application/octet-stream"
    metadata: Mapping[str, object] = field(default_factory=dict)


class AssetClient:
    """Write operations on individual DAM assets."""

    def __init__(
        self,
        caller: AEMCaller,
        logger: logging.Logger | None = None,
        *,
        asset_root: str = DEFAULT_ASSET_ROOT,
        download_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._caller = caller
        self._logger = logger or null_logger()
        self._asset_root = asset_root.rstrip("/")
        self._download_transport = download_transport

    def _validate_asset_path(self, asset_path: str) -> None:
        prefix = f"{self._asset_root}/"
        if not asset_path.startswith(prefix):
            raise InputValidationError(f"Asset path must start with {prefix}")

    async def _require_exists(self, asset_path: str) -> None:
        try:
            await self._caller.head(asset_path)
        except RemoteCallError as exc:
            if exc.status_code == 404:
                raise NotFoundError(f"Asset not found at path: {asset_path}") from exc
            raise

    async def _destination_exists(self, path: str) -> bool:
        """Probe *path*; only a successful response counts as existing.

        Anything other than success or 404 is inconclusive and treated as
        absent, since the move itself reports the authoritative conflict.
        """
        try:
            await self._caller.head(path)
        except RemoteCallError as exc:
            if exc.status_code != 404:
                self._logger.debug("Inconclusive existence probe for %s: %s", path, exc)
            return False
        return True

    async def rename_asset(self, asset_path: str, new_name: str) -> dict[str, object]:
        if not asset_path or not new_name:
            raise InputValidationError("Asset path and new name are required")
        self._validate_asset_path(asset_path)

        sanitized_name = new_name.rstrip("/").rsplit("/", 1)[-1]
        if not sanitized_name:
            raise InputValidationError("New name must contain a file name")
        parent_path = asset_path.rsplit("/", 1)[0]
        new_path = f"{parent_path}/{sanitized_name}"

        try:
            await self._require_exists(asset_path)
            if await self._destination_exists(new_path):
                raise ProvisioningError(
                    f"Failed to rename asset: Asset already exists at target path: {new_path}"
                )
            await self._caller.request(
                "POST",
                asset_path,
                params=[(":operation", "move"), (":dest", new_path)],
            )
        except NotFoundError as exc:
            raise NotFoundError(f"Failed to rename asset: {exc.message}") from exc
        except RemoteCallError as exc:
            raise ProvisioningError(
                f"Failed to rename asset: {exc.message}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

        old_name = asset_path.rsplit("/", 1)[-1]
        self._logger.info("Renamed asset %s -> %s", asset_path, new_path)
        return {
            "success": True,
            "oldPath": asset_path,
            "newPath": new_path,
            "newName": sanitized_name,
            "message": f'Asset renamed from "{old_name}" to "{sanitized_name}"',
        }

    async def update_asset_metadata(
        self,
        asset_path: str,
        metadata: Mapping[str, object],
        merge: bool = True,
    ) -> dict[str, object]:
        if not asset_path or not metadata:
            raise InputValidationError("Asset path and metadata are required")
        self._validate_asset_path(asset_path)

        metadata_path = f"{asset_path}/jcr:content/metadata"
        try:
            await self._require_exists(asset_path)
            existing: Mapping[str, object] = {}
            if merge:
                existing = await self._read_metadata(metadata_path)
            updated = merge_metadata(existing, metadata) if merge else merge_metadata({}, metadata)
            await self._caller.post_form(
                metadata_path,
                build_metadata_payload(updated),
                accept=_accept_metadata_write,
                follow_redirects=False,
            )
        except NotFoundError as exc:
            raise NotFoundError(f"Failed to update asset metadata: {exc.message}") from exc
        except RemoteCallError as exc:
            raise ProvisioningError(
                f"Failed to update asset metadata: {exc.message}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

        self._logger.info("Updated metadata for %s (merge=%s)", asset_path, merge)
        return {
            "success": True,
            "assetPath": asset_path,
            "metadata": updated,
            "message": f"Metadata updated for asset: {asset_path.rsplit('/', 1)[-1]}",
        }

    async def _read_metadata(self, metadata_path: str) -> Mapping[str, object]:
        try:
            data = await self._caller.get_json(f"{metadata_path}.json")
        except RemoteCallError as exc:
            if exc.status_code == 404:
                return {}
            raise
        return data if isinstance(data, dict) else {}

    async def upload_asset(self, config: UploadConfig) -> dict[str, object]:
        if not config.asset_name or not config.dam_path:
            raise InputValidationError("assetName and damPath are required")
        if not config.asset_url and not config.asset_data:
            raise InputValidationError(
                "Please provide either assetUrl (URL to download the asset from) "
                "or assetData (base64 encoded asset data)"
            )
        dam_path = config.dam_path.rstrip("/")
        self._validate_asset_path(f"{dam_path}/{config.asset_name}")

        content = await self._load_content(config)
        full_path = f"{dam_path}/{config.asset_name}"
        try:
            await self._caller.request(
                "POST",
                f"{dam_path}.createasset.html",
                files={"file": (config.asset_name, content, config.mime_type)},
                data={"fileName": config.asset_name},
            )
        except RemoteCallError as exc:
            raise ProvisioningError(
                f"Failed to upload asset: {exc.message}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

        if config.metadata:
            try:
                await self.update_asset_metadata(full_path, config.metadata, merge=True)
            except AEMError as exc:
                self._logger.warning("Uploaded %s but metadata update failed: %s", full_path, exc)

        self._logger.info("Uploaded asset %s (%d bytes)", full_path, len(content))
        return {
            "success": True,
            "fullPath": full_path,
            "fileSize": len(content),
            "message": "Asset uploaded successfully",
        }

    async def _load_content(self, config: UploadConfig) -> bytes:
        if config.asset_data:
            try:
                return base64.b64decode(config.asset_data, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise InputValidationError(f"assetData is not valid base64: {exc}") from exc

        try:
            async with httpx.AsyncClient(
                timeout=_DOWNLOAD_TIMEOUT_SECONDS,
                follow_redirects=True,
                transport=self._download_transport,
            ) as client:
                response = await client.get(str(config.asset_url))
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ProvisioningError(f"Failed to upload asset: download failed: {exc}") from exc
        return response.content
