"""DAM asset tools: search, upload, rename, metadata."""

from __future__ import annotations

from aem_mcp.assets.client import AssetClient, UploadConfig
from aem_mcp.assets.search import DEFAULT_DAM_PATH, DEFAULT_LIMIT, AssetSearch, SearchQuery
from aem_mcp.errors import AEMError
from aem_mcp.execution.aem_client import AEMCaller
from aem_mcp.mcp_runtime import ToolResult
from aem_mcp.tools._helpers import (
    ToolContext,
    error_result,
    int_arg,
    mapping_arg,
    string_arg,
)

_PREVIEW_FIELDS = 3
_PREVIEW_CHARS = 30


def _asset_client(context: ToolContext, caller: AEMCaller) -> AssetClient:
    return AssetClient(
        caller,
        context.logger,
        asset_root=context.settings.asset_root,
        download_transport=context.transport,
    )


def _preview(value: object) -> str:
    text = str(value)
    if isinstance(value, str) and len(value) > _PREVIEW_CHARS:
        return value[: _PREVIEW_CHARS - 3] + "..."
    return text


def _format_search(query: SearchQuery, result: dict[str, object]) -> str:
    lines = [
        "Asset Search Results",
        "",
        f"Found: {result['count']} asset(s) (Total: {result['total']})",
        f"Search Path: {result['damPath']}",
    ]
    if query.query:
        lines.append(f'Query: "{query.query}"')
    else:
        terms = []
        if query.filename:
            terms.append(f'filename: "{query.filename}"')
        if query.title:
            terms.append(f'title: "{query.title}"')
        lines.append(f"Search Terms: {', '.join(terms)}")
    if query.replaces:
        lines.append(f'Value Replacement: "{query.search_value}" -> "{query.replace_value or ""}"')
    lines.append("")

    results = result.get("results") or []
    if not isinstance(results, list) or not results:
        lines.append("No assets found matching your search criteria.")
    else:
        for index, asset in enumerate(results, start=1):
            lines.append(f"{index}. {asset['name']}")
            lines.append(f"   Title: {asset['title']}")
            lines.append(f"   Path: {asset['path']}")
            lines.append(f"   URL: {asset['url']}")
            metadata = asset.get("metadata")
            if isinstance(metadata, dict) and metadata:
                pairs = [
                    f"{key}: {_preview(value)}"
                    for key, value in list(metadata.items())[:_PREVIEW_FIELDS]
                ]
                lines.append(f"   Metadata: {', '.join(pairs)}")
            lines.append("")
        total = result.get("total")
        if isinstance(total, int) and total > len(results):
            lines.append(
                f"Showing {len(results)} of {total} results. "
                "Use limit and offset for pagination."
            )
    lines.append(str(result["message"]))
    return "\n".join(lines)


async def search_assets(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    query = SearchQuery(
        query=string_arg(arguments, "query"),
        filename=string_arg(arguments, "filename"),
        title=string_arg(arguments, "title"),
        dam_path=string_arg(arguments, "damPath", DEFAULT_DAM_PATH) or DEFAULT_DAM_PATH,
        limit=int_arg(arguments, "limit", DEFAULT_LIMIT),
        offset=int_arg(arguments, "offset", 0),
        search_value=string_arg(arguments, "searchValue"),
        replace_value=arguments.get("replaceValue")
        if isinstance(arguments.get("replaceValue"), str)
        else None,
    )
    try:
        query.validate()
        caller = context.caller(arguments)
        result = await AssetSearch(caller, context.logger).search_assets(query)
    except AEMError as exc:
        return error_result(
            "Failed to search assets",
            exc,
            (
                "Invalid credentials",
                "AEM QueryBuilder API not accessible",
                "Invalid DAM path",
                "Insufficient permissions",
            ),
        )
    return ToolResult.text(
        _format_search(query, result),
        metadata={
            "success": True,
            "total": result["total"],
            "count": result["count"],
            "results": result["results"],
        },
    )


async def upload_asset(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    config = UploadConfig(
        asset_name=string_arg(arguments, "assetName") or "",
        dam_path=string_arg(arguments, "damPath") or "",
        asset_url=string_arg(arguments, "assetUrl"),
        asset_data=string_arg(arguments, "assetData"),
        mime_type=string_arg(arguments, "mimeType", "application/octet-stream")
        or "application/octet-stream",
        metadata=mapping_arg(arguments, "metadata"),
    )
    try:
        caller = context.caller(arguments)
        result = await _asset_client(context, caller).upload_asset(config)
    except AEMError as exc:
        return error_result(
            "Failed to upload asset",
            exc,
            (
                "Invalid credentials",
                "DAM path doesn't exist",
                "Asset download failed (if using URL)",
                "Invalid asset data",
                "Insufficient permissions",
                "File size too large",
            ),
        )

    lines = [
        "Asset Uploaded Successfully!",
        "",
        f"Asset Name: {config.asset_name}",
        f"Path: {result['fullPath']}",
        f"Type: {config.mime_type}",
        f"Size: {result['fileSize']} bytes",
        f"Asset URL: {caller.endpoint}/assets.html{result['fullPath']}",
    ]
    if config.metadata:
        lines.append("")
        lines.append(f"Metadata ({len(config.metadata)}):")
        lines.extend(f"  - {key}: {value}" for key, value in config.metadata.items())
    lines.extend(["", str(result["message"])])
    return ToolResult.text(
        "\n".join(lines),
        metadata={"success": True, "assetPath": result["fullPath"]},
    )


async def rename_asset(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    asset_path = string_arg(arguments, "assetPath") or ""
    try:
        caller = context.caller(arguments)
        result = await _asset_client(context, caller).rename_asset(
            asset_path, string_arg(arguments, "newName") or ""
        )
    except AEMError as exc:
        return error_result(
            "Failed to rename asset",
            exc,
            (
                "Asset does not exist",
                "An asset with the new name already exists",
                "Insufficient permissions",
            ),
        )
    text = (
        "Asset Renamed Successfully!\n\n"
        f"Old Name: {asset_path.rsplit('/', 1)[-1]}\n"
        f"New Name: {result['newName']}\n"
        f"Old Path: {result['oldPath']}\n"
        f"New Path: {result['newPath']}\n"
        f"New URL: {caller.url_for(str(result['newPath']))}"
    )
    return ToolResult.text(
        text,
        metadata={"success": True, "oldPath": result["oldPath"], "newPath": result["newPath"]},
    )


async def update_asset_metadata(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    asset_path = string_arg(arguments, "assetPath") or ""
    merge = arguments.get("merge", True) is not False
    try:
        caller = context.caller(arguments)
        result = await _asset_client(context, caller).update_asset_metadata(
            asset_path, mapping_arg(arguments, "metadata"), merge=merge
        )
    except AEMError as exc:
        return error_result("Failed to update asset metadata", exc)

    metadata = result["metadata"]
    lines = [
        "Asset Metadata Updated!",
        "",
        f"Asset: {asset_path}",
        f"Mode: {'merge' if merge else 'replace'}",
    ]
    if isinstance(metadata, dict):
        lines.append("")
        lines.extend(f"  - {key}: {value}" for key, value in metadata.items())
    return ToolResult.text(
        "\n".join(lines),
        metadata={"success": True, "assetPath": asset_path, "metadata": metadata},
    )
