"""Tool registration helpers.

Every tool resolves its endpoint and credentials per call, then delegates to
one of the clients under ``aem_mcp.provisioning`` or ``aem_mcp.assets``.
"""

from __future__ import annotations

from aem_mcp.mcp_runtime import ToolSpec
from aem_mcp.tools import _schemas, assets, content, sites
from aem_mcp.tools._helpers import ToolContext, ToolHandler, bind_handler

__all__ = ["ToolContext", "get_tool_registry", "get_tool_specs"]

_TOOL_TABLE: tuple[tuple[str, str, dict[str, object], ToolHandler], ...] = (
    (
        "aem-create-microsite",
        "Create a microsite from a Quick Site Creation template, with its initial pages. "
        "Set overwrite=true to delete and recreate an existing site.",
        _schemas.CREATE_MICROSITE_SCHEMA,
        sites.create_microsite,
    ),
    (
        "aem-create-page",
        "Create one page under an existing site.",
        _schemas.CREATE_PAGE_SCHEMA,
        sites.create_page,
    ),
    (
        "aem-list-templates",
        "List the available site templates.",
        _schemas.LIST_TEMPLATES_SCHEMA,
        sites.list_templates,
    ),
    (
        "aem-list-sites",
        "List the sites under a parent path (default /content).",
        _schemas.LIST_SITES_SCHEMA,
        sites.list_sites,
    ),
    (
        "aem-get-site-info",
        "Get the repository properties of a site.",
        _schemas.SITE_PATH_SCHEMA,
        sites.get_site_info,
    ),
    (
        "aem-delete-site",
        "Delete a site. Requires confirm=true.",
        _schemas.DELETE_SITE_SCHEMA,
        sites.delete_site,
    ),
    (
        "aem-create-component",
        "Create a component with an authoring dialog and an HTL template.",
        _schemas.CREATE_COMPONENT_SCHEMA,
        content.create_component,
    ),
    (
        "aem-create-content-fragment",
        "Create a content fragment from a Content Fragment Model.",
        _schemas.CREATE_CONTENT_FRAGMENT_SCHEMA,
        content.create_content_fragment,
    ),
    (
        "aem-upload-asset",
        "Upload an asset to the DAM from a URL or base64 data, with optional metadata.",
        _schemas.UPLOAD_ASSET_SCHEMA,
        assets.upload_asset,
    ),
    (
        "aem-start-workflow",
        "Start a workflow on a content or asset payload.",
        _schemas.START_WORKFLOW_SCHEMA,
        content.start_workflow,
    ),
    (
        "aem-search-assets",
        "Search DAM assets by file name and metadata (dc:title, dc:description, dc:subject, "
        "product:brand, product:sku). Optionally replace a value in the returned metadata.",
        _schemas.SEARCH_ASSETS_SCHEMA,
        assets.search_assets,
    ),
    (
        "aem-rename-asset",
        "Rename a DAM asset; it moves to a sibling path with the new name.",
        _schemas.RENAME_ASSET_SCHEMA,
        assets.rename_asset,
    ),
    (
        "aem-update-asset-metadata",
        "Update an asset's metadata, merging with existing values by default.",
        _schemas.UPDATE_ASSET_METADATA_SCHEMA,
        assets.update_asset_metadata,
    ),
)


def get_tool_specs(context: ToolContext | None = None) -> list[ToolSpec]:
    """Build every tool bound to *context* (environment settings by default)."""
    context = context or ToolContext.from_environment()
    return [
        ToolSpec(
            name=name,
            description=description,
            input_schema=schema,
            handler=bind_handler(handler, schema, context),
        )
        for name, description, schema, handler in _TOOL_TABLE
    ]


def get_tool_registry(context: ToolContext | None = None) -> dict[str, ToolSpec]:
    return {tool.name: tool for tool in get_tool_specs(context)}
