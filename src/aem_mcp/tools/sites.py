"""Site and page tools: create, list, inspect, delete."""

from __future__ import annotations

from aem_mcp.errors import AEMError, SiteConflictError
from aem_mcp.execution.aem_client import AEMCaller
from aem_mcp.mcp_runtime import ToolResult
from aem_mcp.provisioning.sites import (
    DEFAULT_PAGE_TEMPLATE_PATH,
    DEFAULT_PAGES,
    DEFAULT_PARENT_PATH,
    MicrositeConfig,
    PageConfig,
    SiteClient,
    capitalize,
    is_conflict_error,
    resolve_template_path,
)
from aem_mcp.tools._helpers import (
    GENERIC_CAUSES,
    ToolContext,
    basic_auth_advice,
    error_result,
    string_arg,
)
from aem_mcp.utils.serialization import dumps


def _site_client(context: ToolContext, caller: AEMCaller) -> SiteClient:
    return SiteClient(
        caller,
        context.logger,
        settle_delay_seconds=context.settings.settle_delay_seconds,
    )


def _conflict_advice(config: MicrositeConfig) -> str:
    site_path = config.site_path()
    name = site_path.rsplit("/", 1)[-1]
    return (
        f'Site already exists: "{name}" is already present at {site_path}.\n\n'
        "Options:\n"
        "1. Delete and recreate: call again with overwrite=true\n"
        f"2. Delete it first with aem-delete-site (sitePath={site_path}, confirm=true)\n"
        "3. Choose a different siteName"
    )


def _format_microsite(result: dict[str, object]) -> str:
    lines = [
        "Microsite Created Successfully!",
        "",
        f"Site Name: {result['siteName']}",
        f"Site Title: {result['siteTitle']}",
        f"Site Path: {result['sitePath']}",
        f"Author URL: {result['authorUrl']}",
    ]
    pages = result.get("pages") or []
    if isinstance(pages, list) and pages:
        lines.append("")
        lines.append(f"Created Pages ({len(pages)}):")
        lines.extend(f"  - {page['pageTitle']} ({page['pageName']})" for page in pages)
    requested = result.get("requestedPages") or []
    if isinstance(requested, list) and isinstance(pages, list) and len(pages) < len(requested):
        created = {page["pageName"] for page in pages}
        skipped = [name for name in requested if name not in created]
        lines.append(f"Skipped Pages: {', '.join(str(name) for name in skipped)}")
    lines.append("")
    lines.append(str(result["message"]))
    return "\n".join(lines)


async def create_microsite(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    raw_pages = arguments.get("pages")
    pages = tuple(raw_pages) if isinstance(raw_pages, list) and raw_pages else DEFAULT_PAGES
    config = MicrositeConfig(
        site_title=string_arg(arguments, "siteTitle"),
        site_name=string_arg(arguments, "siteName"),
        template_path=resolve_template_path(string_arg(arguments, "templateType")),
        parent_path=string_arg(arguments, "parentPath", DEFAULT_PARENT_PATH) or DEFAULT_PARENT_PATH,
        language=string_arg(arguments, "language", "en") or "en",
        country=string_arg(arguments, "country", "US") or "US",
        pages=tuple(str(page) for page in pages),
    )
    caller: AEMCaller | None = None
    try:
        caller = context.caller(arguments)
        result = await _site_client(context, caller).provision_microsite(
            config, overwrite=bool(arguments.get("overwrite", False))
        )
    except SiteConflictError as exc:
        return error_result(
            "Failed to create microsite", exc, GENERIC_CAUSES, advice=_conflict_advice(config)
        )
    except AEMError as exc:
        advice = basic_auth_advice(caller, context.settings) if _is_unauthorized(exc) else None
        if advice is None and is_conflict_error(exc):
            advice = _conflict_advice(config)
        return error_result("Failed to create microsite", exc, GENERIC_CAUSES, advice=advice)

    return ToolResult.text(
        _format_microsite(result),
        metadata={
            "success": True,
            "sitePath": result["sitePath"],
            "authorUrl": result["authorUrl"],
            "pages": result["pages"],
        },
    )


def _is_unauthorized(error: AEMError) -> bool:
    return getattr(error, "status_code", None) == 401


async def create_page(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    page_name = string_arg(arguments, "pageName") or ""
    config = PageConfig(
        site_path=string_arg(arguments, "sitePath") or "",
        page_name=page_name,
        page_title=string_arg(arguments, "pageTitle") or capitalize(page_name),
        template_path=string_arg(arguments, "templatePath", DEFAULT_PAGE_TEMPLATE_PATH)
        or DEFAULT_PAGE_TEMPLATE_PATH,
    )
    try:
        caller = context.caller(arguments)
        page = await _site_client(context, caller).create_page(config)
    except AEMError as exc:
        return error_result(
            "Failed to create page",
            exc,
            ("Site path doesn't exist", "Page already exists", *GENERIC_CAUSES),
        )
    text = (
        "Page Created Successfully!\n\n"
        f"Page Title: {page['pageTitle']}\n"
        f"Page Path: {page['pagePath']}\n"
        f"Editor URL: {page['url']}"
    )
    return ToolResult.text(text, metadata={"success": True, **page})


async def list_templates(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    templates = SiteClient.get_quick_site_templates()
    lines = ["Available Site Templates", ""]
    for template in templates:
        lines.append(f"- {template['name']} ({template['id']})")
        lines.append(f"  {template['description']}")
        lines.append(f"  Path: {template['path']}")
    metadata: dict[str, object] = {"success": True, "templates": templates}

    if arguments.get("includeRemote"):
        try:
            caller = context.caller(arguments)
            remote = await _site_client(context, caller).list_site_templates()
        except AEMError as exc:
            return error_result("Failed to list templates", exc)
        metadata["remoteTemplates"] = remote
        lines.append("")
        lines.append("Templates reported by the author instance:")
        lines.append(dumps(remote, indent=2))

    return ToolResult.text("\n".join(lines), metadata=metadata)


async def list_sites(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    parent_path = string_arg(arguments, "parentPath", DEFAULT_PARENT_PATH) or DEFAULT_PARENT_PATH
    try:
        caller = context.caller(arguments)
        sites = await _site_client(context, caller).list_sites(parent_path)
    except AEMError as exc:
        return error_result("Failed to list sites", exc)

    if not sites:
        text = f"No sites found under {parent_path}"
    else:
        lines = [f"Sites under {parent_path} ({len(sites)}):", ""]
        lines.extend(f"- {site['title']}: {site['path']}" for site in sites)
        text = "\n".join(lines)
    return ToolResult.text(text, metadata={"success": True, "sites": sites})


async def get_site_info(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    site_path = string_arg(arguments, "sitePath") or ""
    try:
        caller = context.caller(arguments)
        info = await _site_client(context, caller).get_site_info(site_path)
    except AEMError as exc:
        return error_result("Failed to get site info", exc)
    text = f"Site Information: {site_path}\n\n{dumps(info, indent=2)}"
    return ToolResult.text(text, metadata={"success": True, "siteInfo": info})


async def delete_site(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    if arguments.get("confirm") is not True:
        return ToolResult.text(
            "Deletion Cancelled\n\n"
            "You must set confirm=true to delete a site. "
            "This prevents accidental deletions.",
            metadata={"success": False, "cancelled": True},
        )
    site_path = string_arg(arguments, "sitePath") or ""
    try:
        caller = context.caller(arguments)
        result = await _site_client(context, caller).delete_site(site_path)
    except AEMError as exc:
        return error_result("Failed to delete site", exc)
    return ToolResult.text(str(result["message"]), metadata=result)
