"""Static MCP resources and prompts."""

from __future__ import annotations

from dataclasses import dataclass

from aem_mcp.errors import NotFoundError
from aem_mcp.mcp_runtime import ToolSpec
from aem_mcp.provisioning.sites import DEFAULT_PAGES, SiteClient
from aem_mcp.utils.serialization import dumps

TEMPLATES_URI = "aem://templates"
TOOLS_DOC_URI = "docs://tools"
CREATE_MICROSITE_PROMPT = "create-microsite"


@dataclass(frozen=True)
class ResourceSpec:
    uri: str
    name: str
    description: str
    mime_type: str

    def describe(self) -> dict[str, object]:
        return {
            "uri": self.uri,
            "name": self.name,
            "description": self.description,
            "mimeType": self.mime_type,
        }


RESOURCES = (
    ResourceSpec(
        uri=TEMPLATES_URI,
        name="Site templates",
        description="Quick Site Creation templates accepted by aem-create-microsite",
        mime_type="application/json",
    ),
    ResourceSpec(
        uri=TOOLS_DOC_URI,
        name="Tool overview",
        description="Markdown summary of every available tool",
        mime_type="text/markdown",
    ),
)


def list_resources() -> list[dict[str, object]]:
    return [resource.describe() for resource in RESOURCES]


def _tools_markdown(tools: list[ToolSpec]) -> str:
    lines = ["# AEM tools", ""]
    for tool in tools:
        raw_required = tool.input_schema.get("required", [])
        required = raw_required if isinstance(raw_required, list) else []
        lines.append(f"## {tool.name}")
        lines.append("")
        lines.append(tool.description)
        if required:
            lines.append("")
            lines.append(f"Required: {', '.join(str(name) for name in required)}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def read_resource(uri: str, tools: list[ToolSpec]) -> dict[str, object]:
    """Return the ``resources/read`` result for *uri*."""
    if uri == TEMPLATES_URI:
        text = dumps(SiteClient.get_quick_site_templates(), indent=2)
        mime_type = "application/json"
    elif uri == TOOLS_DOC_URI:
        text = _tools_markdown(tools)
        mime_type = "text/markdown"
    else:
        raise NotFoundError(f"Unknown resource: {uri}")
    return {"contents": [{"uri": uri, "mimeType": mime_type, "text": text}]}


def list_prompts() -> list[dict[str, object]]:
    return [
        {
            "name": CREATE_MICROSITE_PROMPT,
            "description": "Plan and create a microsite with its initial pages",
            "arguments": [
                {"name": "siteTitle", "description": "Display title", "required": True},
                {
                    "name": "pages",
                    "description": "Comma-separated page names",
                    "required": False,
                },
            ],
        }
    ]


def get_prompt(name: str, arguments: dict[str, object]) -> dict[str, object]:
    if name != CREATE_MICROSITE_PROMPT:
        raise NotFoundError(f"Unknown prompt: {name}")
    site_title = str(arguments.get("siteTitle") or "My Site")
    raw_pages = arguments.get("pages")
    if isinstance(raw_pages, str) and raw_pages.strip():
        pages = [page.strip() for page in raw_pages.split(",") if page.strip()]
    else:
        pages = list(DEFAULT_PAGES)
    text = (
        f'Create a microsite titled "{site_title}" with the pages {", ".join(pages)}. '
        "First call aem-list-sites to check whether it already exists; if it does, ask "
        "before calling aem-create-microsite with overwrite=true."
    )
    return {
        "description": f"Create the {site_title} microsite",
        "messages": [{"role": "user", "content": {"type": "text", "text": text}}],
    }
