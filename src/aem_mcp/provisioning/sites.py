"""Site and page provisioning against the Sling POST servlet.

A site is a ``cq:Page`` directly under a parent path (``/content`` by
default); its pages are ``cq:Page`` children carrying a minimal responsive
grid so they open in the page editor. The repository is the only source of
truth: nothing here remembers what it created.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from aem_mcp.errors import (
    AEMError,
    ConfigurationError,
    NotFoundError,
    ProvisioningError,
    RemoteCallError,
    SiteConflictError,
)
from aem_mcp.execution.aem_client import AEMCaller
from aem_mcp.execution.form import NodePayload
from aem_mcp.logging_utils import null_logger

DEFAULT_PARENT_PATH = "/content"
DEFAULT_PAGES = ("main", "about", "contact")
DEFAULT_SETTLE_DELAY_SECONDS = 0.5

PAGE_RESOURCE_TYPE = "core/wcm/components/page/v3/page"
CONTAINER_RESOURCE_TYPE = "core/wcm/components/container/v1/container"
TITLE_RESOURCE_TYPE = "core/wcm/components/title/v3/title"
TEASER_RESOURCE_TYPE = "core/wcm/components/teaser/v2/teaser"

TEMPLATE_PATHS = {
    "standard": "/conf/site-templates/settings/wcm/templates/standard-template",
    "basic": "/conf/site-templates/settings/wcm/templates/basic-template",
}
DEFAULT_TEMPLATE_PATH = TEMPLATE_PATHS["standard"]
DEFAULT_PAGE_TEMPLATE_PATH = "/conf/site-templates/settings/wcm/templates/page-template"

QUICK_SITE_TEMPLATES: tuple[dict[str, str], ...] = (
    {
        "id": "aem-site-template-standard",
        "name": "Standard Site Template",
        "description": "The standard AEM Quick Site Creation template with modern styling",
        "path": TEMPLATE_PATHS["standard"],
    },
    {
        "id": "aem-site-template-basic",
        "name": "Basic Site Template",
        "description": "A basic template for simple sites",
        "path": TEMPLATE_PATHS["basic"],
    },
)

# Error vocabulary of Oak/Jackrabbit optimistic-concurrency failures.
CONFLICT_MARKERS = (
    "oakstate0001",
    "unresolved conflicts",
    "conflict",
    "invaliditemstateexception",
)

_WHITESPACE = re.compile(r"\s+")
_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9-]")

Sleep = Callable[[float], Awaitable[None]]


def sanitize_name(name: str) -> str:
    """Map a display name onto ``[a-z0-9-]``; idempotent."""
    lowered = _WHITESPACE.sub("-", name.lower())
    return _INVALID_NAME_CHARS.sub("-", lowered)


def derive_site_name(site_title: str) -> str:
    return _WHITESPACE.sub("-", site_title.lower())


def capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def resolve_template_path(template_type: str | None) -> str:
    return TEMPLATE_PATHS.get(template_type or "standard", DEFAULT_TEMPLATE_PATH)


def is_conflict_error(error: BaseException) -> bool:
    """Judge whether a failed write looks like a repository write conflict.

    Only used to suggest the overwrite path to the caller.
    """
    status = getattr(error, "status_code", None)
    if status is None:
        return False
    if status in (409, 500):
        return True
    body = str(getattr(error, "body", "") or "").lower()
    message = str(error).lower()
    return any(marker in body or marker in message for marker in CONFLICT_MARKERS)


def _looks_like_existing_path(error: RemoteCallError) -> bool:
    if error.status_code == 409:
        return True
    return "already exists" in error.body.lower() or "already exists" in error.message.lower()


@dataclass
class SiteConfig:
    site_title: str | None
    site_name: str | None = None
    template_path: str = DEFAULT_TEMPLATE_PATH
    parent_path: str = DEFAULT_PARENT_PATH
    language: str = "en"
    country: str = "US"

    def resolved_name(self) -> str:
        if not self.site_title:
            raise ConfigurationError("siteTitle is required")
        return sanitize_name(self.site_name or derive_site_name(self.site_title))

    def site_path(self) -> str:
        return f"{self.parent_path.rstrip('/')}/{self.resolved_name()}"


@dataclass
class MicrositeConfig(SiteConfig):
    pages: tuple[str, ...] = field(default=DEFAULT_PAGES)


@dataclass
class PageConfig:
    site_path: str
    page_name: str
    page_title: str
    template_path: str = DEFAULT_PAGE_TEMPLATE_PATH

    @property
    def page_path(self) -> str:
        return f"{self.site_path.rstrip('/')}/{self.page_name}"


def build_site_payload(config: SiteConfig) -> NodePayload:
    payload = NodePayload().set("jcr:primaryType", "cq:Page")
    content = payload.child("jcr:content", "cq:PageContent")
    content.set("jcr:title", config.site_title)
    content.set("cq:template", config.template_path)
    content.set("sling:resourceType", PAGE_RESOURCE_TYPE)
    content.set("language", config.language)
    content.set("country", config.country)
    return payload


def build_page_payload(config: PageConfig) -> NodePayload:
    payload = NodePayload().set("jcr:primaryType", "cq:Page")
    content = payload.child("jcr:content", "cq:PageContent")
    content.set("jcr:title", config.page_title)
    content.set("cq:template", config.template_path)
    content.set("sling:resourceType", PAGE_RESOURCE_TYPE)

    root = content.child("root", "nt:unstructured")
    root.set("layout", "responsiveGrid")
    root.set("sling:resourceType", CONTAINER_RESOURCE_TYPE)

    container = root.child("container", "nt:unstructured")
    container.set("sling:resourceType", CONTAINER_RESOURCE_TYPE)

    title = container.child("title", "nt:unstructured")
    title.set("sling:resourceType", TITLE_RESOURCE_TYPE)

    teaser = container.child("teaser", "nt:unstructured")
    teaser.update(
        {
            "sling:resourceType": TEASER_RESOURCE_TYPE,
            "actionsEnabled": True,
            "altValueFromDAM": False,
            "descriptionFromPage": False,
            "disableLazyLoading": True,
            "fileReference": "/content/dam/site-templates/Image@2x.png",
            "imageFromPageImage": False,
            "isDecorative": False,
            "jcr:description": (
                "<p>Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do eiusmod "
                "tempor incididunt ut labore et dolore magna aliqua.</p>"
            ),
            "jcr:title": "This is a Teaser",
            "pretitle": "Teaser",
            "textIsRich": True,
        }
    )
    return payload


class SiteClient:
    """Create, inspect and delete sites and their pages."""

    def __init__(
        self,
        caller: AEMCaller,
        logger: logging.Logger | None = None,
        *,
        settle_delay_seconds: float = DEFAULT_SETTLE_DELAY_SECONDS,
        sleep: Sleep | None = None,
    ) -> None:
        self._caller = caller
        self._logger = logger or null_logger()
        self._settle_delay_seconds = settle_delay_seconds
        self._sleep = sleep or asyncio.sleep

    @property
    def caller(self) -> AEMCaller:
        return self._caller

    async def create_site(self, config: SiteConfig) -> dict[str, object]:
        site_name = config.resolved_name()
        site_path = config.site_path()
        try:
            await self._caller.post_form(site_path, build_site_payload(config))
        except RemoteCallError as exc:
            if _looks_like_existing_path(exc):
                raise SiteConflictError(
                    f"Failed to create site: Site already exists at {site_path}",
                    status_code=exc.status_code,
                    body=exc.body,
                    hint="Use overwrite=true to recreate it, or delete the site first.",
                ) from exc
            raise ProvisioningError(
                f"Failed to create site: {exc.message}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

        self._logger.info("Created site %s", site_path)
        return {
            "success": True,
            "sitePath": site_path,
            "siteName": site_name,
            "siteTitle": config.site_title,
            "authorUrl": self._caller.editor_url(site_path),
            "message": "Site created successfully",
        }

    async def create_page(self, config: PageConfig) -> dict[str, object]:
        page_path = config.page_path
        try:
            await self._caller.post_form(page_path, build_page_payload(config))
        except RemoteCallError as exc:
            raise ProvisioningError(
                f"Failed to create page: {exc.message}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

        self._logger.info("Created page %s", page_path)
        return {
            "pagePath": page_path,
            "pageName": config.page_name,
            "pageTitle": config.page_title,
            "url": self._caller.editor_url(page_path),
        }

    async def create_microsite(self, config: MicrositeConfig) -> dict[str, object]:
        """Create the site root, then each page in order.

        A failing page is logged and skipped; earlier pages and the site stay.
        """
        site = await self.create_site(config)
        site_path = str(site["sitePath"])

        created_pages: list[dict[str, object]] = []
        for page_name in config.pages:
            try:
                page = await self.create_page(
                    PageConfig(
                        site_path=site_path,
                        page_name=page_name,
                        page_title=capitalize(page_name),
                    )
                )
            except AEMError as exc:
                self._logger.warning("Could not create page %s: %s", page_name, exc)
                continue
            created_pages.append(page)

        return {
            **site,
            "pages": created_pages,
            "requestedPages": list(config.pages),
            "message": f"Microsite created with {len(created_pages)} pages",
        }

    async def provision_microsite(
        self,
        config: MicrositeConfig,
        *,
        overwrite: bool = False,
    ) -> dict[str, object]:
        """Create a microsite, first clearing its path when ``overwrite`` is set."""
        if overwrite:
            site_path = config.site_path()
            if await self.clear_path(site_path):
                await self._sleep(self._settle_delay_seconds)
        return await self.create_microsite(config)

    async def clear_path(self, path: str) -> bool:
        """Delete whatever node sits at *path*.

        Tries ``delete_site`` once, then a single low-level DELETE that treats
        404 as nothing to delete. Returns True when the path is known to be
        clear.
        """
        try:
            await self.delete_site(path)
            self._logger.info("Deleted existing site at %s", path)
            return True
        except AEMError as delete_error:
            self._logger.debug("deleteSite failed for %s: %s", path, delete_error)

        try:
            response = await self._caller.delete(path, accept=lambda status: status < 500)
        except RemoteCallError as exc:
            self._logger.warning("Could not delete existing node at %s: %s", path, exc)
            return False

        if response.status_code in (200, 204):
            self._logger.info("Deleted conflicting node at %s via direct DELETE", path)
            return True
        if response.status_code == 404:
            self._logger.info("No node found at %s, proceeding with creation", path)
            return True
        self._logger.warning("DELETE returned status %s for %s", response.status_code, path)
        return False

    async def delete_site(self, site_path: str) -> dict[str, object]:
        try:
            await self._caller.delete(site_path)
        except RemoteCallError as exc:
            if exc.status_code == 404:
                raise NotFoundError(f"Failed to delete site: {exc.message}") from exc
            raise ProvisioningError(
                f"Failed to delete site: {exc.message}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc
        return {"success": True, "message": f"Site deleted: {site_path}"}

    async def get_site_info(self, site_path: str) -> dict[str, object]:
        try:
            data = await self._caller.get_json(f"{site_path}.json")
        except RemoteCallError as exc:
            if exc.status_code == 404:
                raise NotFoundError(f"Failed to get site info: {exc.message}") from exc
            raise ProvisioningError(f"Failed to get site info: {exc.message}") from exc
        return data if isinstance(data, dict) else {}

    async def list_sites(self, parent_path: str = DEFAULT_PARENT_PATH) -> list[dict[str, str]]:
        parent_path = parent_path.rstrip("/")
        try:
            data = await self._caller.get_json(f"{parent_path}.1.json")
        except RemoteCallError as exc:
            raise ProvisioningError(f"Failed to list sites: {exc.message}") from exc

        sites: list[dict[str, str]] = []
        if not isinstance(data, dict):
            return sites
        for key, value in data.items():
            if not isinstance(value, dict) or value.get("jcr:primaryType") != "cq:Page":
                continue
            content = value.get("jcr:content")
            title = content.get("jcr:title") if isinstance(content, dict) else None
            sites.append(
                {
                    "name": key,
                    "path": f"{parent_path}/{key}",
                    "title": title if isinstance(title, str) and title else key,
                }
            )
        return sites

    async def list_site_templates(self) -> object:
        try:
            return await self._caller.get_json("/libs/wcm/core/content/sites/templates.json")
        except RemoteCallError as exc:
            raise ProvisioningError(f"Failed to list site templates: {exc.message}") from exc

    @staticmethod
    def get_quick_site_templates() -> list[dict[str, str]]:
        return [dict(template) for template in QUICK_SITE_TEMPLATES]
