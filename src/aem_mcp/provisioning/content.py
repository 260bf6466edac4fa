"""Components, content fragments and workflow starts."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from aem_mcp.errors import InputValidationError, ProvisioningError, RemoteCallError
from aem_mcp.execution.aem_client import AEMCaller
from aem_mcp.execution.form import NodePayload
from aem_mcp.logging_utils import null_logger

DIALOG_RESOURCE_TYPE = "cq/gui/components/authoring/dialog"
FIELD_RESOURCE_TYPE_PREFIX = "granite/ui/components/coral/foundation/form/"
WORKFLOW_INSTANCES_PATH = "/etc/workflow/instances"

FIELD_TYPES = ("textfield", "textarea", "pathfield", "checkbox", "select", "multifield")

_WHITESPACE = re.compile(r"\s+")
_NON_FRAGMENT_CHARS = re.compile(r"[^a-z0-9-]")


@dataclass
class ComponentProperty:
    name: str
    type: str
    label: str
    required: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> ComponentProperty:
        return cls(
            name=str(data.get("name", "")),
            type=str(data.get("type", "textfield")),
            label=str(data.get("label", "")),
            required=bool(data.get("required", False)),
        )


@dataclass
class ComponentConfig:
    component_name: str
    component_title: str
    component_path: str
    component_group: str = "Custom Components"
    properties: Sequence[ComponentProperty] = field(default_factory=list)


@dataclass
class ContentFragmentConfig:
    fragment_title: str
    fragment_path: str
    model_path: str
    fields: Mapping[str, object] = field(default_factory=dict)


@dataclass
class WorkflowConfig:
    workflow_model: str
    payload_path: str
    workflow_title: str | None = None
    workflow_data: Mapping[str, object] = field(default_factory=dict)


def component_node_name(component_name: str) -> str:
    return _WHITESPACE.sub("-", component_name.lower())


def fragment_node_name(fragment_title: str) -> str:
    return _NON_FRAGMENT_CHARS.sub("", _WHITESPACE.sub("-", fragment_title.lower()))


def generate_htl_template(component_name: str, properties: Sequence[ComponentProperty]) -> str:
    lines = [
        f'<div class="{component_name}" data-sly-use.model="{component_name}.js">',
        "    <h2>${properties.jcr:title}</h2>",
    ]
    if properties:
        lines.append("    <!-- Component Properties -->")
        for prop in properties:
            lines.append(f'    <div class="{prop.name}">${{properties.{prop.name}}}</div>')
    lines.append("</div>")
    return "\n".join(lines)


def build_dialog_field_payload(prop: ComponentProperty) -> NodePayload:
    payload = NodePayload()
    payload.set("jcr:primaryType", "nt:unstructured")
    payload.set("sling:resourceType", f"{FIELD_RESOURCE_TYPE_PREFIX}{prop.type}")
    payload.set("fieldLabel", prop.label)
    payload.set("name", f"./{prop.name}")
    if prop.required:
        payload.set("required", True)
    return payload


class ContentClient:
    """Scaffold components and fragments, start workflows."""

    def __init__(self, caller: AEMCaller, logger: logging.Logger | None = None) -> None:
        self._caller = caller
        self._logger = logger or null_logger()

    async def create_component(self, config: ComponentConfig) -> dict[str, object]:
        if not config.component_name or not config.component_title or not config.component_path:
            raise InputValidationError(
                "componentName, componentTitle, and componentPath are required"
            )
        for prop in config.properties:
            if prop.type not in FIELD_TYPES:
                raise InputValidationError(
                    f"Unsupported property type '{prop.type}' for '{prop.name}'"
                )

        node_name = component_node_name(config.component_name)
        full_path = f"{config.component_path.rstrip('/')}/{node_name}"

        component = NodePayload().update(
            {
                "jcr:primaryType": "cq:Component",
                "jcr:title": config.component_title,
                "componentGroup": config.component_group,
                "jcr:description": f"{config.component_title} component",
            }
        )
        try:
            await self._caller.post_form(full_path, component)
            if config.properties:
                await self._create_dialog(full_path, config.properties)
            await self.create_file(
                f"{full_path}/{node_name}.html",
                generate_htl_template(config.component_name, config.properties),
            )
        except RemoteCallError as exc:
            raise ProvisioningError(
                f"Failed to create component: {exc.message}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

        self._logger.info("Created component %s", full_path)
        return {
            "success": True,
            "componentName": node_name,
            "componentTitle": config.component_title,
            "fullPath": full_path,
            "message": "Component created successfully with dialog and HTL template",
        }

    async def _create_dialog(
        self,
        component_path: str,
        properties: Sequence[ComponentProperty],
    ) -> None:
        dialog_path = f"{component_path}/cq:dialog"
        await self._caller.post_form(
            dialog_path,
            NodePayload()
            .set("jcr:primaryType", "nt:unstructured")
            .set("sling:resourceType", DIALOG_RESOURCE_TYPE),
        )
        items_path = f"{dialog_path}/content/items"
        await self._caller.post_form(
            items_path, NodePayload().set("jcr:primaryType", "nt:unstructured")
        )
        for index, prop in enumerate(properties):
            await self._caller.post_form(
                f"{items_path}/field{index}", build_dialog_field_payload(prop)
            )

    async def create_file(self, file_path: str, content: str, mime_type: str = "text/html") -> None:
        payload = NodePayload().set("jcr:primaryType", "nt:file")
        resource = payload.child("jcr:content", "nt:resource")
        resource.set("jcr:data", content)
        resource.set("jcr:mimeType", mime_type)
        await self._caller.post_form(file_path, payload)

    async def create_content_fragment(self, config: ContentFragmentConfig) -> dict[str, object]:
        if not config.fragment_title or not config.fragment_path or not config.model_path:
            raise InputValidationError("fragmentTitle, fragmentPath, and modelPath are required")

        full_path = f"{config.fragment_path.rstrip('/')}/{fragment_node_name(config.fragment_title)}"
        payload = NodePayload().set("jcr:primaryType", "dam:Asset")
        content = payload.child("jcr:content")
        content.set("contentFragment", True)
        content.set("jcr:title", config.fragment_title)
        content.set("cq:model", config.model_path)
        data = content.child("data")
        data.set("cq:model", config.model_path)
        master = data.child("master")
        for key, value in config.fields.items():
            master.set(key, str(value))

        try:
            await self._caller.post_form(full_path, payload)
        except RemoteCallError as exc:
            raise ProvisioningError(
                f"Failed to create content fragment: {exc.message}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

        self._logger.info("Created content fragment %s", full_path)
        return {
            "success": True,
            "fragmentTitle": config.fragment_title,
            "fullPath": full_path,
            "message": "Content Fragment created successfully",
        }

    async def start_workflow(self, config: WorkflowConfig) -> dict[str, object]:
        if not config.workflow_model or not config.payload_path:
            raise InputValidationError("workflowModel and payloadPath are required")

        payload = NodePayload().update(
            {
                "model": config.workflow_model,
                "payloadType": "JCR_PATH",
                "payload": config.payload_path,
                "workflowTitle": config.workflow_title or None,
            }
        )
        for key, value in config.workflow_data.items():
            payload.set(f"workflowData[{key}]", str(value))

        try:
            response = await self._caller.post_form(WORKFLOW_INSTANCES_PATH, payload)
        except RemoteCallError as exc:
            raise ProvisioningError(
                f"Failed to start workflow: {exc.message}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

        location = response.headers.get("location", "")
        workflow_id = location.rstrip("/").rsplit("/", 1)[-1] if location else "unknown"
        self._logger.info("Started workflow %s on %s", workflow_id, config.payload_path)
        return {
            "success": True,
            "workflowId": workflow_id or "unknown",
            "status": "RUNNING",
            "message": "Workflow started successfully",
        }
