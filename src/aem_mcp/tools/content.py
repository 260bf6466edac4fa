"""Component, content fragment and workflow tools."""

from __future__ import annotations

from aem_mcp.errors import AEMError
from aem_mcp.mcp_runtime import ToolResult
from aem_mcp.provisioning.content import (
    ComponentConfig,
    ComponentProperty,
    ContentClient,
    ContentFragmentConfig,
    WorkflowConfig,
)
from aem_mcp.tools._helpers import ToolContext, error_result, mapping_arg, string_arg


async def create_component(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    raw_properties = arguments.get("properties")
    properties = [
        ComponentProperty.from_mapping(item)
        for item in (raw_properties if isinstance(raw_properties, list) else [])
        if isinstance(item, dict)
    ]
    config = ComponentConfig(
        component_name=string_arg(arguments, "componentName") or "",
        component_title=string_arg(arguments, "componentTitle") or "",
        component_path=string_arg(arguments, "componentPath") or "",
        component_group=string_arg(arguments, "componentGroup", "Custom Components")
        or "Custom Components",
        properties=properties,
    )
    try:
        caller = context.caller(arguments)
        result = await ContentClient(caller, context.logger).create_component(config)
    except AEMError as exc:
        return error_result(
            "Failed to create component",
            exc,
            (
                "Invalid credentials",
                "Component path doesn't exist",
                "Insufficient permissions",
                "Component already exists",
            ),
        )

    lines = [
        "Component Created Successfully!",
        "",
        f"Component Name: {result['componentName']}",
        f"Component Title: {result['componentTitle']}",
        f"Path: {result['fullPath']}",
        f"Group: {config.component_group}",
    ]
    if properties:
        lines.append("")
        lines.append(f"Dialog Properties ({len(properties)}):")
        for prop in properties:
            marker = " *" if prop.required else ""
            lines.append(f"  - {prop.label} ({prop.name}): {prop.type}{marker}")
    lines.extend(["", str(result["message"])])
    return ToolResult.text(
        "\n".join(lines),
        metadata={
            "success": True,
            "componentPath": result["fullPath"],
            "componentName": result["componentName"],
        },
    )


async def create_content_fragment(
    context: ToolContext, arguments: dict[str, object]
) -> ToolResult:
    config = ContentFragmentConfig(
        fragment_title=string_arg(arguments, "fragmentTitle") or "",
        fragment_path=string_arg(arguments, "fragmentPath") or "",
        model_path=string_arg(arguments, "modelPath") or "",
        fields=mapping_arg(arguments, "fields"),
    )
    try:
        caller = context.caller(arguments)
        result = await ContentClient(caller, context.logger).create_content_fragment(config)
    except AEMError as exc:
        return error_result(
            "Failed to create content fragment",
            exc,
            (
                "Invalid credentials",
                "Content Fragment Model doesn't exist",
                "Invalid fragment path",
                "Insufficient permissions",
                "Invalid field values",
            ),
        )

    lines = [
        "Content Fragment Created Successfully!",
        "",
        f"Title: {result['fragmentTitle']}",
        f"Path: {result['fullPath']}",
        f"Model: {config.model_path}",
    ]
    if config.fields:
        lines.append("")
        lines.append(f"Fields ({len(config.fields)}):")
        lines.extend(f"  - {key}: {value}" for key, value in config.fields.items())
    lines.extend(["", str(result["message"])])
    return ToolResult.text(
        "\n".join(lines),
        metadata={"success": True, "fragmentPath": result["fullPath"]},
    )


async def start_workflow(context: ToolContext, arguments: dict[str, object]) -> ToolResult:
    payload_path = string_arg(arguments, "payloadPath") or ""
    workflow_title = string_arg(arguments, "workflowTitle")
    config = WorkflowConfig(
        workflow_model=string_arg(arguments, "workflowModel") or "",
        payload_path=payload_path,
        workflow_title=workflow_title or f"Workflow for {payload_path}",
        workflow_data=mapping_arg(arguments, "workflowData"),
    )
    try:
        caller = context.caller(arguments)
        result = await ContentClient(caller, context.logger).start_workflow(config)
    except AEMError as exc:
        return error_result(
            "Failed to start workflow",
            exc,
            (
                "Invalid credentials",
                "Workflow model doesn't exist",
                "Payload path is invalid",
                "Insufficient permissions",
                "Workflow model is disabled",
            ),
        )

    lines = [
        "Workflow Started Successfully!",
        "",
        f"Workflow ID: {result['workflowId']}",
        f"Model: {config.workflow_model}",
        f"Payload: {payload_path}",
    ]
    if workflow_title:
        lines.append(f"Title: {workflow_title}")
    lines.append(f"Status: {result['status']}")
    if config.workflow_data:
        lines.append("")
        lines.append(f"Workflow Data ({len(config.workflow_data)}):")
        lines.extend(f"  - {key}: {value}" for key, value in config.workflow_data.items())
    lines.extend(["", str(result["message"])])
    return ToolResult.text(
        "\n".join(lines),
        metadata={
            "success": True,
            "workflowId": result["workflowId"],
            "payloadPath": payload_path,
        },
    )
