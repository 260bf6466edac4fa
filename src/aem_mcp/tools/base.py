"""Tool helpers."""

from __future__ import annotations

from aem_mcp.errors import InputValidationError
from aem_mcp.utils.jsonschema import validate_payload


def validate_or_raise(schema: dict[str, object], payload: dict[str, object]) -> None:
    errors = validate_payload(schema, payload)
    if errors:
        raise InputValidationError(
            "Input validation failed: " + "; ".join(errors),
            hint="Check the tool's inputSchema from tools/list.",
        )


def bullet_list(items: list[str], indent: str = "  ") -> str:
    return "\n".join(f"{indent}- {item}" for item in items)
