"""JSON Schema validation wrapper."""

from __future__ import annotations

from jsonschema import Draft202012Validator


def validate_payload(schema: dict[str, object], payload: dict[str, object]) -> list[str]:
    """Validate *payload* against *schema* and return error messages.

    Messages for nested fields are prefixed with their dotted path, so
    ``{"pages": [1]}`` reports ``pages.0: 1 is not of type 'string'``.
    """
    validator = Draft202012Validator(schema)
    messages: list[str] = []
    errors = sorted(validator.iter_errors(payload), key=lambda err: [str(part) for part in err.path])
    for error in errors:
        path = ".".join(str(part) for part in error.absolute_path)
        messages.append(f"{path}: {error.message}" if path else error.message)
    return messages
