"""Typed builder for Sling POST form payloads.

The Sling POST servlet creates or updates a node tree from form fields whose
names are relative property paths (``jcr:content/root/layout``). A
``NodePayload`` holds those fields as an ordered list of ``(path, value)``
pairs and serializes them deterministically, so node templates can be built
and inspected without an HTTP call.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from urllib.parse import urlencode

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

PropertyValue = str | bool | int | float | Iterable[str]


def _format_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class NodePayload:
    """Ordered ``(propertyPath, value)`` pairs rooted at one node."""

    def __init__(self, prefix: str = "", _pairs: list[tuple[str, str]] | None = None) -> None:
        self._prefix = prefix.strip("/")
        self._pairs: list[tuple[str, str]] = _pairs if _pairs is not None else []

    def _key(self, name: str) -> str:
        name = name.strip("/")
        if not name:
            raise ValueError("Property name must not be empty")
        return f"{self._prefix}/{name}" if self._prefix else name

    def set(self, name: str, value: PropertyValue | None) -> NodePayload:
        """Add a property. ``None`` is skipped; lists become repeated fields."""
        if value is None:
            return self
        key = self._key(name)
        if isinstance(value, (list, tuple)):
            for item in value:
                self._pairs.append((key, _format_scalar(item)))
        else:
            self._pairs.append((key, _format_scalar(value)))
        return self

    def update(self, properties: Mapping[str, PropertyValue | None]) -> NodePayload:
        for name, value in properties.items():
            self.set(name, value)
        return self

    def child(self, name: str, primary_type: str | None = None) -> NodePayload:
        """Return a builder for a descendant node sharing this payload."""
        node = NodePayload(self._key(name), self._pairs)
        if primary_type:
            node.set("jcr:primaryType", primary_type)
        return node

    def pairs(self) -> list[tuple[str, str]]:
        return list(self._pairs)

    def encode(self) -> str:
        return urlencode(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __repr__(self) -> str:
        return f"NodePayload(prefix={self._prefix!r}, fields={len(self._pairs)})"
