"""Shared helpers with no AEM knowledge."""
