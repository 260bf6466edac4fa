"""Outbound HTTP access to the AEM repository."""
