"""DAM asset search, rename, metadata and upload."""
