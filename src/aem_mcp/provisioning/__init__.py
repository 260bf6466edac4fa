"""Site, page, component and content-fragment provisioning."""
