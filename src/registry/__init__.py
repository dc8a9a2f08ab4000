"""Registry access for manifests and module sources."""
