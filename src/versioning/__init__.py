"""Package references, manifests, alias resolution and self-update checks."""
