"""Validation of cache namespace and key names."""

from __future__ import annotations

from constants import Constants
from common.errors import ReservedNamespace


def sanitize_key(key: str) -> str:
    """Make ``key`` a single path component by replacing separators with ``-``."""
    if not isinstance(key, str) or not key:
        raise ValueError("cache key must be a non-empty string")
    clean = key.replace("/", "-").replace("\\", "-")
    if clean in (".", ".."):
        raise ValueError(f"invalid cache key: {key!r}")
    return clean


def check_namespace(namespace: str) -> str:
    """Validate a namespace name.

    Raises:
        ReservedNamespace: if it starts with an internal storage name.
        ValueError: if it is empty or not a single path component.
    """
    if not isinstance(namespace, str) or not namespace.strip():
        raise ValueError("cache namespace must be a non-empty string")
    lowered = namespace.lower()
    if any(lowered.startswith(reserved) for reserved in Constants.RESERVED_NAMESPACES):
        raise ReservedNamespace(namespace)
    if "/" in namespace or "\\" in namespace or namespace in (".", ".."):
        raise ValueError(f"invalid cache namespace: {namespace!r}")
    return namespace


def is_valid_entry(namespace: str, key: str) -> bool:
    """True when ``namespace/key`` names a blob a cache could have written."""
    try:
        check_namespace(namespace)
        return sanitize_key(key) == key
    except ValueError:
        return False
