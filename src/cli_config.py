"""Runtime configuration: YAML file, environment and CLI overrides.

Applies sources in increasing precedence onto ``Constants``. Override
application never raises; bad values are logged and skipped.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Mapping, Optional

from constants import Channels, Constants, _load_yaml_config

logger = logging.getLogger(__name__)


def _channel(value: Any) -> str:
    return Channels(str(value)).value


def _backend(value: Any) -> str:
    name = str(value).lower()
    if name not in ("aiohttp", "requests"):
        raise ValueError(f"unknown backend {value!r}")
    return name


# config key -> (Constants attribute, coercion)
_CONFIG_KEYS: Dict[str, tuple] = {
    "home": ("HOME", lambda v: os.path.expanduser(str(v))),
    "registry_url": ("REGISTRY_URL", lambda v: str(v).rstrip("/")),
    "channel": ("CHANNEL", _channel),
    "default_alias": ("DEFAULT_ALIAS", str),
    "http_backend": ("HTTP_BACKEND", _backend),
    "request_timeout": ("REQUEST_TIMEOUT", float),
    "http_retry_max": ("HTTP_RETRY_MAX", int),
    "http_retry_base_delay": ("HTTP_RETRY_BASE_DELAY_SEC", float),
    "manifest_cache_ttl": ("MANIFEST_CACHE_TTL_SEC", float),
    "cache_retention_days": ("CACHE_RETENTION_DAYS", float),
}

_ENV_KEYS = {
    "PYSPM_HOME": "home",
    "PYSPM_REGISTRY_URL": "registry_url",
    "PYSPM_CHANNEL": "channel",
    "PYSPM_HTTP_BACKEND": "http_backend",
}

_ARG_KEYS = {
    "HOME": "home",
    "REGISTRY_URL": "registry_url",
    "CHANNEL": "channel",
    "HTTP_BACKEND": "http_backend",
}


def _apply(key: str, value: Any, source: str) -> None:
    target = _CONFIG_KEYS.get(key)
    if target is None:
        logger.warning("Unknown %s setting '%s' ignored", source, key)
        return
    attr, coerce = target
    try:
        setattr(Constants, attr, coerce(value))
    except (TypeError, ValueError) as exc:
        logger.warning("Invalid %s value for '%s': %s", source, key, exc)


def apply_config(cfg: Optional[Mapping[str, Any]]) -> None:
    """Apply a config mapping; accepts either top-level keys or a ``pyspm`` section."""
    if not cfg:
        return
    section = cfg.get("pyspm", cfg)
    if not isinstance(section, Mapping):
        logger.warning("Config section 'pyspm' is not a mapping; ignored")
        return
    for key, value in section.items():
        _apply(str(key), value, "config")


def apply_env_overrides(environ: Optional[Mapping[str, str]] = None) -> None:
    env = os.environ if environ is None else environ
    for var, key in _ENV_KEYS.items():
        value = env.get(var)
        if value:
            _apply(key, value, "environment")


def apply_cli_overrides(args: Any) -> None:
    """Apply CLI flags (highest precedence)."""
    for attr, key in _ARG_KEYS.items():
        value = getattr(args, attr, None)
        if value:
            _apply(key, value, "command-line")


def load_runtime_config(args: Any, loader: Callable[[Optional[str]], Dict[str, Any]] = _load_yaml_config) -> None:
    """Config file, then environment, then CLI flags."""
    apply_config(loader(getattr(args, "CONFIG", None)))
    apply_env_overrides()
    apply_cli_overrides(args)
