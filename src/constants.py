"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    INSTALL_ERROR = 4
    USAGE_ERROR = 5


class Channels(Enum):
    """Release channels a self-installation can be pinned to.

    Args:
        Enum (string): Manifest alias tracked by the channel.
    """

    STABLE = "latest"
    PRERELEASE = "dev-latest"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    VERSION = "0.1.0"
    HOME = os.path.join(os.path.expanduser("~"), ".pyspm")
    REGISTRY_URL = "https://raw.githubusercontent.com/demenik/spm/main"
    PACKAGES_PATH = "packages"
    MANIFEST_FILE = "spm.json"
    MODULE_SUFFIX = ".py"

    DEFAULT_ALIAS = Channels.STABLE.value
    CHANNEL = Channels.STABLE.value
    SELF_OWNER = "spm-team"
    SELF_NAME = "pyspm"

    # Store layout
    MODULES_DIR = "spm"
    LEDGER_FILE = "cache.json"
    UPDATE_RECORD_FILE = "spm-update.json"
    RESERVED_NAMESPACES = ("spm", "cache.json")
    CACHE_RETENTION_DAYS = 7

    HTTP_BACKEND = "aiohttp"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    MANIFEST_CACHE_TTL_SEC = 0  # 0 disables in-process manifest caching
    USER_AGENT = f"pyspm/{VERSION}"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    CONFIG_ENV = "PYSPM_CONFIG"
    CONFIG_FILENAMES = ("pyspm.yml", "pyspm.yaml")


def _candidate_config_paths() -> list:
    """Return config file locations in priority order."""
    paths = []
    explicit = os.environ.get(Constants.CONFIG_ENV)
    if explicit:
        paths.append(explicit)
    for name in Constants.CONFIG_FILENAMES:
        paths.append(os.path.join(os.getcwd(), name))
    config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(
        os.path.expanduser("~"), ".config"
    )
    for name in Constants.CONFIG_FILENAMES:
        paths.append(os.path.join(config_home, "pyspm", name))
    return paths


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the first available YAML config file.

    Args:
        path: Explicit file path; when omitted the default locations are searched.

    Returns:
        dict: Parsed mapping, or an empty dict when no usable file exists.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    candidates = [path] if path else _candidate_config_paths()
    for candidate in candidates:
        if not candidate or not os.path.isfile(candidate):
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", candidate, exc)
            continue
        if isinstance(data, dict):
            logger.debug("Loaded config from %s", candidate)
            return data
        logger.warning("Ignoring config %s: top-level value is not a mapping", candidate)
    return {}
