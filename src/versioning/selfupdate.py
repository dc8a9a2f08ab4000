"""Release check for pyspm itself.

The checker only reports and stages: it writes a small record describing
the release an external updater should install next time. Running code is
never replaced.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional

import semantic_version

from constants import Channels, Constants
from common.blob_store import BlobStore
from common.errors import PyspmError
from registry.client import RegistryClient
from .models import CheckFailed, PackageIdentifier, UpdateAvailable, UpdateStatus, UpToDate

logger = logging.getLogger(__name__)


def _is_newer(candidate: str, current: str) -> Optional[bool]:
    try:
        return semantic_version.Version.coerce(candidate) > semantic_version.Version.coerce(current)
    except ValueError:
        return None


class SelfUpdateChecker:
    """Compares the running version with the pinned channel's manifest entry."""

    def __init__(
        self,
        registry: RegistryClient,
        store: BlobStore,
        *,
        channel: Optional[str] = None,
        owner: Optional[str] = None,
        name: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.registry = registry
        self.store = store
        self.channel = Channels(channel or Constants.CHANNEL).value
        self.owner = owner or Constants.SELF_OWNER
        self.name = name or Constants.SELF_NAME
        self.clock = clock

    async def check_for_update(self, running_version: str) -> UpdateStatus:
        """Report whether the channel points at a different release.

        Never raises: failures are logged and returned as ``CheckFailed``.
        """
        try:
            manifest = await self.registry.fetch_manifest(self.owner, self.name)
        except PyspmError as exc:
            logger.warning("[spm] Error checking for updates: %s", exc)
            return CheckFailed(reason=str(exc))

        latest = manifest.lookup(self.channel)
        if not latest:
            reason = f"manifest for {self.owner}/{self.name} has no '{self.channel}' entry"
            logger.warning("[spm] Error checking for updates: %s", reason)
            return CheckFailed(reason=reason)
        if latest == running_version:
            return UpToDate(version=running_version)

        source_url = self.registry.module_url(PackageIdentifier(self.owner, self.name, latest))
        status = UpdateAvailable(
            current_version=running_version,
            latest_version=latest,
            channel=self.channel,
            source_url=source_url,
            is_newer=_is_newer(latest, running_version),
        )
        try:
            self.stage(status)
        except OSError as exc:
            logger.warning("[spm] Could not stage update to %s: %s", latest, exc)
            return CheckFailed(reason=str(exc))
        logger.info("[spm] New version available: %s. Run 'pyspm self-update' to update", latest)
        return status

    def stage(self, status: UpdateAvailable) -> None:
        """Write the record the external updater consumes."""
        record = {
            "version": status.latest_version,
            "channel": status.channel,
            "source_url": status.source_url,
            "staged_at": int(self.clock() * 1000),
        }
        self.store.write_text(Constants.UPDATE_RECORD_FILE, json.dumps(record, sort_keys=True))

    def read_staged_update(self) -> Optional[dict]:
        """Return the staged record, or None if nothing usable is staged."""
        try:
            data = json.loads(self.store.read_text(Constants.UPDATE_RECORD_FILE))
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    def clear_staged_update(self) -> None:
        self.store.delete(Constants.UPDATE_RECORD_FILE)
