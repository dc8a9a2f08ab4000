"""Shared purge ledger: ``namespace -> key -> written-at (epoch ms)``.

One JSON document for every cache namespace. Each mutation reads the whole
document, changes it in memory and writes it back through the store's
atomic replace.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

from constants import Constants
from common.blob_store import BlobStore, join
from .names import is_valid_entry

logger = logging.getLogger(__name__)

LedgerData = Dict[str, Dict[str, int]]

DAY_MS = 24 * 60 * 60 * 1000


def _now_ms(clock: Callable[[], float]) -> int:
    return int(clock() * 1000)


class PurgeLedger:
    """Read-modify-write access to the ledger document."""

    def __init__(
        self,
        store: BlobStore,
        path: str = Constants.LEDGER_FILE,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.path = path
        self.clock = clock

    def ensure(self) -> None:
        """Create an empty ledger when none exists."""
        if not self.store.exists(self.path):
            self.save({})

    def load(self) -> LedgerData:
        """Return the ledger; a missing or unreadable document reads as empty."""
        try:
            raw = self.store.read_text(self.path)
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Purge ledger %s is corrupt; starting from an empty ledger", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Purge ledger %s is not an object; starting from an empty ledger", self.path)
            return {}
        return {ns: dict(entries) for ns, entries in data.items() if isinstance(entries, dict)}

    def save(self, data: LedgerData) -> None:
        self.store.write_text(self.path, json.dumps(data, sort_keys=True))

    def record(self, namespace: str, key: str, written_at: Optional[int] = None) -> None:
        """Set the written-at time of ``namespace/key`` (now by default)."""
        data = self.load()
        data.setdefault(namespace, {})[key] = written_at if written_at is not None else _now_ms(self.clock)
        self.save(data)

    def forget(self, namespace: str, key: str) -> None:
        """Drop the record for ``namespace/key`` if present."""
        data = self.load()
        entries = data.get(namespace)
        if entries is None or key not in entries:
            return
        del entries[key]
        if not entries:
            del data[namespace]
        self.save(data)

    def written_at(self, namespace: str, key: str) -> Optional[int]:
        return self.load().get(namespace, {}).get(key)

    def sweep(self, retention_days: Optional[float] = None) -> List[Tuple[str, str]]:
        """Delete every blob older than the retention window, across all namespaces.

        A namespace directory is removed once its last entry has been purged.

        Returns:
            The ``(namespace, key)`` pairs that were purged.
        """
        days = Constants.CACHE_RETENTION_DAYS if retention_days is None else retention_days
        retention_ms = days * DAY_MS
        now = _now_ms(self.clock)
        data = self.load()
        purged: List[Tuple[str, str]] = []
        changed = False

        for namespace in list(data):
            entries = data[namespace]
            purged_here = False
            for key in list(entries):
                if not is_valid_entry(namespace, key):
                    logger.warning("Dropping invalid ledger entry %r/%r", namespace, key)
                    del entries[key]
                    changed = True
                    continue
                written_at = entries[key]
                if not isinstance(written_at, (int, float)):
                    written_at = 0
                if now - written_at <= retention_ms:
                    continue
                path = join(namespace, key)
                try:
                    logger.info("Removing cache file: %s", path)
                    self.store.delete(path)
                except (OSError, ValueError) as exc:
                    logger.warning("Could not remove cache file %s: %s", path, exc)
                    continue
                del entries[key]
                purged.append((namespace, key))
                purged_here = changed = True

            if entries:
                continue
            if purged_here:
                try:
                    logger.info("Removing cache directory: %s", namespace)
                    self.store.delete(namespace)
                except (OSError, ValueError) as exc:
                    logger.warning("Could not remove cache directory %s: %s", namespace, exc)
            del data[namespace]
            changed = True

        if changed:
            self.save(data)
        return purged
