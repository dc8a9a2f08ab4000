"""Namespace-scoped blob cache with TTL reads and a shared purge ledger."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Optional

from constants import Constants
from common.blob_store import BlobStore, FileBlobStore, join
from .ledger import PurgeLedger
from .names import check_namespace, sanitize_key

logger = logging.getLogger(__name__)


class Cache:
    """Key/value cache stored under ``<root>/<namespace>/<key>``.

    Constructing a cache sweeps the shared ledger, so stale entries of every
    namespace are purged, including namespaces nobody constructs anymore.

    Reads are best-effort: any missing, expired, unreadable or undecodable
    entry yields ``None``.
    """

    def __init__(
        self,
        namespace: str,
        store: Optional[BlobStore] = None,
        *,
        clock: Callable[[], float] = time.time,
        retention_days: Optional[float] = None,
    ):
        self.namespace = check_namespace(namespace)
        self.store = store if store is not None else FileBlobStore(Constants.HOME)
        self.clock = clock
        self.retention_days = retention_days
        self.ledger = PurgeLedger(self.store, clock=clock)

        if not self.store.exists(self.namespace):
            self.store.make_dirs(self.namespace)
        self.ledger.ensure()
        self.purge()

    def __repr__(self) -> str:
        return f"Cache({self.namespace!r})"

    def path_for(self, key: str) -> str:
        return join(self.namespace, sanitize_key(key))

    def purge(self):
        """Run the retention sweep over the whole ledger."""
        return self.ledger.sweep(self.retention_days)

    def _prepare_write(self, key: str) -> str:
        path = self.path_for(key)
        if not self.store.exists(self.namespace):
            self.store.make_dirs(self.namespace)
        logger.info("Caching to %s...", path)
        return path

    def write(self, key: str, value: Any) -> None:
        """Store ``value``; strings verbatim, anything else as JSON."""
        path = self._prepare_write(key)
        payload = value if isinstance(value, str) else json.dumps(value)
        self.store.write_text(path, payload)
        self.ledger.record(self.namespace, sanitize_key(key))

    def write_binary(self, key: str, data: bytes) -> None:
        """Store a binary artifact such as an image."""
        path = self._prepare_write(key)
        self.store.write_bytes(path, bytes(data))
        self.ledger.record(self.namespace, sanitize_key(key))

    def read(self, key: str, ttl_minutes: Optional[float] = None) -> Any:
        """Return the cached value, or None.

        When ``ttl_minutes`` is given and the blob is older than that (by the
        store's creation time), the blob is deleted and None is returned.
        JSON payloads are decoded; anything else is returned as text.
        """
        try:
            path = self.path_for(key)
            if ttl_minutes:
                age = self.clock() - self.store.created_at(path)
                if age > ttl_minutes * 60:
                    self.store.delete(path)
                    self.ledger.forget(self.namespace, sanitize_key(key))
                    return None
            raw = self.store.read_text(path)
        except (OSError, ValueError):
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return raw

    def read_binary(self, key: str) -> Optional[bytes]:
        """Return a binary artifact, or None. No TTL check."""
        try:
            return self.store.read_bytes(self.path_for(key))
        except (OSError, ValueError):
            return None

    def remove(self, key: str) -> None:
        """Delete the entry and its ledger record."""
        clean = sanitize_key(key)
        self.store.delete(join(self.namespace, clean))
        self.ledger.forget(self.namespace, clean)
