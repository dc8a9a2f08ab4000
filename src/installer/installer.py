"""Fetch-or-load of module sources into the local store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List

from constants import Constants
from common.blob_store import BlobStore, join
from common.errors import FetchError, InstallFailed, MalformedReference
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from registry.client import RegistryClient
from versioning.models import PackageIdentifier
from versioning.parser import decode_key, encode_key, format_reference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleRecord:
    """Installed source for one concrete package version."""
    identifier: PackageIdentifier
    path: str
    source: str


class ModuleInstaller:
    """Installs each concrete version at most once and serves it from the store.

    Concurrent installs of the same identifier are serialized by a per-key
    lock; the second caller finds the record written by the first.
    """

    def __init__(self, store: BlobStore, registry: RegistryClient, modules_dir: str = Constants.MODULES_DIR):
        self.store = store
        self.registry = registry
        self.modules_dir = modules_dir
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    def record_path(self, identifier: PackageIdentifier) -> str:
        return join(self.modules_dir, encode_key(identifier) + Constants.MODULE_SUFFIX)

    def load(self, identifier: PackageIdentifier) -> ModuleRecord:
        """Read an installed record.

        Raises:
            FileNotFoundError: when the identifier is not installed.
        """
        path = self.record_path(identifier)
        return ModuleRecord(identifier=identifier, path=path, source=self.store.read_text(path))

    def is_installed(self, identifier: PackageIdentifier) -> bool:
        return self.store.exists(self.record_path(identifier))

    async def ensure_installed(self, identifier: PackageIdentifier) -> ModuleRecord:
        """Return the installed record, downloading the source on first use.

        ``identifier.version`` must already be concrete.

        Raises:
            InstallFailed: when download or persistence fails, or the record
                cannot be read back after writing.
        """
        reference = format_reference(identifier)
        try:
            return self.load(identifier)
        except FileNotFoundError:
            pass
        except (OSError, UnicodeDecodeError) as exc:
            raise InstallFailed(f"installed source is unreadable: {exc}", reference=reference) from exc

        key = encode_key(identifier)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                try:
                    return self.load(identifier)
                except FileNotFoundError:
                    logger.info("[spm] %s missing. Installing...", reference)
                except (OSError, UnicodeDecodeError) as exc:
                    raise InstallFailed(f"installed source is unreadable: {exc}", reference=reference) from exc
                await self._download(identifier, reference)
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

        try:
            return self.load(identifier)
        except (OSError, UnicodeDecodeError) as exc:
            raise InstallFailed(f"installed source could not be read back: {exc}", reference=reference) from exc

    async def _download(self, identifier: PackageIdentifier, reference: str) -> None:
        url = self.registry.module_url(identifier)
        with Timer() as t:
            try:
                source = await self.registry.fetch_source(identifier)
            except FetchError as exc:
                raise InstallFailed(f"download failed: {exc.detail}", reference=reference) from exc
            try:
                self.store.make_dirs(self.modules_dir)
                self.store.write_text(self.record_path(identifier), source)
            except OSError as exc:
                raise InstallFailed(f"could not persist source: {exc}", reference=reference) from exc

        logger.info("[spm] %s installed.", reference)
        if is_debug_enabled(logger):
            logger.debug(
                "Module installed",
                extra=extra_context(
                    event="install",
                    component="installer",
                    action="download",
                    outcome="success",
                    duration_ms=t.duration_ms(),
                    target=safe_url(url),
                    bytes=len(source.encode("utf-8")),
                ),
            )

    def list_installed(self) -> List[PackageIdentifier]:
        """Identifiers of every installed record, sorted by canonical form."""
        found = []
        for filename in self.store.list_dir(self.modules_dir):
            if not filename.endswith(Constants.MODULE_SUFFIX):
                continue
            try:
                found.append(decode_key(filename[: -len(Constants.MODULE_SUFFIX)]))
            except MalformedReference:
                logger.debug("Skipping foreign file in modules dir: %s", filename)
        return sorted(found, key=format_reference)
