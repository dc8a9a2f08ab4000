"""Package manager facade: parse, resolve, install, load."""

from __future__ import annotations

import logging
import types
from typing import List, Optional

from constants import Constants
from common.blob_store import BlobStore, FileBlobStore
from common.fetcher import HttpFetcher, build_fetcher
from registry.client import RegistryClient
from versioning.models import Manifest, PackageIdentifier
from versioning.parser import parse_reference
from versioning.resolver import VersionResolver
from .installer import ModuleInstaller, ModuleRecord
from .loader import ModuleLoader

logger = logging.getLogger(__name__)


class PackageManager:
    """Entry point used by scripts importing registry packages.

    Steps run strictly in order for one call: parse, resolve, install, load.
    Errors raised from each step carry the reference and the step name.
    """

    def __init__(
        self,
        store: Optional[BlobStore] = None,
        fetcher: Optional[HttpFetcher] = None,
        *,
        registry_url: Optional[str] = None,
        manifest_ttl: Optional[float] = None,
    ):
        self.store = store if store is not None else FileBlobStore(Constants.HOME)
        self.fetcher = fetcher if fetcher is not None else build_fetcher()
        self.registry = RegistryClient(self.fetcher, registry_url)
        self.resolver = VersionResolver(self.registry, manifest_ttl=manifest_ttl)
        self.installer = ModuleInstaller(self.store, self.registry)
        self.loader = ModuleLoader()

    async def close(self) -> None:
        stop = getattr(self.fetcher, "stop", None)
        if stop is not None:
            await stop()

    async def __aenter__(self) -> "PackageManager":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def resolve(self, reference: str, *, manifest: Optional[Manifest] = None) -> PackageIdentifier:
        """Parse ``reference`` and replace an alias with its concrete version."""
        identifier = parse_reference(reference)
        concrete = await self.resolver.resolve(
            identifier.owner, identifier.name, identifier.version, manifest=manifest
        )
        return identifier.with_version(concrete)

    async def install(self, reference: str, *, manifest: Optional[Manifest] = None) -> ModuleRecord:
        """Resolve and install ``reference``; returns the (possibly cached) record."""
        identifier = await self.resolve(reference, manifest=manifest)
        return await self.installer.ensure_installed(identifier)

    async def import_module(self, reference: str, *, manifest: Optional[Manifest] = None) -> types.ModuleType:
        """Install ``reference`` if needed and return it as a Python module."""
        record = await self.install(reference, manifest=manifest)
        return self.loader.load(record)

    async def versions(self, package: str) -> List[str]:
        """Concrete versions published for ``owner/name``, newest first."""
        identifier = parse_reference(package)
        return await self.resolver.available_versions(identifier.owner, identifier.name)

    def list_installed(self) -> List[PackageIdentifier]:
        return self.installer.list_installed()
