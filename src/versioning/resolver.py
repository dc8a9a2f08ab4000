"""Alias resolution against registry manifests."""

from __future__ import annotations

import logging
from typing import List, Optional

import semantic_version

from constants import Constants
from registry.client import RegistryClient
from .cache import TTLCache
from .models import Manifest

logger = logging.getLogger(__name__)


def sort_versions(versions: List[str]) -> List[str]:
    """Return unique versions newest first; tags that are not semver go last, in input order."""
    parsed = []
    other = []
    for v in dict.fromkeys(versions):
        try:
            parsed.append((semantic_version.Version.coerce(v), v))
        except ValueError:
            other.append(v)
    parsed.sort(key=lambda pair: pair[0], reverse=True)
    return [v for _, v in parsed] + other


class VersionResolver:
    """Maps alias tokens to concrete versions using the package manifest.

    Every resolution fetches the manifest unless ``manifest_ttl`` is positive,
    in which case manifests are reused for at most that many seconds.
    """

    def __init__(self, registry: RegistryClient, manifest_ttl: Optional[float] = None):
        self.registry = registry
        ttl = Constants.MANIFEST_CACHE_TTL_SEC if manifest_ttl is None else manifest_ttl
        self._manifests: Optional[TTLCache] = TTLCache(default_ttl=ttl) if ttl and ttl > 0 else None

    async def manifest(self, owner: str, name: str, *, reference: Optional[str] = None) -> Manifest:
        """Return the manifest for ``owner/name``, possibly from the freshness cache.

        Raises:
            ManifestUnavailable: propagated from the registry.
        """
        cache_key = f"{owner}/{name}"
        if self._manifests is not None:
            cached = self._manifests.get(cache_key)
            if cached is not None:
                return cached
        manifest = await self.registry.fetch_manifest(owner, name, reference=reference)
        if self._manifests is not None:
            self._manifests.set(cache_key, manifest)
        return manifest

    async def resolve(
        self,
        owner: str,
        name: str,
        version_or_alias: str,
        *,
        manifest: Optional[Manifest] = None,
    ) -> str:
        """Return the concrete version for ``version_or_alias``.

        Tokens that are not manifest keys are returned unchanged. A caller may
        pass a ``manifest`` snapshot to skip the fetch.
        """
        reference = f"{owner}/{name}@{version_or_alias}"
        if manifest is None:
            manifest = await self.manifest(owner, name, reference=reference)
        concrete = manifest.lookup(version_or_alias)
        if concrete is None:
            return version_or_alias
        if concrete != version_or_alias:
            logger.debug("Resolved %s to %s", reference, concrete)
        return concrete

    async def available_versions(self, owner: str, name: str) -> List[str]:
        """Concrete versions named by the manifest, newest first."""
        manifest = await self.manifest(owner, name)
        return sort_versions(list(manifest.versions.values()))
