"""Registry client: URL layout plus manifest and module source fetches.

Registry layout under the base URL::

    packages/<owner>/<name>/spm.json        manifest
    packages/<owner>/<name>/<version>.py    module source
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Optional

from constants import Constants
from common.errors import FetchError, ManifestUnavailable
from common.fetcher import HttpFetcher
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from versioning.models import Manifest, PackageIdentifier

logger = logging.getLogger(__name__)


def _q(part: str) -> str:
    return urllib.parse.quote(part, safe="")


class RegistryClient:
    """Reads manifests and module sources from a static registry."""

    def __init__(self, fetcher: HttpFetcher, base_url: Optional[str] = None):
        self.fetcher = fetcher
        self.base_url = (base_url or Constants.REGISTRY_URL).rstrip("/")

    def package_url(self, owner: str, name: str) -> str:
        return f"{self.base_url}/{Constants.PACKAGES_PATH}/{_q(owner)}/{_q(name)}"

    def manifest_url(self, owner: str, name: str) -> str:
        return f"{self.package_url(owner, name)}/{Constants.MANIFEST_FILE}"

    def module_url(self, identifier: PackageIdentifier) -> str:
        """Deterministic source URL for a concrete version."""
        return (
            f"{self.package_url(identifier.owner, identifier.name)}/"
            f"{_q(identifier.version)}{Constants.MODULE_SUFFIX}"
        )

    async def fetch_manifest(self, owner: str, name: str, *, reference: Optional[str] = None) -> Manifest:
        """Fetch and validate the manifest for ``owner/name``.

        Raises:
            ManifestUnavailable: on transport failure or a malformed document.
        """
        url = self.manifest_url(owner, name)
        ref = reference or f"{owner}/{name}"
        with Timer() as t:
            try:
                data = await self.fetcher.get_json(url)
            except FetchError as exc:
                raise ManifestUnavailable(str(exc.detail), reference=ref, url=url) from exc
        try:
            manifest = Manifest.from_json(data)
        except ValueError as exc:
            raise ManifestUnavailable(f"malformed manifest at {safe_url(url)}: {exc}", reference=ref, url=url) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "Fetched manifest",
                extra=extra_context(
                    event="manifest",
                    component="registry",
                    action="fetch_manifest",
                    outcome="success",
                    duration_ms=t.duration_ms(),
                    target=safe_url(url),
                    aliases=len(manifest.versions),
                ),
            )
        return manifest

    async def fetch_source(self, identifier: PackageIdentifier) -> str:
        """Download the module source for a concrete version.

        Raises:
            FetchError: when the source cannot be downloaded.
        """
        url = self.module_url(identifier)
        logger.debug("Downloading %s from %s", identifier, safe_url(url))
        return await self.fetcher.get_text(url)
