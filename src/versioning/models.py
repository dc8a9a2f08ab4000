"""Data models for package references, manifests and update checks."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union


@dataclass(frozen=True)
class PackageIdentifier:
    """A parsed ``<owner>/<name>@<version>`` reference; version may be an alias."""
    owner: str
    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}@{self.version}"

    @property
    def package(self) -> str:
        """The ``owner/name`` part, without version."""
        return f"{self.owner}/{self.name}"

    def with_version(self, version: str) -> "PackageIdentifier":
        return PackageIdentifier(owner=self.owner, name=self.name, version=version)


@dataclass
class Manifest:
    """Registry manifest: alias token -> concrete version."""
    versions: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: object) -> "Manifest":
        """Validate a decoded manifest document.

        Raises:
            ValueError: if the document is not ``{"versions": {str: str}}``.
        """
        if not isinstance(data, dict):
            raise ValueError("manifest is not a JSON object")
        versions = data.get("versions")
        if not isinstance(versions, dict):
            raise ValueError("manifest has no 'versions' object")
        for alias, concrete in versions.items():
            if not isinstance(alias, str) or not isinstance(concrete, str) or not concrete:
                raise ValueError(f"manifest entry {alias!r} is not a version string")
        return cls(versions=dict(versions))

    def lookup(self, token: str) -> Optional[str]:
        return self.versions.get(token)


@dataclass(frozen=True)
class UpToDate:
    """Running version matches the channel's current release."""
    version: str


@dataclass(frozen=True)
class UpdateAvailable:
    """A different release is published on the channel and has been staged."""
    current_version: str
    latest_version: str
    channel: str
    source_url: str
    is_newer: Optional[bool] = None


@dataclass(frozen=True)
class CheckFailed:
    """The update check could not complete; the reason is informational only."""
    reason: str


UpdateStatus = Union[UpToDate, UpdateAvailable, CheckFailed]
