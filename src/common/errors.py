"""Exception taxonomy for resolution, installation and caching."""

from __future__ import annotations

from typing import Optional


class PyspmError(Exception):
    """Base error; names the package reference and the failing stage when known."""

    stage: Optional[str] = None

    def __init__(self, message: str, *, reference: Optional[str] = None) -> None:
        self.reference = reference
        self.detail = message
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        if self.reference and self.stage:
            return f"{self.reference}: {self.stage} failed: {message}"
        if self.reference:
            return f"{self.reference}: {message}"
        return message


class MalformedReference(PyspmError, ValueError):
    """Reference string does not match ``<owner>/<name>[@<version>]``."""

    stage = "parse"


class ManifestUnavailable(PyspmError):
    """Registry manifest could not be fetched or is not a valid manifest."""

    stage = "resolve"

    def __init__(self, message: str, *, reference: Optional[str] = None, url: Optional[str] = None) -> None:
        self.url = url
        super().__init__(message, reference=reference)


class InstallFailed(PyspmError):
    """Module source could not be downloaded, persisted or read back."""

    stage = "install"


class ModuleLoadFailed(PyspmError):
    """Installed source exists but could not be executed as a module."""

    stage = "load"


class ReservedNamespace(PyspmError, ValueError):
    """Cache namespace collides with internal storage names."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace
        super().__init__(f"Cache name '{namespace}' is reserved.")


class FetchError(PyspmError):
    """Transport-level failure: connection error, timeout, bad status or bad body."""

    def __init__(self, message: str, *, url: str, status: Optional[int] = None) -> None:
        self.url = url
        self.status = status
        super().__init__(message)
