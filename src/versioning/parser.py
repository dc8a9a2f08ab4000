"""Reference parsing for ``<owner>/<name>[@<version>]`` tokens."""

import urllib.parse
from typing import Optional

from constants import Constants
from common.errors import MalformedReference
from .models import PackageIdentifier


def parse_reference(token: str, default_version: Optional[str] = None) -> PackageIdentifier:
    """Parse a reference string into a PackageIdentifier.

    ``/`` separates the owner from the remainder and the first ``@`` after it
    separates the name from the version. A missing or empty version falls
    back to ``default_version`` (the default alias when not given).

    Raises:
        MalformedReference: if the owner or name is empty, or the name
            contains another ``/``.
    """
    if not isinstance(token, str):
        raise MalformedReference(f"expected a string, got {type(token).__name__}", reference=repr(token))
    raw = token.strip()
    owner, sep, remainder = raw.partition("/")
    if not sep:
        raise MalformedReference("expected '<owner>/<name>[@<version>]'", reference=raw)
    name, _, version = remainder.partition("@")
    owner, name, version = owner.strip(), name.strip(), version.strip()
    if not owner:
        raise MalformedReference("owner is empty", reference=raw)
    if not name:
        raise MalformedReference("name is empty", reference=raw)
    if "/" in name:
        raise MalformedReference("name must not contain '/'", reference=raw)
    if not version:
        version = default_version or Constants.DEFAULT_ALIAS
    return PackageIdentifier(owner=owner, name=name, version=version)


def format_reference(identifier: PackageIdentifier) -> str:
    """Canonical ``owner/name@version`` form."""
    return f"{identifier.owner}/{identifier.name}@{identifier.version}"


def encode_key(identifier: PackageIdentifier) -> str:
    """Percent-encode the canonical form so it is one safe path component."""
    return urllib.parse.quote(format_reference(identifier), safe="")


def decode_key(key: str) -> PackageIdentifier:
    """Inverse of ``encode_key``."""
    return parse_reference(urllib.parse.unquote(key))
