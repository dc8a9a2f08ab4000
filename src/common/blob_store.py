"""Path-addressed persistent storage.

Paths are ``/``-separated and relative to the store root. ``FileBlobStore``
keeps them on the local filesystem and replaces files atomically so an
interrupted write never leaves a partial document behind.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import List, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class BlobStore(Protocol):
    """Operations the installer, cache and ledger need from a store."""

    def exists(self, path: str) -> bool: ...

    def read_text(self, path: str) -> str: ...

    def read_bytes(self, path: str) -> bytes: ...

    def write_text(self, path: str, data: str) -> None: ...

    def write_bytes(self, path: str, data: bytes) -> None: ...

    def delete(self, path: str) -> None: ...

    def make_dirs(self, path: str) -> None: ...

    def created_at(self, path: str) -> float: ...

    def list_dir(self, path: str) -> List[str]: ...


def join(*parts: str) -> str:
    """Join store path components."""
    return "/".join(p.strip("/") for p in parts if p)


class FileBlobStore:
    """BlobStore over a directory on the local filesystem."""

    def __init__(self, root: str):
        self.root = os.path.abspath(os.path.expanduser(root))

    def __repr__(self) -> str:
        return f"FileBlobStore({self.root!r})"

    def _resolve(self, path: str) -> str:
        full = os.path.normpath(os.path.join(self.root, *path.split("/")))
        if full != self.root and not full.startswith(self.root + os.sep):
            raise ValueError(f"Path escapes store root: {path!r}")
        return full

    def exists(self, path: str) -> bool:
        return os.path.exists(self._resolve(path))

    def read_text(self, path: str) -> str:
        with open(self._resolve(path), "r", encoding="utf-8") as fh:
            return fh.read()

    def read_bytes(self, path: str) -> bytes:
        with open(self._resolve(path), "rb") as fh:
            return fh.read()

    def write_text(self, path: str, data: str) -> None:
        self.write_bytes(path, data.encode("utf-8"))

    def write_bytes(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        directory = os.path.dirname(target)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, target)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        if target == self.root:
            raise ValueError("Refusing to delete the store root")
        if os.path.isdir(target) and not os.path.islink(target):
            shutil.rmtree(target)
        elif os.path.lexists(target):
            os.remove(target)

    def make_dirs(self, path: str) -> None:
        os.makedirs(self._resolve(path), exist_ok=True)

    def created_at(self, path: str) -> float:
        st = os.stat(self._resolve(path))
        return getattr(st, "st_birthtime", st.st_mtime)

    def list_dir(self, path: str) -> List[str]:
        target = self._resolve(path)
        if not os.path.isdir(target):
            return []
        return sorted(name for name in os.listdir(target) if not name.startswith(".tmp-"))
