"""Namespace-scoped blob caches sharing one purge ledger."""

from .artifacts import load_artifact
from .ledger import PurgeLedger
from .store import Cache

__all__ = [
    "Cache",
    "PurgeLedger",
    "load_artifact",
]
