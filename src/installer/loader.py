"""Turns installed records into live Python modules."""

from __future__ import annotations

import importlib.util
import logging
import re
import types
from typing import Dict

from common.errors import ModuleLoadFailed
from versioning.parser import format_reference
from .installer import ModuleRecord

logger = logging.getLogger(__name__)

_NON_IDENT = re.compile(r"\W")


def module_name(record: ModuleRecord) -> str:
    """Stable dotted-free module name for a record, e.g. ``spm_acme_widgets_2_1_0``."""
    ident = record.identifier
    raw = f"spm_{ident.owner}_{ident.name}_{ident.version}"
    return _NON_IDENT.sub("_", raw)


class ModuleLoader:
    """Executes installed sources, once per record path."""

    def __init__(self) -> None:
        self._modules: Dict[str, types.ModuleType] = {}

    def load(self, record: ModuleRecord) -> types.ModuleType:
        """Return the module for ``record``, executing its source on first use.

        Raises:
            ModuleLoadFailed: when the source does not compile or raises while
                executing.
        """
        cached = self._modules.get(record.path)
        if cached is not None:
            return cached

        name = module_name(record)
        spec = importlib.util.spec_from_loader(name, loader=None, origin=record.path)
        module = importlib.util.module_from_spec(spec)
        module.__file__ = record.path
        try:
            code = compile(record.source, record.path, "exec")
            exec(code, module.__dict__)  # pylint: disable=exec-used
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise ModuleLoadFailed(
                f"{exc.__class__.__name__}: {exc}", reference=format_reference(record.identifier)
            ) from exc

        logger.debug("Loaded %s as %s", record.path, name)
        self._modules[record.path] = module
        return module
