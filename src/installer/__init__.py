"""Module installation and loading.

Resolves package references, installs each concrete version once into the
local store and executes installed sources as Python modules.
"""

from .installer import ModuleInstaller, ModuleRecord
from .loader import ModuleLoader
from .manager import PackageManager

__all__ = [
    "ModuleInstaller",
    "ModuleRecord",
    "ModuleLoader",
    "PackageManager",
]
