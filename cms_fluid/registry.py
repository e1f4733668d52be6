"""
Package (extension) registry of the host application.

Answers the only questions template path resolution asks about packages:
is it loaded, and where is it installed.
"""

import os
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

from config.enhanced_logging import get_logger

from .utils import PackageNotFoundError

logger = get_logger(__name__)


class PackageRegistry:
    """
    In-memory registry of loaded packages and their install directories.

    Install paths are stored absolute and returned with a trailing slash so
    sub-paths can be appended directly.
    """

    def __init__(self, packages: Optional[Mapping[str, Union[str, Path]]] = None):
        self._packages: Dict[str, str] = {}
        for key, path in (packages or {}).items():
            self.register(key, path)

    @classmethod
    def from_directory(cls, directory: Union[str, Path], exclude: Iterable[str] = ()) -> "PackageRegistry":
        """
        Register every sub-directory of ``directory`` as a package.

        The directory name is the package key. Hidden directories and names
        listed in ``exclude`` are skipped; a missing directory yields an
        empty registry.
        """
        registry = cls()
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning(f"Package directory does not exist: {directory}")
            return registry

        excluded = set(exclude)
        for child in sorted(directory.iterdir()):
            if not child.is_dir() or child.name.startswith(".") or child.name in excluded:
                continue
            registry.register(child.name, child)

        logger.debug(f"Registered {len(registry)} packages from {directory}")
        return registry

    def register(self, package: str, path: Union[str, Path]) -> None:
        """Register (or replace) a package and its install directory."""
        key = package.strip()
        if not key:
            raise ValueError("Package key must not be empty")
        self._packages[key] = os.path.abspath(str(path)).rstrip("/") + "/"

    def is_loaded(self, package: Optional[str]) -> bool:
        if not package:
            return False
        return package.strip() in self._packages

    def ext_path(self, package: str, script: str = "") -> str:
        """
        Return the absolute install path of a loaded package.

        Args:
            package: Package key
            script: Optional sub-path appended to the install path

        Raises:
            PackageNotFoundError: If the package is not loaded
        """
        key = package.strip()
        if key not in self._packages:
            raise PackageNotFoundError(key)
        return self._packages[key] + script

    def get_loaded_packages(self) -> List[str]:
        """Package keys in registration order."""
        return list(self._packages)

    def __len__(self) -> int:
        return len(self._packages)

    def __contains__(self, package: object) -> bool:
        return isinstance(package, str) and self.is_loaded(package)
