"""
Template paths of one rendering: root directories plus file lookups.

Root path lists are ordered lowest to highest priority. Lookups therefore walk
each list from the last entry back to the first and return the first file
found, so a path configured later overrides the same file in earlier roots.
"""

import os
from typing import Any, List, Mapping, Optional

from config.enhanced_logging import get_logger

from .paths import (
    CONFIG_LAYOUTROOTPATHS,
    CONFIG_PARTIALROOTPATHS,
    CONFIG_TEMPLATEROOTPATHS,
    PackageScope,
    PathInput,
    PathNormalizer,
    PathSet,
    coerce_raw_path_config,
    normalize_and_sort,
)
from .utils import InvalidTemplateResourceError, ucfirst

logger = get_logger(__name__)

DEFAULT_FORMAT = "html"


class TemplatePaths:
    """
    Template, partial and layout root paths with package-aware defaults.

    Setters accept a mapping of order keys to paths (or a plain sequence) and
    store it sorted by integer order key, the same way resolved paths are
    ordered. fill_defaults_by_package_name() resolves the paths of a package
    through a PathResolver, keeping the currently set paths as the highest
    priority layer.
    """

    def __init__(self, resolver=None, normalizer: Optional[PathNormalizer] = None, format: str = DEFAULT_FORMAT):
        """
        Args:
            resolver: PathResolver used by fill_defaults_by_package_name(); when
                omitted one is built from the application settings on first use
            normalizer: Path normalizer; defaults to the resolver's normalizer
            format: File extension used for lookups
        """
        self._resolver = resolver
        self._normalizer = normalizer
        self.format = format

        self.template_root_paths: List[str] = []
        self.partial_root_paths: List[str] = []
        self.layout_root_paths: List[str] = []
        self._template_path_and_filename: Optional[str] = None
        self._template_source: Optional[str] = None

    @property
    def resolver(self):
        if self._resolver is None:
            from config.settings import settings
            from .resolver import PathResolver

            self._resolver = PathResolver.from_settings(settings)
        return self._resolver

    @property
    def normalizer(self) -> PathNormalizer:
        """The explicitly given normalizer, else the resolver's registry-backed one."""
        if self._normalizer is None:
            self._normalizer = self.resolver.normalizer
        return self._normalizer

    # ------------------------------------------------------------------
    # Root paths
    # ------------------------------------------------------------------

    def set_template_root_paths(self, template_root_paths: PathInput) -> None:
        self.template_root_paths = self._sorted_absolute(template_root_paths)

    def get_template_root_paths(self) -> List[str]:
        return list(self.template_root_paths)

    def set_partial_root_paths(self, partial_root_paths: PathInput) -> None:
        self.partial_root_paths = self._sorted_absolute(partial_root_paths)

    def get_partial_root_paths(self) -> List[str]:
        return list(self.partial_root_paths)

    def set_layout_root_paths(self, layout_root_paths: PathInput) -> None:
        self.layout_root_paths = self._sorted_absolute(layout_root_paths)

    def get_layout_root_paths(self) -> List[str]:
        return list(self.layout_root_paths)

    def _sorted_absolute(self, paths: PathInput) -> List[str]:
        return [self.normalizer.normalize(path).value for path in normalize_and_sort(paths)]

    def fill_from_configuration_array(self, paths: Mapping[str, Any]) -> None:
        """Set every category present in a path configuration mapping."""
        paths = coerce_raw_path_config(paths, source="template paths")
        if CONFIG_TEMPLATEROOTPATHS in paths:
            self.set_template_root_paths(paths[CONFIG_TEMPLATEROOTPATHS])
        if CONFIG_PARTIALROOTPATHS in paths:
            self.set_partial_root_paths(paths[CONFIG_PARTIALROOTPATHS])
        if CONFIG_LAYOUTROOTPATHS in paths:
            self.set_layout_root_paths(paths[CONFIG_LAYOUTROOTPATHS])

    def fill_defaults_by_package_name(self, package_name: str, sub_package: Optional[str] = None) -> None:
        """
        Fill the root paths with the resolved defaults of a package.

        Currently set paths stay in place as the highest priority entries.
        """
        resolved = self.resolver.resolve(PackageScope(package_name, sub_package), self.to_path_set())
        self.template_root_paths = resolved.template_root_paths
        self.partial_root_paths = resolved.partial_root_paths
        self.layout_root_paths = resolved.layout_root_paths

    def to_path_set(self) -> PathSet:
        return PathSet(
            template_root_paths=list(self.template_root_paths),
            partial_root_paths=list(self.partial_root_paths),
            layout_root_paths=list(self.layout_root_paths),
        )

    def to_dict(self) -> dict:
        return self.to_path_set().to_dict()

    # ------------------------------------------------------------------
    # File lookups
    # ------------------------------------------------------------------

    def get_partial_path_and_filename(self, partial_name: str) -> str:
        """Absolute file name of a partial, e.g. ``List/Item`` → ``<root>/List/Item.html``."""
        return self.resolve_file_in_paths(self.partial_root_paths, partial_name)

    def get_layout_path_and_filename(self, layout_name: str = "Default") -> str:
        return self.resolve_file_in_paths(self.layout_root_paths, layout_name)

    def resolve_template_file_for_controller_and_action(
        self, controller: Optional[str], action: str, format: Optional[str] = None
    ) -> str:
        """
        Absolute file name of the template for a controller action.

        ``News`` / ``list`` is looked up as ``News/List.<format>``; namespaced
        controller names (``Admin\\News``) map to sub-directories.
        """
        identifier = ucfirst(action)
        if controller:
            identifier = controller.replace("\\", "/").strip("/") + "/" + identifier
        return self.resolve_file_in_paths(self.template_root_paths, identifier, format)

    def resolve_file_in_paths(self, paths: List[str], relative_path_and_filename: str, format: Optional[str] = None) -> str:
        """
        Find ``relative_path_and_filename`` below the highest priority root that has it.

        Raises:
            InvalidTemplateResourceError: If no root contains the file
        """
        format = format or self.format
        candidates = [relative_path_and_filename]
        if not relative_path_and_filename.endswith("." + format):
            candidates.insert(0, f"{relative_path_and_filename}.{format}")

        tried = []
        for root in reversed(paths):
            for candidate in candidates:
                path_and_filename = os.path.join(root, candidate)
                if os.path.isfile(path_and_filename):
                    return path_and_filename
                tried.append(path_and_filename)

        raise InvalidTemplateResourceError(
            f"The template files \"{', '.join(tried)}\" could not be loaded.",
            name=relative_path_and_filename,
            paths=list(reversed(paths)),
        )

    # ------------------------------------------------------------------
    # Explicit template file / source
    # ------------------------------------------------------------------

    def set_template_path_and_filename(self, template_path_and_filename: Optional[str]) -> None:
        if template_path_and_filename:
            template_path_and_filename = self.normalizer.normalize(template_path_and_filename).value
        self._template_path_and_filename = template_path_and_filename or None

    def get_template_path_and_filename(self) -> Optional[str]:
        """Absolute path of the explicitly set template file, if any."""
        return self._template_path_and_filename

    def set_template_source(self, template_source: Optional[str]) -> None:
        self._template_source = template_source

    def get_template_source(self, controller: Optional[str] = "Default", action: str = "Default") -> str:
        """
        Source of the template to render.

        Precedence: explicitly set source, explicitly set file, then the file
        resolved for ``controller`` and ``action``.
        """
        if self._template_source is not None:
            return self._template_source

        path_and_filename = self._template_path_and_filename
        if path_and_filename is None:
            path_and_filename = self.resolve_template_file_for_controller_and_action(controller, action)
        try:
            with open(path_and_filename, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            raise InvalidTemplateResourceError(
                f"Tried to read template file {path_and_filename}, but it could not be read: {e}",
                name=path_and_filename,
            ) from e

    def __repr__(self) -> str:
        return f"TemplatePaths({self.to_dict()!r}, format={self.format!r})"
