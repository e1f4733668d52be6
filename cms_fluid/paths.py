"""
Template path data model and the pure helpers the resolver is built from.

A path configuration arrives as a nested mapping shaped like::

    {
        "templateRootPaths": {"0": "EXT:news/Resources/Private/Templates/",
                              "10": "fileadmin/templates/news/"},
        "partialRootPaths": {...},
        "layoutRootPaths": {...},
    }

Order keys decide priority within a category. After merging, each category
becomes an ordered list of directories where later entries are preferred
when looking up a file.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlparse
from urllib.request import url2pathname

from config.enhanced_logging import get_logger

logger = get_logger(__name__)

CONFIG_TEMPLATEROOTPATHS = "templateRootPaths"
CONFIG_PARTIALROOTPATHS = "partialRootPaths"
CONFIG_LAYOUTROOTPATHS = "layoutRootPaths"

CATEGORIES: Tuple[str, ...] = (
    CONFIG_TEMPLATEROOTPATHS,
    CONFIG_PARTIALROOTPATHS,
    CONFIG_LAYOUTROOTPATHS,
)

# Conventional sub-directory of a package's private resources, per category
CATEGORY_DIRECTORIES: Dict[str, str] = {
    CONFIG_TEMPLATEROOTPATHS: "Templates/",
    CONFIG_PARTIALROOTPATHS: "Partials/",
    CONFIG_LAYOUTROOTPATHS: "Layouts/",
}

_CATEGORY_ATTRIBUTES: Dict[str, str] = {
    CONFIG_TEMPLATEROOTPATHS: "template_root_paths",
    CONFIG_PARTIALROOTPATHS: "partial_root_paths",
    CONFIG_LAYOUTROOTPATHS: "layout_root_paths",
}

# {category: {order_key: path}}
RawPathConfig = Dict[str, Dict[str, Any]]
PathInput = Union[Mapping[Any, Any], List[Any], Tuple[Any, ...], None]

# Canonical decimal integers only; "05" or "1.0" stay string keys
_INTEGER_KEY_PATTERN = re.compile(r"^(?:0|-?[1-9][0-9]*)$")

EXTENSION_PREFIX = "EXT:"
FILE_PREFIX = "FILE:"


@dataclass(frozen=True)
class PackageScope:
    """Identifies the configuration unit a path set is resolved for."""

    package: Optional[str] = None
    sub_package: Optional[str] = None

    @property
    def package_key(self) -> Optional[str]:
        """Package identifier with surrounding whitespace removed, None when blank."""
        if self.package is None:
            return None
        key = self.package.strip()
        return key or None

    @property
    def signature(self) -> Optional[str]:
        """Configuration signature of the package: ``tx_`` plus the key without underscores."""
        key = self.package_key
        if key is None:
            return None
        return "tx_" + key.replace("_", "")


@dataclass
class PathSet:
    """Ordered template, partial and layout root directories."""

    template_root_paths: List[str] = field(default_factory=list)
    partial_root_paths: List[str] = field(default_factory=list)
    layout_root_paths: List[str] = field(default_factory=list)

    def get(self, category: str) -> List[str]:
        """Return the sequence for a category name such as ``templateRootPaths``."""
        try:
            return getattr(self, _CATEGORY_ATTRIBUTES[category])
        except KeyError:
            raise KeyError(f"Unknown path category: {category}") from None

    @classmethod
    def from_lists(cls, paths: Mapping[str, Iterable[str]]) -> "PathSet":
        """Build a PathSet from already ordered sequences keyed by category."""
        return cls(**{
            _CATEGORY_ATTRIBUTES[category]: list(paths.get(category) or [])
            for category in CATEGORIES
        })

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> "PathSet":
        """Build a PathSet from a RawPathConfig, sorting each category by order key."""
        config = coerce_raw_path_config(config, source="path set")
        return cls.from_lists({
            category: normalize_and_sort(config.get(category))
            for category in CATEGORIES
        })

    def to_dict(self) -> Dict[str, List[str]]:
        return {category: list(self.get(category)) for category in CATEGORIES}

    def is_empty(self) -> bool:
        return not any(self.get(category) for category in CATEGORIES)


@dataclass(frozen=True)
class ResolvedPath:
    """
    Outcome of normalizing one path reference.

    ``path`` holds the absolute filesystem path when the reference could be
    resolved and is None otherwise; ``reference`` is always the input.
    """

    reference: str
    path: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.path is not None

    @property
    def value(self) -> str:
        """The resolved path, or the untouched reference when unresolved."""
        return self.path if self.path is not None else self.reference


def integer_key(key: Any) -> Optional[int]:
    """Return ``key`` as an int when it is an integer-like order key, else None."""
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, str) and _INTEGER_KEY_PATTERN.match(key):
        return int(key)
    return None


def _items(value: PathInput) -> List[Tuple[Any, Any]]:
    if value is None:
        return []
    if isinstance(value, Mapping):
        return list(value.items())
    if isinstance(value, (list, tuple)):
        return list(enumerate(value))
    raise TypeError(f"Expected a mapping or a sequence of paths, got {type(value).__name__}")


def sort_with_integer_keys(value: PathInput) -> List[Tuple[Any, Any]]:
    """
    Order ``(key, value)`` pairs by integer key.

    Integer-like keys are sorted numerically among the slots they occupy;
    entries with other keys stay exactly where they were. The sort is stable.
    """
    items = _items(value)
    slots = [index for index, (key, _) in enumerate(items) if integer_key(key) is not None]
    ordered = sorted((items[index] for index in slots), key=lambda item: integer_key(item[0]))
    for slot, item in zip(slots, ordered):
        items[slot] = item
    return items


def normalize_and_sort(value: PathInput) -> List[str]:
    """
    Turn a category mapping (or sequence) into an ordered list of paths.

    Sorts by integer order key, keeps only the values and drops empty ones.
    """
    paths = []
    for _, path in sort_with_integer_keys(value):
        if not path:
            continue
        paths.append(str(path))
    return paths


def unique_paths(paths: Iterable[str]) -> List[str]:
    """Remove duplicates, keeping each path at its last (highest priority) position."""
    seen = set()
    result = []
    for path in reversed(list(paths)):
        if path in seen:
            continue
        seen.add(path)
        result.append(path)
    result.reverse()
    return result


def remove_dots(configuration: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Flatten dotted configuration keys into plain nested keys.

    ``{"view.": {"templateRootPaths.": {"0": "x"}}}`` becomes
    ``{"view": {"templateRootPaths": {"0": "x"}}}``. Scalars keep their key;
    when a scalar and a sub-tree share a name, the later entry wins.
    """
    result: Dict[str, Any] = {}
    for key, value in configuration.items():
        if isinstance(value, Mapping):
            result[str(key).rstrip(".")] = remove_dots(value)
        else:
            result[key] = value
    return result


def _normalize_order_key(key: Any) -> Any:
    if isinstance(key, int) and not isinstance(key, bool):
        return str(key)
    return key


def _coerce_category(value: Any, category: str, source: str) -> Optional[Dict[Any, Any]]:
    if value is None:
        return None
    if isinstance(value, (Mapping, list, tuple)):
        entries: Dict[Any, Any] = {}
        for key, path in _items(value):
            if path is None or isinstance(path, str):
                entries[_normalize_order_key(key)] = path
            elif isinstance(path, Path):
                entries[_normalize_order_key(key)] = str(path)
            else:
                logger.warning(
                    f"Ignoring {category}[{key}] from {source}: expected a path string, "
                    f"got {type(path).__name__}"
                )
        return entries
    logger.warning(
        f"Ignoring {category} from {source}: expected a mapping of order keys to paths, "
        f"got {type(value).__name__}"
    )
    return None


def coerce_raw_path_config(config: Any, source: str = "configuration") -> RawPathConfig:
    """
    Validate a path configuration layer and reduce it to the three categories.

    Malformed layers or categories are skipped with a warning; keys other than
    the categories (plugin sub-sections, unrelated view settings) are dropped.
    """
    if config is None:
        return {}
    if not isinstance(config, Mapping):
        logger.warning(
            f"Ignoring path configuration from {source}: expected a mapping, "
            f"got {type(config).__name__}"
        )
        return {}

    result: RawPathConfig = {}
    for category in CATEGORIES:
        entries = _coerce_category(config.get(category), category, source)
        if entries is not None:
            result[category] = entries
    return result


def merge_recursive(*layers: Optional[Mapping[Any, Any]]) -> Dict[Any, Any]:
    """
    Merge mappings left to right into a new dict.

    Nested mappings are merged key by key; any other colliding value is
    replaced by the one from the later layer. Inputs are not modified.
    """
    result: Dict[Any, Any] = {}
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            current = result.get(key)
            if isinstance(value, Mapping) and isinstance(current, Mapping):
                result[key] = merge_recursive(current, value)
            elif isinstance(value, Mapping):
                result[key] = merge_recursive(value)
            else:
                result[key] = value
    return result


def merge_path_configurations(*layers: Any, source: str = "configuration") -> RawPathConfig:
    """Coerce each layer to a RawPathConfig and merge them, later layers winning."""
    return merge_recursive(*(coerce_raw_path_config(layer, source=source) for layer in layers))


class PathNormalizer:
    """
    Resolves path references to absolute filesystem paths.

    Understands absolute paths (returned unchanged), paths relative to the
    application root, ``EXT:<package>/<subpath>`` package references and
    ``FILE:`` / ``file://`` references. References that cannot be resolved
    are reported through an unresolved ResolvedPath instead of an exception.
    """

    def __init__(self, package_registry=None, application_root: Optional[str] = None):
        self.package_registry = package_registry
        self.application_root = application_root or os.getcwd()

    def normalize(self, reference: Any) -> ResolvedPath:
        reference = str(reference) if isinstance(reference, Path) else reference
        if not isinstance(reference, str) or not reference:
            return ResolvedPath(reference="" if reference is None else str(reference))

        if reference.startswith(EXTENSION_PREFIX):
            return ResolvedPath(reference, self._resolve_extension_reference(reference))
        if reference.startswith(FILE_PREFIX):
            inner = self.normalize(reference[len(FILE_PREFIX):])
            return ResolvedPath(reference, inner.path)
        if reference.startswith("file://"):
            return ResolvedPath(reference, self._resolve_file_uri(reference))
        if os.path.isabs(reference):
            return ResolvedPath(reference, reference)
        return ResolvedPath(reference, self._resolve_relative(reference))

    def ensure_absolute_path(self, reference: Any) -> Any:
        """
        Normalize a reference, or every value of a nested mapping or list.

        Unresolved references are returned as given.
        """
        if isinstance(reference, Mapping):
            return {key: self.ensure_absolute_path(value) for key, value in reference.items()}
        if isinstance(reference, (list, tuple)):
            return [self.ensure_absolute_path(value) for value in reference]
        return self.normalize(reference).value

    def _resolve_extension_reference(self, reference: str) -> Optional[str]:
        package, _, sub_path = reference[len(EXTENSION_PREFIX):].partition("/")
        package = package.strip()
        if not package or self.package_registry is None:
            return None
        if not self.package_registry.is_loaded(package):
            logger.debug(f"Cannot resolve {reference}: package '{package}' is not loaded")
            return None
        if self._has_parent_segment(sub_path):
            return None
        return self.package_registry.ext_path(package) + sub_path

    def _resolve_file_uri(self, reference: str) -> Optional[str]:
        parsed = urlparse(reference)
        if parsed.netloc not in ("", "localhost"):
            return None
        return url2pathname(parsed.path) or None

    def _resolve_relative(self, reference: str) -> Optional[str]:
        if self._has_parent_segment(reference):
            logger.debug(f"Refusing relative path with parent segments: {reference}")
            return None
        return os.path.join(self.application_root, reference)

    @staticmethod
    def _has_parent_segment(path: str) -> bool:
        return ".." in path.replace("\\", "/").split("/")
