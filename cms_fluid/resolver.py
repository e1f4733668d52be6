"""
Layered template path resolution.

Combines, per category, in increasing priority:

1. the package's conventional ``Resources/Private/<Category>/`` directory
2. global path overrides
3. package (and plugin) path overrides
4. the package's ``view.`` section of the full configuration, under
   ``module.`` in the backend context or ``plugin.`` otherwise
5. paths supplied by the caller

Layers 2-4 are merged by order key and sorted, layer 5 is appended and
duplicates are removed; layer 1 is then put in front of everything else.
Resolution never raises.
"""

from typing import Any, Dict, List, Mapping, Optional

from config.enhanced_logging import get_logger

from .configuration import (
    ApplicationContext,
    ConfigurationManager,
    GlobalPathConfiguration,
)
from .paths import (
    CATEGORIES,
    CATEGORY_DIRECTORIES,
    PackageScope,
    PathNormalizer,
    PathSet,
    RawPathConfig,
    coerce_raw_path_config,
    merge_path_configurations,
    normalize_and_sort,
    remove_dots,
    unique_paths,
)
from .registry import PackageRegistry
from .utils import FluidError

logger = get_logger(__name__)

BACKEND_NAMESPACE = "module."
FRONTEND_NAMESPACE = "plugin."
VIEW_SECTION = "view."
PRIVATE_RESOURCES = "Resources/Private/"


class PathResolver:
    """
    Resolves template, partial and layout root paths for a package scope.

    Holds only read-only collaborators; every call to resolve() builds a new
    PathSet, so one resolver can be shared freely.
    """

    def __init__(
        self,
        package_registry: Optional[PackageRegistry] = None,
        configuration_manager: Optional[ConfigurationManager] = None,
        application_context: Optional[ApplicationContext] = None,
        global_paths: Optional[GlobalPathConfiguration] = None,
        normalizer: Optional[PathNormalizer] = None,
        drop_unresolved: bool = False,
    ):
        """
        Args:
            package_registry: Registry answering "is loaded" / "install path"
            configuration_manager: Source of the full hierarchical configuration
            application_context: Selects the backend or frontend namespace
            global_paths: Global, package and plugin path overrides
            normalizer: Turns references into absolute paths; defaults to one
                bound to ``package_registry``
            drop_unresolved: Leave out references the normalizer cannot
                resolve instead of keeping them verbatim
        """
        self.package_registry = package_registry or PackageRegistry()
        self.configuration_manager = configuration_manager or ConfigurationManager()
        self.application_context = application_context or ApplicationContext()
        self.global_paths = global_paths or GlobalPathConfiguration()
        self.normalizer = normalizer or PathNormalizer(self.package_registry)
        self.drop_unresolved = drop_unresolved

    @classmethod
    def from_settings(cls, settings) -> "PathResolver":
        """
        Build a resolver from application settings.

        Raises:
            ConfigurationError: If a configured JSON file cannot be loaded
        """
        extensions_path = settings.extensions_path
        registry = PackageRegistry.from_directory(extensions_path) if extensions_path else PackageRegistry()
        configuration_manager = (
            ConfigurationManager.from_file(settings.typoscript_file)
            if settings.typoscript_file
            else ConfigurationManager()
        )
        global_paths = (
            GlobalPathConfiguration.from_file(settings.fluid_paths_file)
            if settings.fluid_paths_file
            else GlobalPathConfiguration()
        )
        return cls(
            package_registry=registry,
            configuration_manager=configuration_manager,
            application_context=ApplicationContext(settings.application_context),
            global_paths=global_paths,
            normalizer=PathNormalizer(registry, settings.application_root),
            drop_unresolved=settings.lint_drop_unresolved_paths,
        )

    def resolve(self, scope: Optional[PackageScope] = None, explicit_paths: Optional[PathSet] = None) -> PathSet:
        """
        Resolve the root paths for ``scope``.

        Args:
            scope: Package and optional sub-package (plugin); None or an empty
                scope resolves global configuration only
            explicit_paths: Paths already set by the caller; always the
                highest priority entries of the result

        Returns:
            A new PathSet, each category ordered lowest to highest priority
            and free of duplicates
        """
        scope = scope or PackageScope()
        explicit_paths = explicit_paths or PathSet()
        package = scope.package_key

        system_paths = self.get_system_paths(package)
        configured = merge_path_configurations(
            self.get_global_configured_paths(package, scope.sub_package),
            self.get_context_specific_view_configuration(scope),
            source=f"package '{package}'" if package else "global scope",
        )

        resolved: Dict[str, List[str]] = {}
        for category in CATEGORIES:
            paths: List[str] = normalize_and_sort(configured.get(category))
            paths.extend(path for path in explicit_paths.get(category) if path)
            paths = unique_paths(self._normalize_paths(paths))
            if category in system_paths:
                # The package's own directory stays first even when a layer repeats it
                system_path = self.normalizer.normalize(system_paths[category]).value
                paths = [system_path] + [path for path in paths if path != system_path]
            resolved[category] = paths

        if package:
            logger.debug(
                f"Resolved paths for {package}"
                f"{'/' + scope.sub_package if scope.sub_package else ''}: {resolved}"
            )
        return PathSet.from_lists(resolved)

    def get_system_paths(self, package: Optional[str]) -> Dict[str, str]:
        """Conventional private resource directories of a loaded package, per category."""
        if not package or not self.package_registry.is_loaded(package):
            if package:
                logger.debug(f"Package '{package}' is not loaded; no conventional paths")
            return {}
        resources = self.package_registry.ext_path(package) + PRIVATE_RESOURCES
        return {category: resources + CATEGORY_DIRECTORIES[category] for category in CATEGORIES}

    def get_global_configured_paths(self, package: Optional[str] = None, sub_package: Optional[str] = None) -> RawPathConfig:
        """Global path overrides, narrowed to the package and plugin when given."""
        try:
            return self.global_paths.get_paths(package, sub_package if package else None)
        except FluidError as e:
            logger.warning(f"Skipping global path configuration: {e}")
            return {}

    def get_context_specific_view_configuration(self, scope: PackageScope) -> RawPathConfig:
        """
        The ``view.`` section for the package from the full configuration.

        Consults ``module.tx_<signature>.view.`` in the backend context and
        ``plugin.tx_<signature>.view.`` otherwise, never both.
        """
        signature = scope.signature
        if signature is None:
            return {}

        try:
            configuration = self.configuration_manager.get_full_configuration() or {}
        except FluidError as e:
            logger.warning(f"Skipping view configuration of {scope.package_key}: {e}")
            return {}

        namespace = BACKEND_NAMESPACE if self.application_context.is_backend() else FRONTEND_NAMESPACE
        view = _lookup(configuration, namespace, signature + ".", VIEW_SECTION)
        if view is None:
            return {}
        if not isinstance(view, Mapping):
            logger.warning(
                f"Ignoring {namespace}{signature}.{VIEW_SECTION}: expected a mapping, "
                f"got {type(view).__name__}"
            )
            return {}
        return coerce_raw_path_config(remove_dots(view), source=f"{namespace}{signature}.{VIEW_SECTION}")

    def _normalize_paths(self, paths: List[str]) -> List[str]:
        normalized = []
        for path in paths:
            result = self.normalizer.normalize(path)
            if not result.resolved:
                if self.drop_unresolved:
                    logger.debug(f"Dropping unresolved path reference: {path}")
                    continue
                logger.debug(f"Keeping unresolved path reference: {path}")
            normalized.append(result.value)
        return normalized


def _lookup(configuration: Mapping[str, Any], *keys: str) -> Any:
    node: Any = configuration
    for key in keys:
        if not isinstance(node, Mapping) or key not in node:
            return None
        node = node[key]
    return node
