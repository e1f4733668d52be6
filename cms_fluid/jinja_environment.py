"""
Jinja2 environment setup for CMS templates.

Builds a Jinja2 environment whose loaders follow the resolved template,
partial and layout root paths, and registers CMS-aware global functions.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader, PrefixLoader

from config.enhanced_logging import get_logger

from .paths import PathNormalizer, PathSet
from .utils import SilentUndefined

logger = get_logger(__name__)

TEMPLATES_PREFIX = "templates"
PARTIALS_PREFIX = "partials"
LAYOUTS_PREFIX = "layouts"


class JinjaEnvironmentManager:
    """
    Manages Jinja2 environment setup and configuration.

    Loader layout:
    - ``partials/<name>`` and ``layouts/<name>`` resolve against the partial
      and layout roots, ``templates/<name>`` and unprefixed names against the
      template roots
    - roots are searched highest priority (last configured) first
    - a DictLoader holds templates registered at runtime
    """

    def __init__(
        self,
        path_set: Optional[PathSet] = None,
        jinja2_options: Optional[Dict[str, Any]] = None,
        extensions: Optional[List[str]] = None,
        normalizer: Optional[PathNormalizer] = None,
        enable_debug_logging: bool = False,
    ):
        """
        Initialize the Jinja environment manager.

        Args:
            path_set: Resolved root paths the loaders search
            jinja2_options: Custom Jinja2 Environment options
            extensions: Jinja2 extensions to enable
            normalizer: Resolves ``EXT:`` references for the resource() global
            enable_debug_logging: Enable detailed debug logging
        """
        self.path_set = path_set or PathSet()
        self.jinja2_options = jinja2_options or {}
        self.extensions = list(extensions or [])
        self.normalizer = normalizer or PathNormalizer()
        self.enable_debug_logging = enable_debug_logging
        self.dynamic_templates: Dict[str, str] = {}
        self.jinja2_env: Optional[Environment] = None

    def setup_jinja2_environment(self) -> Environment:
        """
        Create the Jinja2 environment for the current path set.

        User options override the defaults (silent undefined variables,
        trimmed blocks).

        Returns:
            Configured Jinja2 Environment instance
        """
        default_options = {
            "undefined": SilentUndefined,
            "trim_blocks": True,
            "lstrip_blocks": True,
        }
        env_options = {**default_options, **self.jinja2_options}
        extensions = list(env_options.pop("extensions", [])) + self.extensions

        self.jinja2_env = Environment(
            loader=self._build_loader(),
            extensions=extensions,
            **env_options,
        )
        self._setup_resource_functions()

        if self.enable_debug_logging:
            logger.debug(f"Jinja2 environment configured for paths {self.path_set.to_dict()}")

        return self.jinja2_env

    def _build_loader(self) -> ChoiceLoader:
        templates = FileSystemLoader(list(reversed(self.path_set.template_root_paths)))
        prefixed = PrefixLoader({
            TEMPLATES_PREFIX: templates,
            PARTIALS_PREFIX: FileSystemLoader(list(reversed(self.path_set.partial_root_paths))),
            LAYOUTS_PREFIX: FileSystemLoader(list(reversed(self.path_set.layout_root_paths))),
        })
        return ChoiceLoader([DictLoader(self.dynamic_templates), prefixed, templates])

    def _setup_resource_functions(self) -> None:
        """
        Register global functions available in every template.

        Global Functions Added:
            - now(): Returns current UTC datetime
            - resource(reference): Absolute path of an ``EXT:`` / relative
              reference, or the reference itself when it cannot be resolved
        """
        if not self.jinja2_env:
            return

        self.jinja2_env.globals.update({
            "now": lambda: datetime.now(timezone.utc),
            "resource": lambda reference: self.normalizer.normalize(reference).value,
        })

    def register_template(self, name: str, source: str) -> None:
        """Register an in-memory template, visible to an already built environment too."""
        self.dynamic_templates[name] = source

    def register_filters(self, filters_dict: Dict[str, Any]) -> None:
        """
        Register custom filters with the Jinja2 environment.

        Args:
            filters_dict: Dictionary of filter_name -> filter_function mappings
        """
        self.get_environment().filters.update(filters_dict)

    def get_environment(self) -> Environment:
        """Get the configured Jinja2 environment, building it on first use."""
        if self.jinja2_env is None:
            self.setup_jinja2_environment()
        return self.jinja2_env
