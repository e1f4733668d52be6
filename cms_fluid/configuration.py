"""
Configuration collaborators consumed by template path resolution.

- ConfigurationManager: read access to the full hierarchical configuration
  (dotted keys such as ``plugin.`` / ``tx_news.`` / ``view.``)
- GlobalPathConfiguration: process-wide path overrides, organised as
  ``global`` plus one section per package with optional per-plugin sections
- ApplicationContext: whether the administrative (BE) or the public (FE)
  configuration namespace applies

All three are plain objects handed to the resolver; nothing here reads
module-level state on its own.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from config.enhanced_logging import get_logger

from .paths import RawPathConfig, merge_path_configurations
from .utils import ConfigurationError

logger = get_logger(__name__)

BACKEND = "BE"
FRONTEND = "FE"

GLOBAL_SECTION = "global"


def load_json_mapping(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a JSON object from ``path``.

    Raises:
        ConfigurationError: If the file is missing, unreadable, not valid
            JSON or does not contain an object at the top level
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}", source=str(path))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in configuration file {path}: {e}", source=str(path))
    except OSError as e:
        raise ConfigurationError(f"Error reading configuration file {path}: {e}", source=str(path))

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a JSON object, got {type(data).__name__}",
            source=str(path),
        )
    return data


class ConfigurationManager:
    """Holds the full hierarchical configuration and hands out copies of it."""

    def __init__(self, configuration: Optional[Mapping[str, Any]] = None):
        self._configuration: Dict[str, Any] = dict(configuration or {})

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ConfigurationManager":
        configuration = load_json_mapping(path)
        logger.debug(f"Loaded full configuration from {path} ({len(configuration)} top-level keys)")
        return cls(configuration)

    def get_full_configuration(self) -> Dict[str, Any]:
        """Return a copy of the full configuration; callers cannot alter the store."""
        return copy.deepcopy(self._configuration)


class GlobalPathConfiguration:
    """
    Template path overrides that apply independently of the full configuration.

    Shape::

        {
            "global": {"templateRootPaths": {"0": "..."}},
            "news": {
                "partialRootPaths": {"20": "..."},
                "Pi1": {"templateRootPaths": {"30": "..."}}
            }
        }

    More specific sections override less specific ones: plugin over package
    over global.
    """

    def __init__(self, paths: Optional[Mapping[str, Any]] = None):
        self._paths: Dict[str, Any] = dict(paths or {})

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "GlobalPathConfiguration":
        return cls(load_json_mapping(path))

    def get_paths(self, package: Optional[str] = None, sub_package: Optional[str] = None) -> RawPathConfig:
        """Return the merged path configuration for an optional package and plugin."""
        layers = [self._paths.get(GLOBAL_SECTION)]
        if package:
            package_section = self._paths.get(package)
            layers.append(package_section)
            if sub_package and isinstance(package_section, Mapping):
                layers.append(package_section.get(sub_package))
        return merge_path_configurations(*layers, source="global path configuration")


class ApplicationContext:
    """Execution context flag selecting the configuration namespace."""

    def __init__(self, mode: str = FRONTEND):
        mode = (mode or FRONTEND).strip().upper()
        if mode not in (BACKEND, FRONTEND):
            raise ValueError(f"Application context must be '{BACKEND}' or '{FRONTEND}', got '{mode}'")
        self.mode = mode

    def is_backend(self) -> bool:
        return self.mode == BACKEND

    def is_frontend(self) -> bool:
        return self.mode == FRONTEND

    def __repr__(self) -> str:
        return f"ApplicationContext(mode={self.mode!r})"
