"""
CMS integration layer for Jinja2 templates.

This package wires a CMS host (packages, hierarchical configuration,
frontend/backend contexts) to the Jinja2 template engine.

Components:
- paths: Path data model, order-key sorting, merging and normalization
- resolver: Layered template/partial/layout root path resolution
- registry: Loaded packages and their install directories
- configuration: Full configuration, global path overrides, application context
- template_paths: Root paths of one rendering plus file lookups
- jinja_environment: Jinja2 environment following resolved root paths
- rendering_context: CMS-aware rendering context and template parser
- linter: Template syntax checking of files, paths and packages

Usage:
    from cms_fluid import PackageScope, PathResolver, PackageRegistry

    resolver = PathResolver(PackageRegistry({"news": "/var/www/ext/news"}))
    paths = resolver.resolve(PackageScope("news"))
"""

from .configuration import ApplicationContext, ConfigurationManager, GlobalPathConfiguration
from .jinja_environment import JinjaEnvironmentManager
from .linter import ConsoleOutput, LintReport, TemplateLinter
from .paths import PackageScope, PathNormalizer, PathSet, ResolvedPath, normalize_and_sort
from .registry import PackageRegistry
from .rendering_context import ControllerContext, RenderingContext, Request, TemplateParser
from .resolver import PathResolver
from .template_paths import TemplatePaths
from .utils import (
    ConfigurationError,
    FluidError,
    InvalidControllerNameError,
    InvalidTemplateResourceError,
    PackageNotFoundError,
    SilentUndefined,
    TemplateParsingError,
)

__all__ = [
    'ApplicationContext',
    'ConfigurationManager',
    'GlobalPathConfiguration',
    'JinjaEnvironmentManager',
    'ConsoleOutput',
    'LintReport',
    'TemplateLinter',
    'PackageScope',
    'PathNormalizer',
    'PathSet',
    'ResolvedPath',
    'normalize_and_sort',
    'PackageRegistry',
    'ControllerContext',
    'RenderingContext',
    'Request',
    'TemplateParser',
    'PathResolver',
    'TemplatePaths',
    'ConfigurationError',
    'FluidError',
    'InvalidControllerNameError',
    'InvalidTemplateResourceError',
    'PackageNotFoundError',
    'SilentUndefined',
    'TemplateParsingError',
]
