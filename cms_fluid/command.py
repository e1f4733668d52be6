#!/usr/bin/env python3
"""Lint (syntax-check) templates with CMS context.

Parses template files the way the CMS would render them: with the template
paths of the owning package resolved from its configuration.

Usage:
    fluid-lint                      # every loaded package
    fluid-lint -e news              # one package
    fluid-lint -f path/to/List.html -e news
    fluid-lint -p path/to/templates --fail

Exit codes:
    0 - All files parsed
    1 - Parsing errors found
    2 - Invalid invocation or configuration
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from config.enhanced_logging import get_logger, set_log_level
from config.settings import Settings, settings as default_settings

from .linter import ConsoleOutput, LintReport, TemplateLinter
from .rendering_context import RenderingContext
from .resolver import PathResolver
from .template_paths import TemplatePaths
from .utils import ConfigurationError, PackageNotFoundError

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fluid-lint",
        description="Lints (syntax-checks) templates with CMS context",
    )
    parser.add_argument("-e", "--extension", help="Package key which should be linted (all template files in the package)")
    parser.add_argument("-f", "--file", help="File which should be linted")
    parser.add_argument("-p", "--path", help="Path which should be linted (all template files in path)")
    parser.add_argument(
        "--fail",
        action="store_true",
        help="Stop at the first linting error instead of linting all files and failing at the end",
    )
    parser.add_argument("--context", choices=["FE", "BE"], help="Configuration namespace to resolve paths in")
    parser.add_argument("--extensions-dir", help="Directory holding the packages (overrides EXTENSIONS_DIR)")
    parser.add_argument("--typoscript", help="JSON file with the full configuration (overrides TYPOSCRIPT_FILE)")
    parser.add_argument("--paths-config", help="JSON file with global path overrides (overrides FLUID_PATHS_FILE)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def effective_settings(args: argparse.Namespace, base: Settings) -> Settings:
    """Apply command line overrides on top of the environment settings."""
    overrides = {}
    if args.context:
        overrides["application_context"] = args.context
    if args.extensions_dir:
        overrides["extensions_dir"] = args.extensions_dir
    if args.typoscript:
        overrides["typoscript_file"] = args.typoscript
    if args.paths_config:
        overrides["fluid_paths_file"] = args.paths_config
    return base.model_copy(update=overrides) if overrides else base


def run(args: argparse.Namespace, config: Settings, output: ConsoleOutput) -> int:
    resolver = PathResolver.from_settings(config)

    def context_factory() -> RenderingContext:
        return RenderingContext(
            TemplatePaths(resolver=resolver, format=config.template_format),
            jinja_extensions=list(config.jinja_extensions),
        )

    linter = TemplateLinter(
        context_factory,
        output=output,
        file_pattern=config.lint_file_pattern,
        excluded_dirs=config.lint_excluded_dirs,
        excluded_paths=config.lint_excluded_paths,
    )

    report = LintReport()
    if args.file:
        error = linter.lint_file(args.file, args.extension)
        report.files.append(args.file)
        if error is not None:
            linter.report_error(error)
            report.errors.append(error)
    elif args.path:
        output.writeln(f"Path: {args.path}")
        report = linter.lint_path(args.path, args.extension, args.fail)
    else:
        registry = resolver.package_registry
        packages: List[str] = [args.extension] if args.extension else registry.get_loaded_packages()
        report = linter.lint_packages(packages, registry, args.fail)

    logger.info(f"Linted {len(report.files)} file(s), {report.error_count} error(s)")
    if report.error_count:
        output.error(f"Encountered {report.error_count} template parsing error(s)")
        return 1
    output.success("All files OK")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = effective_settings(args, default_settings)
    set_log_level("DEBUG" if args.verbose else config.log_level)
    if args.verbose:
        config.describe()

    output = ConsoleOutput()
    try:
        return run(args, config, output)
    except (ConfigurationError, PackageNotFoundError) as e:
        output.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
