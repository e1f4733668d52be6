"""
Template linting: syntax-checks template files with package-aware contexts.

Walks a directory (or every loaded package) for template files, parses each
one with a fresh rendering context and reports the files that fail.
"""

import fnmatch
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, TextIO

from config.enhanced_logging import get_logger

from .registry import PackageRegistry
from .rendering_context import RenderingContext
from .utils import TemplateParsingError

logger = get_logger(__name__)

DEFAULT_FILE_PATTERN = "*.html"
DEFAULT_EXCLUDED_DIRS = ("Tests", "examples", "typo3", "vendor", "public")
DEFAULT_EXCLUDED_PATHS = (
    "Resources/Private/Templates/PageRenderer.html",
    "Resources/Private/Templates/MainPage.html",
)


class ConsoleOutput:
    """Minimal styled console writer used for lint reports."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def write(self, message: str, newline: bool = False) -> None:
        self.stream.write(message + ("\n" if newline else ""))
        self.stream.flush()

    def writeln(self, message: str = "") -> None:
        self.write(message, newline=True)

    def warning(self, message: str) -> None:
        self.writeln(f"[WARNING] {message}")

    def error(self, message: str) -> None:
        self.writeln(f"[ERROR] {message}")

    def success(self, message: str) -> None:
        self.writeln(f"[OK] {message}")


@dataclass
class LintReport:
    """Outcome of a lint run."""

    files: List[str] = field(default_factory=list)
    errors: List[TemplateParsingError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def ok(self) -> bool:
        return not self.errors

    def extend(self, other: "LintReport") -> None:
        self.files.extend(other.files)
        self.errors.extend(other.errors)


class TemplateLinter:
    """
    Lints template files.

    Each file is parsed with a new rendering context from ``context_factory``;
    when a package is given, the context's template paths are filled with
    that package's defaults first.
    """

    def __init__(
        self,
        context_factory: Callable[[], RenderingContext],
        output: Optional[ConsoleOutput] = None,
        file_pattern: str = DEFAULT_FILE_PATTERN,
        excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
        excluded_paths: Iterable[str] = DEFAULT_EXCLUDED_PATHS,
    ):
        self.context_factory = context_factory
        self.output = output or ConsoleOutput()
        self.file_pattern = file_pattern
        self.excluded_dirs = set(excluded_dirs)
        self.excluded_paths = list(excluded_paths)

    def lint_file(self, file: str, package: Optional[str] = None) -> Optional[TemplateParsingError]:
        """
        Lint one file.

        Returns:
            None when the file parses, otherwise the parsing error
        """
        rendering_context = self.context_factory()
        if package:
            rendering_context.get_template_paths().fill_defaults_by_package_name(package)
        parser = rendering_context.get_template_parser()

        self.output.write(f"- file: {file}")
        try:
            parser.parse_file(str(file))
        except TemplateParsingError as error:
            self.output.writeln(" - FAIL")
            logger.debug(f"Lint failure in {file}: {error}")
            return error
        self.output.writeln(" - OK!")
        return None

    def lint_path(self, path: str, package: Optional[str] = None, fail: bool = False) -> LintReport:
        """
        Lint every matching file below ``path``.

        Args:
            path: Directory to walk
            package: Package whose template paths the contexts use
            fail: Stop at the first file with an error
        """
        report = LintReport()
        for file in self.collect_files_in_path(path):
            report.files.append(str(file))
            error = self.lint_file(str(file), package)
            if error is not None:
                self.report_error(error)
                report.errors.append(error)
                if fail:
                    break
        return report

    def lint_packages(self, packages: Iterable[str], registry: PackageRegistry, fail: bool = False) -> LintReport:
        """
        Lint the install directories of ``packages``.

        With ``fail`` set, stops after the first package that had errors.

        Raises:
            PackageNotFoundError: If a package is not loaded
        """
        report = LintReport()
        for package in packages:
            self.output.writeln(f"Package: {package}")
            package_report = self.lint_path(registry.ext_path(package), package, fail)
            report.extend(package_report)
            if package_report.errors and fail:
                break
        return report

    def report_error(self, error: TemplateParsingError) -> None:
        self.output.warning(str(error))

    def collect_files_in_path(self, path: str) -> List[Path]:
        """
        Template files below ``path``, sorted.

        Hidden entries and excluded directory names are skipped at any depth;
        files whose relative path contains one of the excluded paths are left
        out.
        """
        root = Path(path)
        if root.is_file():
            return [root]
        if not root.is_dir():
            logger.warning(f"Lint path does not exist: {path}")
            return []

        files = []
        for directory, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(
                name for name in dirnames
                if not name.startswith(".") and name not in self.excluded_dirs
            )
            for filename in filenames:
                if filename.startswith(".") or not fnmatch.fnmatch(filename, self.file_pattern):
                    continue
                file = Path(directory) / filename
                relative = file.relative_to(root).as_posix()
                if any(excluded in relative for excluded in self.excluded_paths):
                    continue
                files.append(file)
        return sorted(files)
