"""
Exception classes and small helpers shared by the template integration layer.

Resolution of template paths never raises; the exceptions below are for the
operations around it (file lookups, parsing, controller naming, loading
configuration files).
"""

from typing import Optional

from jinja2 import Undefined


class FluidError(Exception):
    """Base class for errors raised by the template integration layer."""


class ConfigurationError(FluidError):
    """
    Exception raised when a configuration source cannot be loaded.

    Attributes:
        source: File name or identifier of the failing configuration source
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class PackageNotFoundError(FluidError):
    """Raised when the install path of a package that is not loaded is requested."""

    def __init__(self, package: str):
        super().__init__(f"Package '{package}' is not loaded")
        self.package = package


class InvalidTemplateResourceError(FluidError):
    """
    Exception raised when no file matches a template, partial or layout name.

    Attributes:
        name: Logical name that was looked up
        paths: Root paths that were searched, in search order
    """

    def __init__(self, message: str, name: Optional[str] = None, paths: Optional[list] = None):
        super().__init__(message)
        self.name = name
        self.paths = list(paths or [])


class InvalidControllerNameError(FluidError):
    """Raised when a rendering context is given an empty controller name."""


class TemplateParsingError(FluidError):
    """
    Exception raised when a template fails to parse.

    Wraps the engine's syntax error so callers do not depend on Jinja2 types.

    Attributes:
        filename: File that failed to parse (if parsed from a file)
        lineno: Line of the syntax error as reported by the engine
        original_error: The underlying jinja2.TemplateSyntaxError
    """

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        lineno: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.filename = filename
        self.lineno = lineno
        self.original_error = original_error

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.filename:
            location = self.filename
            if self.lineno:
                location = f"{location}:{self.lineno}"
            parts.append(f"in {location}")
        return " ".join(parts)


class SilentUndefined(Undefined):
    """
    Undefined that renders as an empty string.

    Missing template variables behave like empty values instead of raising
    UndefinedError, so a partially populated variable provider still renders.
    Attribute access on an undefined value yields another SilentUndefined.
    """

    def _fail_with_undefined_error(self, *args, **kwargs) -> str:
        return ""

    def __str__(self) -> str:
        return ""

    def __bool__(self) -> bool:
        return False

    def __getattr__(self, name: str) -> "SilentUndefined":
        if name[:2] == "__":
            raise AttributeError(name)
        return SilentUndefined()


def lcfirst(value: str) -> str:
    """Lowercase the first character of ``value``."""
    return value[:1].lower() + value[1:]


def ucfirst(value: str) -> str:
    """Uppercase the first character of ``value``."""
    return value[:1].upper() + value[1:]
