"""Application configuration using Pydantic Settings."""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Literal

from config.enhanced_logging import get_logger

logger = get_logger(__name__)


class Settings(BaseSettings):
    """Application configuration using Pydantic Settings"""

    # Logging
    log_level: str = "INFO"

    # Host application layout
    application_root: str = Field(
        default_factory=os.getcwd,
        description="Directory that relative template paths are resolved against",
    )
    application_context: Literal["FE", "BE"] = Field(
        default="FE",
        description="FE selects the plugin. configuration namespace, BE selects module.",
    )
    extensions_dir: str = Field(
        default="",
        description="Directory whose sub-directories are registered as packages",
    )

    # Configuration sources
    typoscript_file: str = Field(
        default="",
        description="JSON file holding the full hierarchical (dotted key) configuration",
    )
    fluid_paths_file: str = Field(
        default="",
        description="JSON file holding global/package/plugin template path overrides",
    )

    # Template engine
    jinja_extensions: List[str] = Field(
        default_factory=lambda: ["jinja2.ext.do", "jinja2.ext.loopcontrols"],
        description="Jinja2 extensions enabled on every rendering context",
    )
    template_format: str = "html"

    # Linting
    lint_file_pattern: str = "*.html"
    lint_excluded_dirs: List[str] = Field(
        default_factory=lambda: ["Tests", "examples", "typo3", "vendor", "public"]
    )
    lint_excluded_paths: List[str] = Field(
        default_factory=lambda: [
            "Resources/Private/Templates/PageRenderer.html",
            "Resources/Private/Templates/MainPage.html",
        ]
    )
    lint_drop_unresolved_paths: bool = False

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("application_context", mode="before")
    @classmethod
    def _upper_context(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @property
    def is_backend(self) -> bool:
        """True when the administrative (BE) configuration namespace applies."""
        return self.application_context == "BE"

    @property
    def extensions_path(self) -> Optional[Path]:
        """Extensions directory as a Path, or None when not configured."""
        if not self.extensions_dir:
            return None
        path = Path(self.extensions_dir)
        if not path.is_absolute():
            path = Path(self.application_root) / path
        return path

    def describe(self) -> dict:
        """Summarize the effective configuration for debug output."""
        summary = {
            "application_root": self.application_root,
            "application_context": self.application_context,
            "extensions_dir": self.extensions_dir or None,
            "typoscript_file": self.typoscript_file or None,
            "fluid_paths_file": self.fluid_paths_file or None,
            "jinja_extensions": list(self.jinja_extensions),
        }
        logger.debug(f"Effective settings: {summary}")
        return summary


# Global settings instance
settings = Settings()
