"""
Logging for fluid-lint and the cms_fluid library.

Every line names the file and line that emitted it. On a terminal the console
handler colors the timestamp, location and level; setting LOG_PATH adds a
plain log file per run under a dated directory.
"""

import datetime
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

LEVEL_COLORS = {
    "DEBUG": "\033[38;5;39m",  # Blue
    "INFO": "\033[38;5;34m",  # Green
    "WARNING": "\033[38;5;214m",  # Orange
    "ERROR": "\033[38;5;196m",  # Red
    "CRITICAL": "\033[48;5;196;38;5;231m",  # White on Red
}
TIMESTAMP_COLOR = "\033[38;5;246m"
LOCATION_COLOR = "\033[1;38;5;63m"
RESET = "\033[0m"

CONSOLE_FORMAT = (
    "%(color_timestamp)s%(asctime)s%(color_reset)s "
    "%(color_location)s%(rel_pathname)s:%(lineno)d%(color_reset)s "
    "%(color_level)s[%(levelname).1s]%(color_reset)s %(message)s"
)
FILE_FORMAT = "%(asctime)s %(rel_pathname)s:%(lineno)d [%(levelname).1s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_PREFIX = "fluid_lint"

_configured = False


def _relative_pathname(pathname: str) -> str:
    try:
        cwd = os.getcwd()
    except OSError:
        return pathname
    if pathname.startswith(cwd + os.sep):
        return pathname[len(cwd) + 1:]
    return pathname


def get_log_file() -> Optional[Path]:
    """
    Path of this run's log file, ``$LOG_PATH/<date>/fluid_lint_<time>.log``.

    Returns None when LOG_PATH is unset or the directory cannot be created.
    """
    log_path = os.getenv("LOG_PATH")
    if not log_path:
        return None
    now = datetime.datetime.now()
    directory = Path(log_path) / now.strftime("%Y-%m-%d")
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"Warning: Cannot create log directory {directory} ({e}). Using console logging only.", file=sys.stderr)
        return None
    return directory / f"{LOG_FILE_PREFIX}_{now.strftime('%H-%M-%S')}.log"


class LocationFormatter(logging.Formatter):
    """Formatter exposing ``rel_pathname``, the emitting file relative to the working directory."""

    def format(self, record: logging.LogRecord) -> str:
        record.rel_pathname = _relative_pathname(record.pathname)
        return super().format(record)


class ColoredFormatter(LocationFormatter):
    """
    Console formatter filling the ``color_*`` fields used by CONSOLE_FORMAT.

    Colors are on by default only when stderr is a terminal; otherwise the
    fields are empty strings.
    """

    def __init__(self, fmt: str = CONSOLE_FORMAT, datefmt: str = DATE_FORMAT, use_colors: Optional[bool] = None):
        super().__init__(fmt, datefmt)
        if use_colors is None:
            use_colors = hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        colored = self.use_colors
        record.color_level = LEVEL_COLORS.get(record.levelname, "") if colored else ""
        record.color_timestamp = TIMESTAMP_COLOR if colored else ""
        record.color_location = LOCATION_COLOR if colored else ""
        record.color_reset = RESET if colored else ""
        return super().format(record)


def setup_logger(level: Union[int, str, None] = None) -> logging.Logger:
    """
    Configure the root logger once: console handler plus the optional log file.

    Args:
        level: Logging level; defaults to the LOG_LEVEL env var or INFO

    Returns:
        logging.Logger: The root logger
    """
    global _configured

    root_logger = logging.getLogger()
    if _configured:
        return root_logger

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColoredFormatter())
    root_logger.addHandler(console_handler)

    log_file = get_log_file()
    if log_file is not None:
        try:
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            print(f"Warning: Cannot open log file {log_file} ({e}). Using console logging only.", file=sys.stderr)
        else:
            file_handler.setFormatter(LocationFormatter(FILE_FORMAT, datefmt=DATE_FORMAT))
            root_logger.addHandler(file_handler)

    for handler in root_logger.handlers:
        handler.setLevel(level)

    _configured = True
    root_logger.debug(f"Logging configured (level {logging.getLevelName(level)}, file {log_file})")
    return root_logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Named logger; configures the root logger on first use."""
    if not _configured:
        setup_logger()
    return logging.getLogger(name)


def set_log_level(level: Union[int, str]) -> None:
    """Change the level of the root logger and all of its handlers."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    root_logger = get_logger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)
