"""
Logging configuration for the EcoCash SDK.

The SDK only attaches a NullHandler to the "ecocash" logger. Applications
opt in to output with setup_logging (console and/or JSON-lines file) or
setup_logging_from_config.
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "ecocash"


class FileFormatter(logging.Formatter):
    """Plain-text file format used when JSON output is turned off."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


def _parse_level(level: str | int) -> int:
    """Level constant for a name like "debug"; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    return logging.getLevelNamesMapping().get(str(level).upper(), logging.INFO)


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    rotate_daily: bool = True,
    json_format: bool = True,
    console_enabled: bool = True,
    use_rich: bool = True,
    console: Console | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Setup logging for the "ecocash" logger hierarchy.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int (default: INFO)
        log_file: Optional file path to write logs to (default: None, console only)
        rotate_daily: Roll the log file over at midnight (default: True)
        json_format: Write the file as JSON lines (default: True)
        console_enabled: Whether to enable console logging (default: True)
        use_rich: Use RichHandler for the console (default: True)
        console: Optional Rich Console instance for RichHandler
        format_string: Format for the plain console handler when rich is off

    Returns:
        The configured "ecocash" logger
    """
    from ecocash.observability.structured_logging import (
        HumanReadableFormatter,
        RedactingFilter,
        StructuredFormatter,
    )

    logger = logging.getLogger(ROOT_LOGGER_NAME)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    level_int = _parse_level(level)
    logger.setLevel(level_int)
    redactor = RedactingFilter()

    if console_enabled:
        console_handler: logging.Handler
        if use_rich:
            console_handler = RichHandler(
                console=console or Console(stderr=True),
                level=level_int,
                show_time=True,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
                log_time_format="[%X]",
            )
        else:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level_int)
            console_handler.setFormatter(
                logging.Formatter(format_string) if format_string else HumanReadableFormatter()
            )
        console_handler.addFilter(redactor)
        logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler: logging.FileHandler
        if rotate_daily:
            file_handler = TimedRotatingFileHandler(log_file, when="midnight", encoding="utf-8")
        else:
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        # File captures everything the logger lets through
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter() if json_format else FileFormatter())
        file_handler.addFilter(redactor)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


def setup_logging_from_config(config: dict[str, Any], project_dir: Path | None = None) -> logging.Logger:
    """
    Setup logging from the ``logging`` section of an SDK config.

    Recognized keys: level, file, rotate_daily, json, console_enabled, console_type.

    Args:
        config: Full configuration dict or its ``logging`` section
        project_dir: Base directory for a relative log file path

    Returns:
        The configured "ecocash" logger
    """
    logging_config = config.get("logging", config) or {}

    log_file = logging_config.get("file")
    if log_file and project_dir:
        log_file = Path(log_file)
        if not log_file.is_absolute():
            log_file = project_dir / log_file

    return setup_logging(
        level=logging_config.get("level", logging.INFO),
        log_file=log_file,
        rotate_daily=logging_config.get("rotate_daily", True),
        json_format=logging_config.get("json", True),
        console_enabled=logging_config.get("console_enabled", True),
        use_rich=logging_config.get("console_type", "rich") == "rich",
    )


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (default: "ecocash")

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
