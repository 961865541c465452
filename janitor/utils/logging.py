"""Logging setup for the janitor CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "janitor"


def setup_logging(level: str = "INFO", verbose: bool = False) -> logging.Logger:
    """Configure the janitor logger with a Rich handler on stderr.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        verbose: Include logger names and source paths in log lines

    Returns:
        The configured package logger
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(numeric_level)

    # Replace handlers from a previous call (the CLI callback runs per invocation)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=verbose,
        show_time=verbose,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s" if verbose else "%(message)s"))
    package_logger.addHandler(handler)

    return package_logger
