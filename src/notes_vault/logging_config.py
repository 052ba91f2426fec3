"""Logging configuration for the notes vault."""

import sys

from loguru import logger


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Send vault logs to stderr.

    verbose shows store mutations (DEBUG); quiet keeps only warnings, which
    suits the stdio MCP server.
    """
    logger.remove()
    level = "DEBUG" if verbose else "WARNING" if quiet else "INFO"
    logger.add(sys.stderr, level=level, format="{level.icon} {message}")
