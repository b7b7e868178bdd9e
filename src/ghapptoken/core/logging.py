"""Logging setup for pipeline output."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "ghapptoken"

_LEVEL_PREFIXES = {
    logging.DEBUG: "##[debug]",
    logging.WARNING: "##[warning]",
    logging.ERROR: "##[error]",
    logging.CRITICAL: "##[error]",
}


class PipelineFormatter(logging.Formatter):
    """
    Formatter that turns log levels into Azure Pipelines log prefixes.

    INFO lines are printed as-is so group markers and plain messages render
    normally in the pipeline log.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        prefix = _LEVEL_PREFIXES.get(record.levelno, "")
        return f"{prefix}{message}"


def get_logger(name: str | None = None) -> logging.Logger:
    if not name:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def setup_logging(debug: bool = False) -> logging.Logger:
    """Configure the package logger to write pipeline-formatted lines to stdout."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(PipelineFormatter("%(message)s"))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Remove existing handlers to avoid duplicate lines when called twice
    for existing in logger.handlers[:]:
        logger.removeHandler(existing)

    logger.addHandler(handler)
    logger.propagate = False

    # Silence noisy libraries
    logging.getLogger("httpx").setLevel("WARNING")
    logging.getLogger("httpcore").setLevel("WARNING")

    return logger
