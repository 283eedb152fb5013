"""Shared logging helpers."""

from __future__ import annotations

import logging

_LOGGER_NAME = "pressdesk"


def log(message: str, level: int = logging.INFO) -> None:
    """Log a message on the package logger."""
    logging.getLogger(_LOGGER_NAME).log(level, message)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging for CLI and server entry points."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
