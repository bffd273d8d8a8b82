"""Logging utilities for depscan commands."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "depscan"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the depscan hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the depscan logger with console output and optional file sink.

    File records carry the thread name so output from parallel analysis workers
    (``depscan-analyze_N``) can be told apart.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    # The file sink always records debug detail; the console follows --verbose.
    logger.setLevel(logging.DEBUG if log_file is not None else level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked repeatedly.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[depscan] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
