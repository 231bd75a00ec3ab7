"""Logging configuration for featureforge entry points."""

from __future__ import annotations

import logging
from pathlib import Path

CONSOLE_FORMAT = "%(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers held at WARNING regardless of verbosity
NOISY_LOGGERS = ("httpx", "openai", "httpcore", "urllib3", "uvicorn.access")


def _console_handler(verbose: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def _file_handler(log_file: str) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
    return handler


def setup_logging(
    logger_name: str = "featureforge",
    log_file: str | None = None,
    verbose: bool = False,
) -> logging.Logger:
    """
    Attach console and optional file handlers to the featureforge hierarchy.

    Every ``featureforge.*`` module logger propagates here, so agents and the
    orchestrator need no handlers of their own. The file handler always
    records DEBUG; ``verbose`` only affects the console.

    Args:
        logger_name: Top of the logger hierarchy to configure
        log_file: Append-mode log file, parent directories are created
        verbose: Show DEBUG records on the console

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)

    # Repeated setup (one CLI invocation per test) replaces old handlers
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()

    handlers = [_console_handler(verbose)]
    if log_file:
        handlers.append(_file_handler(log_file))
    for handler in handlers:
        logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
