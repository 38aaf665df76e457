"""Logger hierarchy shared by the screengate stages.

Every stage logs under ``screengate.<stage>`` (``manifests.store``,
``plan.builder``, ``scoring.aggregator``, ``remediation.controller`` and so
on), so one call to :func:`configure_logging` from the CLI decides where the
whole batch run reports. Console lines are kept short for operators watching
a remediation loop; the optional log file keeps timestamps and logger names
so cycles can be reconstructed afterwards.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "screengate"
_CONSOLE_FORMAT = "[screengate] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the logger for one stage, e.g. ``get_logger("plan.validator")``."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Route stage logs to stderr and, when given, to ``log_file``.

    ``verbose`` lowers the level to DEBUG, which adds per-screen scoring and
    missing-evidence lines. Calling this again replaces the handlers.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
