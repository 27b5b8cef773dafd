"""Logger setup for the ``erdcheck`` command line and its pipeline stages.

Every stage logs through a child of the ``erdcheck`` logger (``erdcheck.collector``,
``erdcheck.classifier`` and so on). Console lines carry a short ``[erdcheck]``
prefix so they stand out in CI job logs next to the workflow annotations the
reporter prints. The optional log file keeps timestamps and stage names.
"""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "erdcheck"
CONSOLE_FORMAT = "[erdcheck] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(stage: str | None = None) -> logging.Logger:
    """Return the logger for a pipeline stage, or the root ``erdcheck`` logger."""
    if not stage:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{stage}")


def _attach(logger: logging.Logger, handler: logging.Handler, fmt: str) -> None:
    handler.setLevel(logger.level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Route ``erdcheck`` records to stderr and, when given, to ``log_file``.

    ``verbose`` lowers the threshold to DEBUG, which shows skipped files and
    the prompt size. Calling this again replaces the handlers installed by the
    previous call.
    """
    logger = get_logger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _attach(logger, logging.StreamHandler(), CONSOLE_FORMAT)
    if log_file is not None:
        _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), FILE_FORMAT)
    return logger


__all__ = ["configure_logging", "get_logger"]
