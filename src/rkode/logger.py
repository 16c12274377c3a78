"""
Thin wrapper around Python's ``logging`` module.

Every module in the package logs through ``get_logger(__name__)`` so a
single ``set_level()`` call controls the whole ``rkode`` hierarchy.

Usage
-----
>>> from rkode.logger import get_logger, setup
>>> setup("DEBUG")
>>> log = get_logger(__name__)
>>> log.info("x = %g", 0.5)
"""

import logging
import sys

ROOT = "rkode"

logging.getLogger(ROOT).addHandler(logging.NullHandler())


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``rkode`` hierarchy.

    Names that are not already qualified (e.g. a test module) are placed
    below the ``rkode`` root logger.
    """
    if not name:
        return logging.getLogger(ROOT)
    if name != ROOT and not name.startswith(ROOT + "."):
        name = f"{ROOT}.{name}"
    return logging.getLogger(name)


def set_level(level: int | str = logging.INFO) -> None:
    """Set the log level for *all* rkode loggers at once."""
    if isinstance(level, str):
        level = level.upper()
    logging.getLogger(ROOT).setLevel(level)


def setup(level: int | str = logging.INFO, stream=None) -> None:
    """One-time setup: attach a stderr handler with the rkode format.

    Safe to call multiple times; extra calls only change the level.
    """
    root = logging.getLogger(ROOT)
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)-7s: %(message)s"))
        root.addHandler(handler)
    set_level(level)
