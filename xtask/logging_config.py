"""
Logging setup for xtask.

Console messages go to stderr so the output of the tools xtask runs has
stdout to itself. ``--log-file`` adds a file handler that always records
DEBUG, including every candidate rejected while resolving a tool.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, TextIO


LOGGER_NAME = "xtask"


def console_level(verbose: bool = False, quiet: bool = False) -> int:
    """Console threshold: DEBUG with --verbose, WARNING with --quiet, else INFO."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def use_color(stream: TextIO) -> bool:
    """Color only terminals, and never when XTASK_COLOR=0."""
    if os.environ.get("XTASK_COLOR", "1") != "1":
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[str] = None,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure the ``xtask`` logger.

    Args:
        verbose: Show DEBUG messages on the console
        quiet: Only show warnings and errors on the console
        log_file: Also write every message, DEBUG included, to this file
        propagate: Pass records on to the root logger (for caplog in tests)

    Returns:
        The configured ``xtask`` logger
    """
    level = console_level(verbose, quiet)

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    # The file handler needs DEBUG records even when the console does not
    logger.setLevel(logging.DEBUG if log_file else level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(use_colors=use_color(sys.stderr)))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(file_handler)

    logger.propagate = propagate
    return logger


def log_failure(logger: logging.Logger, error: BaseException) -> None:
    """Log ``error`` and each exception it was raised from."""
    logger.error(str(error))
    cause = error.__cause__
    while cause is not None:
        logger.error("caused by: %s", cause)
        cause = cause.__cause__


class ColoredFormatter(logging.Formatter):
    """
    Cargo-style console formatter: ``error: message``, ``warning: message``.

    INFO messages are printed bare; the other levels get a lowercase,
    optionally colored prefix.
    """

    COLORS = {
        "DEBUG": "\033[36m",       # Cyan
        "WARNING": "\033[1;33m",   # Bold yellow
        "ERROR": "\033[1;31m",     # Bold red
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__("%(prefix)s%(message)s")
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            record.prefix = ""
        else:
            label = record.levelname.lower()
            if self.use_colors:
                label = f"{self.COLORS.get(record.levelname, '')}{label}{self.RESET}"
            record.prefix = f"{label}: "
        return super().format(record)
