"""
Plugin logging policy.

This module centralizes logging setup and daktilo_nvim version injection into
log message formats. Only the `daktilo_nvim` logger is configured; the root
logger belongs to the pynvim plugin host.
"""

from __future__ import annotations

import logging

from daktilo_nvim import __version__

__all__ = ["logging_setup", "PACKAGE_LOGGER"]

PACKAGE_LOGGER = "daktilo_nvim"


def logging_setup(level: str, log_format: str, log_file: str | None) -> logging.Logger:
    """
    Configure package logging handlers and format.

    Handlers installed by a previous call are replaced, so DaktiloStart can be
    run more than once per Neovim session.

    Args:
        level:
            Log level name.
        log_format:
            Base logging format string.
        log_file:
            Optional log-file path. stderr is used when omitted.

    Returns:
        The configured package logger.
    """
    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler()

    enhanced_format: str = log_format.replace("%(asctime)s", f"%(asctime)s [v{__version__}]")
    handler.setFormatter(logging.Formatter(enhanced_format))
    handler._daktilo_nvim = True  # type: ignore[attr-defined]

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for old_handler in list(package_logger.handlers):
        if getattr(old_handler, "_daktilo_nvim", False):
            package_logger.removeHandler(old_handler)
            old_handler.close()

    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    package_logger.propagate = False
    return package_logger
