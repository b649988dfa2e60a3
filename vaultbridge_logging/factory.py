# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Factory functions for creating logger instances."""

import os
import threading

from .logger import Logger
from .silent_logger import SilentLogger
from .stdout_logger import StdoutLogger

_default_logger: Logger | None = None
_logger_registry: dict[str, Logger] = {}
_registry_lock = threading.Lock()


def _default(value: str | None, env_var: str, fallback: str) -> str:
    """Pick an explicit value, then the env var, then the fallback."""
    return value or os.getenv(env_var) or fallback


def create_logger(
    logger_type: str | None = None,
    level: str | None = None,
    name: str | None = None,
) -> Logger:
    """Factory function to create a logger instance.

    Args:
        logger_type: Type of logger to create. Options: "stdout", "silent".
            Defaults to LOG_TYPE env or "stdout".
        level: Logging level. Options: DEBUG, INFO, WARNING, ERROR.
            Defaults to LOG_LEVEL env or "INFO".
        name: Logger name for identification. Defaults to LOG_NAME env or "vaultbridge".

    Returns:
        Logger instance

    Raises:
        ValueError: If logger_type is not recognized

    Example:
        >>> logger = create_logger(logger_type="stdout", level="DEBUG", name="my-app")
        >>> logger = create_logger(logger_type="silent")
    """
    logger_type = _default(logger_type, "LOG_TYPE", "stdout").lower()
    level = _default(level, "LOG_LEVEL", "INFO").upper()
    name = _default(name, "LOG_NAME", "vaultbridge")

    if logger_type == "stdout":
        return StdoutLogger(level=level, name=name)
    elif logger_type == "silent":
        return SilentLogger(level=level, name=name)
    else:
        raise ValueError(
            f"Unknown logger_type: {logger_type}. "
            f"Must be one of: stdout, silent"
        )


def create_stdout_logger(level: str | None = None, name: str | None = None) -> Logger:
    """Shortcut for ``create_logger("stdout", level, name)``."""
    return create_logger(logger_type="stdout", level=level, name=name)


def set_default_logger(logger: Logger | None) -> None:
    """Install the logger returned by :func:`get_logger`.

    Passing None restores per-name fallback loggers. Cached fallbacks are
    dropped either way.
    """
    global _default_logger
    with _registry_lock:
        _default_logger = logger
        _logger_registry.clear()


def get_logger(name: str | None = None) -> Logger:
    """Return the logger a module should use.

    The default logger wins when one has been installed. Otherwise a logger
    is created from the LOG_* environment for ``name`` and cached, so
    repeated calls with the same name return the same instance.
    """
    with _registry_lock:
        if _default_logger is not None:
            return _default_logger
        key = name or "vaultbridge"
        logger = _logger_registry.get(key)
        if logger is None:
            logger = create_logger(name=key)
            _logger_registry[key] = logger
        return logger
