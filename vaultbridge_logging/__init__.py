# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Structured logging for vaultbridge.

A small abstraction layer so library code logs through one interface
while applications decide where the records end up.

Example:
    >>> from vaultbridge_logging import create_logger
    >>> logger = create_logger(logger_type="stdout", level="INFO", name="my-app")
    >>> logger.info("Backend initialized", backend="pass")
    >>>
    >>> # Capture logs in memory for tests
    >>> test_logger = create_logger(logger_type="silent")
    >>> test_logger.info("Test message")
"""

__version__ = "0.1.0"

from .factory import create_logger, create_stdout_logger, get_logger, set_default_logger
from .logger import Logger
from .silent_logger import SilentLogger
from .stdout_logger import StdoutLogger

__all__ = [
    "__version__",
    "Logger",
    "SilentLogger",
    "StdoutLogger",
    "create_logger",
    "create_stdout_logger",
    "get_logger",
    "set_default_logger",
]
