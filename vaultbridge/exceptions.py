# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Exceptions raised by vaultbridge and its backends.

Callers are expected to branch on the exception class: for example
``AlreadyExistsError`` to switch from create to update, or
``NotFoundError`` to fall back to a default value.
"""

from collections.abc import Iterator
from contextlib import contextmanager


class VaultBridgeError(Exception):
    """Base exception for all vaultbridge errors."""
    pass


class NotFoundError(VaultBridgeError):
    """Raised when an item (or its secret payload) does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"item not found: {name}")


class AlreadyExistsError(VaultBridgeError):
    """Raised when creating an item or location that is already present."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"item already exists: {name}")


class NotAuthenticatedError(VaultBridgeError):
    """Raised when credentials are missing or were rejected."""

    def __init__(self, message: str = "not authenticated"):
        super().__init__(message)


class SessionExpiredError(VaultBridgeError):
    """Raised when a session is no longer valid and cannot be refreshed."""

    def __init__(self, message: str = "session expired"):
        super().__init__(message)


class BackendUnavailableError(VaultBridgeError):
    """Raised when a required CLI tool or SDK is not installed."""

    def __init__(self, message: str):
        super().__init__(f"backend not available: {message}")


class BackendLockedError(VaultBridgeError):
    """Raised when the vault is locked and cannot be unlocked automatically."""

    def __init__(self, message: str = "vault is locked"):
        super().__init__(message)


class PermissionDeniedError(VaultBridgeError):
    """Raised when the backend refuses the operation."""

    def __init__(self, message: str):
        super().__init__(f"permission denied: {message}")


class NotSupportedError(VaultBridgeError):
    """Raised for operations a backend does not implement, such as locations."""

    def __init__(self, message: str):
        super().__init__(f"operation not supported by backend: {message}")


class InvalidNameError(VaultBridgeError):
    """Raised when an item or location name fails validation."""

    def __init__(self, message: str):
        super().__init__(f"invalid item name: {message}")


class TransportError(VaultBridgeError):
    """Raised when talking to the external system fails."""
    pass


class CommandFailedError(TransportError):
    """Raised when a CLI tool exits with a non-zero status."""

    def __init__(self, program: str, returncode: int, stderr: str):
        self.program = program
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"command execution failed: {program} failed with exit code {returncode}: {stderr.strip()}"
        )


class BackendOperationError(VaultBridgeError):
    """An error annotated with the backend, operation and item it came from.

    The original error is kept as ``__cause__`` (and ``cause``) so callers
    can still inspect its type.
    """

    def __init__(self, backend: str, operation: str, item: str, cause: BaseException):
        self.backend = backend
        self.operation = operation
        self.item = item
        self.cause = cause
        super().__init__(f"{backend}: {operation} {item}: {cause}")
        self.__cause__ = cause


class UnknownBackendError(VaultBridgeError):
    """Raised by the factory when no constructor is registered for a key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"unknown backend: {key} (check that it was registered)")


@contextmanager
def wrap_errors(backend: str, operation: str, item: str) -> Iterator[None]:
    """Re-raise vaultbridge errors as :class:`BackendOperationError`.

    Example:
        >>> with wrap_errors("pass", "get", "api-key"):
        ...     notes = await backend.get_notes("api-key", session)
    """
    try:
        yield
    except BackendOperationError:
        raise
    except VaultBridgeError as e:
        raise BackendOperationError(backend, operation, item, e) from e
