# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""One interface over many secret stores.

Select a backend by key, authenticate once and use the returned session
for item operations.

Example:
    >>> from vaultbridge import BackendType, Config, create_backend
    >>> config = Config(BackendType.PASS).with_prefix("myapp")
    >>> async with create_backend(config) as backend:
    ...     session = await backend.authenticate()
    ...     try:
    ...         await backend.create_item("api-key", "secret-value", session)
    ...     except AlreadyExistsError:
    ...         await backend.update_item("api-key", "secret-value", session)
"""

__version__ = "0.1.0"

from .backend import Backend
from .config import BackendType, Config
from .exceptions import (
    AlreadyExistsError,
    BackendLockedError,
    BackendOperationError,
    BackendUnavailableError,
    CommandFailedError,
    InvalidNameError,
    NotAuthenticatedError,
    NotFoundError,
    NotSupportedError,
    PermissionDeniedError,
    SessionExpiredError,
    TransportError,
    UnknownBackendError,
    VaultBridgeError,
    wrap_errors,
)
from .factory import (
    BackendRegistry,
    create_backend,
    default_registry,
    init,
    register_backend,
    registered_backends,
)
from .item import Item, ItemType
from .session import CachedSession, ExpiringSession, Session, SessionCache, StaticSession
from .status_cache import StatusCache
from .validation import validate_item_name, validate_location_name, validate_name

__all__ = [
    "__version__",
    # Core
    "Backend",
    "BackendRegistry",
    "BackendType",
    "Config",
    "Item",
    "ItemType",
    # Sessions
    "CachedSession",
    "ExpiringSession",
    "Session",
    "SessionCache",
    "StaticSession",
    "StatusCache",
    # Factory
    "create_backend",
    "default_registry",
    "init",
    "register_backend",
    "registered_backends",
    # Validation
    "validate_item_name",
    "validate_location_name",
    "validate_name",
    # Exceptions
    "AlreadyExistsError",
    "BackendLockedError",
    "BackendOperationError",
    "BackendUnavailableError",
    "CommandFailedError",
    "InvalidNameError",
    "NotAuthenticatedError",
    "NotFoundError",
    "NotSupportedError",
    "PermissionDeniedError",
    "SessionExpiredError",
    "TransportError",
    "UnknownBackendError",
    "VaultBridgeError",
    "wrap_errors",
]
