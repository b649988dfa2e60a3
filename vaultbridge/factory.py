# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Registry that maps backend keys to constructors."""

import threading
from collections.abc import Callable

from vaultbridge_logging import get_logger

from .backend import Backend
from .config import BackendType, Config
from .exceptions import UnknownBackendError

logger = get_logger(__name__)

BackendConstructor = Callable[[Config], Backend]


def _key(backend_type: BackendType | str) -> str:
    if isinstance(backend_type, BackendType):
        return backend_type.value
    return str(backend_type)


class BackendRegistry:
    """Thread-safe mapping of backend keys to constructors.

    Registration normally happens once at startup and lookups happen on
    every :meth:`create`, so a single lock is held only for the dictionary
    access. Constructors run outside the lock.
    """

    def __init__(self):
        self._constructors: dict[str, BackendConstructor] = {}
        self._lock = threading.Lock()

    def register(self, backend_type: BackendType | str, constructor: BackendConstructor) -> None:
        """Register a constructor. A later registration for the same key wins."""
        key = _key(backend_type)
        with self._lock:
            replaced = key in self._constructors
            self._constructors[key] = constructor
        if replaced:
            logger.warning("Replacing registered backend constructor", backend=key)
        else:
            logger.debug("Registered backend constructor", backend=key)

    def unregister(self, backend_type: BackendType | str) -> None:
        """Remove a constructor. Unknown keys are ignored."""
        with self._lock:
            self._constructors.pop(_key(backend_type), None)

    def is_registered(self, backend_type: BackendType | str) -> bool:
        with self._lock:
            return _key(backend_type) in self._constructors

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._constructors)

    def create(self, config: Config) -> Backend:
        """Build a backend for ``config.backend``.

        The backend is returned uninitialized; call ``await backend.init()``
        or use it as an async context manager.

        Raises:
            UnknownBackendError: If no constructor is registered for the key
        """
        key = config.backend_key
        with self._lock:
            constructor = self._constructors.get(key)
        if constructor is None:
            raise UnknownBackendError(key)
        return constructor(config)


_default_registry = BackendRegistry()
_init_lock = threading.Lock()
_initialized = False


def init() -> None:
    """Register the bundled backends with the default registry.

    Safe to call any number of times from any thread; registration happens
    once. :func:`create_backend` calls it for you.
    """
    global _initialized
    with _init_lock:
        if _initialized:
            return
        from .backends import register_all

        register_all(_default_registry)
        _initialized = True


def default_registry() -> BackendRegistry:
    return _default_registry


def register_backend(backend_type: BackendType | str, constructor: BackendConstructor) -> None:
    """Register a constructor with the default registry.

    Bundled backends are registered first, so a custom constructor can
    replace one of them.

    Example:
        >>> register_backend("vault", lambda config: HashiVaultBackend(config))
    """
    init()
    _default_registry.register(backend_type, constructor)


def registered_backends() -> list[str]:
    """Keys registered with the default registry, sorted."""
    init()
    return _default_registry.keys()


def create_backend(config: Config) -> Backend:
    """Create a backend from the default registry.

    Raises:
        UnknownBackendError: If no constructor is registered for the key

    Example:
        >>> backend = create_backend(Config(BackendType.PASS).with_prefix("myapp"))
        >>> await backend.init()
    """
    init()
    return _default_registry.create(config)
