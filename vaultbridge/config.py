# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Configuration describing which backend to build and how."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import timedelta
from enum import Enum

ENV_PREFIX = "VAULTBRIDGE_"
OPTION_ENV_PREFIX = "VAULTBRIDGE_OPTION_"

DEFAULT_PREFIX = "dotfiles"
DEFAULT_SESSION_TTL = timedelta(minutes=30)


class BackendType(str, Enum):
    """Registry keys of the known backends."""

    MOCK = "mock"
    BITWARDEN = "bitwarden"
    ONEPASSWORD = "1password"
    PASS = "pass"
    WINDOWS_CREDENTIAL_MANAGER = "wincred"
    AWS_SECRETS_MANAGER = "awssecrets"
    GCP_SECRET_MANAGER = "gcpsecrets"
    AZURE_KEY_VAULT = "azurekeyvault"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Config:
    """Backend configuration.

    ``backend`` selects the registered constructor. It is usually a
    :class:`BackendType`, but any string works so third-party backends and
    test doubles can register their own keys.

    Attributes:
        backend: Registry key of the backend to build
        prefix: Prepended to every item name for namespacing; empty disables it
        session_file: Where to cache the session token, if anywhere
        session_ttl: How long a cached session is trusted
        store_path: Storage location for filesystem backends
        options: Backend-specific settings (region, vault URL, ...)

    Example:
        >>> config = (
        ...     Config(BackendType.PASS)
        ...     .with_prefix("myapp")
        ...     .with_session_file("/tmp/.myapp-session")
        ... )
    """
    backend: BackendType | str = BackendType.PASS
    prefix: str = DEFAULT_PREFIX
    session_file: str | None = None
    session_ttl: timedelta = DEFAULT_SESSION_TTL
    store_path: str | None = None
    options: Mapping[str, str] = field(default_factory=dict)

    @property
    def backend_key(self) -> str:
        """The string used to look up the backend in the registry."""
        if isinstance(self.backend, BackendType):
            return self.backend.value
        return str(self.backend)

    def with_prefix(self, prefix: str) -> "Config":
        return replace(self, prefix=prefix)

    def with_store_path(self, path: str) -> "Config":
        return replace(self, store_path=str(path))

    def with_session_file(self, path: str) -> "Config":
        return replace(self, session_file=str(path))

    def with_session_ttl(self, ttl: timedelta) -> "Config":
        return replace(self, session_ttl=ttl)

    def with_option(self, key: str, value: str) -> "Config":
        """Return a copy with one backend-specific option added or replaced."""
        options = dict(self.options)
        options[key] = value
        return replace(self, options=options)

    def get_option(self, key: str, default: str | None = None) -> str | None:
        return self.options.get(key, default)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Config":
        """Build a configuration from ``VAULTBRIDGE_*`` environment variables.

        Recognized variables:
        - VAULTBRIDGE_BACKEND: registry key (default: "mock")
        - VAULTBRIDGE_PREFIX: item name prefix (default: "dotfiles")
        - VAULTBRIDGE_SESSION_FILE: session cache path
        - VAULTBRIDGE_SESSION_TTL: session lifetime in seconds (default: 1800)
        - VAULTBRIDGE_STORE_PATH: store location for filesystem backends
        - VAULTBRIDGE_OPTION_<NAME>: backend option ``<name>`` (lower-cased)

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            Config instance

        Raises:
            ValueError: If VAULTBRIDGE_SESSION_TTL is not a whole number of seconds
        """
        env = os.environ if environ is None else environ

        backend_name = env.get(f"{ENV_PREFIX}BACKEND") or BackendType.MOCK.value
        try:
            backend: BackendType | str = BackendType(backend_name.lower())
        except ValueError:
            backend = backend_name

        ttl_value = env.get(f"{ENV_PREFIX}SESSION_TTL")
        if ttl_value:
            try:
                session_ttl = timedelta(seconds=int(ttl_value))
            except ValueError as e:
                raise ValueError(
                    f"{ENV_PREFIX}SESSION_TTL must be a number of seconds, got {ttl_value!r}"
                ) from e
        else:
            session_ttl = DEFAULT_SESSION_TTL

        options = {
            key[len(OPTION_ENV_PREFIX):].lower(): value
            for key, value in env.items()
            if key.startswith(OPTION_ENV_PREFIX) and len(key) > len(OPTION_ENV_PREFIX)
        }

        return cls(
            backend=backend,
            prefix=env.get(f"{ENV_PREFIX}PREFIX", DEFAULT_PREFIX),
            session_file=env.get(f"{ENV_PREFIX}SESSION_FILE") or None,
            session_ttl=session_ttl,
            store_path=env.get(f"{ENV_PREFIX}STORE_PATH") or None,
            options=options,
        )
