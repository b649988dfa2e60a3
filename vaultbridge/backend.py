# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Abstract backend interface every secret store implements."""

from abc import ABC, abstractmethod

from .config import Config
from .exceptions import NotFoundError, NotSupportedError
from .item import Item
from .session import Session


class Backend(ABC):
    """Abstract base class for secret storage backends.

    One contract over CLI password managers, OS credential stores and cloud
    secret services. Every operation except the prefix helpers is a
    coroutine. Item operations take the :class:`Session` returned by
    :meth:`authenticate` as a capability token.

    Item names are logical: the configured prefix is added before talking to
    the store and stripped from every name the backend reports.

    Location management (folders, vaults, directories) is optional. Backends
    without it leave :attr:`supports_locations` False and inherit the
    methods below, which raise :class:`NotSupportedError`.

    Example:
        >>> async with create_backend(Config(BackendType.PASS)) as backend:
        ...     session = await backend.authenticate()
        ...     await backend.create_item("api-key", "secret-value", session)
        ...     notes = await backend.get_notes("api-key", session)
    """

    #: Registry key of the backend
    name: str = ""
    #: Whether the location methods are implemented
    supports_locations: bool = False
    #: Joins the prefix and the item name in the underlying store
    prefix_separator: str = "/"

    def __init__(self, config: Config):
        self.config = config
        self.prefix = config.prefix

    async def __aenter__(self) -> "Backend":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Lifecycle

    @abstractmethod
    async def init(self) -> None:
        """Check prerequisites and set up clients.

        Raises:
            BackendUnavailableError: If the CLI tool or SDK is missing
            VaultBridgeError: If required configuration is missing
        """
        pass

    async def close(self) -> None:
        """Release resources. Idempotent and safe to call without init."""
        return None

    # Authentication

    @abstractmethod
    async def is_authenticated(self) -> bool:
        """Return whether the backend is usable right now.

        Never raises; any failure is reported as False. May be cached for a
        few seconds.
        """
        pass

    @abstractmethod
    async def authenticate(self) -> Session:
        """Authenticate and return a session.

        Raises:
            NotAuthenticatedError: If credentials are missing or rejected
            BackendLockedError: If the vault is locked and cannot be unlocked
                without user interaction
        """
        pass

    async def sync(self, session: Session) -> None:
        """Synchronize with the remote store. No-op unless overridden."""
        return None

    # Items

    @abstractmethod
    async def get_item(self, name: str, session: Session) -> Item:
        """Fetch an item by logical name.

        Raises:
            InvalidNameError: If the name fails validation
            NotFoundError: If no such item exists
        """
        pass

    async def get_notes(self, name: str, session: Session) -> str:
        """Return the notes payload of an item.

        An item without notes is reported exactly like a missing item.

        Raises:
            NotFoundError: If the item is missing or has no notes
        """
        item = await self.get_item(name, session)
        if item.notes is None:
            raise NotFoundError(name)
        return item.notes

    async def item_exists(self, name: str, session: Session) -> bool:
        """Return whether an item exists. Absence is not an error."""
        try:
            await self.get_item(name, session)
        except NotFoundError:
            return False
        return True

    @abstractmethod
    async def list_items(self, session: Session) -> list[Item]:
        """List the items under the configured prefix, in no particular order."""
        pass

    @abstractmethod
    async def create_item(self, name: str, content: str, session: Session) -> None:
        """Create a secure note.

        Raises:
            AlreadyExistsError: If an item with this name is already present
        """
        pass

    @abstractmethod
    async def update_item(self, name: str, content: str, session: Session) -> None:
        """Replace the notes payload of an existing item.

        Raises:
            NotFoundError: If the item does not exist
        """
        pass

    @abstractmethod
    async def delete_item(self, name: str, session: Session) -> None:
        """Delete an item.

        Raises:
            NotFoundError: If the item does not exist
        """
        pass

    # Locations

    async def list_locations(self, session: Session) -> list[str]:
        raise NotSupportedError(f"{self.name}: list_locations")

    async def location_exists(self, name: str, session: Session) -> bool:
        raise NotSupportedError(f"{self.name}: location_exists")

    async def create_location(self, name: str, session: Session) -> None:
        raise NotSupportedError(f"{self.name}: create_location")

    async def list_items_in_location(self, loc_type: str, loc_value: str, session: Session) -> list[Item]:
        raise NotSupportedError(f"{self.name}: list_items_in_location")

    # Helpers for subclasses

    def prefixed_name(self, name: str) -> str:
        """Map a logical name to the name used in the underlying store."""
        base = self._prefix_base()
        if not base:
            return name
        return f"{base}{self.prefix_separator}{name}"

    def strip_prefix(self, full_name: str) -> str | None:
        """Map a store name back to a logical name.

        Returns:
            The logical name, or None if ``full_name`` is outside the prefix
        """
        base = self._prefix_base()
        if not base:
            return full_name
        marker = f"{base}{self.prefix_separator}"
        if not full_name.startswith(marker) or len(full_name) == len(marker):
            return None
        return full_name[len(marker):]

    def _prefix_base(self) -> str:
        if self.prefix_separator:
            return self.prefix.rstrip(self.prefix_separator)
        return self.prefix

