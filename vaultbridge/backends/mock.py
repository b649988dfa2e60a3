# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""In-memory backend for tests, with error injection."""

from collections import Counter
from dataclasses import replace
from datetime import datetime, timezone

from ..backend import Backend
from ..config import BackendType, Config
from ..exceptions import AlreadyExistsError, NotFoundError, NotSupportedError
from ..item import Item
from ..session import Session, StaticSession
from ..validation import validate_item_name, validate_location_name

MOCK_SESSION_TOKEN = "mock-session-token"
LOCATION_TYPES = ("folder", "directory")


class MockBackend(Backend):
    """Complete in-memory backend.

    Items are stored under their prefixed names, so prefix scoping behaves
    as it does with a real store. Assign an exception to one of the
    ``*_error`` attributes to make the matching operation raise it.

    Attributes:
        auth_error: Raised by authenticate(); also makes is_authenticated() False
        get_error: Raised by get_item() and everything built on it
        create_error: Raised by create_item()
        update_error: Raised by update_item()
        delete_error: Raised by delete_item()
        call_counts: Number of calls per operation name

    Example:
        >>> backend = MockBackend()
        >>> backend.get_error = PermissionDeniedError("test")
    """

    name = BackendType.MOCK.value
    supports_locations = True

    def __init__(self, config: Config | None = None):
        super().__init__(config or Config(backend=BackendType.MOCK))
        self._items: dict[str, Item] = {}
        self._locations: set[str] = set()
        self.auth_error: Exception | None = None
        self.get_error: Exception | None = None
        self.create_error: Exception | None = None
        self.update_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.call_counts: Counter[str] = Counter()
        self.initialized = False
        self.closed = False

    def set_item(self, name: str, content: str, location: str | None = None) -> Item:
        """Store an item directly, bypassing validation and error injection."""
        item = Item.new_secure_note(name, content)
        item.location = location
        self._items[self.prefixed_name(name)] = item
        return item

    def set_location(self, name: str) -> None:
        self._locations.add(name)

    async def init(self) -> None:
        self.call_counts["init"] += 1
        self.initialized = True
        self.closed = False

    async def close(self) -> None:
        self.call_counts["close"] += 1
        self.closed = True

    async def is_authenticated(self) -> bool:
        return self.auth_error is None

    async def authenticate(self) -> Session:
        self.call_counts["authenticate"] += 1
        if self.auth_error is not None:
            raise self.auth_error
        return StaticSession(MOCK_SESSION_TOKEN, label=self.name)

    async def sync(self, session: Session) -> None:
        self.call_counts["sync"] += 1

    async def get_item(self, name: str, session: Session) -> Item:
        self.call_counts["get_item"] += 1
        validate_item_name(name)
        if self.get_error is not None:
            raise self.get_error
        item = self._items.get(self.prefixed_name(name))
        if item is None:
            raise NotFoundError(name)
        return replace(item, fields=dict(item.fields) if item.fields else item.fields)

    async def item_exists(self, name: str, session: Session) -> bool:
        self.call_counts["item_exists"] += 1
        validate_item_name(name)
        return self.prefixed_name(name) in self._items

    async def list_items(self, session: Session) -> list[Item]:
        self.call_counts["list_items"] += 1
        if self.get_error is not None:
            raise self.get_error
        return [replace(item) for key, item in self._items.items() if self.strip_prefix(key) is not None]

    async def create_item(self, name: str, content: str, session: Session) -> None:
        self.call_counts["create_item"] += 1
        validate_item_name(name)
        if self.create_error is not None:
            raise self.create_error
        key = self.prefixed_name(name)
        if key in self._items:
            raise AlreadyExistsError(name)
        self._items[key] = Item.new_secure_note(name, content)

    async def update_item(self, name: str, content: str, session: Session) -> None:
        self.call_counts["update_item"] += 1
        validate_item_name(name)
        if self.update_error is not None:
            raise self.update_error
        key = self.prefixed_name(name)
        item = self._items.get(key)
        if item is None:
            raise NotFoundError(name)
        self._items[key] = replace(item, notes=content, modified=datetime.now(timezone.utc))

    async def delete_item(self, name: str, session: Session) -> None:
        self.call_counts["delete_item"] += 1
        validate_item_name(name)
        if self.delete_error is not None:
            raise self.delete_error
        if self._items.pop(self.prefixed_name(name), None) is None:
            raise NotFoundError(name)

    async def list_locations(self, session: Session) -> list[str]:
        return sorted(self._locations)

    async def location_exists(self, name: str, session: Session) -> bool:
        validate_location_name(name)
        return name in self._locations

    async def create_location(self, name: str, session: Session) -> None:
        validate_location_name(name)
        if name in self._locations:
            raise AlreadyExistsError(name)
        self._locations.add(name)

    async def list_items_in_location(self, loc_type: str, loc_value: str, session: Session) -> list[Item]:
        if loc_type not in LOCATION_TYPES:
            raise NotSupportedError(f"{self.name}: location type {loc_type!r}")
        validate_location_name(loc_value)
        return [
            replace(item)
            for key, item in self._items.items()
            if item.location == loc_value and self.strip_prefix(key) is not None
        ]
