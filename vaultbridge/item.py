# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Item model for secrets stored in a backend."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ItemType(str, Enum):
    """Kind of vault item.

    ``SECURE_NOTE`` is the only type every backend supports; the others
    exist for backends with richer item models.
    """

    SECURE_NOTE = "SecureNote"
    LOGIN = "Login"
    SSH_KEY = "SSHKey"
    IDENTITY = "Identity"
    CARD = "Card"

    def __str__(self) -> str:
        return self.value


def format_timestamp(value: datetime) -> str:
    """Format a datetime as RFC 3339 in UTC with a trailing ``Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Raises:
        ValueError: If the string is not a valid timestamp
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class Item:
    """A secret record held by a backend.

    ``id`` and ``name`` are always set. Everything else is best effort and
    depends on what the backend can report.

    Attributes:
        id: Backend-assigned identifier (format varies per backend)
        name: Logical name as seen by the caller, prefix already removed
        item_type: Kind of item
        notes: Main secret payload
        fields: Structured values such as username/password pairs
        location: Containing folder, vault or directory
        created: Creation time, when the backend tracks it
        modified: Last modification time, when the backend tracks it
    """
    id: str
    name: str
    item_type: ItemType = ItemType.SECURE_NOTE
    notes: str | None = None
    fields: dict[str, str] | None = None
    location: str | None = None
    created: datetime | None = None
    modified: datetime | None = None

    @classmethod
    def new_secure_note(cls, name: str, notes: str) -> "Item":
        """Create a secure note with a fresh id and current timestamps."""
        now = datetime.now(timezone.utc)
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            item_type=ItemType.SECURE_NOTE,
            notes=notes,
            created=now,
            modified=now,
        )

    @classmethod
    def new_login(cls, name: str, username: str, password: str) -> "Item":
        """Create a login item holding username and password fields."""
        now = datetime.now(timezone.utc)
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            item_type=ItemType.LOGIN,
            fields={"username": username, "password": password},
            created=now,
            modified=now,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert the item to a JSON-ready dictionary.

        Unset optional fields are omitted and timestamps are RFC 3339
        strings.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.item_type.value,
        }
        if self.notes is not None:
            data["notes"] = self.notes
        if self.fields is not None:
            data["fields"] = dict(self.fields)
        if self.location is not None:
            data["location"] = self.location
        if self.created is not None:
            data["created"] = format_timestamp(self.created)
        if self.modified is not None:
            data["modified"] = format_timestamp(self.modified)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Item":
        """Build an item from the output of :meth:`to_dict`.

        Raises:
            KeyError: If ``id`` or ``name`` is missing
            ValueError: If the type or a timestamp is invalid
        """
        created = data.get("created")
        modified = data.get("modified")
        fields = data.get("fields")
        return cls(
            id=data["id"],
            name=data["name"],
            item_type=ItemType(data.get("type", ItemType.SECURE_NOTE.value)),
            notes=data.get("notes"),
            fields=dict(fields) if fields is not None else None,
            location=data.get("location"),
            created=parse_timestamp(created) if created else None,
            modified=parse_timestamp(modified) if modified else None,
        )
