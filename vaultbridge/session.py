# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Sessions and the on-disk session cache.

A :class:`Session` is the capability token returned by
``Backend.authenticate()`` and passed into every item operation.
:class:`SessionCache` persists one session token to a file so CLI
backends do not prompt on every invocation.
"""

import asyncio
import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from vaultbridge_logging import get_logger

from .exceptions import SessionExpiredError, VaultBridgeError
from .item import format_timestamp, parse_timestamp

logger = get_logger(__name__)

DIR_MODE = 0o700
FILE_MODE = 0o600


class Session(ABC):
    """An authenticated session with a backend.

    Sessions are shared between concurrent tasks. Reading the token or
    checking validity never needs exclusive access; only :meth:`refresh`
    changes state.
    """

    @property
    @abstractmethod
    def token(self) -> str:
        """The raw credential string.

        An empty string means authentication is handled by the runtime
        environment (OS credential store, cloud credential chain).
        """
        pass

    @abstractmethod
    async def is_valid(self) -> bool:
        """Return True while the session can still be used."""
        pass

    @abstractmethod
    async def refresh(self) -> None:
        """Extend the session's validity.

        Raises:
            SessionExpiredError: If the session cannot be refreshed and the
                caller has to authenticate again
        """
        pass

    @property
    @abstractmethod
    def expires_at(self) -> datetime | None:
        """When the session expires, or None if it never does."""
        pass


class ExpiringSession(Session):
    """Session token with a fixed expiry and no refresh support.

    Used by CLI backends whose unlock command hands out a token that stays
    valid until the vault is locked again.
    """

    def __init__(
        self,
        token: str,
        ttl: timedelta | None = None,
        *,
        expires: datetime | None = None,
    ):
        """Create a session from a TTL or from an explicit expiry.

        Args:
            token: Session token
            ttl: Lifetime counted from now
            expires: Absolute expiry, used when restoring a cached session

        Raises:
            ValueError: If neither or both of ttl and expires are given
        """
        if (ttl is None) == (expires is None):
            raise ValueError("Provide exactly one of ttl or expires")
        self._token = token
        if expires is None:
            expires = datetime.now(timezone.utc) + ttl
        self._expires = expires

    @property
    def token(self) -> str:
        return self._token

    async def is_valid(self) -> bool:
        return datetime.now(timezone.utc) < self._expires

    async def refresh(self) -> None:
        raise SessionExpiredError()

    @property
    def expires_at(self) -> datetime | None:
        return self._expires


class StaticSession(Session):
    """Session that never expires.

    Backends without a session concept (GPG agent, cloud credential chains)
    return one of these, usually with the empty-token sentinel.
    """

    def __init__(self, token: str = "", label: str | None = None):
        self._token = token
        self.label = label

    @property
    def token(self) -> str:
        return self._token

    async def is_valid(self) -> bool:
        return True

    async def refresh(self) -> None:
        return None

    @property
    def expires_at(self) -> datetime | None:
        return None


@dataclass
class CachedSession:
    """Session record stored on disk.

    Attributes:
        token: The session token
        created: When the record was saved
        expires: ``created + ttl``
        backend: Backend name, for diagnostics only
    """
    token: str
    created: datetime
    expires: datetime
    backend: str

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(timezone.utc)) > self.expires

    def to_dict(self) -> dict[str, str]:
        return {
            "token": self.token,
            "created": format_timestamp(self.created),
            "expires": format_timestamp(self.expires),
            "backend": self.backend,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CachedSession":
        """Parse a cache record.

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed
        """
        values = [data[key] for key in ("token", "created", "expires", "backend")]
        if not all(isinstance(value, str) for value in values):
            raise TypeError("session record fields must be strings")
        token, created, expires, backend = values
        return cls(
            token=token,
            created=parse_timestamp(created),
            expires=parse_timestamp(expires),
            backend=backend,
        )


class SessionCache:
    """Single-slot, file-backed store for one session token.

    Security:
    - The parent directory is created with mode 0700
    - The file is written with mode 0600 and moved into place atomically
    - Corrupt or expired files are deleted on load
    - Tokens are never logged

    There is no internal locking; one writer per path is assumed.

    Example:
        >>> cache = SessionCache("/tmp/.vaultbridge/session.json", timedelta(minutes=30))
        >>> await cache.save("session-token", "bitwarden")
        >>> cached = await cache.load()
    """

    def __init__(self, path: str | os.PathLike, ttl: timedelta):
        """Create the cache and its parent directory.

        Args:
            path: File that holds the session record
            ttl: How long a saved session stays valid

        Raises:
            VaultBridgeError: If the parent directory cannot be created
        """
        self.path = Path(path)
        self.ttl = ttl

        parent = self.path.parent
        try:
            parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            if os.name == "posix":
                os.chmod(parent, DIR_MODE)
        except OSError as e:
            raise VaultBridgeError(f"Failed to create session cache directory {parent}: {e}") from e

    async def load(self) -> CachedSession | None:
        """Read the cached session.

        Returns:
            The cached session, or None if the file is missing, unreadable
            as a session record, or expired. Corrupt and expired files are
            removed.

        Raises:
            VaultBridgeError: For I/O failures other than a missing file
        """
        return await asyncio.to_thread(self._load)

    async def save(self, token: str, backend: str) -> CachedSession:
        """Persist a session token with ``expires = now + ttl``.

        Returns:
            The record that was written

        Raises:
            VaultBridgeError: If writing fails
        """
        now = datetime.now(timezone.utc)
        record = CachedSession(token=token, created=now, expires=now + self.ttl, backend=backend)
        await asyncio.to_thread(self._write, record)
        logger.debug("Saved session to cache", backend=backend, path=str(self.path))
        return record

    async def clear(self) -> None:
        """Delete the cache file. Succeeds whether or not it exists."""
        await asyncio.to_thread(self._remove)

    def _load(self) -> CachedSession | None:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise VaultBridgeError(f"Failed to read session cache {self.path}: {e}") from e

        try:
            record = CachedSession.from_dict(json.loads(data))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding corrupt session cache", path=str(self.path), error=type(e).__name__)
            self._discard()
            return None

        if record.is_expired():
            logger.debug("Discarding expired session cache", path=str(self.path))
            self._discard()
            return None

        return record

    def _write(self, record: CachedSession) -> None:
        payload = json.dumps(record.to_dict(), indent=2).encode("utf-8")
        # mkstemp creates the file with mode 0600 before any content is written
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            if os.name == "posix":
                os.chmod(tmp_name, FILE_MODE)
            os.replace(tmp_name, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise VaultBridgeError(f"Failed to write session cache {self.path}: {e}") from e

    def _discard(self) -> None:
        """Best-effort removal of an unusable cache file; ``load`` still reports no session."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove unusable session cache", path=str(self.path), error=str(e))

    def _remove(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise VaultBridgeError(f"Failed to remove session cache {self.path}: {e}") from e
