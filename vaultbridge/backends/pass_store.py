# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Backend for pass, the standard Unix password manager.

Secrets live as GPG-encrypted files under the password store directory.
Reads and writes go through the ``pass`` CLI so encryption keys and git
hooks are honoured; listing and location management read the directory
tree directly.
"""

import asyncio
import os
from datetime import datetime, timezone
from pathlib import Path

from vaultbridge_logging import get_logger

from ..backend import Backend
from ..cli import check_command_exists, run_command, run_command_with_stdin
from ..config import BackendType, Config
from ..exceptions import (
    AlreadyExistsError,
    BackendUnavailableError,
    CommandFailedError,
    InvalidNameError,
    NotFoundError,
    NotSupportedError,
    VaultBridgeError,
)
from ..item import Item, ItemType
from ..session import Session, StaticSession
from ..status_cache import StatusCache
from ..validation import validate_item_name, validate_location_name

logger = get_logger(__name__)

ENTRY_SUFFIX = ".gpg"
NOT_IN_STORE = "is not in the password store"
LOCATION_TYPES = ("directory", "folder")


def default_store_path() -> Path:
    """``$PASSWORD_STORE_DIR`` if set, otherwise ``~/.password-store``."""
    env_path = os.environ.get("PASSWORD_STORE_DIR")
    if env_path:
        return Path(env_path)
    return Path.home() / ".password-store"


class PassBackend(Backend):
    """Secret backend on top of the ``pass`` command-line tool.

    Item ``api-key`` with prefix ``myapp`` is stored as
    ``<store>/myapp/api-key.gpg``. Sub-directories below the prefix are
    locations, so ``work/api-key`` is an item in location ``work``.

    Authentication is delegated to the GPG agent; :meth:`authenticate`
    always succeeds.
    """

    name = BackendType.PASS.value
    supports_locations = True

    def __init__(self, config: Config):
        super().__init__(config)
        self.store_path = Path(config.store_path).expanduser() if config.store_path else default_store_path()
        self._status_cache = StatusCache()

    @property
    def _env(self) -> dict[str, str]:
        return {"PASSWORD_STORE_DIR": str(self.store_path)}

    @property
    def _root(self) -> Path:
        """Directory that holds this backend's entries."""
        base = self._prefix_base()
        return self.store_path / base if base else self.store_path

    def _resolve(self, name: str, suffix: str = "") -> Path:
        """Resolve a logical name below the prefix directory, rejecting path traversal.

        Raises:
            InvalidNameError: If the path escapes the prefix directory
        """
        potential_path = (self._root / f"{name}{suffix}").resolve()
        base_resolved = self._root.resolve()

        try:
            potential_path.relative_to(base_resolved)
        except ValueError as e:
            raise InvalidNameError(f"path traversal detected: {name}") from e

        if potential_path == base_resolved:
            raise InvalidNameError(f"name resolves to the store directory: {name}")

        return potential_path

    def _entry_file(self, name: str) -> Path:
        validate_item_name(name)
        return self._resolve(name, ENTRY_SUFFIX)

    def _location_dir(self, name: str) -> Path:
        validate_location_name(name)
        return self._resolve(name)

    async def init(self) -> None:
        if not check_command_exists("pass"):
            raise BackendUnavailableError("pass command not found - install pass (Unix password manager)")
        if not check_command_exists("gpg"):
            raise BackendUnavailableError("gpg command not found - install GnuPG")
        if not self.store_path.is_dir():
            raise BackendUnavailableError(
                f"password store not initialized at {self.store_path}. Run: pass init <gpg-key-id>"
            )
        logger.info("Initialized pass backend", store_path=str(self.store_path))

    async def is_authenticated(self) -> bool:
        cached = self._status_cache.get()
        if cached is not None:
            return cached

        try:
            await run_command("pass", ["ls"], env=self._env)
            authenticated = True
        except VaultBridgeError as e:
            logger.debug("pass status check failed", error=str(e))
            authenticated = False

        self._status_cache.set(authenticated)
        return authenticated

    async def authenticate(self) -> Session:
        self._status_cache.invalidate()
        return StaticSession("", label=self.name)

    async def sync(self, session: Session) -> None:
        """Pull from the store's git remote when the store is a git repository."""
        if not (self.store_path / ".git").is_dir():
            return
        await run_command("pass", ["git", "pull"], env=self._env)

    async def _existing_entry(self, name: str) -> Path:
        """Return the entry file for ``name``, raising NotFoundError when it is absent.

        ``pass show`` on a directory prints its tree and exits 0, so the
        file is checked before the CLI runs.
        """
        entry = self._entry_file(name)
        if not await asyncio.to_thread(entry.is_file):
            raise NotFoundError(name)
        return entry

    async def get_item(self, name: str, session: Session) -> Item:
        entry = await self._existing_entry(name)
        notes = await self._show(name)
        modified = await asyncio.to_thread(self._mtime, entry)
        return Item(
            id=self.prefixed_name(name),
            name=name,
            item_type=ItemType.SECURE_NOTE,
            notes=notes,
            location=self._location_of(name),
            modified=modified,
        )

    async def get_notes(self, name: str, session: Session) -> str:
        await self._existing_entry(name)
        return await self._show(name)

    async def item_exists(self, name: str, session: Session) -> bool:
        entry = self._entry_file(name)
        return await asyncio.to_thread(entry.is_file)

    async def list_items(self, session: Session) -> list[Item]:
        return await asyncio.to_thread(self._scan, self._root)

    async def create_item(self, name: str, content: str, session: Session) -> None:
        if await self.item_exists(name, session):
            raise AlreadyExistsError(name)
        await self._insert(name, content)
        logger.info("Created pass entry", item=name)

    async def update_item(self, name: str, content: str, session: Session) -> None:
        if not await self.item_exists(name, session):
            raise NotFoundError(name)
        await self._insert(name, content)
        logger.info("Updated pass entry", item=name)

    async def delete_item(self, name: str, session: Session) -> None:
        if not await self.item_exists(name, session):
            raise NotFoundError(name)
        try:
            await run_command("pass", ["rm", "-f", self.prefixed_name(name)], env=self._env)
        except CommandFailedError as e:
            if NOT_IN_STORE in e.stderr:
                raise NotFoundError(name) from e
            raise
        logger.info("Deleted pass entry", item=name)

    async def list_locations(self, session: Session) -> list[str]:
        return await asyncio.to_thread(self._subdirectories, self._root)

    async def location_exists(self, name: str, session: Session) -> bool:
        directory = self._location_dir(name)
        return await asyncio.to_thread(directory.is_dir)

    async def create_location(self, name: str, session: Session) -> None:
        directory = self._location_dir(name)
        await asyncio.to_thread(self._make_location, directory, name)
        logger.info("Created pass location", location=name)

    async def list_items_in_location(self, loc_type: str, loc_value: str, session: Session) -> list[Item]:
        if loc_type not in LOCATION_TYPES:
            raise NotSupportedError(f"{self.name}: location type {loc_type!r}")
        directory = self._location_dir(loc_value)
        return await asyncio.to_thread(self._scan, directory)

    async def _show(self, name: str) -> str:
        try:
            output = await run_command("pass", ["show", self.prefixed_name(name)], env=self._env)
        except CommandFailedError as e:
            if NOT_IN_STORE in e.stderr:
                raise NotFoundError(name) from e
            raise
        return output.strip()

    async def _insert(self, name: str, content: str) -> None:
        await run_command_with_stdin(
            "pass", ["insert", "-m", "-f", self.prefixed_name(name)], content, env=self._env
        )

    @staticmethod
    def _subdirectories(root: Path) -> list[str]:
        if not root.is_dir():
            return []
        return sorted(entry.name for entry in root.iterdir() if entry.is_dir() and not entry.name.startswith("."))

    @staticmethod
    def _make_location(directory: Path, name: str) -> None:
        if directory.exists():
            raise AlreadyExistsError(name)
        try:
            directory.mkdir(mode=0o700, parents=True)
        except OSError as e:
            raise VaultBridgeError(f"Failed to create location {name}: {e}") from e

    def _location_of(self, name: str) -> str | None:
        parent, sep, _ = name.rpartition("/")
        return parent if sep else None

    @staticmethod
    def _mtime(path: Path) -> datetime | None:
        try:
            return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        except FileNotFoundError:
            return None

    def _scan(self, directory: Path) -> list[Item]:
        """Collect every entry below ``directory`` as an item without notes."""
        if not directory.is_dir():
            return []

        items = []
        for entry in directory.rglob(f"*{ENTRY_SUFFIX}"):
            relative = entry.relative_to(self.store_path)
            if any(part.startswith(".") for part in relative.parts):
                continue
            full_name = relative.with_suffix("").as_posix()
            name = self.strip_prefix(full_name)
            if name is None:
                continue
            items.append(
                Item(
                    id=full_name,
                    name=name,
                    item_type=ItemType.SECURE_NOTE,
                    location=self._location_of(name),
                    modified=self._mtime(entry),
                )
            )
        return items
