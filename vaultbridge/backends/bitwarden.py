# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Backend for the Bitwarden CLI (``bw``)."""

import base64
import json
import os
from datetime import datetime
from typing import Any

from vaultbridge_logging import get_logger

from ..backend import Backend
from ..cli import check_command_exists, run_command
from ..config import BackendType, Config
from ..exceptions import (
    AlreadyExistsError,
    BackendLockedError,
    BackendUnavailableError,
    CommandFailedError,
    NotAuthenticatedError,
    NotFoundError,
    NotSupportedError,
    TransportError,
    VaultBridgeError,
)
from ..item import Item, ItemType, parse_timestamp
from ..session import ExpiringSession, Session, SessionCache
from ..status_cache import StatusCache
from ..validation import validate_item_name, validate_location_name

logger = get_logger(__name__)

DEFAULT_PASSWORD_ENV = "BW_PASSWORD"
SESSION_ENV = "BW_SESSION"

BW_ITEM_TYPES = {
    1: ItemType.LOGIN,
    2: ItemType.SECURE_NOTE,
    3: ItemType.CARD,
    4: ItemType.IDENTITY,
}
BW_SECURE_NOTE = 2


def encode_template(template: dict[str, Any]) -> str:
    """Encode a JSON template the way ``bw encode`` does."""
    return base64.b64encode(json.dumps(template).encode("utf-8")).decode("ascii")


def _parse_json(output: str, what: str) -> Any:
    try:
        return json.loads(output)
    except ValueError as e:
        raise TransportError(f"failed to parse bw {what}: {e}") from e


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        return None


class BitwardenBackend(Backend):
    """Secret backend on top of the Bitwarden CLI.

    Items are secure notes named ``<prefix>/<name>``; folders are
    locations. The vault must already be logged in (``bw login``).
    Unlocking reads the master password from the environment variable
    named by the ``password_env`` option (default ``BW_PASSWORD``), so it
    never appears on a command line.

    When ``Config.session_file`` is set, the unlock token is cached there
    for ``Config.session_ttl`` and reused by later processes.
    """

    name = BackendType.BITWARDEN.value
    supports_locations = True

    def __init__(self, config: Config):
        super().__init__(config)
        self.password_env = config.get_option("password_env", DEFAULT_PASSWORD_ENV)
        self.session_cache = (
            SessionCache(config.session_file, config.session_ttl) if config.session_file else None
        )
        self._status_cache = StatusCache()

    async def _bw(self, args: list[str], session: Session | None = None) -> str:
        env = {SESSION_ENV: session.token} if session is not None and session.token else None
        return await run_command("bw", args, env=env)

    async def _status(self) -> str:
        data = _parse_json(await self._bw(["status"]), "status")
        if not isinstance(data, dict) or "status" not in data:
            raise TransportError("bw status output has no status field")
        return data["status"]

    async def init(self) -> None:
        if not check_command_exists("bw"):
            raise BackendUnavailableError(
                "bw command not found - install Bitwarden CLI from https://bitwarden.com/download/"
            )
        if await self._status() == "unauthenticated":
            raise NotAuthenticatedError("bitwarden: not logged in, run 'bw login' first")
        logger.info("Initialized Bitwarden backend")

    async def is_authenticated(self) -> bool:
        cached = self._status_cache.get()
        if cached is not None:
            return cached

        try:
            authenticated = await self._status() == "unlocked"
        except VaultBridgeError as e:
            logger.debug("bw status check failed", error=str(e))
            authenticated = False

        self._status_cache.set(authenticated)
        return authenticated

    async def authenticate(self) -> Session:
        if self.session_cache is not None:
            try:
                cached = await self.session_cache.load()
            except VaultBridgeError as e:
                logger.warning("Ignoring unreadable Bitwarden session cache", error=str(e))
                cached = None
            if cached is not None:
                logger.debug("Using cached Bitwarden session")
                return ExpiringSession(cached.token, expires=cached.expires)

        status = await self._status()
        if status == "unauthenticated":
            raise NotAuthenticatedError("bitwarden: not logged in, run 'bw login' first")

        existing = os.environ.get(SESSION_ENV)
        if status == "unlocked" and existing:
            token = existing
        else:
            if not os.environ.get(self.password_env):
                raise BackendLockedError(
                    f"vault is locked: set {self.password_env} or unlock with 'bw unlock'"
                )
            token = await self._unlock()

        if self.session_cache is not None:
            await self.session_cache.save(token, self.name)
        self._status_cache.invalidate()
        logger.info("Authenticated with Bitwarden")
        return ExpiringSession(token, self.config.session_ttl)

    async def _unlock(self) -> str:
        try:
            output = await self._bw(["unlock", "--raw", "--passwordenv", self.password_env])
        except CommandFailedError as e:
            if "Invalid master password" in e.stderr:
                raise NotAuthenticatedError("bitwarden: invalid master password") from e
            raise
        token = output.strip()
        if not token:
            raise NotAuthenticatedError("bitwarden: unlock returned no session token")
        return token

    async def sync(self, session: Session) -> None:
        await self._bw(["sync"], session)

    async def _find(self, full_name: str, session: Session) -> dict[str, Any] | None:
        """Look up the raw item whose name matches exactly.

        ``bw get item`` does a fuzzy search and fails on multiple matches, so
        the search results are filtered here instead.
        """
        output = await self._bw(["list", "items", "--search", full_name], session)
        for raw in _parse_json(output, "items"):
            if raw.get("name") == full_name:
                return raw
        return None

    async def _folders(self, session: Session) -> dict[str, str]:
        """Map folder id to folder name, skipping the implicit "No Folder"."""
        output = await self._bw(["list", "folders"], session)
        return {f["id"]: f["name"] for f in _parse_json(output, "folders") if f.get("id")}

    def _to_item(self, raw: dict[str, Any], name: str, folders: dict[str, str], notes: bool) -> Item:
        folder_id = raw.get("folderId")
        return Item(
            id=raw["id"],
            name=name,
            item_type=BW_ITEM_TYPES.get(raw.get("type"), ItemType.SECURE_NOTE),
            notes=raw.get("notes") if notes else None,
            location=folders.get(folder_id, folder_id) if folder_id else None,
            created=_parse_date(raw.get("creationDate")),
            modified=_parse_date(raw.get("revisionDate")),
        )

    async def get_item(self, name: str, session: Session) -> Item:
        validate_item_name(name)
        raw = await self._find(self.prefixed_name(name), session)
        if raw is None:
            raise NotFoundError(name)
        folders = await self._folders(session) if raw.get("folderId") else {}
        return self._to_item(raw, name, folders, notes=True)

    async def item_exists(self, name: str, session: Session) -> bool:
        validate_item_name(name)
        return await self._find(self.prefixed_name(name), session) is not None

    async def list_items(self, session: Session) -> list[Item]:
        output = await self._bw(["list", "items"], session)
        return await self._scoped_items(_parse_json(output, "items"), session)

    async def _scoped_items(self, raw_items: list[dict[str, Any]], session: Session) -> list[Item]:
        folders: dict[str, str] | None = None
        items = []
        for raw in raw_items:
            name = self.strip_prefix(raw.get("name", ""))
            if name is None:
                continue
            if folders is None:
                folders = await self._folders(session)
            # Notes are left out of listings
            items.append(self._to_item(raw, name, folders, notes=False))
        return items

    async def create_item(self, name: str, content: str, session: Session) -> None:
        validate_item_name(name)
        full_name = self.prefixed_name(name)
        if await self._find(full_name, session) is not None:
            raise AlreadyExistsError(name)

        template = {
            "type": BW_SECURE_NOTE,
            "name": full_name,
            "notes": content,
            "secureNote": {"type": 0},
        }
        await self._bw(["create", "item", encode_template(template)], session)
        logger.info("Created Bitwarden item", item=name)

    async def update_item(self, name: str, content: str, session: Session) -> None:
        validate_item_name(name)
        raw = await self._find(self.prefixed_name(name), session)
        if raw is None:
            raise NotFoundError(name)

        raw["notes"] = content
        await self._bw(["edit", "item", raw["id"], encode_template(raw)], session)
        logger.info("Updated Bitwarden item", item=name)

    async def delete_item(self, name: str, session: Session) -> None:
        validate_item_name(name)
        raw = await self._find(self.prefixed_name(name), session)
        if raw is None:
            raise NotFoundError(name)

        await self._bw(["delete", "item", raw["id"]], session)
        logger.info("Deleted Bitwarden item", item=name)

    async def list_locations(self, session: Session) -> list[str]:
        return sorted((await self._folders(session)).values())

    async def location_exists(self, name: str, session: Session) -> bool:
        validate_location_name(name)
        return name in (await self._folders(session)).values()

    async def create_location(self, name: str, session: Session) -> None:
        validate_location_name(name)
        if await self.location_exists(name, session):
            raise AlreadyExistsError(name)
        await self._bw(["create", "folder", encode_template({"name": name})], session)
        logger.info("Created Bitwarden folder", location=name)

    async def list_items_in_location(self, loc_type: str, loc_value: str, session: Session) -> list[Item]:
        if loc_type != "folder":
            raise NotSupportedError("bitwarden only supports the 'folder' location type")
        validate_location_name(loc_value)

        folders = await self._folders(session)
        folder_id = next((fid for fid, fname in folders.items() if fname == loc_value), None)
        if folder_id is None:
            raise NotFoundError(loc_value)

        output = await self._bw(["list", "items", "--folderid", folder_id], session)
        return await self._scoped_items(_parse_json(output, "items"), session)
