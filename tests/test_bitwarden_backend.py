# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Tests for the Bitwarden backend against a scripted ``bw`` CLI."""

import base64
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from vaultbridge import (
    AlreadyExistsError,
    BackendLockedError,
    BackendType,
    BackendUnavailableError,
    CommandFailedError,
    Config,
    ExpiringSession,
    InvalidNameError,
    ItemType,
    NotAuthenticatedError,
    NotFoundError,
    NotSupportedError,
    SessionExpiredError,
    VaultBridgeError,
)
from vaultbridge.backends.bitwarden import BitwardenBackend, encode_template

MODULE = "vaultbridge.backends.bitwarden"


class FakeBw:
    """Minimal stand-in for the ``bw`` CLI, driven through run_command."""

    def __init__(self, status="unlocked"):
        self.status = status
        self.items = []
        self.folders = [{"object": "folder", "id": None, "name": "No Folder"}]
        self.calls = []
        self.unlock_stderr = None
        self._next_id = 1

    def add_item(self, name, notes=None, item_type=2, folder_id=None, **extra):
        item = {
            "id": f"item-{self._next_id}",
            "name": name,
            "type": item_type,
            "notes": notes,
            "folderId": folder_id,
            "revisionDate": "2025-03-01T10:00:00.000Z",
            "creationDate": "2025-02-01T10:00:00.000Z",
            **extra,
        }
        self._next_id += 1
        self.items.append(item)
        return item

    def commands(self):
        return [args[:2] for args, _ in self.calls]

    async def __call__(self, program, args, env=None):
        assert program == "bw"
        self.calls.append((list(args), env))

        if args == ["status"]:
            return json.dumps({"status": self.status, "userEmail": "user@example.com"})
        if args[0] == "unlock":
            if self.unlock_stderr:
                raise CommandFailedError("bw", 1, self.unlock_stderr)
            self.status = "unlocked"
            return "new-session-token\n"
        if args == ["sync"]:
            return "Syncing complete."
        if args[:2] == ["list", "items"]:
            items = self.items
            if "--search" in args:
                term = args[args.index("--search") + 1]
                items = [i for i in items if term in i["name"]]
            if "--folderid" in args:
                folder_id = args[args.index("--folderid") + 1]
                items = [i for i in items if i["folderId"] == folder_id]
            return json.dumps(items)
        if args[:2] == ["list", "folders"]:
            return json.dumps(self.folders)
        if args[:2] == ["create", "item"]:
            data = json.loads(base64.b64decode(args[2]))
            return json.dumps(self.add_item(data["name"], data.get("notes"), data["type"]))
        if args[:2] == ["edit", "item"]:
            data = json.loads(base64.b64decode(args[3]))
            self.items = [data if i["id"] == args[2] else i for i in self.items]
            return json.dumps(data)
        if args[:2] == ["delete", "item"]:
            self.items = [i for i in self.items if i["id"] != args[2]]
            return ""
        if args[:2] == ["create", "folder"]:
            data = json.loads(base64.b64decode(args[2]))
            folder = {"object": "folder", "id": f"folder-{len(self.folders)}", "name": data["name"]}
            self.folders.append(folder)
            return json.dumps(folder)
        raise AssertionError(f"unexpected bw command: {args}")


@pytest.fixture
def bw():
    fake = FakeBw()
    with patch(f"{MODULE}.run_command", new=fake):
        yield fake


@pytest.fixture
def config():
    return Config(BackendType.BITWARDEN, prefix="myapp")


@pytest.fixture
def backend(config):
    return BitwardenBackend(config)


@pytest.fixture
def session():
    return ExpiringSession("bw-token", timedelta(minutes=30))


def test_encode_template():
    encoded = encode_template({"name": "x"})

    assert json.loads(base64.b64decode(encoded)) == {"name": "x"}


class TestInit:
    """Tests for init."""

    @pytest.mark.asyncio
    async def test_cli_missing(self, backend, bw):
        with patch(f"{MODULE}.check_command_exists", return_value=False):
            with pytest.raises(BackendUnavailableError, match="bw command not found"):
                await backend.init()

    @pytest.mark.asyncio
    async def test_not_logged_in(self, backend, bw):
        bw.status = "unauthenticated"

        with patch(f"{MODULE}.check_command_exists", return_value=True):
            with pytest.raises(NotAuthenticatedError):
                await backend.init()

    @pytest.mark.asyncio
    async def test_locked_vault_is_fine(self, backend, bw):
        bw.status = "locked"

        with patch(f"{MODULE}.check_command_exists", return_value=True):
            await backend.init()


class TestIsAuthenticated:
    """Tests for the cached status check."""

    @pytest.mark.asyncio
    async def test_unlocked(self, backend, bw):
        assert await backend.is_authenticated()
        assert await backend.is_authenticated()

        assert bw.commands().count(["status"]) == 1

    @pytest.mark.asyncio
    async def test_locked(self, backend, bw):
        bw.status = "locked"

        assert await backend.is_authenticated() is False

    @pytest.mark.asyncio
    async def test_unparseable_status(self, backend):
        async def garbage(program, args, env=None):
            return "not json"

        with patch(f"{MODULE}.run_command", new=garbage):
            assert await backend.is_authenticated() is False


class TestAuthenticate:
    """Tests for unlocking and the session cache."""

    @pytest.mark.asyncio
    async def test_unlock_with_password_env(self, backend, bw, monkeypatch):
        monkeypatch.setenv("BW_PASSWORD", "master")
        bw.status = "locked"

        session = await backend.authenticate()

        assert session.token == "new-session-token"
        assert ["unlock", "--raw", "--passwordenv", "BW_PASSWORD"] in [args for args, _ in bw.calls]
        assert await session.is_valid()
        remaining = session.expires_at - datetime.now(timezone.utc)
        assert timedelta(minutes=29) < remaining <= timedelta(minutes=30)
        with pytest.raises(SessionExpiredError):
            await session.refresh()

    @pytest.mark.asyncio
    async def test_password_never_on_command_line(self, backend, bw, monkeypatch):
        monkeypatch.setenv("BW_PASSWORD", "master-password-value")
        bw.status = "locked"

        await backend.authenticate()

        assert all("master-password-value" not in args for args, _ in bw.calls)

    @pytest.mark.asyncio
    async def test_custom_password_env(self, bw, monkeypatch):
        monkeypatch.setenv("MY_BW_PW", "master")
        bw.status = "locked"
        backend = BitwardenBackend(Config(BackendType.BITWARDEN).with_option("password_env", "MY_BW_PW"))

        await backend.authenticate()

        assert ["unlock", "--raw", "--passwordenv", "MY_BW_PW"] in [args for args, _ in bw.calls]

    @pytest.mark.asyncio
    async def test_locked_without_password(self, backend, bw, monkeypatch):
        monkeypatch.delenv("BW_PASSWORD", raising=False)
        bw.status = "locked"

        with pytest.raises(BackendLockedError, match="BW_PASSWORD"):
            await backend.authenticate()

    @pytest.mark.asyncio
    async def test_invalid_master_password(self, backend, bw, monkeypatch):
        monkeypatch.setenv("BW_PASSWORD", "wrong")
        bw.status = "locked"
        bw.unlock_stderr = "Invalid master password."

        with pytest.raises(NotAuthenticatedError):
            await backend.authenticate()

    @pytest.mark.asyncio
    async def test_other_unlock_failure_propagates(self, backend, bw, monkeypatch):
        monkeypatch.setenv("BW_PASSWORD", "master")
        bw.status = "locked"
        bw.unlock_stderr = "Network error"

        with pytest.raises(CommandFailedError):
            await backend.authenticate()

    @pytest.mark.asyncio
    async def test_not_logged_in(self, backend, bw):
        bw.status = "unauthenticated"

        with pytest.raises(NotAuthenticatedError):
            await backend.authenticate()

    @pytest.mark.asyncio
    async def test_reuses_existing_session_env(self, backend, bw, monkeypatch):
        monkeypatch.setenv("BW_SESSION", "exported-token")

        session = await backend.authenticate()

        assert session.token == "exported-token"
        assert not any(args[0] == "unlock" for args, _ in bw.calls)

    @pytest.mark.asyncio
    async def test_session_cache_round_trip(self, bw, tmp_path, monkeypatch):
        monkeypatch.setenv("BW_PASSWORD", "master")
        monkeypatch.delenv("BW_SESSION", raising=False)
        bw.status = "locked"
        config = Config(BackendType.BITWARDEN).with_session_file(str(tmp_path / "bw" / "session.json"))

        first = await BitwardenBackend(config).authenticate()
        calls_after_first = len(bw.calls)
        second = await BitwardenBackend(config).authenticate()

        assert second.token == first.token == "new-session-token"
        assert len(bw.calls) == calls_after_first
        assert abs(second.expires_at - first.expires_at) < timedelta(seconds=1)

    @pytest.mark.asyncio
    async def test_unreadable_session_cache_falls_back_to_unlock(self, bw, tmp_path, monkeypatch):
        monkeypatch.setenv("BW_PASSWORD", "master")
        monkeypatch.delenv("BW_SESSION", raising=False)
        bw.status = "locked"
        config = Config(BackendType.BITWARDEN).with_session_file(str(tmp_path / "bw" / "session.json"))
        backend = BitwardenBackend(config)

        with patch.object(
            backend.session_cache, "load", side_effect=VaultBridgeError("Failed to read session cache")
        ):
            session = await backend.authenticate()

        assert session.token == "new-session-token"

    @pytest.mark.asyncio
    async def test_authenticate_invalidates_status_cache(self, backend, bw, monkeypatch):
        monkeypatch.setenv("BW_PASSWORD", "master")
        monkeypatch.delenv("BW_SESSION", raising=False)
        bw.status = "locked"

        assert await backend.is_authenticated() is False
        await backend.authenticate()

        assert await backend.is_authenticated() is True


class TestItems:
    """Tests for item operations."""

    @pytest.mark.asyncio
    async def test_create(self, backend, bw, session):
        await backend.create_item("api-key", "secret", session)

        create_args, env = next((a, e) for a, e in bw.calls if a[:2] == ["create", "item"])
        template = json.loads(base64.b64decode(create_args[2]))
        assert template == {
            "type": 2,
            "name": "myapp/api-key",
            "notes": "secret",
            "secureNote": {"type": 0},
        }
        assert env == {"BW_SESSION": "bw-token"}

    @pytest.mark.asyncio
    async def test_create_duplicate(self, backend, bw, session):
        bw.add_item("myapp/api-key", "secret")

        with pytest.raises(AlreadyExistsError):
            await backend.create_item("api-key", "other", session)

    @pytest.mark.asyncio
    async def test_get_item(self, backend, bw, session):
        bw.folders.append({"object": "folder", "id": "f1", "name": "Work"})
        bw.add_item("myapp/db", item_type=1, folder_id="f1", notes="n")

        item = await backend.get_item("db", session)

        assert item.name == "db"
        assert item.id.startswith("item-")
        assert item.item_type == ItemType.LOGIN
        assert item.location == "Work"
        assert item.notes == "n"
        assert item.modified == datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert item.created == datetime(2025, 2, 1, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_get_uses_exact_name(self, backend, bw, session):
        bw.add_item("myapp/api-key-old", "old")
        bw.add_item("myapp/api-key", "current")

        assert await backend.get_notes("api-key", session) == "current"

    @pytest.mark.asyncio
    async def test_get_missing(self, backend, bw, session):
        bw.add_item("myapp/api-key-old", "old")

        with pytest.raises(NotFoundError):
            await backend.get_item("api-key", session)
        assert await backend.item_exists("api-key", session) is False

    @pytest.mark.asyncio
    async def test_get_notes_without_notes(self, backend, bw, session):
        bw.add_item("myapp/empty", None)

        with pytest.raises(NotFoundError):
            await backend.get_notes("empty", session)

    @pytest.mark.asyncio
    async def test_update_keeps_other_fields(self, backend, bw, session):
        original = bw.add_item("myapp/api-key", "v1", favorite=True)

        await backend.update_item("api-key", "v2", session)

        edit_args = next(a for a, _ in bw.calls if a[:2] == ["edit", "item"])
        assert edit_args[2] == original["id"]
        assert bw.items[0]["notes"] == "v2"
        assert bw.items[0]["favorite"] is True
        assert await backend.get_notes("api-key", session) == "v2"

    @pytest.mark.asyncio
    async def test_update_missing(self, backend, bw, session):
        with pytest.raises(NotFoundError):
            await backend.update_item("api-key", "v2", session)

    @pytest.mark.asyncio
    async def test_delete(self, backend, bw, session):
        bw.add_item("myapp/api-key", "v1")

        await backend.delete_item("api-key", session)

        assert bw.items == []

    @pytest.mark.asyncio
    async def test_delete_missing(self, backend, bw, session):
        with pytest.raises(NotFoundError):
            await backend.delete_item("api-key", session)

    @pytest.mark.asyncio
    async def test_list_items_scoped_to_prefix(self, backend, bw, session):
        bw.add_item("myapp/a", "1")
        bw.add_item("myapp/b", "2")
        bw.add_item("other/c", "3")
        bw.add_item("Personal email", "4", item_type=1)

        items = await backend.list_items(session)

        assert sorted(item.name for item in items) == ["a", "b"]
        assert all(item.notes is None for item in items)

    @pytest.mark.asyncio
    async def test_invalid_name_makes_no_call(self, backend, bw, session):
        with pytest.raises(InvalidNameError):
            await backend.create_item("a;b", "x", session)

        assert bw.calls == []

    @pytest.mark.asyncio
    async def test_sync(self, backend, bw, session):
        await backend.sync(session)

        assert bw.calls == [(["sync"], {"BW_SESSION": "bw-token"})]


class TestFolders:
    """Folders are Bitwarden locations."""

    @pytest.mark.asyncio
    async def test_list_locations_skips_no_folder(self, backend, bw, session):
        bw.folders.append({"object": "folder", "id": "f1", "name": "Work"})

        assert await backend.list_locations(session) == ["Work"]

    @pytest.mark.asyncio
    async def test_create_location(self, backend, bw, session):
        await backend.create_location("Work", session)

        assert await backend.location_exists("Work", session)
        with pytest.raises(AlreadyExistsError):
            await backend.create_location("Work", session)

    @pytest.mark.asyncio
    async def test_list_items_in_location(self, backend, bw, session):
        bw.folders.append({"object": "folder", "id": "f1", "name": "Work"})
        bw.add_item("myapp/in-folder", "1", folder_id="f1")
        bw.add_item("myapp/elsewhere", "2")

        items = await backend.list_items_in_location("folder", "Work", session)

        assert [item.name for item in items] == ["in-folder"]
        assert items[0].location == "Work"

    @pytest.mark.asyncio
    async def test_only_folder_type(self, backend, bw, session):
        with pytest.raises(NotSupportedError):
            await backend.list_items_in_location("collection", "Work", session)

    @pytest.mark.asyncio
    async def test_unknown_folder(self, backend, bw, session):
        with pytest.raises(NotFoundError):
            await backend.list_items_in_location("folder", "Missing", session)
