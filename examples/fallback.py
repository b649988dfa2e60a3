#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Example: pick the first working backend and store a secret in it.

Tries pass, then Bitwarden, then falls back to the in-memory mock backend,
and uses the create-or-update idiom to write a value.
"""

import asyncio

from vaultbridge import (
    AlreadyExistsError,
    BackendType,
    Config,
    NotFoundError,
    VaultBridgeError,
    create_backend,
)

CANDIDATES = [BackendType.PASS, BackendType.BITWARDEN, BackendType.MOCK]


async def connect(backend_type):
    """Return an initialized backend and its session, or raise."""
    backend = create_backend(Config(backend_type).with_prefix("vaultbridge-example"))
    await backend.init()
    try:
        session = await backend.authenticate()
        await backend.list_items(session)
    except VaultBridgeError:
        await backend.close()
        raise
    return backend, session


async def main():
    print("=" * 60)
    print("vaultbridge fallback example")
    print("=" * 60)

    for backend_type in CANDIDATES:
        try:
            backend, session = await connect(backend_type)
        except VaultBridgeError as e:
            print(f"✗ {backend_type}: {e}")
            continue
        print(f"✓ using {backend_type}")
        break
    else:
        raise SystemExit("no backend available")

    try:
        try:
            await backend.create_item("greeting", "hello", session)
        except AlreadyExistsError:
            await backend.update_item("greeting", "hello again", session)

        print("greeting =", await backend.get_notes("greeting", session))

        try:
            value = await backend.get_notes("optional-setting", session)
        except NotFoundError:
            value = "default"
        print("optional-setting =", value)

        for item in await backend.list_items(session):
            print("  -", item.name)
    finally:
        await backend.close()


if __name__ == "__main__":
    asyncio.run(main())
