# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Backends bundled with vaultbridge."""

from typing import TYPE_CHECKING

from ..config import BackendType
from .azurekeyvault import AzureKeyVaultBackend
from .bitwarden import BitwardenBackend
from .mock import MockBackend
from .pass_store import PassBackend

if TYPE_CHECKING:
    from ..factory import BackendRegistry

__all__ = [
    "AzureKeyVaultBackend",
    "BitwardenBackend",
    "MockBackend",
    "PassBackend",
    "register_all",
]


def register_all(registry: "BackendRegistry") -> None:
    """Register every bundled backend with ``registry``."""
    registry.register(BackendType.MOCK, MockBackend)
    registry.register(BackendType.PASS, PassBackend)
    registry.register(BackendType.BITWARDEN, BitwardenBackend)
    registry.register(BackendType.AZURE_KEY_VAULT, AzureKeyVaultBackend)
