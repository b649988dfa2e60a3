# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Shared test fixtures for vaultbridge."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest

from vaultbridge import Config, StaticSession
from vaultbridge.backends.mock import MockBackend


@dataclass(frozen=True)
class AzureSdkMocks:
    """Per-test Azure SDK mocks.

    We patch `sys.modules` so `AzureKeyVaultBackend` can import Azure SDK
    symbols without requiring Azure dependencies to be installed.
    """

    secret_client_cls: MagicMock
    default_credential_cls: MagicMock
    AzureError: type[Exception]
    HttpResponseError: type[Exception]
    ResourceNotFoundError: type[Exception]
    ClientAuthenticationError: type[Exception]

    @property
    def client(self) -> MagicMock:
        """The SecretClient instance the backend receives."""
        return self.secret_client_cls.return_value


def _http_error_init(self, message=None, status_code=None):
    Exception.__init__(self, message)
    self.status_code = status_code


@pytest.fixture
def azure_sdk_mocks(monkeypatch: pytest.MonkeyPatch) -> AzureSdkMocks:
    """Provide per-test Azure SDK module mocks via `sys.modules`."""

    secret_client_cls = MagicMock(name="SecretClient")
    default_credential_cls = MagicMock(name="DefaultAzureCredential")

    # Same hierarchy as azure.core.exceptions
    azure_error = type("AzureError", (Exception,), {})
    http_response_error = type("HttpResponseError", (azure_error,), {"__init__": _http_error_init})
    resource_not_found_error = type("ResourceNotFoundError", (http_response_error,), {})
    client_auth_error = type("ClientAuthenticationError", (http_response_error,), {})

    monkeypatch.setitem(sys.modules, "azure", MagicMock())
    monkeypatch.setitem(sys.modules, "azure.keyvault", MagicMock())
    monkeypatch.setitem(sys.modules, "azure.core", MagicMock())

    monkeypatch.setitem(
        sys.modules,
        "azure.keyvault.secrets",
        MagicMock(SecretClient=secret_client_cls),
    )
    monkeypatch.setitem(
        sys.modules,
        "azure.identity",
        MagicMock(DefaultAzureCredential=default_credential_cls),
    )
    monkeypatch.setitem(
        sys.modules,
        "azure.core.exceptions",
        MagicMock(
            AzureError=azure_error,
            HttpResponseError=http_response_error,
            ResourceNotFoundError=resource_not_found_error,
            ClientAuthenticationError=client_auth_error,
        ),
    )

    return AzureSdkMocks(
        secret_client_cls=secret_client_cls,
        default_credential_cls=default_credential_cls,
        AzureError=azure_error,
        HttpResponseError=http_response_error,
        ResourceNotFoundError=resource_not_found_error,
        ClientAuthenticationError=client_auth_error,
    )


@pytest.fixture
def session() -> StaticSession:
    """A session for backends that do not inspect the token."""
    return StaticSession("test-token")


@pytest.fixture
def mock_backend() -> MockBackend:
    """In-memory backend without a prefix."""
    return MockBackend(Config(backend="mock", prefix=""))
