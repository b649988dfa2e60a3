# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Azure Key Vault backend."""

import asyncio
import os
from collections.abc import Callable
from datetime import datetime
from typing import Any

from vaultbridge_logging import get_logger

from ..backend import Backend
from ..config import BackendType, Config
from ..exceptions import (
    AlreadyExistsError,
    BackendUnavailableError,
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
    TransportError,
    VaultBridgeError,
)
from ..item import Item, ItemType
from ..session import Session, StaticSession
from ..validation import validate_item_name

logger = get_logger(__name__)


def _as_datetime(value: Any) -> datetime | None:
    return value if isinstance(value, datetime) else None


class AzureKeyVaultBackend(Backend):
    """Secret backend that stores items as Azure Key Vault secrets.

    Authentication uses ``DefaultAzureCredential`` (managed identity,
    environment credentials, Azure CLI login), so :meth:`authenticate`
    returns a session with an empty token. Key Vault has no folders;
    the location methods raise ``NotSupportedError``.

    Configuration, first match wins:
    - option ``vault_url``: full vault URL
    - option ``vault_name``: vault name, expanded to ``https://<name>.vault.azure.net/``
    - AZURE_KEY_VAULT_URI or AZURE_KEYVAULT_URL environment variable
    - AZURE_KEY_VAULT_NAME environment variable

    Option ``prefix`` overrides ``Config.prefix``. The prefix is joined to
    the item name without a separator, since secret names only allow
    letters, digits and dashes (use ``prefix="myapp-"``).

    Example:
        >>> config = Config(BackendType.AZURE_KEY_VAULT).with_option(
        ...     "vault_url", "https://my-vault.vault.azure.net/"
        ... ).with_prefix("myapp-")
        >>> backend = create_backend(config)
        >>> await backend.init()

    Attributes:
        vault_url: Resolved vault URL, set by init()
        client: ``SecretClient`` instance, set by init()
    """

    name = BackendType.AZURE_KEY_VAULT.value
    prefix_separator = ""

    def __init__(self, config: Config):
        super().__init__(config)
        self.prefix = config.get_option("prefix", config.prefix) or ""
        self.vault_url: str | None = None
        self.client: Any = None
        self._credential: Any = None

    def _determine_vault_url(self) -> str:
        """Resolve the vault URL from options, then environment variables.

        Raises:
            VaultBridgeError: If no vault is configured
        """
        vault_url = self.config.get_option("vault_url")
        if vault_url:
            return vault_url

        vault_name = self.config.get_option("vault_name")
        if vault_name:
            return f"https://{vault_name}.vault.azure.net/"

        env_uri = os.getenv("AZURE_KEY_VAULT_URI") or os.getenv("AZURE_KEYVAULT_URL")
        if env_uri:
            return env_uri

        env_name = os.getenv("AZURE_KEY_VAULT_NAME")
        if env_name:
            return f"https://{env_name}.vault.azure.net/"

        raise VaultBridgeError(
            "Azure Key Vault URL not configured. Set the vault_url or vault_name option, or "
            "AZURE_KEY_VAULT_URI, AZURE_KEYVAULT_URL or AZURE_KEY_VAULT_NAME"
        )

    async def init(self) -> None:
        try:
            from azure.core.exceptions import AzureError
            from azure.identity import DefaultAzureCredential
            from azure.keyvault.secrets import SecretClient
        except ImportError as e:
            raise BackendUnavailableError(
                "Azure SDK dependencies for Azure Key Vault are not installed. "
                "Install with: pip install vaultbridge[azure]"
            ) from e

        self.vault_url = self._determine_vault_url()

        try:
            self._credential = DefaultAzureCredential()
            self.client = SecretClient(vault_url=self.vault_url, credential=self._credential)
        except ValueError as e:
            raise VaultBridgeError(f"Invalid Azure Key Vault URL '{self.vault_url}': {e}") from e
        except AzureError as e:
            raise TransportError(f"Azure Key Vault client error: {e}") from e

        logger.info("Initialized Azure Key Vault backend", vault_url=self.vault_url)

    async def close(self) -> None:
        client, credential = self.client, self._credential
        self.client = None
        self._credential = None
        for resource in (client, credential):
            close_method = getattr(resource, "close", None)
            if callable(close_method):
                await asyncio.to_thread(close_method)

    async def is_authenticated(self) -> bool:
        return self.client is not None

    async def authenticate(self) -> Session:
        if self.client is None:
            raise NotAuthenticatedError("azurekeyvault: backend not initialized, call init() first")
        return StaticSession("", label=self.vault_url)

    async def _call(self, name: str, func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking SDK call in a worker thread and map its errors."""
        from azure.core.exceptions import (
            AzureError,
            ClientAuthenticationError,
            HttpResponseError,
            ResourceNotFoundError,
        )

        try:
            return await asyncio.to_thread(func, *args)
        except ResourceNotFoundError as e:
            raise NotFoundError(name) from e
        except ClientAuthenticationError as e:
            raise NotAuthenticatedError(f"azurekeyvault: {e}") from e
        except HttpResponseError as e:
            status = getattr(e, "status_code", None)
            if status == 403:
                raise PermissionDeniedError(f"azurekeyvault: {name}") from e
            if status == 409:
                # Soft-deleted secrets keep their name until purged
                raise AlreadyExistsError(name) from e
            raise TransportError(f"azurekeyvault request for '{name}' failed: {e}") from e
        except AzureError as e:
            raise TransportError(f"azurekeyvault request for '{name}' failed: {e}") from e

    def _require_client(self) -> Any:
        if self.client is None:
            raise NotAuthenticatedError("azurekeyvault: backend not initialized, call init() first")
        return self.client

    async def get_item(self, name: str, session: Session) -> Item:
        validate_item_name(name)
        client = self._require_client()
        secret = await self._call(name, client.get_secret, self.prefixed_name(name))
        properties = secret.properties
        return Item(
            id=secret.id or self.prefixed_name(name),
            name=name,
            item_type=ItemType.SECURE_NOTE,
            notes=secret.value,
            created=_as_datetime(getattr(properties, "created_on", None)),
            modified=_as_datetime(getattr(properties, "updated_on", None)),
        )

    async def list_items(self, session: Session) -> list[Item]:
        client = self._require_client()
        all_properties = await self._call(
            "*", lambda: list(client.list_properties_of_secrets())
        )

        items = []
        for properties in all_properties:
            name = self.strip_prefix(properties.name)
            if name is None:
                continue
            items.append(
                Item(
                    id=properties.id or properties.name,
                    name=name,
                    item_type=ItemType.SECURE_NOTE,
                    created=_as_datetime(getattr(properties, "created_on", None)),
                    modified=_as_datetime(getattr(properties, "updated_on", None)),
                )
            )
        return items

    async def create_item(self, name: str, content: str, session: Session) -> None:
        if await self.item_exists(name, session):
            raise AlreadyExistsError(name)
        client = self._require_client()
        await self._call(name, client.set_secret, self.prefixed_name(name), content)
        logger.info("Created Key Vault secret", item=name)

    async def update_item(self, name: str, content: str, session: Session) -> None:
        if not await self.item_exists(name, session):
            raise NotFoundError(name)
        client = self._require_client()
        # Setting an existing secret adds a new version
        await self._call(name, client.set_secret, self.prefixed_name(name), content)
        logger.info("Updated Key Vault secret", item=name)

    async def delete_item(self, name: str, session: Session) -> None:
        validate_item_name(name)
        client = self._require_client()
        secret_name = self.prefixed_name(name)
        await self._call(name, lambda: client.begin_delete_secret(secret_name).wait())
        logger.info("Deleted Key Vault secret", item=name)
