"""
Credentials Service

Stores IntegrationCredentials as a JSON blob per credentials key in the
secret store, and tells interested parties (the adapter registry) when a
key changes so stale adapters are dropped.
"""
import logging
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError

from opsflow.integrations.errors import ConfigError
from opsflow.integrations.vault_client import SecretStore, SecretStoreError
from opsflow.models.schemas import CredentialsStatus, Integration, IntegrationCredentials

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str], Awaitable[None]]


class CredentialService:
    """Service for reading and writing integration credentials."""

    def __init__(self, store: SecretStore):
        self.store = store
        self._listeners: List[ChangeListener] = []

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a coroutine called with the key after every save/delete"""
        self._listeners.append(listener)

    async def _notify(self, key: str) -> None:
        for listener in self._listeners:
            await listener(key)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def save(self, key: str, credentials: IntegrationCredentials) -> None:
        await self.store.set(key, credentials.model_dump_json())
        logger.info(f"Saved credentials for key: {key}")
        await self._notify(key)

    async def get(self, key: str) -> Optional[IntegrationCredentials]:
        blob = await self.store.get(key)
        if blob is None:
            return None
        try:
            return IntegrationCredentials.model_validate_json(blob)
        except ValidationError as e:
            logger.error(f"Stored credentials for key {key} are not valid JSON credentials: {e}")
            raise SecretStoreError(f"Stored credentials for '{key}' are corrupt")

    async def delete(self, key: str) -> None:
        await self.store.delete(key)
        logger.info(f"Deleted credentials for key: {key}")
        await self._notify(key)

    async def status(self, key: str) -> Optional[CredentialsStatus]:
        """Which fields are set for key, never their values"""
        credentials = await self.get(key)
        if credentials is None:
            return None
        return CredentialsStatus(
            key=key,
            has_token=bool(credentials.token),
            has_username=bool(credentials.username),
            has_password=bool(credentials.password),
            custom_keys=sorted(credentials.custom),
        )

    # ------------------------------------------------------------------
    # Integration lookup
    # ------------------------------------------------------------------

    async def load_for(self, integration: Integration) -> IntegrationCredentials:
        """
        Credentials for an integration (keyed by credentials_ref, else id).

        Raises:
            ConfigError: nothing stored yet, or the secret store failed
        """
        key = integration.credentials_key
        logger.debug(f"Loading credentials for integration: {integration.id}")
        try:
            credentials = await self.get(key)
        except SecretStoreError as e:
            logger.error(f"Failed to load credentials for integration {integration.id}: {e}")
            raise ConfigError(f"Failed to load credentials: {e}")

        if credentials is None:
            logger.warning(f"No credentials found for integration: {integration.id}")
            raise ConfigError(
                f"No credentials found for integration '{integration.name}'. "
                f"Please configure credentials first."
            )
        return credentials
