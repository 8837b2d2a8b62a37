"""
File: vault_client.py
Purpose: Secret store for integration credentials. The Vault backend keeps one KV-v2 secret per
         credentials key ({path_prefix}/{key}, data {"credentials": <json blob>}); the memory backend
         keeps blobs in a dict for development and tests.
When Used: Owned by CredentialService, which serializes IntegrationCredentials to the JSON blob
           stored here. Built once at startup by create_secret_store(settings).
Why Created: Credentials never land in the YAML config files; Vault is the place secrets live.
             Absence (None) and failure (SecretStoreError) stay distinguishable so the registry can
             tell "not configured yet" apart from "Vault is down".
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from functools import partial
from typing import Dict, Optional

import hvac
from hvac.exceptions import InvalidPath, VaultError

from opsflow.config import Settings

logger = logging.getLogger(__name__)


class SecretStoreError(Exception):
    """The secret store could not be reached or refused the operation"""


class SecretStore(ABC):
    """set/get/delete of opaque string blobs by key"""

    @abstractmethod
    async def set(self, key: str, blob: str) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """The stored blob, or None when nothing is stored under key"""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key; deleting a missing key is not an error"""


class MemorySecretStore(SecretStore):
    """In-process store; contents are lost on restart"""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def set(self, key: str, blob: str) -> None:
        self._data[key] = blob

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class VaultSecretStore(SecretStore):
    """HashiCorp Vault KV-v2 backend (token auth)"""

    def __init__(
        self,
        url: str,
        token: str,
        mount_point: str = "secret",
        path_prefix: str = "ops-flow",
        client: Optional[hvac.Client] = None,
    ):
        self.url = url
        self.mount_point = mount_point
        self.path_prefix = path_prefix.strip("/")
        self._client = client or hvac.Client(url=url, token=token)

    def _path(self, key: str) -> str:
        return f"{self.path_prefix}/{key}" if self.path_prefix else key

    async def _run(self, action: str, fn, missing_ok: bool = False, **kwargs):
        # hvac is synchronous (requests); keep it off the event loop
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(fn, **kwargs))
        except InvalidPath as e:
            if missing_ok:
                return None
            raise SecretStoreError(f"Vault {action} failed: {e}") from e
        except (VaultError, OSError) as e:
            logger.error(f"Vault {action} failed at {self.url}: {e}")
            raise SecretStoreError(f"Vault {action} failed: {e}") from e

    async def set(self, key: str, blob: str) -> None:
        await self._run(
            "write",
            self._client.secrets.kv.v2.create_or_update_secret,
            path=self._path(key),
            secret={"credentials": blob},
            mount_point=self.mount_point,
        )
        logger.info(f"Stored credentials in Vault at {self.mount_point}/{self._path(key)}")

    async def get(self, key: str) -> Optional[str]:
        response = await self._run(
            "read",
            self._client.secrets.kv.v2.read_secret_version,
            missing_ok=True,
            path=self._path(key),
            mount_point=self.mount_point,
            raise_on_deleted_version=True,
        )
        if response is None:
            return None
        return response["data"]["data"].get("credentials")

    async def delete(self, key: str) -> None:
        await self._run(
            "delete",
            self._client.secrets.kv.v2.delete_metadata_and_all_versions,
            missing_ok=True,
            path=self._path(key),
            mount_point=self.mount_point,
        )
        logger.info(f"Deleted credentials from Vault at {self.mount_point}/{self._path(key)}")


def create_secret_store(settings: Settings) -> SecretStore:
    """Build the backend selected by settings.secret_backend"""
    backend = settings.secret_backend.lower()
    if backend == "memory":
        logger.warning("Using in-memory secret store; credentials are lost on restart")
        return MemorySecretStore()
    if backend == "vault":
        logger.info(f"Using Vault secret store at {settings.vault_url}")
        return VaultSecretStore(
            url=settings.vault_url,
            token=settings.vault_token,
            mount_point=settings.vault_mount,
            path_prefix=settings.vault_path_prefix,
        )
    raise ValueError(f"Unknown secret backend: {settings.secret_backend}")
