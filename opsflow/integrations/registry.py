"""
File: registry.py
Purpose: Hands callers a ready adapter for an Integration: loads its credentials, builds the adapter
         through the factory and keeps constructed adapters in a cache keyed by integration id.
When Used: One instance is built in the FastAPI lifespan (opsflow/main.py) and injected into the
           routers with Depends(get_registry). The credentials service calls invalidate() whenever
           credentials are saved or deleted.
Why Created: Building an adapter means a secret store round trip plus a new HTTP client (or a
             kubeconfig load), so repeated calls against the same integration reuse one adapter.
             A cached entry is only reused while the integration's type, base URL and credentials
             reference are unchanged.

Adapters handed out by adapter() are leased: an entry dropped from the cache while a request
still holds it is retired, and closed when the last lease is released.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional, Tuple

from opsflow.config import Settings, settings as default_settings
from opsflow.integrations.base import BaseIntegration
from opsflow.integrations.factory import build_adapter
from opsflow.models.schemas import Integration, IntegrationCredentials
from opsflow.services.credentials import CredentialService

logger = logging.getLogger(__name__)

Fingerprint = Tuple[str, str, str]


def fingerprint(integration: Integration) -> Fingerprint:
    """The configuration an adapter was built from"""
    return (
        integration.integration_type.value,
        integration.base_url,
        integration.credentials_key,
    )


@dataclass
class _CacheEntry:
    integration: Integration
    fingerprint: Fingerprint
    adapter: BaseIntegration
    leases: int = 0
    # No longer in the cache; closed once leases drops to zero
    retired: bool = False


class AdapterRegistry:
    """Central registry that builds and caches integration adapters."""

    def __init__(self, credentials: CredentialService, settings: Optional[Settings] = None):
        self.credentials = credentials
        self.settings = settings or default_settings
        self.cache_enabled = self.settings.adapter_cache_enabled
        self._cache: Dict[str, _CacheEntry] = {}
        # Guards _cache, leases and _generation only; never held across I/O
        self._lock = asyncio.Lock()
        # One construction at a time per integration id
        self._build_locks: Dict[str, asyncio.Lock] = {}
        # Bumped by every invalidation so a build that raced one is not cached
        self._generation = 0
        credentials.add_listener(self.invalidate)

    async def load_credentials(self, integration: Integration) -> IntegrationCredentials:
        return await self.credentials.load_for(integration)

    async def _build(self, integration: Integration) -> BaseIntegration:
        credentials = await self.load_credentials(integration)
        return await build_adapter(integration, credentials, self.settings)

    async def _acquire(self, integration: Integration) -> _CacheEntry:
        """Cached or freshly built entry with one lease taken for the caller"""
        current = fingerprint(integration)
        if not self.cache_enabled:
            adapter = await self._build(integration)
            return _CacheEntry(integration, current, adapter, leases=1, retired=True)

        build_lock = self._build_locks.setdefault(integration.id, asyncio.Lock())
        async with build_lock:
            async with self._lock:
                entry = self._cache.get(integration.id)
                if entry is not None and entry.fingerprint == current:
                    entry.leases += 1
                    return entry
                stale = []
                if entry is not None:
                    logger.info(f"Configuration of integration {integration.id} changed; rebuilding adapter")
                    stale = self._retire([integration.id])
                generation = self._generation
            await self._close_all(stale)

            adapter = await self._build(integration)
            entry = _CacheEntry(integration, current, adapter, leases=1)
            async with self._lock:
                if generation == self._generation:
                    self._cache[integration.id] = entry
                else:
                    logger.debug(f"Credentials changed while building adapter for {integration.id}; not caching it")
                    entry.retired = True
            return entry

    async def _release(self, entry: _CacheEntry) -> None:
        async with self._lock:
            entry.leases -= 1
            finished = entry.retired and entry.leases == 0
        if finished:
            await self._close_quietly(entry)

    def _retire(self, integration_ids: List[str]) -> List[_CacheEntry]:
        """Drop entries from the cache; returns the ones nobody is using. Caller holds _lock."""
        idle = []
        for integration_id in integration_ids:
            entry = self._cache.pop(integration_id)
            entry.retired = True
            logger.debug(f"Invalidated cached adapter for integration: {integration_id}")
            if entry.leases == 0:
                idle.append(entry)
        return idle

    async def get_adapter(self, integration: Integration) -> BaseIntegration:
        """
        A ready adapter for the integration.

        The adapter is not leased; callers that may race an invalidation use adapter().
        With the cache disabled the caller owns the adapter and must close it.

        Raises:
            IntegrationError: credentials missing/invalid, or construction failed
        """
        logger.debug(f"Getting adapter for integration: {integration.id}")
        entry = await self._acquire(integration)
        async with self._lock:
            entry.leases -= 1
        return entry.adapter

    def is_cached(self, adapter: BaseIntegration) -> bool:
        return any(entry.adapter is adapter for entry in self._cache.values())

    @asynccontextmanager
    async def adapter(self, integration: Integration) -> AsyncIterator[BaseIntegration]:
        """Leased adapter for the duration of a block; it stays open until the block exits"""
        entry = await self._acquire(integration)
        try:
            yield entry.adapter
        finally:
            await self._release(entry)

    async def invalidate(self, key: str) -> None:
        """Drop cached adapters of an integration id, or of every integration using a credentials key"""
        async with self._lock:
            self._generation += 1
            stale = [
                integration_id
                for integration_id, entry in self._cache.items()
                if integration_id == key or entry.integration.credentials_key == key
            ]
            idle = self._retire(stale)
        await self._close_all(idle)

    async def clear_cache(self) -> None:
        """Drop every cached adapter; adapters still in use close when released"""
        async with self._lock:
            self._generation += 1
            idle = self._retire(list(self._cache))
        logger.debug(f"Clearing adapter cache ({len(idle)} idle adapters)")
        await self._close_all(idle)

    async def close(self) -> None:
        await self.clear_cache()

    async def _close_all(self, entries: List[_CacheEntry]) -> None:
        for entry in entries:
            await self._close_quietly(entry)

    @staticmethod
    async def _close_quietly(entry: _CacheEntry) -> None:
        # A failing close must not keep the rest of the cache alive
        try:
            await entry.adapter.close()
        except Exception as e:
            logger.warning(f"Error closing adapter for integration {entry.integration.id}: {e}")
