"""
Address Resolution
Reverse-resolves admin wallet addresses to ENS names for display
"""

import asyncio
import logging
import time
from collections import OrderedDict
from typing import Callable, Dict, Iterable, Optional, Tuple

import httpx

from cats_admin.config import settings

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """Bounded cache whose entries expire after a fixed time"""

    def __init__(self, max_entries: int = 1024, ttl_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Optional[str]]]" = OrderedDict()

    def get(self, key: str, default=None):
        entry = self._entries.get(key)
        if entry is None:
            return default

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return default
        return value

    def put(self, key: str, value: Optional[str]) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_entries:
            # Oldest insertion goes first
            self._entries.popitem(last=False)
        self._entries[key] = (self._clock() + self._ttl, value)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING


class AddressResolver:
    """
    Resolves addresses through the account API, caching hits and misses

    Lookups that fail are cached as None too, so a flaky upstream is not
    hammered on every page load.
    """

    def __init__(self, cache: Optional[TTLCache] = None, base_url: Optional[str] = None):
        self.cache = cache if cache is not None else TTLCache(
            max_entries=settings.ACTOR_CACHE_MAX_SIZE,
            ttl_seconds=settings.ACTOR_CACHE_TTL_SECONDS,
        )
        self.base_url = (base_url or settings.ENS_ACCOUNT_API_URL).rstrip("/")

    async def _lookup(self, client: httpx.AsyncClient, address: str) -> Optional[str]:
        try:
            resp = await client.get(f"{self.base_url}/users/{address}/account")
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[actors] Lookup failed for {address}: {e}")
            return None

        return (data.get("ens") or {}).get("name")

    async def resolve(self, address: str) -> Optional[str]:
        resolved = await self.resolve_many([address])
        return resolved.get(address.lower())

    async def resolve_many(self, addresses: Iterable[str]) -> Dict[str, Optional[str]]:
        """
        Resolve several addresses at once

        Returns:
            Map of lowercased address to ENS name (None when unresolved)
        """
        unique = list(dict.fromkeys(a.lower() for a in addresses if a))
        results: Dict[str, Optional[str]] = {}
        pending = []

        for address in unique:
            cached = self.cache.get(address, _MISSING)
            if cached is _MISSING:
                pending.append(address)
            else:
                results[address] = cached

        if pending:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
                names = await asyncio.gather(*(self._lookup(client, a) for a in pending))
            for address, name in zip(pending, names):
                self.cache.put(address, name)
                results[address] = name

        return results


_resolver: Optional[AddressResolver] = None


def get_address_resolver() -> AddressResolver:
    """FastAPI dependency; override it in tests to inject a resolver"""
    global _resolver
    if _resolver is None:
        _resolver = AddressResolver()
    return _resolver
