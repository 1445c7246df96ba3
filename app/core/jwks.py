"""Supabase JWKS client.

Fetches the project's signing keys from
``{SUPABASE_URL}/auth/v1/.well-known/jwks.json`` and keeps them in memory
for ``SUPABASE_JWKS_CACHE_TTL`` seconds.
"""

import asyncio
import time
from typing import Dict, Optional

import aiohttp
from pydantic import BaseModel

from app.core.config import settings
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class JWKKey(BaseModel):
    """Single JSON Web Key. RSA keys carry n/e, EC keys carry crv/x/y."""

    kid: str
    kty: str
    alg: Optional[str] = None
    use: Optional[str] = None
    n: Optional[str] = None
    e: Optional[str] = None
    crv: Optional[str] = None
    x: Optional[str] = None
    y: Optional[str] = None


class JWKSResponse(BaseModel):
    keys: list[JWKKey]


class JWKSService:
    """Cached access to the signing keys of one Supabase project."""

    def __init__(self, supabase_url: str, cache_ttl: int = 3600, timeout: int = 10):
        self.jwks_url = f"{supabase_url.rstrip('/')}/auth/v1/.well-known/jwks.json"
        self.cache_ttl = cache_ttl
        self.timeout = timeout

        self._keys: Dict[str, JWKKey] = {}
        self._fetched_at: Optional[float] = None
        self._lock = asyncio.Lock()

    async def get_key(self, kid: str) -> Optional[JWKKey]:
        """Return the key with this id.

        An unknown kid forces one refresh so rotated keys are picked up
        before the TTL runs out.
        """
        keys = await self.get_keys()
        if kid in keys:
            return keys[kid]

        LOGGER.info("Key id not in cached JWKS, refreshing", extra={"kid": kid})
        keys = await self.get_keys(force_refresh=True)
        return keys.get(kid)

    async def get_keys(self, force_refresh: bool = False) -> Dict[str, JWKKey]:
        async with self._lock:
            if not force_refresh and self._cache_valid():
                return dict(self._keys)

            self._keys = await self._fetch_keys()
            self._fetched_at = time.time()
            return dict(self._keys)

    def clear(self) -> None:
        self._keys = {}
        self._fetched_at = None

    def _cache_valid(self) -> bool:
        if self._fetched_at is None:
            return False
        return time.time() - self._fetched_at < self.cache_ttl

    async def _fetch_keys(self) -> Dict[str, JWKKey]:
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.jwks_url) as response:
                    if response.status != 200:
                        body = await response.text()
                        raise RuntimeError(f"JWKS endpoint returned {response.status}: {body}")
                    data = await response.json()
        except aiohttp.ClientError as e:
            LOGGER.error(f"Network error fetching JWKS: {e}", exc_info=True)
            raise RuntimeError(f"Failed to fetch JWKS keys: {e}") from e

        parsed = JWKSResponse(**data)
        LOGGER.info(f"Fetched {len(parsed.keys)} JWKS keys")
        return {key.kid: key for key in parsed.keys}


jwks_service = JWKSService(
    supabase_url=settings.supabase_url,
    cache_ttl=settings.supabase_jwks_cache_ttl,
)
