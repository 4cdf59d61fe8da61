"""Signing key resolution backed by the provider's JWKS endpoint.

Keys are cached per kid for a fixed TTL. A cache miss triggers a fetch of the
whole key set; concurrent misses share a single in-flight fetch, whatever kid
each caller asked for, and all of them observe its outcome. A kid missing from
a fresh key set is remembered for a short negative window so a burst of
tokens signed with an unknown key does not turn into a burst of fetches.
"""

import asyncio
import time
from collections.abc import Callable

import httpx
from jwt import PyJWK

from evesso.core.errors import (
    KeySetUnavailableError,
    TransportTimeoutError,
    UnknownKeyError,
)
from evesso.core.logging import get_logger
from evesso.core.settings import (
    HTTP_TIMEOUT_DEFAULT,
    KEY_CACHE_TTL_DEFAULT,
    NEGATIVE_CACHE_TTL_DEFAULT,
)
from evesso.crypto.keys import parse_key_set
from evesso.crypto.types import SigningKeyEntry

logger = get_logger("evesso.keys")

KeyEntries = dict[str, SigningKeyEntry]


class SigningKeyResolver:
    """Maps key ids to public keys with a TTL cache and single-flight fetches."""

    def __init__(
        self,
        jwks_uri: str,
        http: httpx.AsyncClient,
        *,
        ttl: float = KEY_CACHE_TTL_DEFAULT,
        negative_ttl: float = NEGATIVE_CACHE_TTL_DEFAULT,
        timeout: float = HTTP_TIMEOUT_DEFAULT,
        user_agent: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.jwks_uri = jwks_uri
        self._http = http
        self._ttl = ttl
        self._negative_ttl = negative_ttl
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent} if user_agent else {}
        self._clock = clock
        self._cache: KeyEntries = {}
        self._negative: dict[str, float] = {}
        self._inflight: asyncio.Task[KeyEntries] | None = None

    async def resolve(self, key_id: str) -> PyJWK:
        """Return the public key for ``key_id``, fetching the key set if needed."""
        now = self._clock()
        entry = self._cache.get(key_id)
        if entry is not None and entry.is_fresh(now):
            return entry.public_key
        deadline = self._negative.get(key_id)
        if deadline is not None:
            if deadline > now:
                raise UnknownKeyError(key_id)
            del self._negative[key_id]

        fresh = await self._fetch_shared()
        entry = fresh.get(key_id)
        if entry is None:
            logger.warning("Signing key not in key set", kid=key_id)
            if self._negative_ttl > 0:
                self._negative[key_id] = self._clock() + self._negative_ttl
            raise UnknownKeyError(key_id)
        return entry.public_key

    async def refresh(self) -> int:
        """Fetch the key set now (or join a running fetch); return its size."""
        fresh = await self._fetch_shared()
        return len(fresh)

    def cached_key_ids(self) -> list[str]:
        """Key ids whose cache entries have not expired."""
        now = self._clock()
        return sorted(kid for kid, e in self._cache.items() if e.is_fresh(now))

    async def _fetch_shared(self) -> KeyEntries:
        if self._inflight is None:
            self._inflight = asyncio.create_task(self._fetch())
            self._inflight.add_done_callback(self._fetch_done)
        # A cancelled waiter must not cancel the fetch other callers await
        return await asyncio.shield(self._inflight)

    def _fetch_done(self, task: asyncio.Task[KeyEntries]) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # Mark the exception retrieved when every waiter has gone away
            task.exception()

    async def _fetch(self) -> KeyEntries:
        try:
            # httpx times each phase separately; bound the whole exchange
            async with asyncio.timeout(self._timeout):
                response = await self._http.get(
                    self.jwks_uri, headers=self._headers, timeout=self._timeout
                )
        except (httpx.TimeoutException, TimeoutError) as exc:
            logger.warning("Key set request timed out", url=self.jwks_uri)
            raise TransportTimeoutError(self.jwks_uri, self._timeout) from exc
        except httpx.HTTPError as exc:
            logger.error("Key set request failed", url=self.jwks_uri, error=str(exc))
            raise KeySetUnavailableError(
                f"Key set request failed: {exc}", url=self.jwks_uri
            ) from exc

        if not response.is_success:
            logger.error(
                "Key set endpoint error",
                url=self.jwks_uri,
                status_code=response.status_code,
            )
            raise KeySetUnavailableError(
                f"Key set endpoint returned HTTP {response.status_code}",
                url=self.jwks_uri,
                status_code=response.status_code,
            )

        try:
            keys = parse_key_set(response.json())
        except ValueError as exc:  # bad JSON or KeySetFormatError
            logger.error("Key set document rejected", url=self.jwks_uri, error=str(exc))
            raise KeySetUnavailableError(
                f"Unusable key set document: {exc}",
                url=self.jwks_uri,
                status_code=response.status_code,
            ) from exc

        fetched_at = self._clock()
        entries = {
            kid: SigningKeyEntry(
                key_id=kid,
                public_key=key,
                fetched_at=fetched_at,
                expires_at=fetched_at + self._ttl,
            )
            for kid, key in keys.items()
        }
        self._cache.update(entries)
        self._negative = {
            kid: until
            for kid, until in self._negative.items()
            if until > fetched_at and kid not in entries
        }
        logger.info("Key set fetched", url=self.jwks_uri, keys_count=len(entries))
        return entries
