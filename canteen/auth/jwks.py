import asyncio
import logging
import time
from typing import Dict, Optional

import httpx

log = logging.getLogger("canteen.auth.jwks")


class JwksKeyNotFound(Exception):
    def __init__(self, kid: str):
        super().__init__(f"key not found for kid: {kid}")
        self.kid = kid


def parse_max_age(header: Optional[str]) -> Optional[int]:
    if not header:
        return None
    for part in header.split(","):
        part = part.strip()
        if part.startswith("max-age="):
            value = part[len("max-age="):]
            if value.isdigit():
                return int(value)
    return None


class JwksCache:
    """
    Process-wide kid -> JWK mapping for the identity provider's rotating keys.

    The mapping is replaced wholesale on refresh, so readers never see a half
    built set. Refreshes are serialised by a lock and happen on a key miss or
    once the TTL (Cache-Control max-age, else the default) has elapsed.
    Network and parse failures are logged and reported as a missing key.
    """

    def __init__(self, url: str, default_ttl_secs: int = 3600,
                 transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 5.0):
        self.url = url
        self.default_ttl_secs = default_ttl_secs
        self._transport = transport
        self._timeout = timeout
        self._keys: Dict[str, dict] = {}
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self._expires_at

    async def refresh(self) -> bool:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            log.warning(f"JWKS refresh from {self.url} failed: {e}")
            return False

        jwks = body.get("keys") if isinstance(body, dict) else None
        if not isinstance(jwks, list):
            log.warning(f"JWKS refresh from {self.url} failed: payload has no key list")
            return False

        keys = {}
        for jwk in jwks:
            if isinstance(jwk, dict) and jwk.get("kid") and jwk.get("kty") == "RSA" and jwk.get("n") and jwk.get("e"):
                keys[jwk["kid"]] = jwk

        ttl = parse_max_age(resp.headers.get("cache-control"))
        self._keys = keys
        self._expires_at = time.monotonic() + (ttl if ttl is not None else self.default_ttl_secs)
        log.debug(f"JWKS refreshed: {len(keys)} key(s), ttl {ttl or self.default_ttl_secs}s")
        return True

    async def get_key(self, kid: str) -> dict:
        key = self._keys.get(kid)
        if key is not None and not self.expired:
            return key

        async with self._lock:
            # Another task may have refreshed while we waited
            key = self._keys.get(kid)
            if key is None or self.expired:
                await self.refresh()
                key = self._keys.get(kid)

        if key is None:
            raise JwksKeyNotFound(kid)
        return key
