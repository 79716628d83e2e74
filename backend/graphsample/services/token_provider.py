from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, AsyncGenerator, Callable, Dict, Iterable, Mapping, Optional, Tuple

import httpx
import msal

from ..config import AzureConfig, TokenCacheConfig
from ..core.errors import AuthError
from ..models import AccessToken

logger = logging.getLogger(__name__)

ScopeKey = Tuple[str, ...]


def _scope_key(scopes: Iterable[str]) -> ScopeKey:
    return tuple(sorted(set(scopes)))


class TokenProvider:
    """
    Acquires app-only Graph tokens with the client-credentials grant.

    Tokens are cached per scope set and re-acquired only when they are within
    ``refresh_skew_seconds`` of expiry.  Concurrent callers asking for the same
    scope set share a single acquisition.
    """

    def __init__(
        self,
        azure: AzureConfig,
        cache_settings: TokenCacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._azure = azure
        self._refresh_skew = (cache_settings or TokenCacheConfig()).refresh_skew_seconds
        self._clock = clock
        self._app: Optional[msal.ConfidentialClientApplication] = None
        self._tokens: Dict[ScopeKey, AccessToken] = {}
        self._locks: Dict[ScopeKey, asyncio.Lock] = {}

    async def acquire_token(self, scopes: Iterable[str]) -> AccessToken:
        key = _scope_key(scopes)
        cached = self._fresh_token(key)
        if cached:
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            cached = self._fresh_token(key)
            if cached:
                return cached
            logger.info("Acquiring client-credentials token for scopes %s", " ".join(key))
            token = await self._request_token(list(key))
            self._tokens[key] = token
            return token

    def invalidate(self, scopes: Iterable[str]) -> None:
        self._tokens.pop(_scope_key(scopes), None)

    def _fresh_token(self, key: ScopeKey) -> Optional[AccessToken]:
        token = self._tokens.get(key)
        if token and token.expires_at - self._refresh_skew > self._clock():
            logger.debug("Token cache hit for scopes %s", " ".join(key))
            return token
        return None

    async def _request_token(self, scopes: list[str]) -> AccessToken:
        started = self._clock()
        try:
            result = await asyncio.to_thread(self._acquire_for_client, scopes)
        except (ValueError, OSError) as exc:
            # msal raises ValueError for unknown tenants/authorities and the
            # requests transport raises OSError subclasses for network failures.
            raise AuthError(f"Token acquisition failed: {exc}") from exc

        self._raise_if_error(result)
        access_token = result.get("access_token")
        if not access_token:
            raise AuthError("Token acquisition returned no access token")
        expires_in = int(result.get("expires_in", 3600))
        return AccessToken(
            token=access_token,
            expires_at=started + expires_in,
            token_type=result.get("token_type") or "Bearer",
        )

    def _acquire_for_client(self, scopes: list[str]) -> Dict[str, Any]:
        if self._app is None:
            self._app = msal.ConfidentialClientApplication(
                client_id=self._azure.client_id,
                client_credential=self._azure.client_secret,
                authority=self._azure.authority,
            )
        return self._app.acquire_token_for_client(scopes=scopes)

    @staticmethod
    def _raise_if_error(result: Optional[Mapping[str, Any]]) -> None:
        if not result:
            raise AuthError("Token acquisition returned an empty response")
        if "error" in result:
            error_description = result.get("error_description", "unknown error")
            raise AuthError(f"MSAL error: {result['error']} - {error_description}")


class BearerTokenAuth(httpx.Auth):
    """Attaches a token from :class:`TokenProvider` to every outgoing request."""

    def __init__(self, provider: TokenProvider, scopes: Iterable[str]) -> None:
        self._provider = provider
        self._scopes = list(scopes)

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self._provider.acquire_token(self._scopes)
        request.headers["Authorization"] = token.authorization_header
        yield request
