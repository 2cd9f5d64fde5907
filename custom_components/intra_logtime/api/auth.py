"""
OAuth token lifecycle for the 42 Intra API.

Responsible for:
- Obtaining an access token from the /oauth/token endpoint
- Caching and persisting the token with its expiry
- Refreshing it when expired and dropping it when the API rejects it
- Building the standard authorization headers used by all API calls
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from custom_components.intra_logtime.const import (
    DEFAULT_SCOPE,
    REVOKE_URL,
    STORE_KEY_TOKEN,
    TOKEN_EXPIRY_MARGIN,
    TOKEN_URL,
)
from custom_components.intra_logtime.models import TokenInfo
from custom_components.intra_logtime.requests import make_request
from custom_components.intra_logtime.store import KeyValueStore

from .errors import AuthenticationError, IntraApiError

_LOGGER = logging.getLogger(__name__)

STATE_NO_TOKEN = "no_token"
STATE_AUTHENTICATING = "authenticating"
STATE_AUTHENTICATED = "authenticated"
STATE_EXPIRED = "expired"


async def request_token(client_id: str, client_secret: str, grant: dict) -> dict:
    """
    Exchange a grant for an access token.

    Corresponding CURL command:
    curl -X POST --data "grant_type=client_credentials&client_id=UID&client_secret=SECRET" \\
      https://api.intra.42.fr/oauth/token
    """
    data = dict(grant)
    data["client_id"] = client_id
    data["client_secret"] = client_secret
    headers = {"accept": "application/json"}
    return await make_request("POST", TOKEN_URL, headers, data=data)


def _expiry_from(payload: dict) -> float | None:
    """Absolute expiry (epoch seconds) of a token response, if it states one."""
    expires_in = payload.get("expires_in")
    if expires_in is None:
        return None
    created_at = payload.get("created_at")
    try:
        base = float(created_at) if created_at is not None else time.time()
        return base + float(expires_in)
    except (TypeError, ValueError):
        _LOGGER.warning("Ignoring malformed token expiry: %s / %s", created_at, expires_in)
        return None


def token_matches(raw, client_id: str) -> bool:
    """True when a persisted token record exists and was issued to client_id."""
    if not isinstance(raw, dict) or not raw.get("access_token"):
        return False
    return raw.get("client_id") in (None, client_id)


class CredentialManager:
    """
    Owns the one access token of a config entry.

    Concurrent authenticate() calls share a single in-flight exchange. With a
    code_provider the authorization-code grant is used, otherwise the
    client-credentials grant.
    """

    def __init__(
        self,
        store: KeyValueStore,
        client_id: str,
        client_secret: str,
        code_provider: Callable[[], Awaitable[str]] | None = None,
        redirect_uri: str | None = None,
        scope: str = DEFAULT_SCOPE,
    ) -> None:
        self._store = store
        self._client_id = client_id
        self._client_secret = client_secret
        self._code_provider = code_provider
        self._redirect_uri = redirect_uri
        self._scope = scope

        self._token: str | None = None
        self._expires_at: float | None = None
        self._refresh_token: str | None = None
        self._loaded = False
        self._pending: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        if self._pending is not None and not self._pending.done():
            return STATE_AUTHENTICATING
        if self._token is None:
            return STATE_NO_TOKEN
        if self._is_expired():
            return STATE_EXPIRED
        return STATE_AUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self.state == STATE_AUTHENTICATED

    def _is_expired(self) -> bool:
        if self._expires_at is None:
            return False
        return time.time() >= self._expires_at - TOKEN_EXPIRY_MARGIN

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def async_load(self) -> None:
        """Restore a token persisted by a previous run."""
        raw = await self._store.async_get(STORE_KEY_TOKEN)
        self._loaded = True
        if not token_matches(raw, self._client_id):
            return
        self._token = raw["access_token"]
        self._expires_at = raw.get("expires_at")
        self._refresh_token = raw.get("refresh_token")
        _LOGGER.debug("Restored access token (state: %s)", self.state)

    async def authenticate(self) -> str:
        """Return a valid access token, running one token exchange if needed."""
        if not self._loaded:
            await self.async_load()

        if self._token is not None and not self._is_expired():
            return self._token

        if self._pending is None or self._pending.done():
            self._pending = asyncio.ensure_future(self._async_acquire())
        # Shielded so a cancelled caller does not abort the exchange for the others
        return await asyncio.shield(self._pending)

    def get_token(self) -> str | None:
        return self._token

    async def invalidate(self) -> None:
        """Forget the token, e.g. after the API answered 401."""
        self._token = None
        self._expires_at = None
        self._refresh_token = None
        await self._store.async_remove(STORE_KEY_TOKEN)
        _LOGGER.debug("Access token invalidated")

    async def async_revoke(self) -> None:
        """Revoke the token server side (best effort) and forget it."""
        if self._token is not None:
            try:
                await make_request(
                    "POST",
                    REVOKE_URL,
                    {"accept": "application/json"},
                    data={
                        "token": self._token,
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                    },
                )
            except IntraApiError as exc:
                _LOGGER.warning("Failed to revoke access token: %s", exc)
        await self.invalidate()

    def get_token_info(self) -> TokenInfo:
        """Diagnostic snapshot of the token. Never triggers a refresh."""
        if self._token is None:
            return TokenInfo(token=None, expires_at=None, expires_in=None)
        if self._expires_at is None:
            return TokenInfo(token=self._token, expires_at=None, expires_in=None)
        return TokenInfo(
            token=self._token,
            expires_at=datetime.fromtimestamp(self._expires_at, tz=timezone.utc),
            expires_in=max(0, int(self._expires_at - time.time())),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _grant(self) -> dict:
        if self._code_provider is None:
            return {"grant_type": "client_credentials", "scope": self._scope}
        try:
            code = await self._code_provider()
        except Exception as exc:  # noqa: BLE001
            raise AuthenticationError(f"Authorization was not completed: {exc}") from exc
        if not code:
            raise AuthenticationError("Authorization was not completed: no code received")
        grant = {"grant_type": "authorization_code", "code": code}
        if self._redirect_uri:
            grant["redirect_uri"] = self._redirect_uri
        return grant

    async def _async_acquire(self) -> str:
        """Run one token exchange and persist the result."""
        _LOGGER.debug("Requesting access token")
        payload = None
        try:
            if self._refresh_token:
                try:
                    payload = await request_token(
                        self._client_id,
                        self._client_secret,
                        {"grant_type": "refresh_token", "refresh_token": self._refresh_token},
                    )
                except IntraApiError as exc:
                    _LOGGER.debug("Refresh token rejected, starting a new exchange: %s", exc)
            if payload is None:
                payload = await request_token(self._client_id, self._client_secret, await self._grant())
        except IntraApiError as exc:
            await self.invalidate()
            _LOGGER.error("Error while getting access token: %s", exc)
            if isinstance(exc, AuthenticationError):
                raise
            raise AuthenticationError(f"Token exchange failed: {exc}", exc.status) from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            await self.invalidate()
            _LOGGER.error("Token response did not contain an access token")
            raise AuthenticationError("Token response did not contain an access token")

        self._token = token
        self._expires_at = _expiry_from(payload)
        self._refresh_token = payload.get("refresh_token") or None
        await self._store.async_set(
            STORE_KEY_TOKEN,
            {
                "access_token": self._token,
                "expires_at": self._expires_at,
                "refresh_token": self._refresh_token,
                "client_id": self._client_id,
            },
        )
        _LOGGER.debug("Access token acquired (expires at %s)", self._expires_at)
        return token


def get_standard_headers(token: str) -> dict:
    """
    Build the standard HTTP headers used by all authenticated Intra API requests.

    :param token: Bearer token obtained from :meth:`CredentialManager.authenticate`.
    :return: Dictionary of HTTP headers.
    """
    return {
        "accept": "application/json",
        "Authorization": f"Bearer {token}",
    }
