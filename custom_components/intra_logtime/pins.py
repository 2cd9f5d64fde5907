"""
PinnedUserCache: favourite users kept locally for quick access.

The ordered login list and the login → snapshot cache are persisted under
two independent keys. No transaction spans both: a pinned login may be
transiently missing from the cache and is re-fetched lazily.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Iterable

from .const import STORE_KEY_PINNED_CACHE, STORE_KEY_PINNED_LOGINS
from .models import IntraUser, PinResolution
from .store import KeyValueStore

_LOGGER = logging.getLogger(__name__)


class PinnedUserCache:
    """Persisted pin list plus a snapshot cache keyed by login."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def pinned_logins(self) -> list[str]:
        """Pinned logins in pin order."""
        logins = await self._store.async_get(STORE_KEY_PINNED_LOGINS, [])
        if not isinstance(logins, list):
            return []
        return [login for login in logins if isinstance(login, str)]

    async def is_pinned(self, login: str) -> bool:
        return login in await self.pinned_logins()

    async def toggle_pin(self, user: IntraUser) -> bool:
        """
        Pin the user if not pinned yet, unpin otherwise.

        Returns the new pinned state. The list is written before the cache.
        """
        logins = await self.pinned_logins()
        if user.login in logins:
            await self._store.async_set(
                STORE_KEY_PINNED_LOGINS, [login for login in logins if login != user.login]
            )
            await self.remove_cached_user(user.login)
            _LOGGER.debug("Unpinned %s", user.login)
            return False

        logins.append(user.login)
        await self._store.async_set(STORE_KEY_PINNED_LOGINS, logins)
        await self.cache_user(user)
        _LOGGER.debug("Pinned %s", user.login)
        return True

    async def cached_users(self) -> dict[str, IntraUser]:
        raw = await self._store.async_get(STORE_KEY_PINNED_CACHE, {})
        if not isinstance(raw, dict):
            return {}
        users: dict[str, IntraUser] = {}
        for login, data in raw.items():
            if not isinstance(data, dict):
                continue
            try:
                users[login] = IntraUser.from_dict(data)
            except TypeError as exc:
                _LOGGER.warning("Dropping unreadable cached user %s: %s", login, exc)
        return users

    async def resolve(self, logins: Iterable[str]) -> PinResolution:
        """Split logins into cached snapshots and logins that still need a fetch."""
        cache = await self.cached_users()
        cached: list[IntraUser] = []
        missing: list[str] = []
        for login in logins:
            if login in cache:
                cached.append(cache[login])
            else:
                missing.append(login)
        return PinResolution(cached=cached, missing=missing)

    async def stale_logins(self, max_age: float, now: float | None = None) -> list[str]:
        """Pinned logins whose cached snapshot is older than max_age seconds."""
        if now is None:
            now = time.time()
        cache = await self.cached_users()
        return [
            login
            for login in await self.pinned_logins()
            if login in cache and now - cache[login].fetched_at > max_age
        ]

    async def cache_user(self, user: IntraUser) -> None:
        raw = await self._store.async_get(STORE_KEY_PINNED_CACHE, {})
        if not isinstance(raw, dict):
            raw = {}
        raw[user.login] = user.to_dict()
        await self._store.async_set(STORE_KEY_PINNED_CACHE, raw)

    async def remove_cached_user(self, login: str) -> None:
        raw = await self._store.async_get(STORE_KEY_PINNED_CACHE, {})
        if not isinstance(raw, dict) or login not in raw:
            return
        del raw[login]
        await self._store.async_set(STORE_KEY_PINNED_CACHE, raw)
