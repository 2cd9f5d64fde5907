"""
IntraApi: typed access to users and logtime statistics.

Every call obtains a token from the CredentialManager first. A 401 from the
API invalidates the token before the UnauthorizedError is surfaced; it is
not retried silently.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from custom_components.intra_logtime.const import MAX_SEARCH_PAGES, SEARCH_PAGE_SIZE
from custom_components.intra_logtime.models import DateRange, IntraUser, LocationStats

from . import locations, users
from .auth import CredentialManager, get_standard_headers
from .errors import NotFoundError, UnauthorizedError
from .users import SearchMode

_LOGGER = logging.getLogger(__name__)


class IntraApi:
    """Gateway to the 42 Intra API for one set of credentials."""

    def __init__(self, credentials: CredentialManager) -> None:
        self.credentials = credentials

    async def _call(self, fetch, *args):
        token = await self.credentials.authenticate()
        try:
            return await fetch(get_standard_headers(token), *args)
        except UnauthorizedError:
            _LOGGER.warning("Access token rejected by the API, invalidating it")
            await self.credentials.invalidate()
            raise

    async def fetch_user(self, login: str) -> IntraUser:
        login = login.strip().lower()
        if not login:
            raise NotFoundError("Empty login")
        return await self._call(users.fetch_user, login)

    async def fetch_users(
        self,
        query: str,
        mode: SearchMode = SearchMode.LOGIN_PREFIX,
        max_pages: int = MAX_SEARCH_PAGES,
    ) -> AsyncIterator[IntraUser]:
        """Yield matching users page by page; pages are only fetched when consumed."""
        query = query.strip()
        if mode == SearchMode.LOGIN_PREFIX:
            query = query.lower()
        if not query:
            return

        for page in range(1, max_pages + 1):
            batch = await self._call(users.search_users, query, mode, page, SEARCH_PAGE_SIZE)
            for user in batch:
                yield user
            if len(batch) < SEARCH_PAGE_SIZE:
                return

    async def fetch_location_stats(self, user_id: int, date_range: DateRange) -> LocationStats:
        return await self._call(locations.fetch_location_stats, user_id, date_range)
