"""
DataUpdateCoordinator for the 42 Intra logtime integration.

Responsibilities:
- Own the CredentialManager, IntraApi, PinnedUserCache and CelebrationTracker
  of a config entry, all sharing the entry's KeyValueStore.
- Every UPDATE_INTERVAL seconds: fetch the configured user and today's
  logtime, project it against the goal, run the celebration check and
  refresh pinned users that are missing or stale.
- Serve the write paths used by services: toggle pin, authenticate,
  revalidate, history lookup and user search.
"""
from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
from datetime import datetime, timedelta

from homeassistant.components import persistent_notification
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryAuthFailed
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed
from homeassistant.util import dt as dt_util

from .api.auth import CredentialManager
from .api.errors import (
    AuthenticationError,
    ForbiddenError,
    IntraApiError,
    NotFoundError,
    UnauthorizedError,
)
from .api.gateway import IntraApi
from .api.locations import date_range_for_days, sorted_dates
from .api.users import SearchMode
from .celebration import CelebrationTracker
from .const import (
    DOMAIN,
    EVENT_GOAL_REACHED,
    HISTORY_DAYS,
    PIN_REFRESH_INTERVAL,
    UPDATE_INTERVAL,
    VERSION,
)
from .coordinator_data import CoordinatorData
from .coordinator_utils import format_clock, today_string
from .goal import calculate_goal_times, coerce_goal
from .models import HistoryResult, IntraUser, LocationStats, TokenInfo
from .pins import PinnedUserCache
from .store import KeyValueStore, create_store
from .time_codec import format_duration, sum_durations

__all__ = ["CoordinatorData", "IntraLogtimeCoordinator"]

_LOGGER = logging.getLogger(__name__)


class IntraLogtimeCoordinator(DataUpdateCoordinator[CoordinatorData]):
    """
    Coordinator for the 42 Intra logtime integration.

    Cycles are not re-entrant: a manual refresh arriving during a scheduled
    cycle waits for it and then overwrites its snapshot.
    """

    def __init__(self, hass: HomeAssistant, entry_data: dict, store: KeyValueStore | None = None) -> None:
        """Initialize the coordinator from config-entry data."""
        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            update_interval=timedelta(seconds=UPDATE_INTERVAL),
        )

        self._entry_data = entry_data
        self.store = store if store is not None else create_store(hass, entry_data["guid"])
        self.credentials = CredentialManager(
            self.store,
            entry_data["client_id"],
            entry_data["client_secret"],
        )
        self.api = IntraApi(self.credentials)
        self.pins = PinnedUserCache(self.store)
        self.tracker = CelebrationTracker(self.store, self._async_celebrate)

        self.user_login: str = (entry_data.get("user_login") or "").strip().lower()
        self.goal_hours, self.goal_minutes = coerce_goal(
            entry_data.get("goal_hours"), entry_data.get("goal_minutes")
        )
        self.debug_mode: bool = bool(entry_data.get("debug_mode", False))

        self._cycle_lock = asyncio.Lock()

        # Snapshot starts empty; entities must handle None gracefully until first refresh
        self.data = CoordinatorData()

    # ------------------------------------------------------------------
    # HA entry point
    # ------------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self._cycle_lock.locked()

    async def _async_update_data(self) -> CoordinatorData:
        """Called by HA on every update_interval tick and on manual refreshes."""
        async with self._cycle_lock:
            return await self._async_run_cycle(dt_util.now())

    async def _async_run_cycle(self, now: datetime) -> CoordinatorData:
        try:
            await self.credentials.authenticate()
        except AuthenticationError as exc:
            raise ConfigEntryAuthFailed(f"42 Intra authentication failed: {exc}") from exc

        today = today_string(now)
        user = self.data.user
        stats = None
        error: Exception | None = None

        if self.user_login:
            try:
                try:
                    user, stats = await self._async_fetch_today(now)
                except UnauthorizedError as exc:
                    # The gateway dropped the rejected token; one retry runs a fresh exchange
                    _LOGGER.debug("Access token rejected (%s), retrying with a new one", exc)
                    user, stats = await self._async_fetch_today(now)
            except AuthenticationError as exc:
                raise ConfigEntryAuthFailed(f"42 Intra authentication failed: {exc}") from exc
            except UnauthorizedError as exc:
                raise ConfigEntryAuthFailed(f"42 Intra rejected the access token: {exc}") from exc
            except (NotFoundError, ForbiddenError) as exc:
                self._log_api_error("Cannot load logtime of %s: %s", self.user_login, exc)
                error = exc
            except IntraApiError as exc:
                self._log_api_error("Failed to refresh logtime of %s: %s", self.user_login, exc)
                raise UpdateFailed(f"42 Intra API error: {exc}") from exc

        result = await self.tracker.async_evaluate(
            stats, self.goal_hours, self.goal_minutes, today, now
        )
        if result is not None:
            goal_info = result.goal_info
            seconds = result.today_logtime_seconds
        else:
            # No stats yet: report zero logtime rather than failing
            seconds = 0
            goal_info = calculate_goal_times(0, self.goal_hours, self.goal_minutes, now)

        pinned_users = await self._async_refresh_pins(now)

        return CoordinatorData(
            user=user,
            stats=stats,
            today_logtime_seconds=seconds,
            goal_info=goal_info,
            pinned_users=pinned_users,
            error=error,
        )

    async def _async_fetch_today(self, now: datetime) -> tuple[IntraUser, LocationStats]:
        user = await self.api.fetch_user(self.user_login)
        stats = await self.api.fetch_location_stats(user.id, date_range_for_days(0, now.date()))
        return user, stats

    # ------------------------------------------------------------------
    # Pinned users
    # ------------------------------------------------------------------

    async def _async_refresh_pins(self, now: datetime) -> dict[str, IntraUser]:
        """Fetch pinned users that are missing from the cache or stale."""
        logins = await self.pins.pinned_logins()
        if not logins:
            return {}

        resolution = await self.pins.resolve(logins)
        stale = await self.pins.stale_logins(PIN_REFRESH_INTERVAL, now.timestamp())
        users = {user.login: user for user in resolution.cached}

        for login in dict.fromkeys([*resolution.missing, *stale]):
            try:
                user = await self.api.fetch_user(login)
            except IntraApiError as exc:
                self._log_api_error("Failed to refresh pinned user %s: %s", login, exc)
                continue
            await self.pins.cache_user(user)
            users[login] = user

        return {login: users[login] for login in logins if login in users}

    async def async_toggle_pin(self, login: str) -> bool:
        """Pin or unpin a login and push the new pinned set. Returns the pinned state."""
        login = login.strip().lower()
        if await self.pins.is_pinned(login):
            cached = await self.pins.cached_users()
            pinned = await self.pins.toggle_pin(cached.get(login) or IntraUser(id=0, login=login))
        else:
            user = await self.api.fetch_user(login)
            pinned = await self.pins.toggle_pin(user)

        resolution = await self.pins.resolve(await self.pins.pinned_logins())
        self.async_set_updated_data(
            dataclasses.replace(
                self.data,
                pinned_users={user.login: user for user in resolution.cached},
            )
        )
        return pinned

    # ------------------------------------------------------------------
    # Service helpers
    # ------------------------------------------------------------------

    async def async_authenticate(self) -> None:
        """Drop the current token, acquire a fresh one and refresh."""
        await self.credentials.invalidate()
        await self.credentials.authenticate()
        await self.async_request_refresh()

    async def async_revalidate(self) -> None:
        await self.async_request_refresh()

    def get_token_info(self) -> TokenInfo:
        return self.credentials.get_token_info()

    async def async_fetch_history(self, login: str, days_back: int = HISTORY_DAYS) -> HistoryResult:
        """Logtime of any login over the last days_back days."""
        user = await self.api.fetch_user(login)
        stats = await self.api.fetch_location_stats(
            user.id, date_range_for_days(days_back, dt_util.now().date())
        )
        total = sum_durations(stats.values())
        return HistoryResult(
            user=user,
            stats=stats,
            sorted_dates=sorted_dates(stats),
            total_seconds=total,
            total_time=format_duration(total, compact=True),
        )

    async def async_search_users(
        self, query: str, mode: SearchMode = SearchMode.LOGIN_PREFIX, limit: int = 30
    ) -> list[IntraUser]:
        found: list[IntraUser] = []
        async with contextlib.aclosing(self.api.fetch_users(query, mode)) as users:
            async for user in users:
                found.append(user)
                if len(found) >= limit:
                    break
        return found

    # ------------------------------------------------------------------
    # Celebration side effect
    # ------------------------------------------------------------------

    async def _async_celebrate(self) -> None:
        """Notify the user that today's goal has been reached."""
        persistent_notification.async_create(
            self.hass,
            f"{self.user_login} reached the daily goal of "
            f"{self.goal_hours}h {self.goal_minutes}m at {format_clock(dt_util.now())}. 🎉",
            title="Daily logtime goal reached",
            notification_id=f"{DOMAIN}_{self._entry_data['guid']}_goal_reached",
        )
        self.hass.bus.async_fire(
            EVENT_GOAL_REACHED,
            {
                "login": self.user_login,
                "goal_hours": self.goal_hours,
                "goal_minutes": self.goal_minutes,
            },
        )

    # ------------------------------------------------------------------
    # Entity helper: device info dict
    # ------------------------------------------------------------------

    def get_device_info(self) -> dict:
        """Return the HA DeviceInfo dict for the configured login."""
        login = self.user_login or "unknown"
        return {
            "identifiers": {(DOMAIN, self._entry_data["guid"])},
            "name": f"42 {login}",
            "manufacturer": "42",
            "model": "Intra logtime",
            "sw_version": VERSION,
            "configuration_url": self.data.user.profile_url if self.data.user else None,
        }

    def _log_api_error(self, message: str, *args) -> None:
        if self.debug_mode:
            _LOGGER.error(message, *args, exc_info=True)
        else:
            _LOGGER.warning(message, *args)

    @property
    def entry_data(self):
        return self._entry_data
