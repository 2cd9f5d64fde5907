"""
Daily goal celebration.

The decision is a pure function of today's stats, the goal and the stored
CelebrationState (evaluate_cycle). CelebrationTracker wraps it with the
side effects: reading/writing the state and firing the celebration.

The celebration fires at most once per calendar date and only on an upward
crossing of the goal observed by the tracker itself: lowering the goal below
an already recorded logtime does not fire.
"""
from __future__ import annotations

import dataclasses
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from .const import STORE_KEY_CELEBRATION
from .goal import calculate_goal_times
from .models import CelebrationState, GoalInfo, LocationStats
from .store import KeyValueStore
from .time_codec import MalformedDurationError, parse_duration

_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class CycleResult:
    goal_info: GoalInfo
    today_logtime_seconds: int
    celebrate: bool
    # None when the stored state is already up to date
    state_update: CelebrationState | None


def today_logtime_seconds(stats: LocationStats | None, today: str) -> int:
    """Today's logtime in whole seconds; absent or malformed entries read as zero."""
    if not stats:
        return 0
    value = stats.get(today)
    if not value:
        return 0
    try:
        return parse_duration(value).total_seconds
    except MalformedDurationError as exc:
        _LOGGER.warning("Treating today's logtime as zero: %s", exc)
        return 0


def should_celebrate(
    state: CelebrationState, goal_reached: bool, today: str, target_seconds: int
) -> bool:
    is_new_day = state.last_logtime_date != today
    last_known_logtime = 0 if is_new_day else state.last_logtime_seconds
    return (
        goal_reached
        and state.last_triggered_date != today
        and last_known_logtime < target_seconds
    )


def evaluate_cycle(
    stats: LocationStats | None,
    goal_hours: int,
    goal_minutes: int,
    state: CelebrationState,
    today: str,
    now: datetime | None = None,
) -> CycleResult:
    """Compute the goal projection, the celebration decision and the state to persist."""
    seconds = today_logtime_seconds(stats, today)
    goal_info = calculate_goal_times(seconds, goal_hours, goal_minutes, now)

    if should_celebrate(state, goal_info.goal_reached, today, goal_info.goal_seconds):
        return CycleResult(
            goal_info=goal_info,
            today_logtime_seconds=seconds,
            celebrate=True,
            state_update=CelebrationState(
                last_triggered_date=today,
                last_logtime_seconds=seconds,
                last_logtime_date=today,
            ),
        )

    state_update = None
    if state.last_logtime_seconds != seconds or state.last_logtime_date != today:
        state_update = dataclasses.replace(
            state, last_logtime_seconds=seconds, last_logtime_date=today
        )
    return CycleResult(
        goal_info=goal_info,
        today_logtime_seconds=seconds,
        celebrate=False,
        state_update=state_update,
    )


class CelebrationTracker:
    """Runs evaluate_cycle against the persisted state and fires the celebration."""

    def __init__(
        self,
        store: KeyValueStore,
        celebrate: Callable[[], Awaitable[None] | None],
    ) -> None:
        self._store = store
        self._celebrate = celebrate

    async def async_load_state(self) -> CelebrationState:
        return CelebrationState.from_dict(await self._store.async_get(STORE_KEY_CELEBRATION))

    async def async_evaluate(
        self,
        stats: LocationStats | None,
        goal_hours: int,
        goal_minutes: int,
        today: str,
        now: datetime | None = None,
        loading: bool = False,
    ) -> CycleResult | None:
        """
        Evaluate one cycle. Returns None without touching the state while the
        stats are loading or have not been fetched yet.
        """
        if loading or stats is None:
            _LOGGER.debug("Skipping celebration check, stats not available yet")
            return None

        state = await self.async_load_state()
        result = evaluate_cycle(stats, goal_hours, goal_minutes, state, today, now)

        if result.celebrate:
            await self._async_fire()
            _LOGGER.info("Daily goal reached on %s, celebration triggered", today)

        if result.state_update is not None:
            await self._store.async_set(STORE_KEY_CELEBRATION, result.state_update.to_dict())

        return result

    async def _async_fire(self) -> None:
        try:
            outcome = self._celebrate()
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Failed to trigger celebration: %s", exc)
