"""
Domain models for the 42 Intra logtime integration.

This module contains pure data classes representing Intra entities and the
values derived from them. These classes have no dependencies on HTTP, API
logic, or Home Assistant internals.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any

from .const import PROFILE_URL

# ISO calendar date → elapsed time string in the wire format HH:MM:SS[.ffffff]
LocationStats = dict[str, str]


@dataclasses.dataclass(frozen=True)
class IntraUser:
    """Snapshot of a single 42 user as returned by the Intra API."""

    id: int
    login: str
    location: str | None = None
    image_url: str | None = None
    url: str | None = None
    displayname: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    # epoch seconds at which this snapshot was fetched
    fetched_at: float = 0.0

    @property
    def profile_url(self) -> str:
        return PROFILE_URL + self.login

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IntraUser":
        """Rebuild a snapshot from its persisted form, ignoring unknown keys."""
        known = {field.name for field in dataclasses.fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclasses.dataclass(frozen=True)
class DateRange:
    """Half-open [begin_at, end_at) range of ISO dates."""

    begin_at: str
    end_at: str


@dataclasses.dataclass(frozen=True)
class TimeComponents:
    hours: int
    minutes: int
    seconds: int
    # whole seconds, fraction discarded
    total_seconds: int
    # including the fractional part of the wire value
    exact_seconds: float


@dataclasses.dataclass(frozen=True)
class GoalInfo:
    """Projection of today's logtime against the configured daily goal."""

    goal_seconds: int
    remaining_seconds: int
    remaining_time_string: str
    goal_reached: bool
    arrived_time: datetime
    leaving_time: datetime


@dataclasses.dataclass(frozen=True)
class CelebrationState:
    """Persisted one-shot marker for the daily goal celebration."""

    last_triggered_date: str = ""
    last_logtime_seconds: int = 0
    last_logtime_date: str = ""

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "CelebrationState":
        """Parse a stored state; anything unreadable yields the empty state."""
        if not isinstance(data, dict):
            return cls()
        seconds = data.get("last_logtime_seconds", 0)
        return cls(
            last_triggered_date=str(data.get("last_triggered_date") or ""),
            last_logtime_seconds=seconds if isinstance(seconds, int) else 0,
            last_logtime_date=str(data.get("last_logtime_date") or ""),
        )


@dataclasses.dataclass(frozen=True)
class TokenInfo:
    """Diagnostic view of the current access token."""

    token: str | None
    expires_at: datetime | None
    expires_in: int | None


@dataclasses.dataclass(frozen=True)
class PinResolution:
    """Split of requested logins into cached snapshots and logins to fetch."""

    cached: list[IntraUser]
    missing: list[str]


@dataclasses.dataclass(frozen=True)
class HistoryResult:
    """Logtime history of one user over a lookback window."""

    user: IntraUser
    stats: LocationStats
    sorted_dates: list[str]
    total_seconds: int
    total_time: str
