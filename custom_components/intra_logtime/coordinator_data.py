"""
CoordinatorData: immutable snapshot of the logtime data shared with entities.

This is a pure data module with no HA or network dependencies.
"""
from __future__ import annotations

import dataclasses

from .models import GoalInfo, IntraUser, LocationStats


@dataclasses.dataclass(frozen=True)
class CoordinatorData:
    """
    Typed, copy-on-write snapshot of the configured user's logtime.

    Always replace via dataclasses.replace(), never mutate in place.
    """

    # Configured user (None until the first successful lookup)
    user: IntraUser | None = None

    # Today's locations_stats of the configured user (None until fetched)
    stats: LocationStats | None = None

    today_logtime_seconds: int = 0

    # Goal projection recomputed on every cycle
    goal_info: GoalInfo | None = None

    # login → snapshot, in pin order
    pinned_users: dict[str, IntraUser] = dataclasses.field(default_factory=dict)

    # Last non-fatal API error of the cycle (not found / forbidden)
    error: Exception | None = None
