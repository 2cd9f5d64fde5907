"""
Daily goal calculation.

Derives the remaining time, whether the goal is met and the projected
arrival/departure clock times from today's accumulated logtime.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from .const import DEFAULT_GOAL_HOURS, DEFAULT_GOAL_MINUTES
from .models import GoalInfo
from .time_codec import format_duration

GOAL_REACHED_TEXT = "Goal reached!"


def goal_seconds(goal_hours: int, goal_minutes: int) -> int:
    return int(goal_hours * 3600 + goal_minutes * 60)


def _coerce(value: Any, default: int, maximum: int | None) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    if number < 0 or (maximum is not None and number > maximum):
        return default
    return number


def coerce_goal(hours: Any, minutes: Any) -> tuple[int, int]:
    """Read configured goal values, falling back to 6h 39m for anything unusable."""
    return (
        _coerce(hours, DEFAULT_GOAL_HOURS, None),
        _coerce(minutes, DEFAULT_GOAL_MINUTES, 59),
    )


def calculate_goal_times(
    today_logtime_seconds: int,
    goal_hours: int,
    goal_minutes: int,
    now: datetime | None = None,
) -> GoalInfo:
    """
    Project today's logtime against the goal.

    The arrival time assumes one continuous session since arrival: it is
    simply ``now - today_logtime_seconds``.
    """
    if now is None:
        now = datetime.now().astimezone()

    logtime = max(0, int(today_logtime_seconds))
    target = goal_seconds(goal_hours, goal_minutes)
    remaining = max(0, target - logtime)
    reached = logtime >= target

    return GoalInfo(
        goal_seconds=target,
        remaining_seconds=remaining,
        remaining_time_string=GOAL_REACHED_TEXT if reached else format_duration(remaining, compact=True),
        goal_reached=reached,
        arrived_time=now - timedelta(seconds=logtime),
        leaving_time=now + timedelta(seconds=remaining),
    )
