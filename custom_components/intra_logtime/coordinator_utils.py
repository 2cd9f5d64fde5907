"""
Low-level utility functions for the 42 Intra logtime coordinator.

Responsibilities:
- Map API failures onto a user-facing explanation with remediation actions.
- Date and clock-time formatting shared by the coordinator and the entities.

No HA imports, these functions are pure data primitives.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime

from .api.errors import (
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    TransientNetworkError,
    UnauthorizedError,
)

ACTION_REAUTHENTICATE = "reauthenticate"
ACTION_OPEN_PREFERENCES = "open_preferences"
ACTION_RETRY = "retry"


@dataclasses.dataclass(frozen=True)
class ErrorDetails:
    title: str
    description: str
    actions: tuple[str, ...]


def describe_error(exc: Exception | None) -> ErrorDetails | None:
    """Explain an API failure and the actions that can resolve it."""
    if exc is None:
        return None
    if isinstance(exc, (AuthenticationError, UnauthorizedError)):
        return ErrorDetails(
            title="Authentication Error",
            description="Your access token may be invalid or expired. Please re-authenticate.",
            actions=(ACTION_REAUTHENTICATE, ACTION_OPEN_PREFERENCES),
        )
    if isinstance(exc, ForbiddenError):
        return ErrorDetails(
            title="Access Forbidden",
            description=(
                "You don't have permission to access location stats for this user. "
                "Check your OAuth scopes or try viewing your own stats."
            ),
            actions=(ACTION_OPEN_PREFERENCES, ACTION_RETRY),
        )
    if isinstance(exc, NotFoundError):
        return ErrorDetails(
            title="User Not Found",
            description="No user was found with that login. Please check the username and try again.",
            actions=(ACTION_RETRY,),
        )
    if isinstance(exc, TransientNetworkError):
        return ErrorDetails(
            title="Connection Problem",
            description="The 42 Intra API did not answer in time. Please try again.",
            actions=(ACTION_RETRY,),
        )
    return ErrorDetails(
        title="Error",
        description=str(exc) or "An unknown error occurred",
        actions=(ACTION_RETRY,),
    )


def today_string(now: datetime) -> str:
    """Local calendar date in the ISO form used as locations_stats key."""
    return now.date().isoformat()


def format_clock(moment: datetime) -> str:
    """24h HH:MM clock time."""
    return moment.strftime("%H:%M")
