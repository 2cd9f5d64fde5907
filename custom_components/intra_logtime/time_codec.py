"""
Parsing and formatting of Intra elapsed-time strings.

The locations_stats endpoint reports time per day as ``H+:MM:SS[.ffffff]``
(e.g. ``"02:56:21.097917"``). Pure functions, no HA or network dependencies.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from .models import TimeComponents

_LOGGER = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"^(\d+):(\d+):(\d+)(?:\.(\d+))?$")


class MalformedDurationError(ValueError):
    """Raised when an elapsed-time string does not match H+:MM:SS[.ffffff]."""


def parse_duration(value: str) -> TimeComponents:
    """
    Split an elapsed-time string into its components.

    Hours are unbounded. The fractional part is kept only in
    ``exact_seconds``; ``total_seconds`` counts whole seconds.
    """
    if not isinstance(value, str) or not value.strip():
        raise MalformedDurationError(f"Empty duration: {value!r}")

    match = _DURATION_RE.match(value.strip())
    if match is None:
        raise MalformedDurationError(f"Unexpected duration format: {value!r}")

    hours, minutes, seconds = (int(group) for group in match.group(1, 2, 3))
    fraction = float("0." + match.group(4)) if match.group(4) else 0.0
    total = hours * 3600 + minutes * 60 + seconds
    return TimeComponents(
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        total_seconds=total,
        exact_seconds=total + fraction,
    )


def format_duration(total_seconds: float, compact: bool = True) -> str:
    """Format seconds as ``"6h 39m"`` (compact) or ``"6h 39m 12s"``."""
    total = int(total_seconds)
    if total <= 0:
        return "0h 0m"
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if compact:
        return f"{hours}h {minutes}m"
    return f"{hours}h {minutes}m {seconds}s"


def format_time(value: str, compact: bool = False) -> str:
    """Format a wire elapsed-time string; malformed values read as zero."""
    try:
        return format_duration(parse_duration(value).total_seconds, compact)
    except MalformedDurationError:
        _LOGGER.debug("Cannot format malformed duration %r", value)
        return format_duration(0, compact)


def sum_durations(values: Iterable[str]) -> int:
    """Total whole seconds of all elapsed-time strings. Malformed entries count as zero."""
    total = 0
    for value in values:
        try:
            total += parse_duration(value).total_seconds
        except MalformedDurationError as exc:
            _LOGGER.warning("Ignoring malformed duration: %s", exc)
    return total
