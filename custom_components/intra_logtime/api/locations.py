"""
Low-level logtime statistics fetching from the 42 Intra API.

Responsible for:
- Fetching the per-day logtime of a user over a date range
- Validating the date → elapsed-time mapping, dropping malformed days
"""
from __future__ import annotations

import logging
from datetime import date, timedelta

from custom_components.intra_logtime.const import API_URL
from custom_components.intra_logtime.models import DateRange, LocationStats
from custom_components.intra_logtime.requests import make_request
from custom_components.intra_logtime.time_codec import MalformedDurationError, parse_duration

_LOGGER = logging.getLogger(__name__)


def date_range_for_days(days_back: int, today: date) -> DateRange:
    """[today - days_back, tomorrow) so that today is always included."""
    begin = today - timedelta(days=max(0, days_back))
    end = today + timedelta(days=1)
    return DateRange(begin_at=begin.isoformat(), end_at=end.isoformat())


def parse_location_stats(raw) -> LocationStats:
    """Keep only entries with an ISO date key and a well-formed elapsed time."""
    if not raw:
        return {}
    if not isinstance(raw, dict):
        _LOGGER.warning("Unexpected locations_stats format: %s", type(raw).__name__)
        return {}

    stats: LocationStats = {}
    for day, value in raw.items():
        try:
            date.fromisoformat(day)
            parse_duration(value)
        except (TypeError, ValueError, MalformedDurationError) as exc:
            _LOGGER.warning("Ignoring malformed logtime entry %r: %s", day, exc)
            continue
        stats[day] = value
    return stats


def sorted_dates(stats: LocationStats) -> list[str]:
    """Dates of a stats mapping, newest first."""
    return sorted(stats, reverse=True)


async def fetch_location_stats(headers: dict, user_id: int, date_range: DateRange) -> LocationStats:
    """
    Fetch the logtime per day of user_id over [begin_at, end_at).

    Days without recorded activity are simply absent from the result.

    Corresponding CURL command:
    curl -H "Authorization: Bearer TOKEN" \\
      'https://api.intra.42.fr/v2/users/ID/locations_stats?begin_at=2024-01-15&end_at=2024-01-16'
    """
    url = f"{API_URL}users/{user_id}/locations_stats"
    params = {"begin_at": date_range.begin_at, "end_at": date_range.end_at}
    raw_json = await make_request("GET", url, headers, params=params)
    return parse_location_stats(raw_json)
