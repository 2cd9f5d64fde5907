"""
Low-level user data fetching from the 42 Intra API.

Responsible for:
- Fetching a single user by login
- Fetching one page of a user search
- Mapping the JSON response fields onto IntraUser model instances
"""
from __future__ import annotations

import logging
import time
from enum import Enum
from urllib.parse import quote

from custom_components.intra_logtime.const import API_URL
from custom_components.intra_logtime.models import IntraUser
from custom_components.intra_logtime.requests import make_request

from .errors import ApiResponseError

_LOGGER = logging.getLogger(__name__)


class SearchMode(str, Enum):
    LOGIN_PREFIX = "login_prefix"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"


def _optional_str(value) -> str | None:
    return value if isinstance(value, str) and value else None


def parse_user(raw: dict, fetched_at: float | None = None) -> IntraUser | None:
    """
    Map a single raw API user dict onto an IntraUser instance.

    Only id and login are required; any other malformed field is dropped.
    """
    if not isinstance(raw, dict):
        _LOGGER.warning("Unexpected user payload: %s", type(raw).__name__)
        return None
    user_id = raw.get("id")
    login = raw.get("login")
    if not isinstance(user_id, int) or not _optional_str(login):
        _LOGGER.warning("User payload without usable id/login, skipping: %s", raw.get("id"))
        return None

    image = raw.get("image")
    image_url = image.get("link") if isinstance(image, dict) else None

    return IntraUser(
        id=user_id,
        login=login,
        location=_optional_str(raw.get("location")),
        image_url=_optional_str(image_url),
        url=_optional_str(raw.get("url")),
        displayname=_optional_str(raw.get("displayname")),
        first_name=_optional_str(raw.get("first_name")),
        last_name=_optional_str(raw.get("last_name")),
        fetched_at=time.time() if fetched_at is None else fetched_at,
    )


def search_params(query: str, mode: SearchMode, page: int, page_size: int) -> dict:
    """Query parameters of one search page for the given mode."""
    params = {"page[number]": page, "page[size]": page_size}
    if mode == SearchMode.LOGIN_PREFIX:
        # range over [query, query + "zzzz"] selects every login starting with query
        params["range[login]"] = f"{query},{query}zzzz"
        params["sort"] = "login"
    elif mode == SearchMode.FIRST_NAME:
        params["filter[first_name]"] = query
    elif mode == SearchMode.LAST_NAME:
        params["filter[last_name]"] = query
    else:
        raise ValueError(f"Unsupported search mode: {mode}")
    return params


async def fetch_user(headers: dict, login: str) -> IntraUser:
    """
    Fetch a user by exact login.

    Corresponding CURL command:
    curl -H "Authorization: Bearer TOKEN" https://api.intra.42.fr/v2/users/LOGIN
    """
    url = API_URL + "users/" + quote(login, safe="")
    raw_json = await make_request("GET", url, headers)
    user = parse_user(raw_json)
    if user is None:
        raise ApiResponseError({"error": "Malformed user payload", "login": login})
    return user


async def search_users(
    headers: dict, query: str, mode: SearchMode, page: int, page_size: int
) -> list[IntraUser]:
    """
    Fetch one page of users matching query.

    Corresponding CURL command:
    curl -H "Authorization: Bearer TOKEN" \\
      'https://api.intra.42.fr/v2/users?range[login]=jdo,jdozzzz&page[number]=1&page[size]=30'
    """
    url = API_URL + "users"
    raw_json = await make_request("GET", url, headers, params=search_params(query, mode, page, page_size))
    if not isinstance(raw_json, list):
        _LOGGER.warning("Unexpected search response format: %s", type(raw_json).__name__)
        return []
    parsed = [parse_user(user) for user in raw_json]
    return [user for user in parsed if user is not None]
