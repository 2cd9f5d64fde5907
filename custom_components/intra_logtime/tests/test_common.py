"""
Shared helpers and factory functions for the intra_logtime tests.
Import from this module in each test file to avoid duplication.
"""

from __future__ import annotations

import asyncio
import copy
from unittest.mock import AsyncMock, MagicMock

from custom_components.intra_logtime.coordinator import IntraLogtimeCoordinator
from custom_components.intra_logtime.models import IntraUser
from custom_components.intra_logtime.store import KeyValueStore


class MemoryStore:
    """In-memory stand-in for homeassistant.helpers.storage.Store."""

    def __init__(self, initial: dict | None = None) -> None:
        self.saved = copy.deepcopy(initial)
        self.save_count = 0
        self.removed = False

    async def async_load(self):
        return copy.deepcopy(self.saved)

    async def async_save(self, data: dict) -> None:
        self.saved = copy.deepcopy(data)
        self.save_count += 1

    async def async_remove(self) -> None:
        self.saved = None
        self.removed = True


def make_store(initial: dict | None = None) -> tuple[KeyValueStore, MemoryStore]:
    backend = MemoryStore(initial)
    return KeyValueStore(backend), backend


def make_user(login: str = "jdoe", user_id: int = 1, **kwargs) -> IntraUser:
    defaults = dict(
        id=user_id,
        login=login,
        location="c1r2s3",
        image_url=f"https://cdn.intra.42.fr/users/{login}.jpg",
        url=f"https://api.intra.42.fr/v2/users/{login}",
        displayname=login.title(),
        fetched_at=1_700_000_000.0,
    )
    defaults.update(kwargs)
    return IntraUser(**defaults)


def make_raw_user(login: str = "jdoe", user_id: int = 1, **kwargs) -> dict:
    defaults = {
        "id": user_id,
        "login": login,
        "location": "c1r2s3",
        "image": {"link": f"https://cdn.intra.42.fr/users/{login}.jpg"},
        "url": f"https://api.intra.42.fr/v2/users/{login}",
        "displayname": login.title(),
        "first_name": "John",
        "last_name": "Doe",
    }
    defaults.update(kwargs)
    return defaults


def make_response(status: int = 200, json_data=None, content_type: str = "application/json", text: str = "") -> MagicMock:
    """Fake aiohttp response object."""
    response = MagicMock()
    response.status = status
    response.headers = {"Content-Type": content_type}
    response.json = AsyncMock(return_value=json_data)
    response.text = AsyncMock(return_value=text)
    return response


def make_entry_data(**kwargs) -> dict:
    defaults = dict(
        guid="test-guid",
        entry_name="Test Entry",
        client_id="uid",
        client_secret="secret",
        user_login="jdoe",
        goal_hours=6,
        goal_minutes=39,
        debug_mode=False,
    )
    defaults.update(kwargs)
    return defaults


def make_coordinator(hass=None, store: KeyValueStore | None = None, **entry_kwargs) -> IntraLogtimeCoordinator:
    """Build a coordinator with a mocked hass, an in-memory store and a mocked authenticate."""
    if hass is None:
        hass = MagicMock()
        hass.async_create_task = lambda coro: asyncio.ensure_future(coro)
    if store is None:
        store, _ = make_store()
    coord = IntraLogtimeCoordinator(hass, make_entry_data(**entry_kwargs), store=store)
    coord.credentials.authenticate = AsyncMock(return_value="token")
    coord.async_set_updated_data = MagicMock()
    return coord
