"""
KeyValueStore: the persisted state shared by the integration components.

Holds the access token, the pinned users and the celebration marker, each
under its own key, in one versioned homeassistant Store file per config
entry. Every component receives the store handle at construction.
"""
from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.helpers.storage import Store

from .const import DOMAIN, STORAGE_VERSION

_LOGGER = logging.getLogger(__name__)


def create_store(hass: HomeAssistant, guid: str) -> "KeyValueStore":
    """Build the store for one config entry."""
    return KeyValueStore(Store(hass, STORAGE_VERSION, f"{DOMAIN}.{guid}"))


class KeyValueStore:
    """
    JSON key-value view over a backend exposing ``async_load()`` and
    ``async_save(data)``. Loaded lazily once; each write is saved immediately.
    """

    def __init__(self, backend: Any) -> None:
        self._backend = backend
        self._data: dict[str, Any] | None = None
        self._load_lock = asyncio.Lock()

    async def _async_ensure_loaded(self) -> dict[str, Any]:
        if self._data is None:
            async with self._load_lock:
                if self._data is None:
                    loaded = await self._backend.async_load()
                    if loaded is not None and not isinstance(loaded, dict):
                        _LOGGER.warning("Discarding unexpected stored data: %s", type(loaded).__name__)
                        loaded = None
                    self._data = dict(loaded or {})
        return self._data

    async def async_get(self, key: str, default: Any = None) -> Any:
        data = await self._async_ensure_loaded()
        if key not in data:
            return default
        return copy.deepcopy(data[key])

    async def async_set(self, key: str, value: Any) -> None:
        data = await self._async_ensure_loaded()
        data[key] = copy.deepcopy(value)
        await self._backend.async_save(dict(data))

    async def async_remove(self, key: str) -> None:
        data = await self._async_ensure_loaded()
        if key not in data:
            return
        del data[key]
        await self._backend.async_save(dict(data))

    async def async_clear(self) -> None:
        """Delete the whole backing file (used when the config entry is removed)."""
        self._data = {}
        await self._backend.async_remove()
