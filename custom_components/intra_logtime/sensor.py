"""
Platform for 42 Intra logtime sensors.
This module exposes today's logtime, the goal projection, the current
location and the pinned users as sensor entities reading the coordinator snapshot.
"""
from __future__ import annotations

import logging
from datetime import datetime

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity, SensorStateClass
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import CLUSTER_MAP_URL
from .coordinator import IntraLogtimeCoordinator
from .coordinator_utils import describe_error
from .time_codec import format_duration

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass, config_entry, async_add_entities) -> None:
    """Create the sensors of a config entry."""
    coordinator: IntraLogtimeCoordinator = config_entry.runtime_data
    async_add_entities([
        IntraLogtimeTodaySensor(coordinator),
        IntraRemainingTimeSensor(coordinator),
        IntraArrivedAtSensor(coordinator),
        IntraLeavingAtSensor(coordinator),
        IntraLocationSensor(coordinator),
        IntraPinnedUsersSensor(coordinator),
    ])


class IntraSensor(CoordinatorEntity[IntraLogtimeCoordinator], SensorEntity):
    """Base class: unique id and device info derived from the config entry."""

    _key: str = ""
    _name: str = ""

    def __init__(self, coordinator: IntraLogtimeCoordinator) -> None:
        super().__init__(coordinator)
        guid = coordinator.entry_data["guid"]
        self._attr_unique_id = f"intra_logtime_{guid}_{self._key}"
        self._attr_name = f"{coordinator.user_login or '42'} {self._name}"

    @property
    def device_info(self):
        return self.coordinator.get_device_info()


class IntraLogtimeTodaySensor(IntraSensor):
    """Today's logtime in minutes."""

    _key = "logtime_today"
    _name = "Logtime Today"
    _attr_icon = "mdi:clock-outline"
    _attr_device_class = SensorDeviceClass.DURATION
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_native_unit_of_measurement = "min"

    @property
    def native_value(self) -> int:
        return self.coordinator.data.today_logtime_seconds // 60

    @property
    def extra_state_attributes(self) -> dict:
        data = self.coordinator.data
        attributes = {"display": format_duration(data.today_logtime_seconds, compact=True)}
        details = describe_error(data.error)
        if details is not None:
            attributes["error"] = details.title
            attributes["error_description"] = details.description
        return attributes


class IntraRemainingTimeSensor(IntraSensor):
    """Remaining time text, "Goal reached!" once the goal is met."""

    _key = "remaining_time"
    _name = "Remaining Time"
    _attr_icon = "mdi:timer-sand"

    @property
    def native_value(self) -> str | None:
        goal_info = self.coordinator.data.goal_info
        return goal_info.remaining_time_string if goal_info else None

    @property
    def extra_state_attributes(self) -> dict:
        goal_info = self.coordinator.data.goal_info
        if goal_info is None:
            return {}
        return {
            "remaining_seconds": goal_info.remaining_seconds,
            "goal": format_duration(goal_info.goal_seconds, compact=True),
        }


class IntraArrivedAtSensor(IntraSensor):
    """Estimated arrival: now minus today's logtime."""

    _key = "arrived_at"
    _name = "Arrived At"
    _attr_icon = "mdi:login"
    _attr_device_class = SensorDeviceClass.TIMESTAMP

    @property
    def native_value(self) -> datetime | None:
        goal_info = self.coordinator.data.goal_info
        return goal_info.arrived_time if goal_info else None


class IntraLeavingAtSensor(IntraSensor):
    """Projected departure: now plus the remaining time."""

    _key = "leaving_at"
    _name = "Leaving At"
    _attr_icon = "mdi:logout"
    _attr_device_class = SensorDeviceClass.TIMESTAMP

    @property
    def native_value(self) -> datetime | None:
        goal_info = self.coordinator.data.goal_info
        return goal_info.leaving_time if goal_info else None


class IntraLocationSensor(IntraSensor):
    """Workstation the user is logged into, if any."""

    _key = "location"
    _name = "Location"

    @property
    def native_value(self) -> str:
        user = self.coordinator.data.user
        if user is None or user.location is None:
            return "Not logged in"
        return user.location

    @property
    def icon(self) -> str:
        user = self.coordinator.data.user
        return "mdi:map-marker" if user is not None and user.location else "mdi:logout-variant"

    @property
    def extra_state_attributes(self) -> dict:
        user = self.coordinator.data.user
        if user is None:
            return {}
        return {"profile_url": user.profile_url, "cluster_map_url": CLUSTER_MAP_URL}


class IntraPinnedUsersSensor(IntraSensor):
    """Number of pinned users; their locations as attributes."""

    _key = "pinned_users"
    _name = "Pinned Users"
    _attr_icon = "mdi:pin"

    @property
    def native_value(self) -> int:
        return len(self.coordinator.data.pinned_users)

    @property
    def extra_state_attributes(self) -> dict:
        return {
            login: user.location or "Not logged in"
            for login, user in self.coordinator.data.pinned_users.items()
        }
