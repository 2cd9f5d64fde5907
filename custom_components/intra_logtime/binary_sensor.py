"""
Platform for the 42 Intra logtime goal binary sensor.
"""
from __future__ import annotations

from homeassistant.components.binary_sensor import BinarySensorEntity
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .coordinator import IntraLogtimeCoordinator


async def async_setup_entry(hass, config_entry, async_add_entities) -> None:
    coordinator: IntraLogtimeCoordinator = config_entry.runtime_data
    async_add_entities([IntraGoalReachedSensor(coordinator)])


class IntraGoalReachedSensor(CoordinatorEntity[IntraLogtimeCoordinator], BinarySensorEntity):
    """On once today's logtime reaches the configured goal."""

    def __init__(self, coordinator: IntraLogtimeCoordinator) -> None:
        super().__init__(coordinator)
        self._attr_unique_id = f"intra_logtime_{coordinator.entry_data['guid']}_goal_reached"
        self._attr_name = f"{coordinator.user_login or '42'} Goal Reached"

    @property
    def icon(self) -> str:
        return "mdi:party-popper" if self.is_on else "mdi:flag-checkered"

    @property
    def is_on(self) -> bool:
        goal_info = self.coordinator.data.goal_info
        return bool(goal_info and goal_info.goal_reached)

    @property
    def device_info(self):
        return self.coordinator.get_device_info()
