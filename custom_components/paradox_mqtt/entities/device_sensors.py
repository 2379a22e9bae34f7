from __future__ import annotations
from typing import Any
from homeassistant.components.sensor import SensorEntity, SensorDeviceClass, SensorStateClass  # type: ignore
from homeassistant.const import PERCENTAGE, EntityCategory  # type: ignore
from .base import BridgeEntity


class BatteryLevelSensor(BridgeEntity, SensorEntity):
    _key = "battery"
    _attr_name = "Battery"
    _attr_device_class = SensorDeviceClass.BATTERY
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_native_unit_of_measurement = PERCENTAGE
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    @property
    def native_value(self) -> Any:
        dev = self.source
        return None if dev is None else dev.battery_level
