from __future__ import annotations
from typing import Any, Dict, Optional
from homeassistant.components.binary_sensor import BinarySensorEntity, BinarySensorDeviceClass  # type: ignore
from homeassistant.const import EntityCategory  # type: ignore
from ..models import SensorKind
from .base import BridgeEntity


_PRIMARY_CLASSES = {
    SensorKind.CONTACT: BinarySensorDeviceClass.OPENING,
    SensorKind.MOTION: BinarySensorDeviceClass.MOTION,
    SensorKind.OCCUPANCY: BinarySensorDeviceClass.OCCUPANCY,
}


class PrimaryBinarySensor(BridgeEntity, BinarySensorEntity):
    """Contact, motion or occupancy state of one sensor."""

    _attr_name = None

    def __init__(self, bridge, entry, native_id: str, name: str, kind: SensorKind) -> None:
        # kind is part of the unique id so a kind change yields a new entity
        self._key = kind.value
        self._kind = kind
        super().__init__(bridge, entry, native_id, name, model=kind.value)
        self._attr_device_class = _PRIMARY_CLASSES[kind]

    @property
    def is_on(self) -> bool | None:
        dev = self.source
        if dev is None or dev.kind is not self._kind:
            return None
        return dev.primary_value


class TamperBinarySensor(BridgeEntity, BinarySensorEntity):
    _key = "tamper"
    _attr_name = "Tamper"
    _attr_device_class = BinarySensorDeviceClass.TAMPER
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    @property
    def is_on(self) -> bool | None:
        dev = self.source
        value = getattr(dev, "tampered", None)
        if value is None:
            return None
        return bool(value)

    @property
    def extra_state_attributes(self) -> Dict[str, Any]:
        value = getattr(self.source, "tampered", None)
        return {"reason": value} if isinstance(value, str) else {}


class OnlineBinarySensor(BridgeEntity, BinarySensorEntity):
    """Online state as reported on the device's online topic."""

    _key = "online"
    _attr_name = "Online"
    _attr_device_class = BinarySensorDeviceClass.CONNECTIVITY
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    @property
    def is_on(self) -> Optional[bool]:
        return getattr(self.source, "online", None)
