from __future__ import annotations
from ..const import DOMAIN
from ..models import Capability
from ..registry import PlatformEntities
from ..entities.device_sensors import BatteryLevelSensor


async def async_setup_entry(hass, entry, async_add_entities):
	runtime = hass.data[DOMAIN][entry.entry_id]
	bridge = runtime["bridge"]

	def _entities_for(manifest):
		if Capability.BATTERY not in manifest.capabilities:
			return []
		return [BatteryLevelSensor(bridge, entry, manifest.native_id, manifest.name, model=manifest.kind.value)]

	PlatformEntities(hass, entry, "sensor", async_add_entities, _entities_for).async_start(runtime["host"])
