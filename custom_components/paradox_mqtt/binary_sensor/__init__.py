from __future__ import annotations
from ..const import DOMAIN, PANEL_NATIVE_ID
from ..models import Capability
from ..registry import PlatformEntities
from ..entities.binary_sensors import OnlineBinarySensor, PrimaryBinarySensor, TamperBinarySensor


async def async_setup_entry(hass, entry, async_add_entities):
    runtime = hass.data[DOMAIN][entry.entry_id]
    bridge = runtime["bridge"]
    host = runtime["host"]
    panel_name = entry.title or bridge.panel.name

    # Panel facets exist for the whole entry lifetime
    async_add_entities(
        [
            OnlineBinarySensor(bridge, entry, PANEL_NATIVE_ID, panel_name, model="panel"),
            TamperBinarySensor(bridge, entry, PANEL_NATIVE_ID, panel_name, model="panel"),
        ],
        update_before_add=False,
    )

    def _entities_for(manifest):
        ents = [
            PrimaryBinarySensor(bridge, entry, manifest.native_id, manifest.name, manifest.kind),
            OnlineBinarySensor(bridge, entry, manifest.native_id, manifest.name, model=manifest.kind.value),
        ]
        if Capability.TAMPER_SENSOR in manifest.capabilities:
            ents.append(TamperBinarySensor(bridge, entry, manifest.native_id, manifest.name, model=manifest.kind.value))
        return ents

    PlatformEntities(hass, entry, "binary_sensor", async_add_entities, _entities_for).async_start(host)
