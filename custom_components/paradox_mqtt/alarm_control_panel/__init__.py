from __future__ import annotations
from ..const import DOMAIN
from ..entities.alarm_panel import ParadoxAlarmPanel


async def async_setup_entry(hass, entry, async_add_entities):
    bridge = hass.data[DOMAIN][entry.entry_id]["bridge"]
    async_add_entities([ParadoxAlarmPanel(bridge, entry, entry.title or bridge.panel.name)], update_before_add=False)
