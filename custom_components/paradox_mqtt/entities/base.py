from __future__ import annotations
from typing import Any, Optional
from homeassistant.core import callback  # type: ignore
from homeassistant.helpers.entity import DeviceInfo, Entity  # type: ignore
from homeassistant.helpers.dispatcher import async_dispatcher_connect  # type: ignore
from ..const import DOMAIN, PANEL_NATIVE_ID
from ..registry import MANUFACTURER, signal_state


class BridgeEntity(Entity):
    """Entity backed by the panel or one sensor held by the bridge.

    State is read from the bridge on every write; the dispatcher only tells
    us when to write.
    """

    _attr_has_entity_name = True
    _attr_should_poll = False
    _key = ""

    def __init__(self, bridge, entry, native_id: str, name: str, model: Optional[str] = None) -> None:
        self._bridge = bridge
        self._entry = entry
        self._native_id = native_id
        self._attr_unique_id = f"{DOMAIN}:{entry.entry_id}:{native_id}:{self._key}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, native_id)},
            name=name,
            manufacturer=MANUFACTURER,
            model=model,
        )

    @property
    def source(self) -> Any:
        if self._native_id == PANEL_NATIVE_ID:
            return self._bridge.panel
        return self._bridge.reconciler.get(self._native_id)

    @property
    def available(self) -> bool:
        return self.source is not None

    async def async_added_to_hass(self) -> None:
        await super().async_added_to_hass()
        self.async_on_remove(
            async_dispatcher_connect(
                self.hass, signal_state(self._entry.entry_id, self._native_id), self._on_changed
            )
        )

    @callback
    def _on_changed(self, capability: Any, value: Any) -> None:
        self.async_write_ha_state()
