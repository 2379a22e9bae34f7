from __future__ import annotations

import logging
from typing import Any, Dict

from homeassistant.core import HomeAssistant  # type: ignore
from homeassistant.config_entries import ConfigEntry  # type: ignore
from homeassistant.helpers.storage import Store  # type: ignore

from .const import STORAGE_KEY, STORAGE_SAVE_DELAY, STORAGE_VERSION
from .settings import SettingsStore


_LOGGER = logging.getLogger(__name__)


class HassSettingsStore(SettingsStore):
    """Settings store persisted through the HA Store, one file per config entry."""

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        super().__init__()
        self.hass = hass
        self.entry = entry
        self._store: Store | None = Store(self.hass, STORAGE_VERSION, f"{STORAGE_KEY}.{entry.entry_id}")
        self._loaded = False

    async def async_init(self) -> None:
        """Load the Store; on first run seed it from the config entry data."""
        loaded = None
        try:
            loaded = await self._store.async_load() if self._store else None
        except Exception:
            _LOGGER.exception("store load failed")

        if isinstance(loaded, dict) and isinstance(loaded.get("settings"), dict):
            self._data = {str(k): str(v) for k, v in loaded["settings"].items() if v is not None}
            _LOGGER.debug("store: loaded %d settings", len(self._data))
        else:
            seed: Dict[str, Any] = dict(self.entry.data or {})
            self._data = SettingsStore(seed).as_dict()
            _LOGGER.debug("store: seeded %d settings from config entry", len(self._data))
            await self.async_save()
        self._loaded = True

    async def async_save(self) -> None:
        try:
            if self._store:
                await self._store.async_save(self._payload())
        except Exception:
            _LOGGER.exception("store save failed")

    async def async_remove(self) -> None:
        try:
            if self._store:
                await self._store.async_remove()
        except Exception:
            _LOGGER.exception("store remove failed")

    def _payload(self) -> Dict[str, Any]:
        return {"settings": dict(self._data)}

    def _changed(self) -> None:
        if not self._loaded or not self._store:
            return
        self._store.async_delay_save(self._payload, STORAGE_SAVE_DELAY)
