from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from homeassistant.config_entries import ConfigEntry  # type: ignore
from homeassistant.core import HomeAssistant, callback  # type: ignore
from homeassistant.helpers import device_registry as dr  # type: ignore
from homeassistant.helpers import entity_registry as er  # type: ignore
from homeassistant.helpers.dispatcher import async_dispatcher_connect, async_dispatcher_send  # type: ignore
from homeassistant.helpers.entity import Entity  # type: ignore

from .const import (
    DOMAIN,
    SENSOR_PLATFORMS,
    SIGNAL_SENSOR_REMOVED,
    SIGNAL_SENSORS_ANNOUNCED,
    SIGNAL_STATE_CHANGED,
)
from .models import DeviceManifest

_LOGGER = logging.getLogger(__name__)

MANUFACTURER = "Paradox"


def signal_announced(entry_id: str) -> str:
    return f"{SIGNAL_SENSORS_ANNOUNCED}_{entry_id}"


def signal_removed(entry_id: str) -> str:
    return f"{SIGNAL_SENSOR_REMOVED}_{entry_id}"


def signal_state(entry_id: str, native_id: str) -> str:
    return f"{SIGNAL_STATE_CHANGED}_{entry_id}_{native_id}"


class HassDeviceHost:
    """Device registry boundary for the sensor reconciler.

    Devices go into the HA device registry; the entity platforms learn about
    them through dispatcher signals. Until both sensor platforms registered,
    ``provider`` returns None and discovery is postponed.
    """

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        self.hass = hass
        self.entry = entry
        self._platforms: Set[str] = set()
        self._manifests: Dict[str, DeviceManifest] = {}
        # devices HA is deleting itself; skip our own registry removal for them
        self._removed_by_user: Set[str] = set()

    @property
    def ready(self) -> bool:
        return all(p in self._platforms for p in SENSOR_PLATFORMS)

    def provider(self) -> Optional["HassDeviceHost"]:
        return self if self.ready else None

    def manifests(self) -> List[DeviceManifest]:
        return list(self._manifests.values())

    @callback
    def register_platform(self, platform: str) -> None:
        self._platforms.add(platform)
        _LOGGER.debug("platform %s ready (%s)", platform, "host ready" if self.ready else "waiting")

    @callback
    def unregister_platform(self, platform: str) -> None:
        self._platforms.discard(platform)

    # ---------- host boundary ----------
    @callback
    def announce_batch(self, manifests: Sequence[DeviceManifest]) -> None:
        dev_reg = dr.async_get(self.hass)
        for manifest in manifests:
            dev_reg.async_get_or_create(
                config_entry_id=self.entry.entry_id,
                identifiers={(DOMAIN, manifest.native_id)},
                name=manifest.name,
                manufacturer=MANUFACTURER,
                model=manifest.kind.value,
            )
            self._manifests[manifest.native_id] = manifest
        _LOGGER.debug("announced %d device(s)", len(manifests))
        async_dispatcher_send(self.hass, signal_announced(self.entry.entry_id), list(manifests))

    @callback
    def announce_one(self, manifest: DeviceManifest) -> None:
        self.announce_batch([manifest])

    @callback
    def remove(self, native_id: str) -> None:
        self._manifests.pop(native_id, None)
        # entities first, then the device that owns them
        async_dispatcher_send(self.hass, signal_removed(self.entry.entry_id), native_id)
        if native_id in self._removed_by_user:
            self._removed_by_user.discard(native_id)
            return
        dev_reg = dr.async_get(self.hass)
        device = dev_reg.async_get_device(identifiers={(DOMAIN, native_id)})
        if device is not None:
            dev_reg.async_remove_device(device.id)
        _LOGGER.debug("device %s removed from registry", native_id)

    @callback
    def mark_removed_by_user(self, native_id: str) -> None:
        self._removed_by_user.add(native_id)

    @callback
    def notify_changed(self, native_id: str, capability: Any, value: Any) -> None:
        async_dispatcher_send(self.hass, signal_state(self.entry.entry_id, native_id), capability, value)


EntityFactory = Callable[[DeviceManifest], Iterable[Entity]]


class PlatformEntities:
    """Entities one platform created for announced sensor devices."""

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry, platform: str, async_add_entities, factory: EntityFactory) -> None:
        self.hass = hass
        self.entry = entry
        self.platform = platform
        self._add = async_add_entities
        self._factory = factory
        self._by_device: Dict[str, Dict[str, Entity]] = {}

    @callback
    def async_start(self, host: HassDeviceHost) -> None:
        """Subscribe to host signals, add entities for known devices, mark ready."""
        self.entry.async_on_unload(
            async_dispatcher_connect(self.hass, signal_announced(self.entry.entry_id), self.async_announced)
        )
        self.entry.async_on_unload(
            async_dispatcher_connect(self.hass, signal_removed(self.entry.entry_id), self.async_removed)
        )
        self.entry.async_on_unload(lambda: host.unregister_platform(self.platform))
        self.async_announced(host.manifests())
        host.register_platform(self.platform)

    @callback
    def async_announced(self, manifests: Sequence[DeviceManifest]) -> None:
        new: List[Entity] = []
        for manifest in manifests:
            wanted = {ent.unique_id: ent for ent in self._factory(manifest)}
            current = self._by_device.setdefault(manifest.native_id, {})
            for uid in [u for u in current if u not in wanted]:
                self._drop(current.pop(uid))
            for uid, ent in wanted.items():
                if uid not in current:
                    current[uid] = ent
                    new.append(ent)
        if new:
            _LOGGER.debug("%s: adding %d entit(ies)", self.platform, len(new))
            self._add(new)

    @callback
    def async_removed(self, native_id: str) -> None:
        for ent in self._by_device.pop(native_id, {}).values():
            self._drop(ent)

    def _drop(self, entity: Entity) -> None:
        ent_reg = er.async_get(self.hass)
        if entity.entity_id and ent_reg.async_get(entity.entity_id):
            ent_reg.async_remove(entity.entity_id)
        elif entity.hass is not None:
            self.hass.async_create_task(entity.async_remove(force_remove=True))
