from __future__ import annotations
import json
import logging
from typing import TYPE_CHECKING, Any, Dict
import voluptuous as vol  # type: ignore
from .const import (
    CONF_NEW_CREATE,
    CONF_NEW_ID,
    CONF_NEW_KIND,
    CONF_NEW_NAME,
    DOMAIN,
    PLATFORMS,
    SENSOR_NATIVE_PREFIX,
)
from .models import AUX_TOPIC_KEYS, SensorKind

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry  # type: ignore
    from homeassistant.core import HomeAssistant, ServiceCall  # type: ignore

_LOGGER = logging.getLogger(__name__)

SERVICES = ("add_sensor", "remove_sensor", "dump_state", "reconnect")

_ADD_SENSOR_SCHEMA = vol.Schema({
    vol.Required("id"): vol.All(str, vol.Strip, vol.Length(min=1), vol.Match(r"^[^.]+$")),
    vol.Optional("name"): str,
    vol.Optional("kind", default=SensorKind.CONTACT.value): vol.In([k.value for k in SensorKind]),
    vol.Optional("primary"): str,
    **{vol.Optional(key): str for key in AUX_TOPIC_KEYS},
})

_REMOVE_SENSOR_SCHEMA = vol.Schema({vol.Required("id"): vol.All(str, vol.Strip, vol.Length(min=1))})


def _bridge_for(hass: "HomeAssistant", entry_id: str):
    runtime = hass.data.get(DOMAIN, {}).get(entry_id)
    return runtime["bridge"] if runtime else None


async def async_setup(hass: "HomeAssistant", config: dict) -> bool:
    _LOGGER.debug("paradox_mqtt: async_setup called")
    return True


async def async_setup_entry(hass: "HomeAssistant", entry: "ConfigEntry") -> bool:
    from .mqtt_bridge import MqttBridge
    from .registry import HassDeviceHost
    from .storage import HassSettingsStore

    _LOGGER.debug("paradox_mqtt: async_setup_entry starting")
    hass.data.setdefault(DOMAIN, {})
    store = HassSettingsStore(hass, entry)
    await store.async_init()
    host = HassDeviceHost(hass, entry)
    bridge = MqttBridge(store, host.provider, name=entry.title or "Alarm", loop=hass.loop)
    hass.data[DOMAIN][entry.entry_id] = {"bridge": bridge, "host": host, "store": store}

    # Platforms first so the device host is ready when the bridge reconciles
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    _LOGGER.debug("paradox_mqtt: platforms forwarded: %s", PLATFORMS)
    await bridge.async_start()

    _async_register_services(hass, entry)
    return True


def _async_register_services(hass: "HomeAssistant", entry: "ConfigEntry") -> None:
    async def _svc_add_sensor(call: "ServiceCall") -> None:
        bridge = _bridge_for(hass, entry.entry_id)
        if bridge is None:
            return
        data = dict(call.data)
        sid = data["id"]
        values: Dict[str, Any] = {
            CONF_NEW_ID: sid,
            CONF_NEW_NAME: data.get("name") or sid,
            CONF_NEW_KIND: data.get("kind", SensorKind.CONTACT.value),
            CONF_NEW_CREATE: True,
        }
        for key in ("primary",) + AUX_TOPIC_KEYS:
            if data.get(key):
                values[f"sensor.{sid}.topic.{key}"] = data[key]
        _LOGGER.debug("svc:add_sensor id=%s kind=%s", sid, values[CONF_NEW_KIND])
        await bridge.async_put_settings(values)

    async def _svc_remove_sensor(call: "ServiceCall") -> None:
        bridge = _bridge_for(hass, entry.entry_id)
        if bridge is None:
            return
        _LOGGER.debug("svc:remove_sensor id=%s", call.data["id"])
        await bridge.async_put_setting(f"sensor.{call.data['id']}.remove", True)

    async def _svc_dump_state(call: "ServiceCall") -> None:
        bridge = _bridge_for(hass, entry.entry_id)
        if bridge is None:
            return
        _LOGGER.info("paradox_mqtt state: %s", json.dumps(bridge.dump_state(), default=str, sort_keys=True))

    async def _svc_reconnect(call: "ServiceCall") -> None:
        bridge = _bridge_for(hass, entry.entry_id)
        if bridge is None:
            return
        _LOGGER.debug("svc:reconnect")
        await bridge.async_reconfigure()

    hass.services.async_register(DOMAIN, "add_sensor", _svc_add_sensor, schema=_ADD_SENSOR_SCHEMA)
    hass.services.async_register(DOMAIN, "remove_sensor", _svc_remove_sensor, schema=_REMOVE_SENSOR_SCHEMA)
    hass.services.async_register(DOMAIN, "dump_state", _svc_dump_state)
    hass.services.async_register(DOMAIN, "reconnect", _svc_reconnect)


async def async_unload_entry(hass: "HomeAssistant", entry: "ConfigEntry") -> bool:
    runtime = hass.data[DOMAIN].get(entry.entry_id)
    if runtime:
        await runtime["bridge"].async_stop()
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        hass.data[DOMAIN].pop(entry.entry_id, None)
        if not hass.data[DOMAIN]:
            for service in SERVICES:
                hass.services.async_remove(DOMAIN, service)
    return unloaded


async def async_remove_entry(hass: "HomeAssistant", entry: "ConfigEntry") -> None:
    from .storage import HassSettingsStore

    await HassSettingsStore(hass, entry).async_remove()


async def async_remove_config_entry_device(hass: "HomeAssistant", entry: "ConfigEntry", device) -> bool:
    """Support HA 'Delete device' from the device page.

    Only sensors can be deleted; the sensor is dropped from the configuration.
    """
    try:
        native_id = None
        for domain, ident in (device.identifiers or set()):
            if domain == DOMAIN and isinstance(ident, str):
                native_id = ident
                break
        if not native_id or not native_id.startswith(SENSOR_NATIVE_PREFIX):
            return False
        runtime = hass.data.get(DOMAIN, {}).get(entry.entry_id)
        if not runtime:
            return False
        runtime["host"].mark_removed_by_user(native_id)
        await runtime["bridge"].async_put_setting(f"sensor.{native_id[len(SENSOR_NATIVE_PREFIX):]}.remove", True)
        return True
    except Exception:
        _LOGGER.exception("async_remove_config_entry_device failed")
        return False
