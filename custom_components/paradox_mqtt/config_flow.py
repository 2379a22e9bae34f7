from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional
import voluptuous as vol  # type: ignore
from homeassistant import config_entries  # type: ignore
from homeassistant.core import callback  # type: ignore
from homeassistant.helpers import selector  # type: ignore
from .const import (
    DOMAIN,
    CONF_BROKER_URL, CONF_USERNAME, CONF_PASSWORD, CONF_CLIENT_ID, CONF_TLS, CONF_REJECT_UNAUTHORIZED,
    CONF_TOPIC_SET_TARGET, CONF_TOPIC_GET_TARGET, CONF_TOPIC_GET_CURRENT, CONF_TOPIC_TAMPER, CONF_TOPIC_ONLINE,
    CONF_QOS, CONF_RETAIN,
    CONF_PAYLOAD_DISARM, CONF_PAYLOAD_HOME, CONF_PAYLOAD_AWAY, CONF_PAYLOAD_NIGHT,
    CONF_STRICT_VOCABULARY, CONF_STATE_TOKENS, CONF_COMMAND_TOKENS, CONF_TRIGGERED_TOKENS,
    CONF_NEW_ID, CONF_NEW_NAME, CONF_NEW_KIND, CONF_NEW_CREATE, CONF_SENSORS,
    DEFAULT_BROKER_URL, DEFAULT_CLIENT_ID,
)
from .errors import BrokerUrlError
from .models import AUX_TOPIC_KEYS, SensorKind
from .settings import BrokerEndpoint, parse_sensors

_LOGGER = logging.getLogger(__name__)

_KINDS = [k.value for k in SensorKind]
_TOPIC_FIELDS = ("primary",) + AUX_TOPIC_KEYS
_BROKER_KEYS = (CONF_BROKER_URL, CONF_USERNAME, CONF_PASSWORD, CONF_CLIENT_ID, CONF_TLS, CONF_REJECT_UNAUTHORIZED)
_TOPIC_KEYS = (CONF_TOPIC_SET_TARGET, CONF_TOPIC_GET_TARGET, CONF_TOPIC_GET_CURRENT, CONF_TOPIC_TAMPER, CONF_TOPIC_ONLINE)
_PAYLOAD_KEYS = (CONF_PAYLOAD_DISARM, CONF_PAYLOAD_HOME, CONF_PAYLOAD_AWAY, CONF_PAYLOAD_NIGHT)
_TOKEN_KEYS = (CONF_STATE_TOKENS, CONF_COMMAND_TOKENS, CONF_TRIGGERED_TOKENS)


def _broker_schema(d: Dict[str, Any], with_name: bool = False) -> vol.Schema:
    fields: Dict[Any, Any] = {}
    if with_name:
        fields[vol.Required("name", default=d.get("name", "Alarm"))] = str
    fields.update({
        vol.Required(CONF_BROKER_URL, default=d.get(CONF_BROKER_URL, DEFAULT_BROKER_URL)): str,
        vol.Optional(CONF_USERNAME, default=d.get(CONF_USERNAME, "")): str,
        vol.Optional(CONF_PASSWORD, default=d.get(CONF_PASSWORD, "")): selector.TextSelector(
            selector.TextSelectorConfig(type=selector.TextSelectorType.PASSWORD)
        ),
        vol.Optional(CONF_CLIENT_ID, default=d.get(CONF_CLIENT_ID, DEFAULT_CLIENT_ID)): str,
        vol.Optional(CONF_TLS, default=d.get(CONF_TLS, False)): bool,
        vol.Optional(CONF_REJECT_UNAUTHORIZED, default=d.get(CONF_REJECT_UNAUTHORIZED, True)): bool,
    })
    return vol.Schema(fields)


def _validate_broker(user_input: Dict[str, Any]) -> Dict[str, str]:
    try:
        BrokerEndpoint.from_url(str(user_input.get(CONF_BROKER_URL) or ""), force_tls=bool(user_input.get(CONF_TLS)))
    except BrokerUrlError as err:
        _LOGGER.debug("config_flow: %s", err)
        return {CONF_BROKER_URL: "invalid_url"}
    return {}


def _valid_token_list(text: str, length: Optional[int]) -> bool:
    if not text.strip():
        return True
    try:
        parsed = json.loads(text)
    except ValueError:
        return False
    if not isinstance(parsed, list) or not all(isinstance(x, str) and x.strip() for x in parsed):
        return False
    return length is None or len(parsed) == length


class ConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):  # type: ignore[misc]
    VERSION = 1

    async def async_step_user(self, user_input=None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            errors = _validate_broker(user_input)
            if not errors:
                data = {k: v for k, v in user_input.items() if k != "name" and v not in (None, "")}
                title = (user_input.get("name") or "Alarm").strip() or "Alarm"
                _LOGGER.debug("config_flow: creating entry %s broker=%s", title, data.get(CONF_BROKER_URL))
                return self.async_create_entry(title=title, data=data)
        return self.async_show_form(
            step_id="user", data_schema=_broker_schema(user_input or {}, with_name=True), errors=errors
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Options editor: broker, panel topics, publish/vocabulary, sensors."""

    def __init__(self, entry: config_entries.ConfigEntry):
        self._entry = entry
        self._edit_id: Optional[str] = None

    @property
    def _bridge(self):
        return self.hass.data[DOMAIN][self._entry.entry_id]["bridge"]

    def _current(self) -> Dict[str, str]:
        return self._bridge.store.as_dict()

    async def _save(self, values: Dict[str, Any]):
        await self._bridge.async_put_settings(values)
        return self.async_create_entry(title="", data={})

    async def async_step_init(self, user_input=None):
        _LOGGER.debug("options_flow:init menu opened")
        return self.async_show_menu(
            step_id="init",
            menu_options=["broker", "panel_topics", "publish", "sensor_add", "sensor_edit", "sensor_remove"],
        )

    async def async_step_broker(self, user_input=None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            errors = _validate_broker(user_input)
            if not errors:
                return await self._save({k: user_input.get(k, "") for k in _BROKER_KEYS})
        cur = dict(self._current())
        for key in (CONF_TLS, CONF_REJECT_UNAUTHORIZED):
            if key in cur:
                cur[key] = cur[key] == "true"
        return self.async_show_form(step_id="broker", data_schema=_broker_schema(user_input or cur), errors=errors)

    async def async_step_panel_topics(self, user_input=None):
        if user_input is not None:
            return await self._save({k: (user_input.get(k) or "").strip() for k in _TOPIC_KEYS})
        cur = self._current()
        schema = vol.Schema({vol.Optional(k, default=cur.get(k, "")): str for k in _TOPIC_KEYS})
        return self.async_show_form(step_id="panel_topics", data_schema=schema)

    async def async_step_publish(self, user_input=None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            for key, length in ((CONF_STATE_TOKENS, 4), (CONF_COMMAND_TOKENS, 4), (CONF_TRIGGERED_TOKENS, None)):
                if not _valid_token_list(user_input.get(key) or "", length):
                    errors[key] = "invalid_tokens"
            if not errors:
                values = {k: user_input.get(k, "") for k in _PAYLOAD_KEYS + _TOKEN_KEYS}
                values[CONF_QOS] = int(user_input.get(CONF_QOS, 0))
                values[CONF_RETAIN] = bool(user_input.get(CONF_RETAIN))
                values[CONF_STRICT_VOCABULARY] = bool(user_input.get(CONF_STRICT_VOCABULARY))
                return await self._save(values)
        cur = self._current()
        d = user_input or {}
        fields: Dict[Any, Any] = {
            vol.Optional(CONF_QOS, default=int(d.get(CONF_QOS, cur.get(CONF_QOS, 0)) or 0)): vol.All(
                vol.Coerce(int), vol.Range(min=0, max=2)
            ),
            vol.Optional(CONF_RETAIN, default=d.get(CONF_RETAIN, cur.get(CONF_RETAIN) == "true")): bool,
            vol.Optional(
                CONF_STRICT_VOCABULARY, default=d.get(CONF_STRICT_VOCABULARY, cur.get(CONF_STRICT_VOCABULARY) == "true")
            ): bool,
        }
        for key in _PAYLOAD_KEYS + _TOKEN_KEYS:
            fields[vol.Optional(key, default=d.get(key, cur.get(key, "")))] = str
        return self.async_show_form(step_id="publish", data_schema=vol.Schema(fields), errors=errors)

    async def async_step_sensor_add(self, user_input=None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            sid = (user_input.get("id") or "").strip()
            existing = {s.id for s in parse_sensors(self._current().get(CONF_SENSORS))}
            if not sid or "." in sid:
                errors["id"] = "invalid_id"
            elif sid in existing:
                errors["id"] = "already_exists"
            else:
                values: Dict[str, Any] = {
                    CONF_NEW_ID: sid,
                    CONF_NEW_NAME: (user_input.get("name") or sid).strip(),
                    CONF_NEW_KIND: user_input.get("kind", SensorKind.CONTACT.value),
                    CONF_NEW_CREATE: True,
                }
                for key in _TOPIC_FIELDS:
                    if (user_input.get(key) or "").strip():
                        values[f"sensor.{sid}.topic.{key}"] = user_input[key].strip()
                return await self._save(values)
        d = user_input or {}
        schema = vol.Schema({
            vol.Required("id", default=d.get("id", "")): str,
            vol.Optional("name", default=d.get("name", "")): str,
            vol.Required("kind", default=d.get("kind", SensorKind.CONTACT.value)): vol.In(_KINDS),
            **{vol.Optional(k, default=d.get(k, "")): str for k in _TOPIC_FIELDS},
        })
        return self.async_show_form(step_id="sensor_add", data_schema=schema, errors=errors)

    async def async_step_sensor_edit(self, user_input=None):
        sensors = parse_sensors(self._current().get(CONF_SENSORS))
        if not sensors:
            return self.async_abort(reason="no_sensors")
        if user_input is not None:
            self._edit_id = user_input["id"]
            return await self.async_step_sensor_edit_details()
        schema = vol.Schema({vol.Required("id", default=sensors[0].id): vol.In({s.id: s.name for s in sensors})})
        return self.async_show_form(step_id="sensor_edit", data_schema=schema)

    async def async_step_sensor_edit_details(self, user_input=None):
        sensors = {s.id: s for s in parse_sensors(self._current().get(CONF_SENSORS))}
        cfg = sensors.get(self._edit_id or "")
        if cfg is None:
            return self.async_abort(reason="no_sensors")
        if user_input is not None:
            sid = cfg.id
            values: Dict[str, Any] = {
                f"sensor.{sid}.name": user_input.get("name") or cfg.name,
                f"sensor.{sid}.kind": user_input.get("kind", cfg.kind.value),
            }
            for key in _TOPIC_FIELDS:
                values[f"sensor.{sid}.topic.{key}"] = (user_input.get(key) or "").strip()
            return await self._save(values)
        topics = cfg.topics.to_dict(cfg.kind)
        topics["primary"] = topics.pop(cfg.kind.value, "")
        schema = vol.Schema({
            vol.Optional("name", default=cfg.name): str,
            vol.Required("kind", default=cfg.kind.value): vol.In(_KINDS),
            **{vol.Optional(k, default=topics.get(k, "")): str for k in _TOPIC_FIELDS},
        })
        return self.async_show_form(
            step_id="sensor_edit_details", data_schema=schema, description_placeholders={"id": cfg.id}
        )

    async def async_step_sensor_remove(self, user_input=None):
        sensors = parse_sensors(self._current().get(CONF_SENSORS))
        if not sensors:
            return self.async_abort(reason="no_sensors")
        if user_input is not None:
            return await self._save({f"sensor.{sid}.remove": True for sid in user_input.get("ids", [])})
        schema = vol.Schema({
            vol.Required("ids", default=[]): selector.SelectSelector(
                selector.SelectSelectorConfig(
                    options=[{"value": s.id, "label": f"{s.name} ({s.id})"} for s in sensors],
                    multiple=True,
                    mode="list",
                )
            ),
        })
        return self.async_show_form(step_id="sensor_remove", data_schema=schema)
