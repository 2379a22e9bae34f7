"""Flat settings store and the parsing done at its boundary.

Everything the bridge reads lives under a string key as a string (JSON for
lists). ``BridgeSettings.from_store`` turns a store into a typed snapshot;
nothing else in the integration parses raw settings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import math
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from .const import (
    CONF_BROKER_URL,
    CONF_CLIENT_ID,
    CONF_COMMAND_TOKENS,
    CONF_NEW_CREATE,
    CONF_NEW_ID,
    CONF_NEW_KIND,
    CONF_NEW_NAME,
    CONF_PASSWORD,
    CONF_PAYLOAD_AWAY,
    CONF_PAYLOAD_DISARM,
    CONF_PAYLOAD_HOME,
    CONF_PAYLOAD_NIGHT,
    CONF_QOS,
    CONF_REJECT_UNAUTHORIZED,
    CONF_RETAIN,
    CONF_SENSORS,
    CONF_STATE_TOKENS,
    CONF_STRICT_VOCABULARY,
    CONF_TLS,
    CONF_TOPIC_GET_CURRENT,
    CONF_TOPIC_GET_TARGET,
    CONF_TOPIC_ONLINE,
    CONF_TOPIC_SET_TARGET,
    CONF_TOPIC_TAMPER,
    CONF_TRIGGERED_TOKENS,
    CONF_USERNAME,
    DEFAULT_BROKER_URL,
    DEFAULT_CLIENT_ID,
    DEFAULT_COMMAND_TOKENS,
    DEFAULT_STATE_TOKENS,
    DEFAULT_TRIGGERED_TOKENS,
)
from .errors import BrokerUrlError, SettingsError
from .models import AUX_TOPIC_KEYS, SecuritySystemMode, SensorConfig, SensorKind, SensorTopics
from .payload import ModeVocabulary
from .security import PanelTopics

_LOGGER = logging.getLogger(__name__)

_SENSOR_KEY_RE = re.compile(r"^sensor\.([^.]+)\.(.+)$")

_SCHEMES = {
    "mqtt": (False, 1883),
    "tcp": (False, 1883),
    "mqtts": (True, 8883),
    "ssl": (True, 8883),
    "tls": (True, 8883),
}


class SettingsStore:
    """In-memory string key-value store; subclasses add persistence."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            if value is not None:
                self._data[str(key)] = _to_text(value)

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: Any) -> None:
        self._data[key] = _to_text(value)
        self._changed()

    def remove_item(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._changed()

    def as_dict(self) -> Dict[str, str]:
        return dict(self._data)

    def _changed(self) -> None:
        """Hook for persistence."""


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ---------- boundary parsing ----------
def get_str(store: SettingsStore, key: str, default: str = "") -> str:
    value = store.get_item(key)
    if value is None:
        return default
    value = value.strip()
    return value or default


def get_optional(store: SettingsStore, key: str) -> Optional[str]:
    return get_str(store, key) or None


def get_bool(store: SettingsStore, key: str, default: bool = False) -> bool:
    value = (store.get_item(key) or "").strip().lower()
    if not value:
        return default
    return value == "true"


def get_int(store: SettingsStore, key: str, default: int = 0) -> int:
    value = get_str(store, key)
    if not value:
        return default
    try:
        number = float(value)
    except ValueError as err:
        raise SettingsError(key, f"not a number: {value!r}") from err
    if not math.isfinite(number):
        raise SettingsError(key, f"not a finite number: {value!r}")
    return int(number)


def get_token_list(store: SettingsStore, key: str, default: List[str], length: Optional[int] = None) -> List[str]:
    """Parse a JSON array of strings; bad input falls back to ``default``."""
    raw = get_str(store, key)
    if not raw:
        return list(default)
    try:
        parsed = json.loads(raw)
        if not isinstance(parsed, list) or not all(isinstance(x, str) and x.strip() for x in parsed):
            raise SettingsError(key, "expected a JSON array of strings")
        if length is not None and len(parsed) != length:
            raise SettingsError(key, f"expected {length} tokens, got {len(parsed)}")
    except (ValueError, SettingsError) as err:
        _LOGGER.error("Invalid %s, using defaults: %s", key, err)
        return list(default)
    return [x.strip() for x in parsed]


def parse_sensors(raw: Optional[str]) -> List[SensorConfig]:
    """Parse the sensors JSON array, dropping invalid or duplicate entries."""
    try:
        parsed = json.loads(raw or "[]")
        if not isinstance(parsed, list):
            raise SettingsError(CONF_SENSORS, "expected a JSON array")
    except (ValueError, SettingsError) as err:
        _LOGGER.error("Invalid sensorsJson: %s", err)
        return []
    out: List[SensorConfig] = []
    seen = set()
    for item in parsed:
        if not isinstance(item, dict):
            continue
        try:
            cfg = SensorConfig.from_dict(item)
        except (ValueError, TypeError) as err:
            _LOGGER.warning("Skipping sensor entry: %s", err)
            continue
        if cfg.id in seen:
            _LOGGER.warning("Skipping duplicate sensor id %s", cfg.id)
            continue
        seen.add(cfg.id)
        out.append(cfg)
    return out


def dump_sensors(configs: List[SensorConfig]) -> str:
    return json.dumps([c.to_dict() for c in configs], ensure_ascii=False)


@dataclass(frozen=True)
class BrokerEndpoint:
    host: str
    port: int
    tls: bool
    transport: str = "tcp"
    path: str = ""

    @classmethod
    def from_url(cls, url: str, force_tls: bool = False) -> "BrokerEndpoint":
        parsed = urlparse(url if "://" in url else f"mqtt://{url}")
        scheme = (parsed.scheme or "mqtt").lower()
        transport = "tcp"
        if scheme in ("ws", "wss"):
            transport = "websockets"
            tls, port = scheme == "wss", (443 if scheme == "wss" else 80)
        elif scheme in _SCHEMES:
            tls, port = _SCHEMES[scheme]
        else:
            raise BrokerUrlError(url, f"unsupported scheme {scheme}")
        if not parsed.hostname:
            raise BrokerUrlError(url, "missing host")
        try:
            explicit_port = parsed.port
        except ValueError as err:
            raise BrokerUrlError(url, "invalid port") from err
        tls = tls or force_tls
        if explicit_port is None and force_tls and scheme in ("mqtt", "tcp"):
            port = 8883
        path = (parsed.path or "/mqtt") if transport == "websockets" else ""
        return cls(host=parsed.hostname, port=explicit_port or port, tls=tls, transport=transport, path=path)


@dataclass(frozen=True)
class BridgeSettings:
    broker_url: str = DEFAULT_BROKER_URL
    username: Optional[str] = None
    password: Optional[str] = None
    client_id: str = DEFAULT_CLIENT_ID
    tls: bool = False
    reject_unauthorized: bool = True
    panel_topics: PanelTopics = field(default_factory=PanelTopics)
    qos: int = 0
    retain: bool = False
    overrides: Mapping[SecuritySystemMode, str] = field(default_factory=dict)
    strict_vocabulary: bool = False
    state_tokens: Tuple[str, ...] = tuple(DEFAULT_STATE_TOKENS)
    command_tokens: Tuple[str, ...] = tuple(DEFAULT_COMMAND_TOKENS)
    triggered_tokens: Tuple[str, ...] = tuple(DEFAULT_TRIGGERED_TOKENS)
    sensors: Tuple[SensorConfig, ...] = ()

    @classmethod
    def from_store(cls, store: SettingsStore) -> "BridgeSettings":
        try:
            qos = get_int(store, CONF_QOS, 0)
        except SettingsError as err:
            _LOGGER.warning("%s, using QoS 0", err)
            qos = 0
        overrides = {
            mode: value
            for mode, value in (
                (SecuritySystemMode.DISARMED, get_str(store, CONF_PAYLOAD_DISARM)),
                (SecuritySystemMode.HOME_ARMED, get_str(store, CONF_PAYLOAD_HOME)),
                (SecuritySystemMode.AWAY_ARMED, get_str(store, CONF_PAYLOAD_AWAY)),
                (SecuritySystemMode.NIGHT_ARMED, get_str(store, CONF_PAYLOAD_NIGHT)),
            )
            if value
        }
        return cls(
            broker_url=get_str(store, CONF_BROKER_URL, DEFAULT_BROKER_URL),
            username=get_optional(store, CONF_USERNAME),
            password=store.get_item(CONF_PASSWORD) or None,
            client_id=get_str(store, CONF_CLIENT_ID, DEFAULT_CLIENT_ID),
            tls=get_bool(store, CONF_TLS, False),
            reject_unauthorized=get_bool(store, CONF_REJECT_UNAUTHORIZED, True),
            panel_topics=PanelTopics(
                set_target=get_optional(store, CONF_TOPIC_SET_TARGET),
                get_target=get_optional(store, CONF_TOPIC_GET_TARGET),
                get_current=get_optional(store, CONF_TOPIC_GET_CURRENT),
                tamper=get_optional(store, CONF_TOPIC_TAMPER),
                online=get_optional(store, CONF_TOPIC_ONLINE),
            ),
            qos=max(0, min(2, qos)),
            retain=get_bool(store, CONF_RETAIN, False),
            overrides=overrides,
            strict_vocabulary=get_bool(store, CONF_STRICT_VOCABULARY, False),
            state_tokens=tuple(get_token_list(store, CONF_STATE_TOKENS, DEFAULT_STATE_TOKENS, 4)),
            command_tokens=tuple(get_token_list(store, CONF_COMMAND_TOKENS, DEFAULT_COMMAND_TOKENS, 4)),
            triggered_tokens=tuple(get_token_list(store, CONF_TRIGGERED_TOKENS, DEFAULT_TRIGGERED_TOKENS)),
            sensors=tuple(parse_sensors(store.get_item(CONF_SENSORS))),
        )

    def vocabulary(self) -> ModeVocabulary:
        return ModeVocabulary(
            strict=self.strict_vocabulary,
            state_tokens=self.state_tokens,
            command_tokens=self.command_tokens,
            triggered_tokens=self.triggered_tokens,
        )

    def endpoint(self) -> BrokerEndpoint:
        return BrokerEndpoint.from_url(self.broker_url, force_tls=self.tls)


# ---------- sensor editing ----------
def apply_setting(store: SettingsStore, key: str, value: Any) -> bool:
    """Write one setting, expanding the sensor create/edit/remove keys.

    Returns True when the sensor list changed.
    """
    text = _to_text(value)

    if key == CONF_NEW_CREATE:
        if text.strip().lower() != "true":
            return False
        return _create_sensor(store)

    match = _SENSOR_KEY_RE.match(key)
    if match:
        return _edit_sensor(store, match.group(1), match.group(2), text)

    store.set_item(key, text)
    return key == CONF_SENSORS


def _create_sensor(store: SettingsStore) -> bool:
    sid = get_str(store, CONF_NEW_ID)
    name = get_str(store, CONF_NEW_NAME) or sid
    kind_raw = get_str(store, CONF_NEW_KIND, SensorKind.CONTACT.value).lower()
    if not sid:
        _LOGGER.warning("Create sensor: id missing")
        return False
    if "." in sid:
        _LOGGER.warning("Create sensor: id %r must not contain '.'", sid)
        return False
    try:
        kind = SensorKind(kind_raw)
    except ValueError:
        _LOGGER.warning("Create sensor: unknown kind %r", kind_raw)
        return False
    sensors = parse_sensors(store.get_item(CONF_SENSORS))
    if any(s.id == sid for s in sensors):
        _LOGGER.warning("Create sensor: id %s already exists", sid)
        return False
    sensors.append(SensorConfig(id=sid, name=name, kind=kind))
    store.set_item(CONF_SENSORS, dump_sensors(sensors))
    for k in (CONF_NEW_ID, CONF_NEW_NAME, CONF_NEW_KIND, CONF_NEW_CREATE):
        store.remove_item(k)
    _LOGGER.info("Sensor %s (%s) created", sid, kind.value)
    return True


def _edit_sensor(store: SettingsStore, sid: str, prop: str, text: str) -> bool:
    sensors = parse_sensors(store.get_item(CONF_SENSORS))
    index = next((i for i, s in enumerate(sensors) if s.id == sid), None)
    if index is None:
        _LOGGER.warning("Sensor %s not found", sid)
        return False
    cfg = sensors[index]

    if prop == "remove":
        if text.strip().lower() != "true":
            return False
        del sensors[index]
        _LOGGER.info("Sensor %s removed", sid)
    elif prop == "name":
        sensors[index] = SensorConfig(cfg.id, text.strip() or cfg.name, cfg.kind, cfg.topics)
    elif prop == "kind":
        try:
            kind = SensorKind(text.strip().lower())
        except ValueError:
            _LOGGER.warning("Sensor %s: unknown kind %r", sid, text)
            return False
        # primary topic follows the sensor to its new kind
        topics = cfg.topics.to_dict(cfg.kind)
        topics[kind.value] = topics.pop(cfg.kind.value, "")
        sensors[index] = SensorConfig(cfg.id, cfg.name, kind, SensorTopics.from_dict(kind, topics))
    elif prop.startswith("topic."):
        facet = prop[len("topic."):]
        if facet == "primary":
            facet = cfg.kind.value
        elif facet != cfg.kind.value and facet not in AUX_TOPIC_KEYS:
            _LOGGER.warning("Sensor %s: unknown topic %r", sid, facet)
            return False
        topics = cfg.topics.to_dict(cfg.kind)
        topics[facet] = text.strip()
        sensors[index] = SensorConfig(cfg.id, cfg.name, cfg.kind, SensorTopics.from_dict(cfg.kind, topics))
    else:
        _LOGGER.warning("Sensor %s: unknown setting %r", sid, prop)
        return False

    store.set_item(CONF_SENSORS, dump_sensors(sensors))
    return True
