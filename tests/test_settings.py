"""Settings parsing and sensor editing tests."""

from __future__ import annotations

import json
import logging

import pytest

from custom_components.paradox_mqtt.errors import BrokerUrlError
from custom_components.paradox_mqtt.models import SecuritySystemMode, SensorKind
from custom_components.paradox_mqtt.settings import (
    BridgeSettings,
    BrokerEndpoint,
    SettingsStore,
    apply_setting,
    parse_sensors,
)


def test_defaults_from_empty_store() -> None:
    """An empty store yields a usable loose configuration."""

    settings = BridgeSettings.from_store(SettingsStore())

    assert settings.broker_url == "mqtt://127.0.0.1:1883"
    assert settings.qos == 0
    assert settings.retain is False
    assert settings.strict_vocabulary is False
    assert settings.sensors == ()
    assert settings.panel_topics.subscriptions() == ()


def test_full_store_parses_every_key() -> None:
    """Values are read as strings and converted at the boundary."""

    store = SettingsStore({
        "brokerUrl": "mqtts://broker.local",
        "username": "alarm",
        "password": "secret",
        "clientId": "panel-1",
        "rejectUnauthorized": False,
        "topicSetTarget": "p/set",
        "topicGetCurrent": "p/current",
        "qos": "7",
        "retain": True,
        "payloadAway": "ARM_ALL",
        "strictVocabulary": "true",
        "stateTokensJson": json.dumps(["STAY", "AWAY", "SLEEP", "OFF"]),
    })
    settings = BridgeSettings.from_store(store)

    assert settings.username == "alarm"
    assert settings.client_id == "panel-1"
    assert settings.reject_unauthorized is False
    assert settings.qos == 2
    assert settings.retain is True
    assert settings.overrides == {SecuritySystemMode.AWAY_ARMED: "ARM_ALL"}
    assert settings.panel_topics.set_target == "p/set"
    assert settings.panel_topics.subscriptions() == ("p/current",)
    vocab = settings.vocabulary()
    assert vocab.strict
    assert vocab.decode_mode("sleep") is SecuritySystemMode.NIGHT_ARMED

    endpoint = settings.endpoint()
    assert (endpoint.host, endpoint.port, endpoint.tls) == ("broker.local", 8883, True)


def test_invalid_token_list_falls_back_to_defaults(caplog) -> None:
    """A malformed token list is logged and replaced by the default list."""

    store = SettingsStore({"strictVocabulary": "true", "stateTokensJson": '["a", "b"]'})
    with caplog.at_level(logging.ERROR):
        settings = BridgeSettings.from_store(store)

    assert settings.state_tokens == ("armed_home", "armed_away", "armed_night", "disarmed")
    assert "stateTokensJson" in caplog.text


def test_unparsable_qos_defaults_to_zero() -> None:
    """Junk QoS does not break settings loading."""

    assert BridgeSettings.from_store(SettingsStore({"qos": "high"})).qos == 0
    assert BridgeSettings.from_store(SettingsStore({"qos": "-1"})).qos == 0
    assert BridgeSettings.from_store(SettingsStore({"qos": "1e999"})).qos == 0
    assert BridgeSettings.from_store(SettingsStore({"qos": "inf"})).qos == 0


@pytest.mark.parametrize(
    ("url", "tls", "expected"),
    [
        ("mqtt://h", False, ("h", 1883, False, "tcp")),
        ("tcp://h:1884", False, ("h", 1884, False, "tcp")),
        ("mqtts://h", False, ("h", 8883, True, "tcp")),
        ("mqtt://h", True, ("h", 8883, True, "tcp")),
        ("h:1999", False, ("h", 1999, False, "tcp")),
        ("wss://h/mqtt", False, ("h", 443, True, "websockets")),
    ],
)
def test_broker_endpoint(url: str, tls: bool, expected: tuple) -> None:
    """Scheme and TLS flag decide the default port."""

    endpoint = BrokerEndpoint.from_url(url, force_tls=tls)
    assert (endpoint.host, endpoint.port, endpoint.tls, endpoint.transport) == expected


@pytest.mark.parametrize("url", ["http://h", "mqtt://", "mqtt://h:notaport"])
def test_broker_endpoint_rejects_bad_urls(url: str) -> None:
    """Unsupported schemes and missing hosts raise BrokerUrlError."""

    with pytest.raises(BrokerUrlError):
        BrokerEndpoint.from_url(url)


def test_parse_sensors_sanitises(caplog) -> None:
    """Invalid and duplicate entries are dropped; garbage yields no sensors."""

    raw = json.dumps([
        {"id": "door", "name": "Door", "kind": "contact", "topics": {"contact": "z/door"}},
        {"id": "door", "name": "Dup", "kind": "contact", "topics": {}},
        {"id": "hall", "name": "Hall", "kind": "laser", "topics": {}},
        {"id": "", "name": "x", "kind": "motion", "topics": {}},
        "nope",
        {"id": "pir", "name": "PIR", "kind": "MOTION", "topics": {"primary": "z/pir", "tamper": "z/pir/t"}},
    ])
    sensors = parse_sensors(raw)
    assert [(s.id, s.kind) for s in sensors] == [("door", SensorKind.CONTACT), ("pir", SensorKind.MOTION)]
    assert sensors[1].topics.primary == "z/pir"

    with caplog.at_level(logging.ERROR):
        assert parse_sensors("{not json") == []
        assert parse_sensors('{"id": "x"}') == []
    assert "Invalid sensorsJson" in caplog.text


def test_create_edit_and_remove_sensor() -> None:
    """The new.* and sensor.<id>.* keys maintain the sensor list."""

    store = SettingsStore()
    apply_setting(store, "new.id", "door")
    apply_setting(store, "new.name", "Front door")
    apply_setting(store, "new.kind", "contact")
    assert apply_setting(store, "new.create", True) is True
    assert store.get_item("new.id") is None

    assert apply_setting(store, "sensor.door.topic.primary", "z/door")
    assert apply_setting(store, "sensor.door.topic.lowBattery", "z/door/low")
    assert apply_setting(store, "sensor.door.name", "Door")
    assert apply_setting(store, "sensor.door.kind", "motion")

    (sensor,) = parse_sensors(store.get_item("sensorsJson"))
    assert sensor.name == "Door"
    assert sensor.kind is SensorKind.MOTION
    assert sensor.topics.primary == "z/door"
    assert sensor.topics.low_battery == "z/door/low"

    assert apply_setting(store, "sensor.door.topic.bogus", "x") is False
    assert apply_setting(store, "sensor.door.kind", "laser") is False
    assert apply_setting(store, "sensor.ghost.name", "x") is False

    assert apply_setting(store, "sensor.door.remove", True) is True
    assert parse_sensors(store.get_item("sensorsJson")) == []


def test_create_rejects_duplicates_and_bad_ids() -> None:
    """Existing ids and ids with dots are refused."""

    store = SettingsStore({"new.id": "door", "new.kind": "contact"})
    assert apply_setting(store, "new.create", "true") is True
    store.set_item("new.id", "door")
    assert apply_setting(store, "new.create", "true") is False
    store.set_item("new.id", "a.b")
    assert apply_setting(store, "new.create", "true") is False
    assert len(parse_sensors(store.get_item("sensorsJson"))) == 1


def test_plain_keys_are_stored_as_text() -> None:
    """Other keys are written through; booleans become true/false."""

    store = SettingsStore()
    assert apply_setting(store, "retain", True) is False
    assert store.get_item("retain") == "true"
    store.remove_item("retain")
    assert dict(store.items()) == {}
