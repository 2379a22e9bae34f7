"""Auxiliary sensors (contact, motion, occupancy) fed from MQTT topics."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .emitter import EmittingDevice, Notifier, set_and_emit
from .models import PRIMARY_CAPABILITY, Capability, SensorConfig, SensorKind
from .payload import Tamper, decode_bool, decode_json_flag, decode_level, decode_tamper, normalize, payload_to_str
from .topics import topic_matches

_LOGGER = logging.getLogger(__name__)

SENSOR_TAMPER_VOCABULARY = ("tamper", "intrusion", "cover", "motion", "magnetic")
SENSOR_TAMPER_REASONS = ("cover", "intrusion", "motion", "magnetic")

LOW_BATTERY_LEVEL = 10.0
FULL_BATTERY_LEVEL = 100.0


@dataclass(frozen=True)
class PrimaryDecoder:
    field: str
    capability: Capability
    on: FrozenSet[str]
    off: FrozenSet[str]
    json_fields: Tuple[str, ...]
    state_on: FrozenSet[str]
    state_off: FrozenSet[str]

    def decode(self, raw: str) -> Optional[bool]:
        np = normalize(raw)
        if np in self.on:
            return True
        if np in self.off:
            return False
        return decode_json_flag(raw, self.json_fields, self.state_on, self.state_off)


PRIMARY_DECODERS: Dict[SensorKind, PrimaryDecoder] = {
    SensorKind.CONTACT: PrimaryDecoder(
        field="entry_open",
        capability=Capability.ENTRY_SENSOR,
        on=frozenset({"open", "opened", "1", "true", "on", "yes"}),
        off=frozenset({"closed", "close", "0", "false", "off", "no", "shut"}),
        # contact: false means the magnet is apart, i.e. open
        json_fields=("open", "opened", "!contact"),
        state_on=frozenset({"open"}),
        state_off=frozenset({"closed"}),
    ),
    SensorKind.MOTION: PrimaryDecoder(
        field="motion_detected",
        capability=Capability.MOTION_SENSOR,
        on=frozenset({"motion", "detected", "active", "1", "true", "on", "yes"}),
        off=frozenset({"clear", "inactive", "no_motion", "none", "0", "false", "off", "no"}),
        json_fields=("motion", "occupancy", "presence"),
        state_on=frozenset({"on", "motion", "detected", "active"}),
        state_off=frozenset({"off", "clear", "inactive"}),
    ),
    SensorKind.OCCUPANCY: PrimaryDecoder(
        field="occupied",
        capability=Capability.OCCUPANCY_SENSOR,
        on=frozenset({"occupied", "presence", "present", "1", "true", "on", "yes"}),
        off=frozenset({"unoccupied", "vacant", "absent", "0", "false", "off", "no", "clear"}),
        json_fields=("occupied", "presence", "occupancy"),
        state_on=frozenset({"occupied", "presence", "present", "on"}),
        state_off=frozenset({"vacant", "absent", "clear", "off"}),
    ),
}


def capabilities_for(config: SensorConfig) -> Tuple[Capability, ...]:
    caps = [PRIMARY_CAPABILITY[config.kind], Capability.ONLINE]
    if config.topics.tamper:
        caps.append(Capability.TAMPER_SENSOR)
    if config.topics.has_battery:
        caps.append(Capability.BATTERY)
    return tuple(caps)


class SensorDevice(EmittingDevice):
    """One configured sensor; decodes the topics its config points at."""

    def __init__(self, config: SensorConfig, notifier: Optional[Notifier] = None) -> None:
        super().__init__(config.native_id, config.name, notifier)
        self.config = config
        self.online: Optional[bool] = None
        self.tampered: Optional[Tamper] = None
        self.battery_level: Optional[float] = None
        self.entry_open: Optional[bool] = None
        self.motion_detected: Optional[bool] = None
        self.occupied: Optional[bool] = None
        # True once a real level arrived on a battery level topic
        self._level_observed = False

    @property
    def kind(self) -> SensorKind:
        return self.config.kind

    @property
    def decoder(self) -> PrimaryDecoder:
        return PRIMARY_DECODERS[self.config.kind]

    @property
    def primary_value(self) -> Optional[bool]:
        return getattr(self, self.decoder.field)

    @property
    def capabilities(self) -> Tuple[Capability, ...]:
        return capabilities_for(self.config)

    def update_config(self, config: SensorConfig) -> None:
        """Point at a newer config, keeping runtime state."""
        previous = self.config
        self.config = config
        self.name = config.name
        if previous.kind is not config.kind:
            old = PRIMARY_DECODERS[previous.kind]
            set_and_emit(self, old.field, None, old.capability, f"[{self.name}] kind {previous.kind.value} -> {config.kind.value}")

    def handle_message(self, topic: str, payload: Any) -> None:
        raw = payload_to_str(payload)
        topics = self.config.topics

        if topic_matches(topic, topics.online):
            online = decode_bool(raw)
            if online is not None:
                set_and_emit(self, "online", online, Capability.ONLINE, f"[{self.name}] online={online}")

        if topic_matches(topic, topics.tamper):
            tampered = decode_tamper(raw, SENSOR_TAMPER_VOCABULARY, SENSOR_TAMPER_REASONS)
            if tampered is not None:
                set_and_emit(self, "tampered", tampered, Capability.TAMPER_SENSOR, f"[{self.name}] tampered={tampered}")

        if topic_matches(topic, topics.battery_level):
            level = decode_level(raw)
            if level is not None:
                self._level_observed = True
                set_and_emit(self, "battery_level", level, Capability.BATTERY, f"[{self.name}] batteryLevel={level}")
        elif not topics.battery_level and topic_matches(topic, topics.low_battery):
            self._handle_low_battery(raw)

        if topic_matches(topic, topics.primary):
            self._handle_primary(topic, raw)

    def _handle_low_battery(self, raw: str) -> None:
        low = decode_bool(raw)
        if low is None:
            return
        if low:
            level = LOW_BATTERY_LEVEL
        elif self._level_observed:
            # an observed level beats the synthesized "ok" value
            return
        else:
            level = FULL_BATTERY_LEVEL
        set_and_emit(self, "battery_level", level, Capability.BATTERY, f"[{self.name}] batteryLevel={level} (lowBattery)")

    def _handle_primary(self, topic: str, raw: str) -> None:
        decoder = self.decoder
        value = decoder.decode(raw)
        if value is None:
            _LOGGER.debug("%s payload not handled (%s) topic=%s raw=%r", self.kind.value, self.config.id, topic, raw)
            return
        set_and_emit(self, decoder.field, value, decoder.capability, f"[{self.name}] {decoder.field}={value} ({topic})")

    def seed_battery(self) -> bool:
        """Default a battery-capable sensor to full until the bus says otherwise."""
        if self.battery_level is not None or not self.config.topics.has_battery:
            return False
        return set_and_emit(
            self, "battery_level", FULL_BATTERY_LEVEL, Capability.BATTERY, f"[{self.name}] batteryLevel=100 (default)"
        )

    def snapshot(self) -> Dict[str, Any]:
        return {
            "native_id": self.native_id,
            "name": self.name,
            "kind": self.kind.value,
            "online": self.online,
            "tampered": self.tampered,
            "battery_level": self.battery_level,
            self.decoder.field: self.primary_value,
        }
