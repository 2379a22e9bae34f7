"""Domain types shared by the panel, the sensors and the reconciler."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .const import SENSOR_NATIVE_PREFIX


class SecuritySystemMode(str, Enum):
    DISARMED = "disarmed"
    HOME_ARMED = "home_armed"
    AWAY_ARMED = "away_armed"
    NIGHT_ARMED = "night_armed"


ALL_MODES: Tuple[SecuritySystemMode, ...] = (
    SecuritySystemMode.DISARMED,
    SecuritySystemMode.HOME_ARMED,
    SecuritySystemMode.AWAY_ARMED,
    SecuritySystemMode.NIGHT_ARMED,
)

# Index order used by the strict token lists: home, away, night, disarmed
TOKEN_LIST_ORDER: Tuple[SecuritySystemMode, ...] = (
    SecuritySystemMode.HOME_ARMED,
    SecuritySystemMode.AWAY_ARMED,
    SecuritySystemMode.NIGHT_ARMED,
    SecuritySystemMode.DISARMED,
)


class SensorKind(str, Enum):
    CONTACT = "contact"
    MOTION = "motion"
    OCCUPANCY = "occupancy"


class Capability(str, Enum):
    ENTRY_SENSOR = "entry_sensor"
    MOTION_SENSOR = "motion_sensor"
    OCCUPANCY_SENSOR = "occupancy_sensor"
    TAMPER_SENSOR = "tamper_sensor"
    BATTERY = "battery"
    ONLINE = "online"
    SECURITY_SYSTEM = "security_system"


PRIMARY_CAPABILITY: Dict[SensorKind, Capability] = {
    SensorKind.CONTACT: Capability.ENTRY_SENSOR,
    SensorKind.MOTION: Capability.MOTION_SENSOR,
    SensorKind.OCCUPANCY: Capability.OCCUPANCY_SENSOR,
}

# Names of the facet topics as stored in the sensors JSON
TOPIC_BATTERY_LEVEL = "batteryLevel"
TOPIC_LOW_BATTERY = "lowBattery"
TOPIC_TAMPER = "tamper"
TOPIC_ONLINE = "online"
AUX_TOPIC_KEYS = (TOPIC_BATTERY_LEVEL, TOPIC_LOW_BATTERY, TOPIC_TAMPER, TOPIC_ONLINE)


def _clean_topic(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class SensorTopics:
    primary: Optional[str] = None
    battery_level: Optional[str] = None
    low_battery: Optional[str] = None
    tamper: Optional[str] = None
    online: Optional[str] = None

    @classmethod
    def from_dict(cls, kind: SensorKind, data: Dict[str, Any]) -> "SensorTopics":
        # Primary topic is stored under the kind name ("contact": ...) or "primary"
        primary = _clean_topic(data.get(kind.value)) or _clean_topic(data.get("primary"))
        return cls(
            primary=primary,
            battery_level=_clean_topic(data.get(TOPIC_BATTERY_LEVEL)),
            low_battery=_clean_topic(data.get(TOPIC_LOW_BATTERY)),
            tamper=_clean_topic(data.get(TOPIC_TAMPER)),
            online=_clean_topic(data.get(TOPIC_ONLINE)),
        )

    def to_dict(self, kind: SensorKind) -> Dict[str, str]:
        out: Dict[str, str] = {}
        if self.primary:
            out[kind.value] = self.primary
        for key, value in (
            (TOPIC_BATTERY_LEVEL, self.battery_level),
            (TOPIC_LOW_BATTERY, self.low_battery),
            (TOPIC_TAMPER, self.tamper),
            (TOPIC_ONLINE, self.online),
        ):
            if value:
                out[key] = value
        return out

    def all(self) -> Tuple[str, ...]:
        return tuple(
            t for t in (self.primary, self.battery_level, self.low_battery, self.tamper, self.online) if t
        )

    @property
    def has_battery(self) -> bool:
        return bool(self.battery_level or self.low_battery)


@dataclass(frozen=True)
class SensorConfig:
    id: str
    name: str
    kind: SensorKind
    topics: SensorTopics = field(default_factory=SensorTopics)

    @property
    def native_id(self) -> str:
        return f"{SENSOR_NATIVE_PREFIX}{self.id}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SensorConfig":
        """Build a config from its stored JSON form.

        Raises ValueError/TypeError for entries missing id, name, kind or topics.
        """
        sid = data.get("id")
        name = data.get("name")
        topics = data.get("topics")
        if not isinstance(sid, str) or not sid.strip():
            raise ValueError("sensor id missing")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"sensor {sid}: name missing")
        if not isinstance(topics, dict):
            raise TypeError(f"sensor {sid}: topics must be an object")
        kind = SensorKind(str(data.get("kind") or "").strip().lower())
        return cls(id=sid.strip(), name=name.strip(), kind=kind, topics=SensorTopics.from_dict(kind, topics))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "topics": self.topics.to_dict(self.kind),
        }


@dataclass(frozen=True)
class SecuritySystemState:
    mode: SecuritySystemMode = SecuritySystemMode.DISARMED
    supported_modes: Tuple[SecuritySystemMode, ...] = ALL_MODES
    triggered: Optional[bool] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "supported_modes": [m.value for m in self.supported_modes],
            "triggered": self.triggered,
        }


@dataclass(frozen=True)
class DeviceManifest:
    native_id: str
    name: str
    kind: SensorKind
    capabilities: Tuple[Capability, ...]
