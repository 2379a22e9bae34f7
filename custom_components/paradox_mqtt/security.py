"""Security panel state machine.

The panel is the source of truth: commands only publish a token and record a
pending target, the current mode changes solely on confirmed state traffic.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from .const import PANEL_NATIVE_ID
from .emitter import EmittingDevice, Notifier, set_and_emit
from .models import Capability, SecuritySystemMode, SecuritySystemState
from .payload import ModeVocabulary, Tamper, decode_bool, decode_tamper, payload_to_str
from .topics import topic_matches

_LOGGER = logging.getLogger(__name__)

PANEL_TAMPER_VOCABULARY = ("tamper", "intrusion", "cover")
PANEL_TAMPER_REASONS = ("cover", "intrusion")


@dataclass(frozen=True)
class PanelTopics:
    set_target: Optional[str] = None
    get_target: Optional[str] = None
    get_current: Optional[str] = None
    tamper: Optional[str] = None
    online: Optional[str] = None

    def subscriptions(self) -> Tuple[str, ...]:
        return tuple(t for t in (self.get_target, self.get_current, self.tamper, self.online) if t)


class SecurityPanel(EmittingDevice):
    """Alarm panel state: mode, triggered overlay, pending target, online, tamper."""

    def __init__(
        self,
        name: str = "Alarm",
        *,
        vocabulary: Optional[ModeVocabulary] = None,
        overrides: Optional[Mapping[SecuritySystemMode, str]] = None,
        topics: Optional[PanelTopics] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        super().__init__(PANEL_NATIVE_ID, name, notifier)
        self.vocabulary = vocabulary or ModeVocabulary()
        self.overrides: Dict[SecuritySystemMode, str] = dict(overrides or {})
        self.topics = topics or PanelTopics()
        self.state = SecuritySystemState()
        self.pending_target: Optional[SecuritySystemMode] = None
        self.online: Optional[bool] = False
        self.tampered: Optional[Tamper] = None

    def configure(
        self,
        *,
        vocabulary: ModeVocabulary,
        overrides: Mapping[SecuritySystemMode, str],
        topics: PanelTopics,
    ) -> None:
        self.vocabulary = vocabulary
        self.overrides = dict(overrides)
        self.topics = topics

    # ---------- outbound ----------
    def command(self, mode: SecuritySystemMode) -> str:
        """Return the token to publish for ``mode`` and remember it as pending."""
        payload = self.vocabulary.outgoing(mode, self.overrides)
        self.pending_target = mode
        _LOGGER.debug("[%s] command %s -> %r", self.name, mode.value, payload)
        return payload

    # ---------- inbound ----------
    def handle_message(self, topic: str, payload: Any) -> bool:
        """Apply a message addressed to the panel; False when the topic is not ours."""
        if topic_matches(topic, self.topics.online):
            self.handle_online(payload, topic)
            return True
        if topic_matches(topic, self.topics.tamper):
            self.handle_tamper(payload, topic)
            return True
        if topic_matches(topic, self.topics.get_current):
            self.handle_current(payload, topic)
            return True
        if topic_matches(topic, self.topics.get_target):
            self.handle_target(payload, topic)
            return True
        return False

    def handle_current(self, payload: Any, topic: str = "") -> bool:
        raw = payload_to_str(payload)
        mode = self.vocabulary.decode_mode(raw)
        triggered = True if self.vocabulary.is_triggered(raw) else None
        new_state = SecuritySystemState(
            mode=mode if mode is not None else self.state.mode,
            supported_modes=self.state.supported_modes,
            triggered=triggered,
        )
        return set_and_emit(
            self,
            "state",
            new_state,
            Capability.SECURITY_SYSTEM,
            f"[{self.name}] currentState={new_state.as_dict()} ({topic})",
        )

    def handle_target(self, payload: Any, topic: str = "") -> None:
        raw = payload_to_str(payload)
        self.pending_target = self.vocabulary.decode_mode(raw)
        _LOGGER.debug(
            "[%s] target reported: %r -> %s (%s)",
            self.name,
            raw,
            self.pending_target.value if self.pending_target else None,
            topic,
        )

    def handle_online(self, payload: Any, topic: str = "") -> None:
        value = decode_bool(payload_to_str(payload))
        if value is not None:
            set_and_emit(self, "online", value, Capability.ONLINE, f"[{self.name}] online={value} ({topic})")

    def handle_tamper(self, payload: Any, topic: str = "") -> None:
        value = decode_tamper(payload_to_str(payload), PANEL_TAMPER_VOCABULARY, PANEL_TAMPER_REASONS)
        if value is not None:
            set_and_emit(self, "tampered", value, Capability.TAMPER_SENSOR, f"[{self.name}] tampered={value} ({topic})")

    def set_connected(self, connected: bool) -> None:
        set_and_emit(self, "online", connected, Capability.ONLINE, f"[{self.name}] online={connected}")

    @property
    def triggered(self) -> bool:
        return bool(self.state.triggered)

    def snapshot(self) -> Dict[str, Any]:
        return {
            **self.state.as_dict(),
            "pending_target": self.pending_target.value if self.pending_target else None,
            "online": self.online,
            "tampered": self.tampered,
        }
