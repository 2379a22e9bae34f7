"""Security panel state machine tests."""

from __future__ import annotations

from custom_components.paradox_mqtt.models import Capability, SecuritySystemMode, SecuritySystemState
from custom_components.paradox_mqtt.payload import ModeVocabulary
from custom_components.paradox_mqtt.security import PanelTopics, SecurityPanel

TOPICS = PanelTopics(
    set_target="paradox/control/partitions/Area_1",
    get_target="paradox/states/partitions/Area_1/target_state",
    get_current="paradox/states/partitions/Area_1/current_state",
    tamper="paradox/states/system/tamper",
    online="paradox/interface/availability",
)


class _Recorder:
    """Collect notifier calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Capability, object]] = []

    def __call__(self, native_id: str, capability: Capability, value: object) -> None:
        self.calls.append((native_id, capability, value))

    def of(self, capability: Capability) -> list[object]:
        return [value for _nid, cap, value in self.calls if cap is capability]


def _panel(strict: bool = False, overrides=None) -> tuple[SecurityPanel, _Recorder]:
    recorder = _Recorder()
    panel = SecurityPanel(
        vocabulary=ModeVocabulary(strict=strict),
        overrides=overrides,
        topics=TOPICS,
        notifier=recorder,
    )
    return panel, recorder


def test_initial_state() -> None:
    """A new panel is disarmed, supports all modes and is not triggered."""

    panel, _ = _panel()
    assert panel.state == SecuritySystemState()
    assert panel.state.mode is SecuritySystemMode.DISARMED
    assert len(panel.state.supported_modes) == 4
    assert panel.state.triggered is None
    assert panel.pending_target is None


def test_current_state_arm_away_notifies_once() -> None:
    """A confirmed arm_away sets the mode and notifies exactly once."""

    panel, recorder = _panel()
    assert panel.handle_message(TOPICS.get_current, b"arm_away")
    assert panel.state.mode is SecuritySystemMode.AWAY_ARMED
    assert panel.state.triggered is None

    panel.handle_message(TOPICS.get_current, b"arm_away")
    states = recorder.of(Capability.SECURITY_SYSTEM)
    assert len(states) == 1
    assert states[0].as_dict()["mode"] == "away_armed"
    assert states[0].triggered is None


def test_loose_and_strict_vocabularies_differ_on_synonyms() -> None:
    """'stay' arms home in loose mode and is ignored in strict mode."""

    loose, _ = _panel(strict=False)
    strict, strict_calls = _panel(strict=True)

    loose.handle_message(TOPICS.get_current, "stay")
    strict.handle_message(TOPICS.get_current, "stay")

    assert loose.state.mode is SecuritySystemMode.HOME_ARMED
    assert strict.state.mode is SecuritySystemMode.DISARMED
    assert strict_calls.of(Capability.SECURITY_SYSTEM) == []


def test_undecodable_state_keeps_mode() -> None:
    """Transitional or unknown tokens leave the mode untouched."""

    panel, recorder = _panel()
    panel.handle_message(TOPICS.get_current, "armed_night")
    panel.handle_message(TOPICS.get_current, "exit_delay")
    panel.handle_message(TOPICS.get_current, "garbage")

    assert panel.state.mode is SecuritySystemMode.NIGHT_ARMED
    assert len(recorder.of(Capability.SECURITY_SYSTEM)) == 1


def test_triggered_is_a_level_independent_of_mode() -> None:
    """Triggered follows each current-state payload and does not reset the mode."""

    panel, recorder = _panel()
    panel.handle_message(TOPICS.get_current, "armed_away")
    panel.handle_message(TOPICS.get_current, "triggered")
    assert panel.state.mode is SecuritySystemMode.AWAY_ARMED
    assert panel.state.triggered is True
    assert panel.triggered

    panel.handle_message(TOPICS.get_current, "alarm")
    panel.handle_message(TOPICS.get_current, "armed_away")
    assert panel.state.triggered is None
    assert panel.state.mode is SecuritySystemMode.AWAY_ARMED

    triggered = [s.triggered for s in recorder.of(Capability.SECURITY_SYSTEM)]
    assert triggered == [None, True, None]


def test_command_records_pending_target_only() -> None:
    """Commands never change the confirmed mode."""

    panel, recorder = _panel()
    payload = panel.command(SecuritySystemMode.AWAY_ARMED)

    assert payload == "arm_away"
    assert panel.pending_target is SecuritySystemMode.AWAY_ARMED
    assert panel.state.mode is SecuritySystemMode.DISARMED
    assert recorder.calls == []


def test_command_uses_override() -> None:
    """Per-deployment payload overrides are sent verbatim."""

    panel, _ = _panel(overrides={SecuritySystemMode.DISARMED: "DISARM_ALL"})
    assert panel.command(SecuritySystemMode.DISARMED) == "DISARM_ALL"


def test_target_topic_updates_pending_target() -> None:
    """Reported targets are tracked for observability."""

    panel, recorder = _panel()
    panel.handle_message(TOPICS.get_target, "armed_home")
    assert panel.pending_target is SecuritySystemMode.HOME_ARMED
    assert panel.state.mode is SecuritySystemMode.DISARMED
    assert recorder.of(Capability.SECURITY_SYSTEM) == []


def test_online_and_tamper_facets() -> None:
    """Panel availability and tamper are change-gated facets."""

    panel, recorder = _panel()
    panel.handle_message(TOPICS.online, "online")
    panel.handle_message(TOPICS.online, "online")
    panel.handle_message(TOPICS.tamper, "cover")
    panel.handle_message(TOPICS.tamper, "0")

    assert recorder.of(Capability.ONLINE) == [True]
    assert recorder.of(Capability.TAMPER_SENSOR) == ["cover", False]
    assert panel.tampered is False


def test_set_connected_drives_online() -> None:
    """Broker connection state is mirrored on the panel."""

    panel, recorder = _panel()
    panel.set_connected(True)
    panel.set_connected(False)
    assert recorder.of(Capability.ONLINE) == [True, False]


def test_foreign_topic_is_not_consumed() -> None:
    """Messages for other topics are left for the sensors."""

    panel, recorder = _panel()
    assert panel.handle_message("zigbee2mqtt/door", "open") is False
    assert recorder.calls == []
