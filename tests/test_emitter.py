"""Change-gated emitter tests."""

from __future__ import annotations

from custom_components.paradox_mqtt.emitter import EmittingDevice, set_and_emit
from custom_components.paradox_mqtt.models import Capability


class _Recorder:
    """Collect notifier calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Capability, object]] = []

    def __call__(self, native_id: str, capability: Capability, value: object) -> None:
        self.calls.append((native_id, capability, value))


class _Device(EmittingDevice):
    def __init__(self, notifier) -> None:
        super().__init__("dev", "Device", notifier)
        self.online = None


def test_notifies_once_per_distinct_value() -> None:
    """Repeated identical values do not notify again."""

    recorder = _Recorder()
    device = _Device(recorder)

    for value in (True, True, False, False, True):
        set_and_emit(device, "online", value, Capability.ONLINE)

    assert [c[2] for c in recorder.calls] == [True, False, True]
    assert device.online is True


def test_return_value_reports_change() -> None:
    """The helper tells the caller whether the field changed."""

    device = _Device(None)
    assert set_and_emit(device, "online", True, Capability.ONLINE) is True
    assert set_and_emit(device, "online", True, Capability.ONLINE) is False


def test_notifier_failure_does_not_block_the_update() -> None:
    """A failing host notification is swallowed; the field is still set."""

    def _boom(*_args) -> None:
        raise RuntimeError("host gone")

    device = _Device(_boom)
    assert set_and_emit(device, "online", False, Capability.ONLINE) is True
    assert device.online is False
