from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .models import Capability

_LOGGER = logging.getLogger(__name__)

# (native_id, capability, value) -> None; may raise, failures are swallowed
Notifier = Callable[[str, Capability, Any], None]


class EmittingDevice:
    """Base for stateful devices whose facets are written through set_and_emit."""

    def __init__(self, native_id: str, name: str, notifier: Optional[Notifier] = None) -> None:
        self.native_id = native_id
        self.name = name
        self._notifier = notifier

    def on_device_event(self, capability: Capability, value: Any) -> None:
        if self._notifier is not None:
            self._notifier(self.native_id, capability, value)


def set_and_emit(
    device: EmittingDevice, field: str, value: Any, capability: Capability, log: Optional[str] = None
) -> bool:
    """Assign ``field`` and notify the host, only when the value changes.

    Returns True when the field was updated.
    """
    if getattr(device, field, None) == value:
        return False
    setattr(device, field, value)
    try:
        device.on_device_event(capability, value)
    except Exception:
        _LOGGER.debug("notify failed for %s %s", device.native_id, capability.value, exc_info=True)
    if log:
        _LOGGER.debug("%s", log)
    return True
