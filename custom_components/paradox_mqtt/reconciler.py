"""Keep the live sensor set and the host's device registry in step with config."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from .emitter import Notifier
from .models import DeviceManifest, SensorConfig
from .sensors import SensorDevice, capabilities_for

_LOGGER = logging.getLogger(__name__)


class DeviceHost(Protocol):
    """Host registry the sensors are announced to.

    ``announce_batch`` is optional; hosts without it get one ``announce_one``
    call per manifest.
    """

    def announce_one(self, manifest: DeviceManifest) -> Any: ...

    def remove(self, native_id: str) -> Any: ...

    def notify_changed(self, native_id: str, capability: Any, value: Any) -> Any: ...


HostProvider = Callable[[], Optional[DeviceHost]]


def build_manifests(configs: Sequence[SensorConfig]) -> List[DeviceManifest]:
    return [
        DeviceManifest(
            native_id=cfg.native_id,
            name=cfg.name,
            kind=cfg.kind,
            capabilities=capabilities_for(cfg),
        )
        for cfg in configs
    ]


class SensorReconciler:
    """Owns the live sensor map; the only place sensors are created or dropped."""

    def __init__(self, host_provider: HostProvider, notifier: Optional[Notifier] = None) -> None:
        self._host_provider = host_provider
        self._notifier = notifier
        self._devices: Dict[str, SensorDevice] = {}
        self._configs: List[SensorConfig] = []
        self._postponed = False
        self._postponed_logged = False

    @property
    def devices(self) -> Dict[str, SensorDevice]:
        return self._devices

    @property
    def postponed(self) -> bool:
        return self._postponed

    def get(self, native_id: str) -> Optional[SensorDevice]:
        return self._devices.get(native_id)

    def reconcile(self, configs: Sequence[SensorConfig]) -> bool:
        """Announce, instantiate and remove sensors to match ``configs``.

        Returns False when the host is not ready; the work is retried by
        ``retry_pending``.
        """
        self._configs = list(configs)
        host = self._host_provider()
        if host is None:
            self._postponed = True
            if not self._postponed_logged:
                _LOGGER.info("Device discovery postponed: device host not ready yet")
                self._postponed_logged = True
            return False
        self._postponed = False
        self._postponed_logged = False
        self._reconcile(host, self._configs)
        return True

    def retry_pending(self) -> bool:
        if not self._postponed:
            return False
        return self.reconcile(self._configs)

    def _reconcile(self, host: DeviceHost, configs: List[SensorConfig]) -> None:
        manifests = build_manifests(configs)

        # Announce first: the host must know a device before its object exists
        announce_batch = getattr(host, "announce_batch", None)
        if callable(announce_batch):
            announce_batch(manifests)
        else:
            for manifest in manifests:
                host.announce_one(manifest)

        for cfg in configs:
            device = self._devices.get(cfg.native_id)
            if device is None:
                device = SensorDevice(cfg, self._notifier)
                self._devices[cfg.native_id] = device
                _LOGGER.debug("sensor created: %s (%s)", cfg.native_id, cfg.kind.value)
            else:
                device.update_config(cfg)
            device.seed_battery()

        announced = {m.native_id for m in manifests}
        for native_id in [nid for nid in self._devices if nid not in announced]:
            self._devices.pop(native_id, None)
            try:
                host.remove(native_id)
            except Exception:
                _LOGGER.warning("host removal failed for %s", native_id, exc_info=True)
            _LOGGER.debug("sensor removed: %s", native_id)

    def dispatch(self, topic: str, payload: Any) -> None:
        for device in list(self._devices.values()):
            device.handle_message(topic, payload)
