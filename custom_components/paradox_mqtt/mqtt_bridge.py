from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any, Callable, Dict, List, Optional, Tuple

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion

from .const import DEFAULT_KEEPALIVE, RECONNECT_PERIOD_SECONDS
from .errors import BrokerUrlError, ParadoxMqttError
from .models import Capability, SecuritySystemMode
from .reconciler import DeviceHost, HostProvider, SensorReconciler
from .security import SecurityPanel
from .settings import BridgeSettings, BrokerEndpoint, SettingsStore, apply_setting

_LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[BridgeSettings, BrokerEndpoint], Any]


def create_client(settings: BridgeSettings, endpoint: BrokerEndpoint) -> mqtt.Client:
    """Build a paho client for ``settings``; blocking when TLS loads certificates."""
    client = mqtt.Client(
        callback_api_version=CallbackAPIVersion.VERSION2,
        client_id=settings.client_id,
        clean_session=True,
        transport=endpoint.transport,
    )
    if endpoint.transport == "websockets":
        client.ws_set_options(path=endpoint.path)
    if settings.username:
        client.username_pw_set(settings.username, settings.password)
    if endpoint.tls:
        client.tls_set(cert_reqs=ssl.CERT_REQUIRED if settings.reject_unauthorized else ssl.CERT_NONE)
        if not settings.reject_unauthorized:
            client.tls_insecure_set(True)
    client.reconnect_delay_set(RECONNECT_PERIOD_SECONDS, RECONNECT_PERIOD_SECONDS)
    return client


def _reason_failed(reason_code: Any) -> bool:
    failed = getattr(reason_code, "is_failure", None)
    if failed is not None:
        return bool(failed)
    value = getattr(reason_code, "value", reason_code)
    try:
        return int(value or 0) != 0
    except (TypeError, ValueError):
        return True


class MqttBridge:
    """Single broker session: owns the client, the panel and the sensor set.

    paho delivers on its network thread; every callback is moved onto the
    event loop before any state is touched, so all mutation happens on one
    thread in arrival order.
    """

    def __init__(
        self,
        store: SettingsStore,
        host_provider: Optional[HostProvider] = None,
        *,
        name: str = "Alarm",
        loop: Optional[asyncio.AbstractEventLoop] = None,
        client_factory: ClientFactory = create_client,
    ) -> None:
        self.store = store
        self._host_provider: HostProvider = host_provider or (lambda: None)
        self._loop = loop
        self._client_factory = client_factory
        self._client: Optional[Any] = None
        self._connected = False
        self._lock = asyncio.Lock()
        self.settings = BridgeSettings()
        self.panel = SecurityPanel(name, notifier=self._notify)
        self.reconciler = SensorReconciler(self._host_provider, self._notify)
        self._subscriptions: Tuple[str, ...] = ()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def subscriptions(self) -> Tuple[str, ...]:
        return self._subscriptions

    # ---------- host notification ----------
    def _notify(self, native_id: str, capability: Capability, value: Any) -> None:
        host: Optional[DeviceHost] = self._host_provider()
        if host is not None:
            host.notify_changed(native_id, capability, value)

    # ---------- lifecycle ----------
    async def async_start(self) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        await self.async_reconfigure()

    async def async_reconfigure(self) -> None:
        """Re-read settings, reconcile sensors and replace the broker connection."""
        async with self._lock:
            self._load_settings()
            self.reconciler.reconcile(self.settings.sensors)
            await self._async_close()
            await self._async_open()

    async def async_reload_sensors(self) -> None:
        """Re-read settings and reconcile without touching the connection."""
        async with self._lock:
            self._load_settings()
            self.reconciler.reconcile(self.settings.sensors)
            if self._client is not None and self._connected:
                self._subscribe(self._client)

    async def async_stop(self) -> None:
        async with self._lock:
            await self._async_close()

    def _load_settings(self) -> None:
        self.settings = BridgeSettings.from_store(self.store)
        self.panel.configure(
            vocabulary=self.settings.vocabulary(),
            overrides=self.settings.overrides,
            topics=self.settings.panel_topics,
        )
        _LOGGER.debug(
            "settings loaded: broker=%s sensors=%d vocabulary=%s",
            self.settings.broker_url,
            len(self.settings.sensors),
            self.panel.vocabulary.describe(),
        )

    async def _async_open(self) -> None:
        try:
            endpoint = self.settings.endpoint()
        except BrokerUrlError as err:
            _LOGGER.error("Not connecting: %s", err)
            return
        loop = self._loop or asyncio.get_running_loop()
        try:
            client = await loop.run_in_executor(None, self._client_factory, self.settings, endpoint)
        except Exception:
            _LOGGER.exception("MQTT client setup failed for %s", self.settings.broker_url)
            return
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        self._client = client
        try:
            client.connect_async(endpoint.host, endpoint.port, keepalive=DEFAULT_KEEPALIVE)
            client.loop_start()
        except Exception:
            _LOGGER.exception("MQTT connect to %s:%s failed", endpoint.host, endpoint.port)
            return
        _LOGGER.info("Connecting to MQTT broker %s:%s (tls=%s)", endpoint.host, endpoint.port, endpoint.tls)

    async def _async_close(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        self._connected = False
        self._subscriptions = ()
        loop = self._loop or asyncio.get_running_loop()
        try:
            client.disconnect()
            await loop.run_in_executor(None, client.loop_stop)
        except Exception:
            _LOGGER.warning("MQTT disconnect failed", exc_info=True)
        self.panel.set_connected(False)
        _LOGGER.debug("MQTT connection closed")

    # ---------- paho callbacks (network thread) ----------
    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if _reason_failed(reason_code):
            _LOGGER.warning("MQTT connection refused: %s", reason_code)
            return
        self._call_in_loop(self._handle_connected, client)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        self._call_in_loop(self._handle_disconnected, client, reason_code)

    def _on_message(self, client, userdata, msg) -> None:
        self._call_in_loop(self._handle_client_message, client, msg.topic, msg.payload)

    def _call_in_loop(self, callback: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            _LOGGER.debug("event loop gone, dropping %s", getattr(callback, "__name__", callback))

    # ---------- event loop side ----------
    def _handle_connected(self, client: Any) -> None:
        if client is not self._client:
            return
        self._connected = True
        _LOGGER.info("Connected to MQTT broker %s", self.settings.broker_url)
        # clean session: the broker holds no subscriptions for us yet
        self._subscriptions = ()
        self.panel.set_connected(True)
        self._subscribe(client)
        self.reconciler.retry_pending()

    def _handle_disconnected(self, client: Any, reason_code: Any = None) -> None:
        if client is not self._client:
            return
        self._connected = False
        _LOGGER.warning("MQTT connection lost (%s), retrying every %ss", reason_code, RECONNECT_PERIOD_SECONDS)
        self.panel.set_connected(False)

    def _handle_client_message(self, client: Any, topic: str, payload: Any) -> None:
        if client is not self._client:
            return
        self.handle_message(topic, payload)

    def collect_subscriptions(self) -> Tuple[str, ...]:
        """Panel topics plus every sensor facet topic, first occurrence wins."""
        topics: List[str] = list(self.settings.panel_topics.subscriptions())
        for cfg in self.settings.sensors:
            topics.extend(cfg.topics.all())
        return tuple(dict.fromkeys(t for t in topics if t))

    def _subscribe(self, client: Any) -> None:
        subs = self.collect_subscriptions()
        stale = [topic for topic in self._subscriptions if topic not in subs]
        self._subscriptions = subs
        if stale:
            try:
                result, _mid = client.unsubscribe(stale)
            except Exception:
                _LOGGER.exception("MQTT unsubscribe failed")
            else:
                if result != mqtt.MQTT_ERR_SUCCESS:
                    _LOGGER.warning("MQTT unsubscribe returned %s", result)
                _LOGGER.debug("unsubscribed from %d topic(s): %s", len(stale), ", ".join(stale))
        if not subs:
            _LOGGER.debug("no topics to subscribe")
            return
        try:
            result, _mid = client.subscribe([(topic, self.settings.qos) for topic in subs])
        except Exception:
            _LOGGER.exception("MQTT subscribe failed")
            return
        if result != mqtt.MQTT_ERR_SUCCESS:
            _LOGGER.warning("MQTT subscribe returned %s", result)
        _LOGGER.debug("subscribed to %d topic(s): %s", len(subs), ", ".join(subs))

    def handle_message(self, topic: str, payload: Any) -> None:
        """Route one inbound message; errors are logged, never raised."""
        try:
            if self.panel.handle_message(topic, payload):
                return
            self.reconciler.retry_pending()
            self.reconciler.dispatch(topic, payload)
        except Exception:
            _LOGGER.exception("message handling failed for %s", topic)

    # ---------- commands ----------
    async def async_arm(self, mode: SecuritySystemMode) -> str:
        """Publish the command token for ``mode``; returns once enqueued.

        The current mode is left alone until the panel confirms it.
        """
        payload = self.panel.command(mode)
        topic = self.settings.panel_topics.set_target
        if not topic:
            raise ParadoxMqttError("no set-target topic configured")
        client = self._client
        if client is None:
            _LOGGER.warning("Not connected, %s command for %s not sent", mode.value, topic)
            return payload
        try:
            info = client.publish(topic, payload, qos=self.settings.qos, retain=self.settings.retain)
            if info.rc != mqtt.MQTT_ERR_SUCCESS:
                _LOGGER.warning("Publish %r to %s failed (rc=%s)", payload, topic, info.rc)
            else:
                _LOGGER.debug("published %r to %s (qos=%s retain=%s)", payload, topic, self.settings.qos, self.settings.retain)
        except Exception:
            _LOGGER.exception("Publish %r to %s failed", payload, topic)
        return payload

    async def async_disarm(self) -> str:
        return await self.async_arm(SecuritySystemMode.DISARMED)

    # ---------- settings ----------
    async def async_put_setting(self, key: str, value: Any) -> None:
        await self.async_put_settings({key: value})

    async def async_put_settings(self, values: Dict[str, Any]) -> None:
        """Write settings and apply them; a sensor-only change keeps the connection."""
        sensors_only = True
        for key, value in values.items():
            changed = apply_setting(self.store, key, value)
            if not changed and not key.startswith(("new.", "sensor.")):
                sensors_only = False
        if sensors_only:
            await self.async_reload_sensors()
        else:
            await self.async_reconfigure()

    # ---------- diagnostics ----------
    def dump_state(self) -> Dict[str, Any]:
        return {
            "connected": self._connected,
            "broker_url": self.settings.broker_url,
            "subscriptions": list(self._subscriptions),
            "discovery_postponed": self.reconciler.postponed,
            "panel": self.panel.snapshot(),
            "sensors": {nid: dev.snapshot() for nid, dev in self.reconciler.devices.items()},
        }
