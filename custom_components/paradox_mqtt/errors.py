"""Exceptions raised by the paradox_mqtt integration."""

from __future__ import annotations


class ParadoxMqttError(Exception):
    """Base class for integration errors."""


class SettingsError(ParadoxMqttError):
    """A stored setting could not be parsed."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


class BrokerUrlError(SettingsError):
    """The broker URL uses an unsupported scheme or is malformed."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__("brokerUrl", f"{message} ({url!r})")
        self.url = url
