from __future__ import annotations
from typing import Any, Dict, Optional
from homeassistant.components.alarm_control_panel import (  # type: ignore
    AlarmControlPanelEntity,
    AlarmControlPanelEntityFeature,
    AlarmControlPanelState,
)
from homeassistant.exceptions import HomeAssistantError  # type: ignore
from ..const import PANEL_NATIVE_ID
from ..errors import ParadoxMqttError
from ..models import SecuritySystemMode
from .base import BridgeEntity


_STATES = {
    SecuritySystemMode.DISARMED: AlarmControlPanelState.DISARMED,
    SecuritySystemMode.HOME_ARMED: AlarmControlPanelState.ARMED_HOME,
    SecuritySystemMode.AWAY_ARMED: AlarmControlPanelState.ARMED_AWAY,
    SecuritySystemMode.NIGHT_ARMED: AlarmControlPanelState.ARMED_NIGHT,
}


class ParadoxAlarmPanel(BridgeEntity, AlarmControlPanelEntity):
    """The panel; shows confirmed state only, commands are fire-and-forget."""

    _key = "alarm"
    _attr_name = None
    _attr_code_arm_required = False
    _attr_supported_features = (
        AlarmControlPanelEntityFeature.ARM_HOME
        | AlarmControlPanelEntityFeature.ARM_AWAY
        | AlarmControlPanelEntityFeature.ARM_NIGHT
    )

    def __init__(self, bridge, entry, name: str) -> None:
        super().__init__(bridge, entry, PANEL_NATIVE_ID, name, model="panel")

    @property
    def alarm_state(self) -> Optional[AlarmControlPanelState]:
        state = self._bridge.panel.state
        if state.triggered:
            return AlarmControlPanelState.TRIGGERED
        return _STATES.get(state.mode)

    @property
    def extra_state_attributes(self) -> Dict[str, Any]:
        panel = self._bridge.panel
        return {
            "pending_target": panel.pending_target.value if panel.pending_target else None,
            "online": panel.online,
        }

    async def async_alarm_disarm(self, code: str | None = None) -> None:
        await self._command(SecuritySystemMode.DISARMED)

    async def async_alarm_arm_home(self, code: str | None = None) -> None:
        await self._command(SecuritySystemMode.HOME_ARMED)

    async def async_alarm_arm_away(self, code: str | None = None) -> None:
        await self._command(SecuritySystemMode.AWAY_ARMED)

    async def async_alarm_arm_night(self, code: str | None = None) -> None:
        await self._command(SecuritySystemMode.NIGHT_ARMED)

    async def _command(self, mode: SecuritySystemMode) -> None:
        try:
            await self._bridge.async_arm(mode)
        except ParadoxMqttError as err:
            raise HomeAssistantError(f"Cannot send {mode.value}: {err}") from err
        finally:
            # pending target shows up in the attributes; the state waits for the panel
            self.async_write_ha_state()
