from __future__ import annotations

from homeassistant.components.sensor import SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.device_registry import DeviceInfo

from .const import DOMAIN, CONF_IEEE, CONF_NAME, MANUFACTURER, signal_action
from .hub import LexmanRemoteHub, get_remote_model


async def async_setup_entry(hass, entry: ConfigEntry, async_add_entities):
    hub: LexmanRemoteHub = hass.data[DOMAIN][entry.entry_id]
    async_add_entities([LexmanLastButtonSensor(hub, entry)])


class LexmanLastButtonSensor(SensorEntity):
    """Last canonical action the remote produced."""

    _attr_should_poll = False
    _attr_icon = "mdi:remote"

    def __init__(self, hub: LexmanRemoteHub, entry: ConfigEntry) -> None:
        self._hub = hub
        self._entry = entry
        self._attr_name = f"{entry.data[CONF_NAME]} last button"
        self._attr_unique_id = f"{entry.data[CONF_IEEE]}_last_button"

    @property
    def device_info(self) -> DeviceInfo:
        return DeviceInfo(
            identifiers={(DOMAIN, self._entry.data[CONF_IEEE])},
            name=self._entry.data[CONF_NAME],
            manufacturer=MANUFACTURER,
            model=get_remote_model(self._entry),
        )

    async def async_added_to_hass(self) -> None:
        self.async_on_remove(
            async_dispatcher_connect(self.hass, signal_action(self._hub.entry_id), self._handle_update)
        )

    @callback
    def _handle_update(self) -> None:
        self.async_write_ha_state()

    @property
    def native_value(self) -> str | None:
        action = self._hub.last_action
        return action.action_id if action is not None else None

    @property
    def extra_state_attributes(self) -> dict:
        action = self._hub.last_action
        return {
            "source": action.source_path if action is not None else None,
            "press_count": self._hub.press_count,
            "last_pressed_at": self._hub.last_pressed_at,
            "evidence": dict(action.raw_evidence) if action is not None else {},
        }
