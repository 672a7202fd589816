from __future__ import annotations

import logging
from typing import Optional

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import HomeAssistantError
import homeassistant.helpers.config_validation as cv

from .const import (
    ATTR_CLUSTER_ID,
    ATTR_COMMAND_ID,
    ATTR_ENDPOINT_ID,
    ATTR_ENTRY_ID,
    ATTR_PAYLOAD,
    CONF_RECENCY_WINDOW_MS,
    DEFAULT_RECENCY_WINDOW_MS,
    DOMAIN,
    PLATFORMS,
    SERVICE_DECODE_FRAME,
)
from .diagnostics import async_setup_diagnostics, async_teardown_diagnostics
from .hub import LexmanRemoteHub
from .lib.frames import RawFrame
from .lib.protocol_const import DEFAULT_ENDPOINT_ID

_LOGGER = logging.getLogger(__name__)


def _hex_payload(value) -> str:
    value = cv.string(value).replace(":", " ").strip()
    try:
        bytes.fromhex(value)
    except ValueError as err:
        raise vol.Invalid(f"payload is not hex: {value!r}") from err
    return value


DECODE_FRAME_SCHEMA = vol.Schema({
    vol.Required(ATTR_CLUSTER_ID): vol.All(vol.Coerce(int), vol.Range(min=0, max=0xFFFF)),
    vol.Required(ATTR_PAYLOAD): _hex_payload,
    vol.Optional(ATTR_ENDPOINT_ID, default=DEFAULT_ENDPOINT_ID): vol.All(
        vol.Coerce(int), vol.Range(min=0, max=0xFF)
    ),
    vol.Optional(ATTR_COMMAND_ID): vol.All(vol.Coerce(int), vol.Range(min=0, max=0xFF)),
    vol.Optional(ATTR_ENTRY_ID): cv.string,
})


def _hubs(hass: HomeAssistant) -> dict[str, LexmanRemoteHub]:
    return {
        key: value
        for key, value in hass.data.get(DOMAIN, {}).items()
        if isinstance(value, LexmanRemoteHub)
    }


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    async_setup_diagnostics(hass)

    hub = LexmanRemoteHub.from_entry(hass, entry)
    await hub.async_start()

    if not _hubs(hass):
        hass.services.async_register(
            DOMAIN,
            SERVICE_DECODE_FRAME,
            _async_handle_decode_frame,
            schema=DECODE_FRAME_SCHEMA,
        )

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = hub

    entry.async_on_unload(entry.add_update_listener(async_update_options))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    return True


async def async_update_options(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Called when user changes options in the UI."""
    hub: LexmanRemoteHub = hass.data[DOMAIN][entry.entry_id]

    await hub.async_apply_new_settings(
        recency_window_ms=entry.options.get(CONF_RECENCY_WINDOW_MS, DEFAULT_RECENCY_WINDOW_MS),
    )


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        hub = hass.data[DOMAIN].pop(entry.entry_id, None)
        if hub is not None:
            await hub.async_stop()
        if not _hubs(hass):
            hass.services.async_remove(DOMAIN, SERVICE_DECODE_FRAME)
            async_teardown_diagnostics(hass)
            hass.data.pop(DOMAIN, None)
    return unload_ok


async def _async_handle_decode_frame(call: ServiceCall) -> None:
    hass = call.hass
    hub = _async_resolve_hub_from_call(hass, call)
    if hub is None:
        raise HomeAssistantError("Could not resolve Lexman remote from service call")

    frame = RawFrame.from_hex(
        call.data[ATTR_CLUSTER_ID],
        call.data[ATTR_PAYLOAD],
        endpoint_id=call.data.get(ATTR_ENDPOINT_ID, DEFAULT_ENDPOINT_ID),
        command_id=call.data.get(ATTR_COMMAND_ID),
    )
    _LOGGER.debug("[%s] decode_frame service: %s", hub.entry_id, frame.describe())
    hub.handle_frame(frame)


def _async_resolve_hub_from_call(hass: HomeAssistant, call: ServiceCall) -> Optional[LexmanRemoteHub]:
    """entry_id → fallback to the single configured remote."""
    hubs = _hubs(hass)

    entry_id = call.data.get(ATTR_ENTRY_ID)
    if entry_id:
        return hubs.get(entry_id)

    if len(hubs) == 1:
        return next(iter(hubs.values()))

    return None
