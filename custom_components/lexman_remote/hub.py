from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.util import dt as dt_util

from .const import (
    CONF_IEEE,
    CONF_MODEL,
    CONF_NAME,
    CONF_RECENCY_WINDOW_MS,
    DEFAULT_RECENCY_WINDOW_MS,
    EVENT_BUTTON_PRESSED,
    signal_action,
)
from .lib.decoder import RemoteDecoder
from .lib.frames import CanonicalAction, RawFrame
from .lib.protocol_const import ModelProfile, get_profile
from .zha_bridge import async_subscribe_zha_events

_LOGGER = logging.getLogger(__name__)


def get_remote_model(entry: ConfigEntry) -> str:
    """Return the configured model for this remote."""

    return entry.data[CONF_MODEL]


class LexmanRemoteHub:
    """One paired remote: its decoder, its ZHA subscription and its last press."""

    def __init__(
        self,
        hass: HomeAssistant,
        entry_id: str,
        name: str,
        ieee: str,
        model: str,
        recency_window_ms: int = DEFAULT_RECENCY_WINDOW_MS,
    ) -> None:
        self.hass = hass
        self.entry_id = entry_id
        self.name = name
        self.ieee = ieee
        self.model = model
        self.profile: ModelProfile = get_profile(model)

        self.last_action: Optional[CanonicalAction] = None
        self.last_pressed_at: Optional[str] = None

        self._unsub_bridge: Optional[Callable[[], None]] = None

        _LOGGER.debug(
            "[%s] Creating decoder for %s (%s, window=%sms)",
            self.entry_id,
            name,
            model,
            recency_window_ms,
        )
        self.decoder = RemoteDecoder(
            ieee,
            self.profile,
            self._on_action,
            window_ms=recency_window_ms,
        )

    @classmethod
    def from_entry(cls, hass: HomeAssistant, entry: ConfigEntry) -> "LexmanRemoteHub":
        return cls(
            hass=hass,
            entry_id=entry.entry_id,
            name=entry.data[CONF_NAME],
            ieee=entry.data[CONF_IEEE],
            model=entry.data[CONF_MODEL],
            recency_window_ms=entry.options.get(CONF_RECENCY_WINDOW_MS, DEFAULT_RECENCY_WINDOW_MS),
        )

    @property
    def press_count(self) -> int:
        return self.decoder.press_count

    async def async_start(self) -> None:
        _LOGGER.debug("[%s] Subscribing to ZHA events for %s", self.entry_id, self.ieee)
        self._unsub_bridge = async_subscribe_zha_events(self.hass, self)

    async def async_stop(self) -> None:
        _LOGGER.debug("[%s] Stopping; clearing recency cache", self.entry_id)
        if self._unsub_bridge is not None:
            self._unsub_bridge()
            self._unsub_bridge = None
        self.decoder.reset()

    async def async_apply_new_settings(self, *, recency_window_ms: int) -> None:
        if recency_window_ms == self.decoder.resolver.window_ms:
            return

        _LOGGER.debug(
            "[%s] Updating recency window to %sms",
            self.entry_id,
            recency_window_ms,
        )
        self.decoder.set_recency_window(recency_window_ms)

    # ------------------------------------------------------------------
    # inbound
    # ------------------------------------------------------------------
    def handle_frame(self, frame: RawFrame) -> Optional[CanonicalAction]:
        return self.decoder.handle_frame(frame)

    def handle_command(self, command: str, **args: Any) -> Optional[CanonicalAction]:
        return self.decoder.handle_command(command, **args)

    @property
    def capabilities(self):
        return self.decoder.capabilities

    # ------------------------------------------------------------------
    # decoder → HA
    # ------------------------------------------------------------------
    def _on_action(self, action: CanonicalAction) -> None:
        """Sink for the decoder. Runs on the event loop."""

        self.last_action = action
        self.last_pressed_at = dt_util.utcnow().isoformat()

        data = {
            "entry_id": self.entry_id,
            "name": self.name,
            "ieee": self.ieee,
            "action": action.action_id,
            "source": action.source_path,
            "evidence": dict(action.raw_evidence),
        }
        _LOGGER.debug("[%s] %s: %s", self.entry_id, EVENT_BUTTON_PRESSED, action.action_id)
        self.hass.bus.async_fire(EVENT_BUTTON_PRESSED, data)
        async_dispatcher_send(self.hass, signal_action(self.entry_id))

    def get_state(self) -> dict[str, Any]:
        """Snapshot used by diagnostics and the sensor attributes."""

        snap = self.decoder.snapshot()
        snap.update(
            {
                "name": self.name,
                "ieee": self.ieee,
                "last_pressed_at": self.last_pressed_at,
                "last_pressed_age_s": (
                    round(time.monotonic() - self.last_action.timestamp, 1)
                    if self.last_action is not None
                    else None
                ),
                "subscribed": self._unsub_bridge is not None,
            }
        )
        return snap
