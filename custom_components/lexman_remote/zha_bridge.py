"""Feed ZHA ``zha_event`` traffic for one remote into its decoder.

ZHA reports every cluster command a remote sends as a ``zha_event`` with the
device IEEE, the endpoint/cluster, the ZCL command name and its arguments.
Clusters the model decodes from raw frames are rebuilt into a ``RawFrame``;
clusters it treats as structured commands are dispatched to the matching
``CapabilitySet`` slot.

ZHA has already parsed the ZCL frame by the time the event fires, so the
rebuilt payload is the argument list packed one byte per argument. That is
exact for the vendor cluster and for the legacy color-control shape, where
every argument fits in a byte.
"""
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from homeassistant.core import Event, HomeAssistant, callback

from .const import ZHA_EVENT
from .lib.frames import RawFrame
from .lib.normalizer import COMMANDS
from .lib.protocol_const import CLUSTER_COLOR_CONTROL, COLOR_COMMAND_IDS, DEFAULT_ENDPOINT_ID

if TYPE_CHECKING:
    from .hub import LexmanRemoteHub

_LOGGER = logging.getLogger(__name__)

# ZHA command name → decoder command
ZHA_COMMANDS = {
    "on": "set_on",
    "off": "set_off",
    "step": "step",
    "step_with_on_off": "step",
    "recall": "recall_scene",
    "move_to_hue": "move_to_hue",
    "move_to_saturation": "move_to_saturation",
}


def normalize_ieee(value: str) -> str:
    """``00:0D:6F...``, ``000d6f...`` and ``00-0d-6f...`` all become ``00:0d:6f:...``."""

    digits = "".join(ch for ch in str(value) if ch not in ":- ").lower()
    if len(digits) != 16 or any(ch not in "0123456789abcdef" for ch in digits):
        raise ValueError(f"invalid IEEE address {value!r}")
    return ":".join(digits[i : i + 2] for i in range(0, 16, 2))


def _payload_from_event(data: Mapping[str, Any]) -> bytes:
    raw = data.get("payload")
    if isinstance(raw, str):
        return bytes.fromhex(raw.replace(":", " "))
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)

    args = data.get("args")
    if isinstance(args, (list, tuple)):
        try:
            return bytes(int(a) & 0xFF for a in args)
        except (TypeError, ValueError) as err:
            raise ValueError(f"non-numeric argument in {list(args)!r}") from err
    return b""


def _command_id_from_event(data: Mapping[str, Any], cluster_id: int) -> Optional[int]:
    command_id = data.get("command_id")
    if isinstance(command_id, int):
        return command_id
    if cluster_id == CLUSTER_COLOR_CONTROL:
        return COLOR_COMMAND_IDS.get(str(data.get("command", "")))
    return None


def frame_from_event(data: Mapping[str, Any], received_at: Optional[float] = None) -> RawFrame:
    """Rebuild a raw frame from a ``zha_event`` payload."""

    cluster_id = int(data["cluster_id"])
    return RawFrame(
        cluster_id=cluster_id,
        payload=_payload_from_event(data),
        endpoint_id=int(data.get("endpoint_id", DEFAULT_ENDPOINT_ID)),
        command_id=_command_id_from_event(data, cluster_id),
        received_at=time.monotonic() if received_at is None else received_at,
    )


def command_from_event(data: Mapping[str, Any]) -> Optional[tuple[str, dict[str, Any]]]:
    """Map a ZHA command onto ``(decoder command, kwargs)``; ``None`` if unmapped."""

    command = ZHA_COMMANDS.get(str(data.get("command", "")))
    if command is None:
        return None

    params: Mapping[str, Any] = data.get("params") or {}
    args = data.get("args") or []

    if command == "step":
        kwargs: dict[str, Any] = {"step_mode": params.get("step_mode", args[0] if args else None)}
        if "mode" in params:
            kwargs["mode"] = params["mode"]
        return command, kwargs

    if command == "recall_scene":
        # ZCL recall is (group_id, scene_id)
        scene_id = params.get("scene_id", args[1] if len(args) > 1 else None)
        return command, {"scene_id": scene_id}

    if command in ("move_to_hue", "move_to_saturation"):
        return command, dict(params)

    return command, {}


def handle_zha_event(hub: "LexmanRemoteHub", data: Mapping[str, Any]) -> None:
    """Route one ``zha_event`` for ``hub``'s remote into its decoder."""

    try:
        cluster_id = int(data["cluster_id"])
    except (KeyError, TypeError, ValueError):
        _LOGGER.debug("[%s] zha_event without cluster_id: %s", hub.entry_id, data)
        return

    if cluster_id in hub.profile.frame_clusters:
        try:
            frame = frame_from_event(data)
        except (TypeError, ValueError) as err:
            _LOGGER.debug("[%s] unusable frame payload in %s: %s", hub.entry_id, data, err)
            return
        hub.handle_frame(frame)
        return

    if cluster_id not in hub.profile.command_clusters:
        _LOGGER.debug("[%s] cluster 0x%04X not active on %s", hub.entry_id, cluster_id, hub.model)
        return

    mapped = command_from_event(data)
    if mapped is None:
        _LOGGER.debug("[%s] no binding for ZHA command %r", hub.entry_id, data.get("command"))
        return

    command, kwargs = mapped
    slot = getattr(hub.capabilities, COMMANDS[command][0])
    if slot is None:
        _LOGGER.debug("[%s] %s has no %s slot", hub.entry_id, hub.model, command)
        return
    slot(**kwargs)


def async_subscribe_zha_events(hass: HomeAssistant, hub: "LexmanRemoteHub") -> Callable[[], None]:
    """Listen for ``zha_event`` from ``hub``'s remote. Returns the unsubscribe callable."""

    @callback
    def _handle(event: Event) -> None:
        data = event.data
        ieee = data.get("device_ieee")
        if not ieee:
            return
        try:
            if normalize_ieee(ieee) != hub.ieee:
                return
        except ValueError:
            return
        handle_zha_event(hub, data)

    return hass.bus.async_listen(ZHA_EVENT, _handle)
