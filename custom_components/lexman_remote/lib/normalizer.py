"""Structured cluster commands → canonical actions.

These commands arrive already parsed by the capability-binding layer, so they
map directly onto actions with no resolver or cache in between.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Optional, Tuple

from .errors import UnknownIdentifier
from .protocol_const import (
    CLUSTER_COLOR_CONTROL,
    CLUSTER_LEVEL_CONTROL,
    CLUSTER_ON_OFF,
    CLUSTER_SCENES,
    MAX_SCENE_INDEX,
    ActionId,
    ModelProfile,
    SceneNumbering,
    SourcePath,
    scene_action,
)

log = logging.getLogger("lexman.decoder")


@dataclass
class CapabilitySet:
    """Optional callback slots invoked by the capability-binding layer.

    The binding layer calls whichever slots are populated; an empty slot means
    the device does not handle that command.
    """

    on_set_on: Optional[Callable[[], Any]] = None
    on_set_off: Optional[Callable[[], Any]] = None
    on_step: Optional[Callable[..., Any]] = None
    on_recall_scene: Optional[Callable[..., Any]] = None
    on_move_to_hue: Optional[Callable[..., Any]] = None
    on_move_to_saturation: Optional[Callable[..., Any]] = None

    def populated(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is not None]


# command → (slot, cluster, source path)
COMMANDS: Dict[str, Tuple[str, int, str]] = {
    "set_on": ("on_set_on", CLUSTER_ON_OFF, SourcePath.ON_OFF),
    "set_off": ("on_set_off", CLUSTER_ON_OFF, SourcePath.ON_OFF),
    "step": ("on_step", CLUSTER_LEVEL_CONTROL, SourcePath.LEVEL_CONTROL),
    "recall_scene": ("on_recall_scene", CLUSTER_SCENES, SourcePath.SCENES),
    "move_to_hue": ("on_move_to_hue", CLUSTER_COLOR_CONTROL, SourcePath.COLOR_CONTROL),
    "move_to_saturation": ("on_move_to_saturation", CLUSTER_COLOR_CONTROL, SourcePath.COLOR_CONTROL),
}


def _step_mode(step_mode: Any, mode: Any) -> int:
    """Normalise ``stepMode`` (0 = up) from either an int or a ``mode`` string."""

    if step_mode is not None:
        if isinstance(step_mode, str):
            return 0 if "up" in step_mode.lower() else 1
        return int(step_mode)
    if isinstance(mode, str):
        return 0 if mode.lower() == "up" else 1
    raise UnknownIdentifier("level step without step_mode or mode")


class ClusterCommandNormalizer:
    def __init__(self, profile: ModelProfile) -> None:
        self.profile = profile

    def normalize(self, command: str, **args: Any) -> Optional[str]:
        """Dispatch ``command`` to its mapping; ``None`` means no action is defined."""

        if command not in COMMANDS:
            raise UnknownIdentifier(f"unsupported cluster command {command!r}")
        return getattr(self, command)(**args)

    def set_on(self) -> str:
        return ActionId.ON

    def set_off(self) -> str:
        return ActionId.OFF

    def step(self, step_mode: Any = None, *, mode: Any = None, **_: Any) -> str:
        if _step_mode(step_mode, mode) == 0:
            return ActionId.BRIGHTNESS_UP
        return ActionId.BRIGHTNESS_DOWN

    def recall_scene(self, scene_id: Any = None, **_: Any) -> str:
        if scene_id is None:
            raise UnknownIdentifier("recall_scene without scene_id")
        scene_id = int(scene_id)
        if self.profile.scene_numbering == SceneNumbering.OFFSET_BOUNDED:
            index = min(scene_id + 1, MAX_SCENE_INDEX)
        else:
            index = scene_id
        try:
            return scene_action(index)
        except ValueError:
            raise UnknownIdentifier(
                f"scene {scene_id} has no action under {self.profile.scene_numbering} numbering"
            ) from None

    def move_to_hue(self, **payload: Any) -> None:
        # no action is defined for hue moves; logged for diagnostics only
        log.info("[CMD] %s move_to_hue %s (no action)", self.profile.name, payload)
        return None

    def move_to_saturation(self, **payload: Any) -> None:
        log.info("[CMD] %s move_to_saturation %s (no action)", self.profile.name, payload)
        return None


__all__ = ["CapabilitySet", "ClusterCommandNormalizer", "COMMANDS"]
