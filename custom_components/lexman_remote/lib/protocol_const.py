"""Common protocol constants shared by the Lexman remote decoder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

# Zigbee endpoint every supported remote reports on
DEFAULT_ENDPOINT_ID = 1

# Cluster identifiers
CLUSTER_ON_OFF = 0x0006
CLUSTER_SCENES = 0x0005
CLUSTER_LEVEL_CONTROL = 0x0008
CLUSTER_COLOR_CONTROL = 0x0300
CLUSTER_MANUFACTURER = 0xFE00  # ADEO vendor-specific, 65024

CLUSTERNAMES: Dict[int, str] = {
    CLUSTER_ON_OFF: "ON_OFF",
    CLUSTER_SCENES: "SCENES",
    CLUSTER_LEVEL_CONTROL: "LEVEL_CONTROL",
    CLUSTER_COLOR_CONTROL: "COLOR_CONTROL",
    CLUSTER_MANUFACTURER: "ADEO_MANUFACTURER",
}


class ActionId:
    """Closed vocabulary of canonical button actions."""

    ON = "pressed_on"
    OFF = "pressed_off"
    BRIGHTNESS_UP = "pressed_brightness_up"
    BRIGHTNESS_DOWN = "pressed_brightness_down"
    SCENE_1 = "pressed_scene_1"
    SCENE_2 = "pressed_scene_2"
    SCENE_3 = "pressed_scene_3"
    SCENE_4 = "pressed_scene_4"
    COLOR_LEFT = "pressed_color_left"
    COLOR_RIGHT = "pressed_color_right"
    COLOR_UP = "pressed_color_up"
    COLOR_DOWN = "pressed_color_down"
    COLOR_CENTER = "pressed_color_center"
    GREEN_LEFT = "pressed_green_left"
    GREEN_RIGHT = "pressed_green_right"
    GREEN_UP = "pressed_green_up"
    GREEN_DOWN = "pressed_green_down"
    RED_UP = "pressed_red_up"
    RED_DOWN = "pressed_red_down"


ALL_ACTIONS: FrozenSet[str] = frozenset(
    v for k, v in ActionId.__dict__.items() if not k.startswith("_") and isinstance(v, str)
)

MAX_SCENE_INDEX = 4


def scene_action(index: int) -> str:
    """Return ``pressed_scene_<index>``; raise ``ValueError`` outside 1..4."""

    action = f"pressed_scene_{index}"
    if action not in ALL_ACTIONS:
        raise ValueError(f"scene index {index} has no canonical action")
    return action


class DecodePath:
    """Which frame shape produced a piece of button evidence."""

    MANUFACTURER = "manufacturer"
    COLOR_CONTROL_STRUCTURED = "color_control_structured"
    COLOR_CONTROL_LEGACY = "color_control_legacy"


class SourcePath:
    """Where a canonical action originated."""

    MANUFACTURER = "manufacturer"
    COLOR_CONTROL = "color_control"
    ON_OFF = "on_off"
    LEVEL_CONTROL = "level_control"
    SCENES = "scenes"


# ---------------------------------------------------------------------------
# Manufacturer cluster (0xFE00)
# ---------------------------------------------------------------------------
MANUFACTURER_MIN_LENGTH = 6
MANUFACTURER_BUTTON_OFFSET = 5
MANUFACTURER_AUX_OFFSET = 6
MANUFACTURER_AUX_FALLBACK_OFFSET = 1

# button id byte → scene index
MANUFACTURER_SCENE_MAP: Dict[int, int] = {0x0A: 1, 0x0B: 2, 0x0C: 3, 0x0D: 4}


# ---------------------------------------------------------------------------
# Color control cluster (0x0300)
# ---------------------------------------------------------------------------
STRUCTURED_MARKER = 0x01
STRUCTURED_MIN_LENGTH = 4

PARAM_GREEN_LEFT_RIGHT = 0x02
PARAM_GREEN_UP_DOWN = 0x05
PARAM_RED_UP_DOWN = 0x4C

CONTEXT_PRIMARY = 0x01
CONTEXT_SECONDARY = 0x03

# (parameter, context) → action; authoritative when it matches
STRUCTURED_CONTEXT_TABLE: Dict[Tuple[int, int], str] = {
    (PARAM_GREEN_LEFT_RIGHT, CONTEXT_PRIMARY): ActionId.GREEN_RIGHT,
    (PARAM_GREEN_LEFT_RIGHT, CONTEXT_SECONDARY): ActionId.GREEN_LEFT,
    (PARAM_GREEN_UP_DOWN, CONTEXT_PRIMARY): ActionId.GREEN_UP,
    (PARAM_GREEN_UP_DOWN, CONTEXT_SECONDARY): ActionId.GREEN_DOWN,
    (PARAM_RED_UP_DOWN, CONTEXT_PRIMARY): ActionId.RED_UP,
    (PARAM_RED_UP_DOWN, CONTEXT_SECONDARY): ActionId.RED_DOWN,
}

# parameter → (odd identifier, even identifier)
PARITY_PAIRS: Dict[int, Tuple[str, str]] = {
    PARAM_GREEN_LEFT_RIGHT: (ActionId.GREEN_LEFT, ActionId.GREEN_RIGHT),
    PARAM_GREEN_UP_DOWN: (ActionId.GREEN_UP, ActionId.GREEN_DOWN),
    PARAM_RED_UP_DOWN: (ActionId.RED_UP, ActionId.RED_DOWN),
}

# parameters whose parity is unreliable and needs the recency cache
STICKY_PARAMETERS: FrozenSet[int] = frozenset({PARAM_GREEN_LEFT_RIGHT})

DIRECTIONS_POSITIVE: FrozenSet[int] = frozenset({0x02, 0x03})
DIRECTIONS_NEGATIVE: FrozenSet[int] = frozenset({0x00, 0x01})
KNOWN_DIRECTIONS = DIRECTIONS_POSITIVE | DIRECTIONS_NEGATIVE

CMD_STEP_COLOR_TEMP = 76  # 0x4C
CMD_STEP_SATURATION = 5
CMD_STEP_HUE = 2
CMD_MOVE_TO_SATURATION = 3
CMD_MOVE_SATURATION = 4
CMD_MOVE_TO_HUE_AND_SATURATION = 6

# command id → (positive direction, negative direction); None for negative
# means the direction byte is ignored
LEGACY_COMMAND_TABLE: Dict[int, Tuple[str, Optional[str]]] = {
    CMD_STEP_COLOR_TEMP: (ActionId.BRIGHTNESS_UP, ActionId.BRIGHTNESS_DOWN),
    CMD_STEP_SATURATION: (ActionId.BRIGHTNESS_UP, ActionId.BRIGHTNESS_DOWN),
    CMD_STEP_HUE: (ActionId.COLOR_RIGHT, ActionId.COLOR_LEFT),
    CMD_MOVE_TO_SATURATION: (ActionId.COLOR_RIGHT, ActionId.COLOR_LEFT),
    CMD_MOVE_SATURATION: (ActionId.COLOR_UP, ActionId.COLOR_DOWN),
    CMD_MOVE_TO_HUE_AND_SATURATION: (ActionId.COLOR_CENTER, None),
}
# unknown, zero or missing command ids
LEGACY_DEFAULT_PAIR: Tuple[str, str] = (ActionId.BRIGHTNESS_UP, ActionId.BRIGHTNESS_DOWN)

# ZCL color control command names as reported by ZHA
COLOR_COMMAND_IDS: Dict[str, int] = {
    "move_to_hue": 0x00,
    "move_hue": 0x01,
    "step_hue": 0x02,
    "move_to_saturation": 0x03,
    "move_saturation": 0x04,
    "step_saturation": 0x05,
    "move_to_hue_and_saturation": 0x06,
    "step_color_temp": 0x4C,
}


# ---------------------------------------------------------------------------
# Recency window
# ---------------------------------------------------------------------------
RECENCY_WINDOW_MS = 2000


# ---------------------------------------------------------------------------
# Model profiles
# ---------------------------------------------------------------------------
class SceneNumbering:
    """How a Scenes ``recall`` is numbered on a given model."""

    DIRECT = "direct"  # pressed_scene_<sceneId>
    OFFSET_BOUNDED = "offset_bounded"  # pressed_scene_<min(sceneId + 1, 4)>


@dataclass(frozen=True)
class ModelProfile:
    """Which clusters a model decodes and how it numbers scenes."""

    name: str
    frame_clusters: FrozenSet[int] = field(default_factory=frozenset)
    command_clusters: FrozenSet[int] = field(default_factory=frozenset)
    scene_numbering: str = SceneNumbering.DIRECT

    def __post_init__(self) -> None:
        overlap = self.frame_clusters & self.command_clusters
        if overlap:
            names = sorted(CLUSTERNAMES.get(c, hex(c)) for c in overlap)
            raise ValueError(f"{self.name}: clusters decoded twice: {', '.join(names)}")
        if self.scene_numbering not in (SceneNumbering.DIRECT, SceneNumbering.OFFSET_BOUNDED):
            raise ValueError(f"{self.name}: unknown scene numbering {self.scene_numbering!r}")


MODEL_ZBEK_26 = "ZBEK-26"
MODEL_GENERIC_REMOTE = "generic-remote"

MODEL_PROFILES: Dict[str, ModelProfile] = {
    MODEL_ZBEK_26: ModelProfile(
        name=MODEL_ZBEK_26,
        frame_clusters=frozenset({CLUSTER_MANUFACTURER, CLUSTER_COLOR_CONTROL}),
        command_clusters=frozenset({CLUSTER_ON_OFF, CLUSTER_LEVEL_CONTROL, CLUSTER_SCENES}),
        scene_numbering=SceneNumbering.DIRECT,
    ),
    MODEL_GENERIC_REMOTE: ModelProfile(
        name=MODEL_GENERIC_REMOTE,
        frame_clusters=frozenset(),
        command_clusters=frozenset(
            {CLUSTER_ON_OFF, CLUSTER_LEVEL_CONTROL, CLUSTER_SCENES, CLUSTER_COLOR_CONTROL}
        ),
        scene_numbering=SceneNumbering.OFFSET_BOUNDED,
    ),
}

MODELS: Tuple[str, ...] = tuple(MODEL_PROFILES)


def get_profile(model: str) -> ModelProfile:
    try:
        return MODEL_PROFILES[model]
    except KeyError:
        raise ValueError(f"unsupported remote model {model!r}") from None


__all__ = [
    "DEFAULT_ENDPOINT_ID",
    "CLUSTER_ON_OFF",
    "CLUSTER_SCENES",
    "CLUSTER_LEVEL_CONTROL",
    "CLUSTER_COLOR_CONTROL",
    "CLUSTER_MANUFACTURER",
    "CLUSTERNAMES",
    "ActionId",
    "ALL_ACTIONS",
    "MAX_SCENE_INDEX",
    "scene_action",
    "DecodePath",
    "SourcePath",
    "MANUFACTURER_SCENE_MAP",
    "STRUCTURED_CONTEXT_TABLE",
    "PARITY_PAIRS",
    "STICKY_PARAMETERS",
    "LEGACY_COMMAND_TABLE",
    "LEGACY_DEFAULT_PAIR",
    "COLOR_COMMAND_IDS",
    "RECENCY_WINDOW_MS",
    "SceneNumbering",
    "ModelProfile",
    "MODEL_ZBEK_26",
    "MODEL_GENERIC_REMOTE",
    "MODEL_PROFILES",
    "MODELS",
    "get_profile",
]
