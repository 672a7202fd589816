import logging

import pytest

from custom_components.lexman_remote.lib.decoder import RemoteDecoder
from custom_components.lexman_remote.lib.frame_handlers import (
    BaseFrameHandler,
    FrameHandlerRegistry,
    frame_handler_registry,
    register_handler,
)
from custom_components.lexman_remote.lib.frames import RawFrame
from custom_components.lexman_remote.lib.normalizer import COMMANDS
from custom_components.lexman_remote.lib.protocol_const import (
    CLUSTER_COLOR_CONTROL,
    CLUSTER_LEVEL_CONTROL,
    CLUSTER_MANUFACTURER,
    CLUSTER_ON_OFF,
    CLUSTER_SCENES,
    CLUSTERNAMES,
    DEFAULT_ENDPOINT_ID,
    MODEL_GENERIC_REMOTE,
    MODEL_ZBEK_26,
    MODELS,
    ActionId,
    ModelProfile,
    SourcePath,
    get_profile,
)


class Clock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _decoder(model: str, emitted: list, **kwargs) -> RemoteDecoder:
    return RemoteDecoder("remote-1", get_profile(model), emitted.append, clock=Clock(), **kwargs)


# ----------------------------------------------------------------------
# structured commands
# ----------------------------------------------------------------------
def test_on_off_commands() -> None:
    emitted: list = []
    decoder = _decoder(MODEL_ZBEK_26, emitted)

    decoder.capabilities.on_set_on()
    decoder.capabilities.on_set_off()

    assert [a.action_id for a in emitted] == [ActionId.ON, ActionId.OFF]
    assert all(a.source_path == SourcePath.ON_OFF for a in emitted)
    assert emitted[0].timestamp == 100.0


def test_level_step_commands() -> None:
    emitted: list = []
    decoder = _decoder(MODEL_GENERIC_REMOTE, emitted)

    decoder.capabilities.on_step(step_mode=0)
    decoder.capabilities.on_step(step_mode=1)

    assert [a.action_id for a in emitted] == [ActionId.BRIGHTNESS_UP, ActionId.BRIGHTNESS_DOWN]
    assert emitted[0].raw_evidence == {"command": "step", "args": {"step_mode": 0}}


def test_scene_recall_variant_a() -> None:
    emitted: list = []
    _decoder(MODEL_ZBEK_26, emitted).capabilities.on_recall_scene(scene_id=2)

    assert [a.action_id for a in emitted] == [ActionId.SCENE_2]
    assert emitted[0].source_path == SourcePath.SCENES


def test_scene_recall_variant_b() -> None:
    emitted: list = []
    _decoder(MODEL_GENERIC_REMOTE, emitted).capabilities.on_recall_scene(scene_id=2)

    assert [a.action_id for a in emitted] == [ActionId.SCENE_3]


def test_color_moves_emit_nothing() -> None:
    emitted: list = []
    decoder = _decoder(MODEL_GENERIC_REMOTE, emitted)

    assert decoder.capabilities.on_move_to_hue(hue=10) is None
    assert decoder.capabilities.on_move_to_saturation(saturation=10) is None
    assert emitted == []
    assert decoder.stats["no_action"] == 2


def test_capability_slots_follow_model() -> None:
    zbek26 = _decoder(MODEL_ZBEK_26, []).capabilities
    generic = _decoder(MODEL_GENERIC_REMOTE, []).capabilities

    assert zbek26.on_move_to_hue is None
    assert zbek26.on_move_to_saturation is None
    assert zbek26.on_recall_scene is not None
    assert set(generic.populated()) == {
        "on_set_on",
        "on_set_off",
        "on_step",
        "on_recall_scene",
        "on_move_to_hue",
        "on_move_to_saturation",
    }


def test_unsupported_command_is_dropped() -> None:
    emitted: list = []
    decoder = _decoder(MODEL_ZBEK_26, emitted)

    assert decoder.handle_command("toggle") is None
    assert decoder.stats["unknown"] == 1
    assert emitted == []


def test_bad_command_arguments_are_dropped() -> None:
    emitted: list = []
    decoder = _decoder(MODEL_ZBEK_26, emitted)

    assert decoder.handle_command("recall_scene", scene_id=7) is None
    assert decoder.handle_command("recall_scene", scene_id="not-a-number") is None
    assert decoder.stats["unknown"] == 1
    assert decoder.stats["decode_error"] == 1
    assert emitted == []


# ----------------------------------------------------------------------
# cluster exclusivity
# ----------------------------------------------------------------------
def test_inactive_frame_cluster_is_ignored() -> None:
    emitted: list = []
    decoder = _decoder(MODEL_GENERIC_REMOTE, emitted)

    frame = RawFrame(CLUSTER_MANUFACTURER, bytes([0, 0, 0, 0, 0, 0x0A]), received_at=0.0)
    assert decoder.handle_frame(frame) is None
    assert decoder.stats["inactive_cluster"] == 1
    assert emitted == []


def test_inactive_command_cluster_is_ignored() -> None:
    emitted: list = []
    decoder = _decoder(MODEL_ZBEK_26, emitted)

    assert decoder.handle_command("move_to_hue", hue=3) is None
    assert decoder.stats["inactive_cluster"] == 1


@pytest.mark.parametrize("model", MODELS)
def test_every_cluster_has_at_most_one_decode_path(model: str) -> None:
    decoder = _decoder(model, [])
    profile = decoder.profile

    for cluster_id in CLUSTERNAMES:
        frame_path = cluster_id in profile.frame_clusters and (
            frame_handler_registry.first_for(DEFAULT_ENDPOINT_ID, cluster_id) is not None
        )
        command_path = any(
            getattr(decoder.capabilities, slot) is not None
            for slot, command_cluster, _source in COMMANDS.values()
            if command_cluster == cluster_id
        )
        assert not (frame_path and command_path), CLUSTERNAMES[cluster_id]


def test_color_press_reported_both_ways_emits_once_on_frame_model() -> None:
    """ZHA reports a color press both as the raw frame and as a parsed command."""

    emitted: list = []
    decoder = _decoder(MODEL_ZBEK_26, emitted)

    decoder.handle_frame(RawFrame(CLUSTER_COLOR_CONTROL, bytes([0x03]), command_id=76, received_at=0.0))
    decoder.handle_command("step", step_mode=0)
    decoder.handle_command("move_to_hue", hue=0)

    assert [(a.action_id, a.source_path) for a in emitted] == [
        (ActionId.BRIGHTNESS_UP, SourcePath.COLOR_CONTROL),
        (ActionId.BRIGHTNESS_UP, SourcePath.LEVEL_CONTROL),
    ]
    assert decoder.stats["inactive_cluster"] == 1


def test_color_frames_ignored_on_command_model() -> None:
    emitted: list = []
    decoder = _decoder(MODEL_GENERIC_REMOTE, emitted)

    decoder.handle_frame(RawFrame(CLUSTER_COLOR_CONTROL, bytes([0x01, 0x05, 0x02, 0x01]), received_at=0.0))
    decoder.handle_command("move_to_hue", hue=0)

    assert emitted == []
    assert decoder.stats["inactive_cluster"] == 1
    assert decoder.stats["no_action"] == 1


def test_custom_profile_routes_each_cluster_once() -> None:
    profile = ModelProfile(
        name="test",
        frame_clusters=frozenset({CLUSTER_COLOR_CONTROL}),
        command_clusters=frozenset({CLUSTER_ON_OFF, CLUSTER_LEVEL_CONTROL, CLUSTER_SCENES}),
    )
    emitted: list = []
    decoder = RemoteDecoder("remote-2", profile, emitted.append)

    assert decoder.capabilities.on_move_to_hue is None
    decoder.handle_frame(RawFrame(CLUSTER_COLOR_CONTROL, bytes([0x00]), command_id=4, received_at=0.0))
    assert [a.action_id for a in emitted] == [ActionId.COLOR_DOWN]


# ----------------------------------------------------------------------
# error boundary and bookkeeping
# ----------------------------------------------------------------------
def test_unexpected_handler_error_is_contained(caplog) -> None:
    registry = FrameHandlerRegistry()

    @register_handler(clusters=(CLUSTER_COLOR_CONTROL,), registry=registry)
    class Exploding(BaseFrameHandler):
        def handle(self, ctx):
            return ctx.frame.payload[42]

    emitted: list = []
    decoder = RemoteDecoder("remote-1", get_profile(MODEL_ZBEK_26), emitted.append, registry=registry)

    with caplog.at_level(logging.WARNING, logger="lexman.decoder"):
        result = decoder.handle_frame(RawFrame(CLUSTER_COLOR_CONTROL, b"\x01", received_at=0.0))

    assert result is None
    assert emitted == []
    assert decoder.stats["decode_error"] == 1
    assert "IndexError" in caplog.text
    assert "'payload': '01'" in caplog.text


def test_unhandled_active_cluster() -> None:
    decoder = RemoteDecoder("remote-1", get_profile(MODEL_ZBEK_26), registry=FrameHandlerRegistry())
    assert decoder.handle_frame(RawFrame(CLUSTER_COLOR_CONTROL, b"\x03", received_at=0.0)) is None
    assert decoder.stats["unhandled"] == 1


def test_press_bookkeeping() -> None:
    emitted: list = []
    decoder = _decoder(MODEL_ZBEK_26, emitted)

    decoder.capabilities.on_set_on()
    decoder.handle_frame(RawFrame(CLUSTER_MANUFACTURER, bytes([0, 0, 0, 0, 0, 0x0C]), received_at=5.0))

    assert decoder.press_count == 2
    assert decoder.stats["emitted"] == 2
    assert decoder.last_action.action_id == ActionId.SCENE_3
    assert decoder.last_action.timestamp == 5.0


def test_actions_without_sink_still_count_presses() -> None:
    decoder = RemoteDecoder("remote-1", get_profile(MODEL_ZBEK_26))
    action = decoder.handle_command("set_off")

    assert action.action_id == ActionId.OFF
    assert decoder.press_count == 1
    assert decoder.stats["emitted"] == 0


def test_reset_and_window_change() -> None:
    emitted: list = []
    decoder = _decoder(MODEL_ZBEK_26, emitted)

    def _press(identifier: int, at: float) -> str:
        frame = RawFrame(CLUSTER_COLOR_CONTROL, bytes([0x01, identifier, 0x02, 0x00]), received_at=at)
        return decoder.handle_frame(frame).action_id

    assert _press(5, 0.0) == ActionId.GREEN_LEFT
    decoder.reset()
    assert _press(6, 0.1) == ActionId.GREEN_RIGHT

    decoder.set_recency_window(100)
    assert decoder.resolver.window_ms == 100
    assert _press(5, 0.2) == ActionId.GREEN_LEFT
    assert _press(6, 0.35) == ActionId.GREEN_RIGHT


def test_snapshot() -> None:
    decoder = _decoder(MODEL_ZBEK_26, [])
    decoder.handle_command("set_on")

    snap = decoder.snapshot()
    assert snap["model"] == MODEL_ZBEK_26
    assert snap["frame_clusters"] == ["ADEO_MANUFACTURER", "COLOR_CONTROL"]
    assert snap["command_clusters"] == ["LEVEL_CONTROL", "ON_OFF", "SCENES"]
    assert snap["recency_window_ms"] == 2000
    assert snap["press_count"] == 1
    assert snap["last_action"]["action"] == ActionId.ON
    assert snap["stats"] == {"emitted": 1}
