import logging

from custom_components.lexman_remote.lib.emitter import ActionEmitter
from custom_components.lexman_remote.lib.frames import CanonicalAction
from custom_components.lexman_remote.lib.protocol_const import ActionId, SourcePath


def _action() -> CanonicalAction:
    return CanonicalAction(
        action_id=ActionId.SCENE_1,
        source_path=SourcePath.MANUFACTURER,
        device_ref="remote-1",
        timestamp=1.0,
        raw_evidence={"button_id": 0x0A},
    )


def test_emit_forwards_once() -> None:
    received = []
    emitter = ActionEmitter(received.append)
    action = _action()

    assert emitter.emit(action) is True
    assert received == [action]
    assert emitter.emitted == 1


def test_emit_without_sink() -> None:
    emitter = ActionEmitter()
    assert emitter.emit(_action()) is False
    assert emitter.emitted == 0


def test_sink_failure_is_logged_not_raised(caplog) -> None:
    def _broken(_action):
        raise RuntimeError("automation engine down")

    emitter = ActionEmitter(_broken)
    with caplog.at_level(logging.ERROR, logger="lexman.decoder"):
        assert emitter.emit(_action()) is False

    assert "sink failed" in caplog.text
    assert emitter.emitted == 0


def test_set_sink_replaces_target() -> None:
    first, second = [], []
    emitter = ActionEmitter(first.append)
    emitter.set_sink(second.append)
    emitter.emit(_action())

    assert first == []
    assert len(second) == 1


def test_event_data_carries_device_and_evidence() -> None:
    data = _action().as_event_data()
    assert data == {
        "action": ActionId.SCENE_1,
        "source": SourcePath.MANUFACTURER,
        "device": "remote-1",
        "evidence": {"button_id": 0x0A},
    }
