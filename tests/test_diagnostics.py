import asyncio
import logging
from types import SimpleNamespace

from custom_components.lexman_remote import diagnostics
from custom_components.lexman_remote.const import (
    CONF_IEEE,
    CONF_MODEL,
    CONF_NAME,
    CONF_RECENCY_WINDOW_MS,
    DOMAIN,
)
from custom_components.lexman_remote.hub import LexmanRemoteHub
from custom_components.lexman_remote.lib.frames import RawFrame
from custom_components.lexman_remote.lib.protocol_const import (
    CLUSTER_MANUFACTURER,
    MODEL_ZBEK_26,
    ActionId,
)

IEEE = "00:0d:6f:00:0a:1b:2c:3d"


class FakeHass:
    def __init__(self) -> None:
        self.bus = SimpleNamespace(async_fire=lambda *_args: None)
        self.data = {}


def _entry() -> SimpleNamespace:
    return SimpleNamespace(
        entry_id="entry-1",
        data={CONF_NAME: "Hallway", CONF_IEEE: IEEE, CONF_MODEL: MODEL_ZBEK_26},
        options={CONF_RECENCY_WINDOW_MS: 2000},
    )


def test_redact_data_structure() -> None:
    data = {
        "ieee": IEEE,
        "nested": [{"device": IEEE}, f"seen from {IEEE.upper()}"],
        "count": 3,
    }
    assert diagnostics._redact_data_structure(data) == {
        "ieee": "[REDACTED_IEEE]",
        "nested": [{"device": "[REDACTED_IEEE]"}, "seen from [REDACTED_IEEE]"],
        "count": 3,
    }


def test_handler_caps_records() -> None:
    handler = diagnostics._InMemoryLogHandler()
    record = logging.LogRecord("lexman.decoder", logging.INFO, __file__, 1, "x" * 10, None, None)
    for _ in range(diagnostics._MAX_LOG_RECORDS + 10):
        handler.emit(record)

    assert len(handler.get_records()) == diagnostics._MAX_LOG_RECORDS


def test_config_entry_diagnostics(monkeypatch) -> None:
    monkeypatch.setattr("custom_components.lexman_remote.hub.async_dispatcher_send", lambda *_: None)
    hass = FakeHass()
    entry = _entry()

    diagnostics.async_setup_diagnostics(hass)
    try:
        hub = LexmanRemoteHub.from_entry(hass, entry)
        hass.data[DOMAIN][entry.entry_id] = hub
        hub.handle_frame(RawFrame(CLUSTER_MANUFACTURER, bytes([0, 0, 0, 0, 0, 0x0B]), received_at=1.0))
        hub.handle_frame(RawFrame(CLUSTER_MANUFACTURER, bytes([0, 0]), received_at=2.0))

        result = asyncio.run(diagnostics.async_get_config_entry_diagnostics(hass, entry))
    finally:
        diagnostics.async_teardown_diagnostics(hass)

    assert result["entry"]["data"][CONF_IEEE] == "[REDACTED_IEEE]"
    assert result["entry"]["options"] == {CONF_RECENCY_WINDOW_MS: 2000}

    hub_state = result["hub"]
    assert hub_state["ieee"] == "[REDACTED_IEEE]"
    assert hub_state["model"] == MODEL_ZBEK_26
    assert hub_state["stats"] == {"emitted": 1, "malformed": 1}
    assert hub_state["last_action"]["action"] == ActionId.SCENE_2
    assert hub_state["last_action"]["device"] == "[REDACTED_IEEE]"

    logs = "\n".join(result["logs"])
    assert "[EMIT] pressed_scene_2" in logs
    assert "[DROP]" in logs
    assert IEEE not in logs


def test_teardown_detaches_handler() -> None:
    hass = FakeHass()
    diagnostics.async_setup_diagnostics(hass)
    handler = hass.data[DOMAIN]["_diag_handler"]
    assert handler in logging.getLogger("lexman.decoder").handlers

    diagnostics.async_teardown_diagnostics(hass)
    assert handler not in logging.getLogger("lexman.decoder").handlers
    assert "_diag_handler" not in hass.data[DOMAIN]


def test_capture_raises_level_and_teardown_restores_it() -> None:
    logger = logging.getLogger("lexman.decoder")
    logger.setLevel(logging.WARNING)
    logger.propagate = True
    hass = FakeHass()

    diagnostics.async_setup_diagnostics(hass)
    assert logger.level == logging.DEBUG
    assert logger.propagate is False

    diagnostics.async_teardown_diagnostics(hass)
    assert logger.level == logging.WARNING
    assert logger.propagate is True
    assert "_logger_state" not in hass.data[DOMAIN]


def test_capture_leaves_user_debug_logging_alone() -> None:
    logger = logging.getLogger("lexman.decoder")
    logger.setLevel(logging.DEBUG)
    logger.propagate = True
    hass = FakeHass()

    diagnostics.async_setup_diagnostics(hass)
    try:
        assert logger.propagate is True
        assert hass.data[DOMAIN]["_diag_handler"] in logger.handlers
    finally:
        diagnostics.async_teardown_diagnostics(hass)
