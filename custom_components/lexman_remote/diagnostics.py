from __future__ import annotations

"""Support for Home Assistant diagnostics downloads."""

import logging
import re
from collections import deque
from typing import Any, Iterable

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_IEEE, DOMAIN

_LOGGER = logging.getLogger(__name__)

_MAX_LOG_RECORDS = 2000
_MAX_LOG_CHARACTERS = 256 * 1024
_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
_LOGGER_NAMES = (
    "custom_components.lexman_remote",
    "lexman.decoder",
)
# 8-byte IEEE address, colon or dash separated
_IEEE_PATTERN = re.compile(r"\b[0-9A-Fa-f]{2}(?:[:-][0-9A-Fa-f]{2}){7}\b")
_IEEE_KEYS = {CONF_IEEE, "device", "device_ieee"}
_REDACTED = "[REDACTED_IEEE]"


class _InMemoryLogHandler(logging.Handler):
    """Keep a bounded list of log lines for diagnostics export."""

    def __init__(self) -> None:
        super().__init__()
        self._records: deque[str] = deque(maxlen=_MAX_LOG_RECORDS)
        self._current_chars = 0
        self.setFormatter(logging.Formatter(_LOG_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if len(self._records) == self._records.maxlen:
                removed = self._records.popleft()
                self._current_chars -= len(removed)

            formatted = self.format(record)
            self._records.append(formatted)
            self._current_chars += len(formatted)

            while self._current_chars > _MAX_LOG_CHARACTERS and self._records:
                removed = self._records.popleft()
                self._current_chars -= len(removed)
        except Exception:  # noqa: BLE001 - diagnostics must never break logging
            self.handleError(record)

    def get_records(self) -> list[str]:
        return list(self._records)

    def attach(self) -> None:
        for logger_name in _LOGGER_NAMES:
            logger = logging.getLogger(logger_name)
            if self not in logger.handlers:
                logger.addHandler(self)

    def detach(self) -> None:
        """Remove this handler from the loggers we attached to."""

        for logger_name in _LOGGER_NAMES:
            logging.getLogger(logger_name).removeHandler(self)


def _get_handler(hass: HomeAssistant) -> _InMemoryLogHandler:
    domain_data = hass.data.setdefault(DOMAIN, {})
    handler: _InMemoryLogHandler | None = domain_data.get("_diag_handler")
    if handler:
        return handler

    handler = _InMemoryLogHandler()
    domain_data["_diag_handler"] = handler
    return handler


def _should_route_to_home_assistant(logger: logging.Logger) -> bool:
    """Detect whether the user asked for debug logging to the main log."""

    return logger.getEffectiveLevel() <= logging.DEBUG


def _attach_capture(hass: HomeAssistant) -> None:
    """Attach the in-memory handler and capture decoder debug records."""

    domain_data = hass.data.setdefault(DOMAIN, {})
    handler = _get_handler(hass)
    logger_state: dict[str, tuple[int, bool]] = domain_data.setdefault("_logger_state", {})
    first_attach = not logger_state

    for logger_name in _LOGGER_NAMES:
        logger = logging.getLogger(logger_name)
        if first_attach:
            logger_state[logger_name] = (logger.level, logger.propagate)

        if handler not in logger.handlers:
            logger.addHandler(handler)

        if _should_route_to_home_assistant(logger):
            continue

        logger.setLevel(logging.DEBUG)
        logger.propagate = False


def _detach_capture(hass: HomeAssistant) -> None:
    """Remove our handler and restore logger state."""

    domain_data = hass.data.get(DOMAIN, {})
    handler: _InMemoryLogHandler | None = domain_data.pop("_diag_handler", None)
    logger_state: dict[str, tuple[int, bool]] = domain_data.pop("_logger_state", {})
    if handler:
        handler.detach()

    for logger_name, (level, propagate) in logger_state.items():
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = propagate


def async_setup_diagnostics(hass: HomeAssistant) -> None:
    """Ensure our in-memory log handler is registered once."""

    if hass.data.get(DOMAIN, {}).get("_diag_handler"):
        return

    _attach_capture(hass)
    _LOGGER.debug("Diagnostics log handler registered: %s", _get_handler(hass))


def async_teardown_diagnostics(hass: HomeAssistant) -> None:
    """Detach diagnostic logging when the integration is fully removed."""

    _detach_capture(hass)


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        return _IEEE_PATTERN.sub(_REDACTED, value)
    return value


def _redact_data_structure(data: Any) -> Any:
    """Redact IEEE addresses anywhere in a nested structure."""

    if isinstance(data, dict):
        redacted: dict[Any, Any] = {}
        for key, value in data.items():
            if str(key).lower() in _IEEE_KEYS and isinstance(value, str):
                redacted[key] = _REDACTED
                continue
            redacted[key] = _redact_data_structure(value)
        return redacted

    if isinstance(data, (list, tuple)):
        return type(data)(_redact_data_structure(item) for item in data)

    if isinstance(data, (set, frozenset)):
        return [_redact_data_structure(item) for item in data]

    return _redact_value(data)


def _sanitize_log_lines(lines: Iterable[str], entry: ConfigEntry) -> list[str]:
    ieee = entry.data.get(CONF_IEEE)
    patterns: list[tuple[re.Pattern[str], str]] = [(_IEEE_PATTERN, _REDACTED)]
    if isinstance(ieee, str) and ieee:
        patterns.append((re.compile(re.escape(ieee), re.IGNORECASE), _REDACTED))

    sanitized: list[str] = []
    for line in lines:
        cleaned = line
        for pattern, replacement in patterns:
            cleaned = pattern.sub(replacement, cleaned)
        sanitized.append(cleaned)
    return sanitized


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""

    handler = _get_handler(hass)

    entry_dict = {
        "data": _redact_data_structure(dict(entry.data)),
        "options": _redact_data_structure(dict(entry.options)),
    }

    hub = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    hub_state: dict[str, Any] = {}
    if hub is not None:
        hub_state = _redact_data_structure(hub.get_state())

    return {
        "entry": entry_dict,
        "hub": hub_state,
        "logs": _sanitize_log_lines(handler.get_records(), entry),
    }
