"""Turn non-stable identifier bytes into stable button actions.

The structured color-control frames carry an identifier byte that increments
on every press, whichever button was pressed. For the parameters listed in
:data:`~.protocol_const.PARITY_PAIRS` the button is inferred from the parity
of that byte (odd → first action of the pair, even → second).

Parity is unreliable for the green left/right pair (parameter ``0x02``), so
that pair is classified by a :class:`StickyClassifier`: a two-state machine
per ``(device, parameter)``.

``IDLE``
    No valid classification. The next press is classified from parity, the
    result is remembered with its timestamp and the machine moves to
    ``HOLDING``.
``HOLDING``
    A classification younger than the recency window exists. Every press is
    answered with the remembered action. Once the window has elapsed the
    entry is stale, is discarded and the machine is back in ``IDLE``.

The window is anchored at the press that produced the classification; sticky
hits do not extend it.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import UnknownIdentifier
from .protocol_const import PARITY_PAIRS, RECENCY_WINDOW_MS, STICKY_PARAMETERS

log = logging.getLogger("lexman.decoder")


@dataclass(slots=True)
class RecencyCacheEntry:
    resolved_action: str
    last_seen_at: float

    def is_valid(self, now: float, window_s: float) -> bool:
        return now - self.last_seen_at < window_s


class StickyClassifier:
    """Recency-window state machine for one parameter byte of one device."""

    IDLE = "idle"
    HOLDING = "holding"

    def __init__(self, parameter: int, window_s: float) -> None:
        if parameter not in PARITY_PAIRS:
            raise ValueError(f"parameter 0x{parameter:02x} has no parity pair")
        self.parameter = parameter
        self.window_s = window_s
        self._odd, self._even = PARITY_PAIRS[parameter]
        self._entry: Optional[RecencyCacheEntry] = None

    def state(self, now: float) -> str:
        self._expire(now)
        return self.HOLDING if self._entry is not None else self.IDLE

    @property
    def entry(self) -> Optional[RecencyCacheEntry]:
        return self._entry

    def classify(self, identifier: int, now: float) -> tuple[str, bool]:
        """Return ``(action, sticky)``; ``sticky`` is True when served from the cache."""

        self._expire(now)
        if self._entry is not None:
            return self._entry.resolved_action, True

        action = parity_action(self.parameter, identifier)
        self._entry = RecencyCacheEntry(resolved_action=action, last_seen_at=now)
        return action, False

    def reset(self) -> None:
        self._entry = None

    def _expire(self, now: float) -> None:
        if self._entry is not None and not self._entry.is_valid(now, self.window_s):
            self._entry = None


def parity_action(parameter: int, identifier: int) -> str:
    odd, even = PARITY_PAIRS[parameter]
    return odd if identifier & 1 else even


class RecencyCache:
    """Per-device set of :class:`StickyClassifier`, keyed by parameter byte."""

    def __init__(self, window_ms: int = RECENCY_WINDOW_MS) -> None:
        self.window_s = window_ms / 1000.0
        self._classifiers: Dict[int, StickyClassifier] = {}

    def classifier(self, parameter: int) -> StickyClassifier:
        classifier = self._classifiers.get(parameter)
        if classifier is None:
            classifier = StickyClassifier(parameter, self.window_s)
            self._classifiers[parameter] = classifier
        return classifier

    def get(self, parameter: int, now: float) -> Optional[RecencyCacheEntry]:
        """Return the valid entry for ``parameter``; stale entries read as absent."""

        classifier = self._classifiers.get(parameter)
        if classifier is None or classifier.state(now) == StickyClassifier.IDLE:
            return None
        return classifier.entry

    def clear(self) -> None:
        for classifier in self._classifiers.values():
            classifier.reset()
        self._classifiers.clear()

    def snapshot(self, now: float) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for parameter in sorted(self._classifiers):
            entry = self.get(parameter, now)
            out[f"0x{parameter:02x}"] = {
                "state": StickyClassifier.HOLDING if entry else StickyClassifier.IDLE,
                "action": entry.resolved_action if entry else None,
                "age_ms": round((now - entry.last_seen_at) * 1000) if entry else None,
            }
        return out

    def __len__(self) -> int:
        return len(self._classifiers)


class ButtonIdentityResolver:
    """Resolve ``(identifier, parameter)`` pairs into canonical actions.

    Owned by exactly one device. ``resolve`` is serialized with a lock, so
    frames for the same device may safely arrive from several threads.
    """

    def __init__(self, window_ms: int = RECENCY_WINDOW_MS) -> None:
        self._lock = threading.Lock()
        self.cache = RecencyCache(window_ms)

    @property
    def window_ms(self) -> int:
        return round(self.cache.window_s * 1000)

    def resolve(self, identifier: int, parameter: int, now: float) -> str:
        if parameter not in PARITY_PAIRS:
            raise UnknownIdentifier(f"parameter 0x{parameter:02x} is not mapped")

        if parameter not in STICKY_PARAMETERS:
            action = parity_action(parameter, identifier)
            log.debug("[RESOLVE] param=0x%02x id=%d parity -> %s", parameter, identifier, action)
            return action

        with self._lock:
            action, sticky = self.cache.classifier(parameter).classify(identifier, now)

        log.debug(
            "[RESOLVE] param=0x%02x id=%d %s -> %s",
            parameter,
            identifier,
            "sticky" if sticky else "parity",
            action,
        )
        return action

    def clear(self) -> None:
        with self._lock:
            self.cache.clear()

    def snapshot(self, now: float) -> dict[str, Any]:
        with self._lock:
            return self.cache.snapshot(now)


__all__ = [
    "RecencyCacheEntry",
    "StickyClassifier",
    "RecencyCache",
    "ButtonIdentityResolver",
    "parity_action",
]
