from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .frames import CanonicalAction

log = logging.getLogger("lexman.decoder")

ActionSink = Callable[[CanonicalAction], Any]


class ActionEmitter:
    """Forward each canonical action to the trigger sink exactly once.

    There is no de-duplication: two decode paths producing an action for the
    same physical press yield two emissions. Models avoid that by never
    enabling both paths for one cluster (see ``ModelProfile``).
    """

    def __init__(self, sink: Optional[ActionSink] = None) -> None:
        self._sink = sink
        self.emitted = 0

    def set_sink(self, sink: Optional[ActionSink]) -> None:
        self._sink = sink

    def emit(self, action: CanonicalAction) -> bool:
        if self._sink is None:
            log.debug("[EMIT] %s from %s dropped: no sink", action.action_id, action.device_ref)
            return False

        try:
            self._sink(action)
        except Exception:
            log.exception("[EMIT] sink failed for %s from %s", action.action_id, action.device_ref)
            return False

        self.emitted += 1
        log.info(
            "[EMIT] %s via %s (device=%s)",
            action.action_id,
            action.source_path,
            action.device_ref,
        )
        return True


__all__ = ["ActionEmitter", "ActionSink"]
