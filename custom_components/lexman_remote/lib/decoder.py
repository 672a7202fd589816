"""Per-device pipeline from raw frames and cluster commands to emitted actions."""
from __future__ import annotations

import functools
import logging
import time
from collections import Counter
from typing import Any, Callable, Optional

from . import color_control, manufacturer  # noqa: F401 - registers frame handlers
from .emitter import ActionEmitter, ActionSink
from .errors import DecodeException, LexmanDecodeError, UnknownIdentifier
from .frame_handlers import FrameContext, FrameHandlerRegistry, frame_handler_registry
from .frames import CanonicalAction, RawFrame
from .normalizer import COMMANDS, CapabilitySet, ClusterCommandNormalizer
from .protocol_const import CLUSTERNAMES, RECENCY_WINDOW_MS, ModelProfile
from .resolver import ButtonIdentityResolver

log = logging.getLogger("lexman.decoder")


class RemoteDecoder:
    """Decode everything one remote sends and emit one action per press.

    Frames for a device must be fed in arrival order. Nothing here blocks or
    performs I/O, so callers can run it directly on their event loop.
    """

    def __init__(
        self,
        device_ref: str,
        profile: ModelProfile,
        sink: Optional[ActionSink] = None,
        *,
        window_ms: int = RECENCY_WINDOW_MS,
        clock: Callable[[], float] = time.monotonic,
        registry: FrameHandlerRegistry = frame_handler_registry,
    ) -> None:
        self.device_ref = device_ref
        self.profile = profile
        self.resolver = ButtonIdentityResolver(window_ms)
        self.normalizer = ClusterCommandNormalizer(profile)
        self.emitter = ActionEmitter(sink)
        self.stats: Counter[str] = Counter()
        self.last_action: Optional[CanonicalAction] = None
        self.press_count = 0
        self._clock = clock
        self._registry = registry
        self.capabilities = self._build_capabilities()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def handle_frame(self, frame: RawFrame) -> Optional[CanonicalAction]:
        log.debug(
            "[RX] %s %s ep=%d cmd=%s payload=%s",
            self.device_ref,
            frame.cluster_name,
            frame.endpoint_id,
            frame.command_id,
            frame.payload.hex(" "),
        )

        if frame.cluster_id not in self.profile.frame_clusters:
            self.stats["inactive_cluster"] += 1
            log.debug("[DROP] %s: %s frames inactive on %s", self.device_ref, frame.cluster_name, self.profile.name)
            return None

        handler = self._registry.first_for(frame.endpoint_id, frame.cluster_id)
        if handler is None:
            self.stats["unhandled"] += 1
            log.debug("[DROP] %s: no handler for %s on endpoint %d", self.device_ref, frame.cluster_name, frame.endpoint_id)
            return None

        try:
            action = handler.handle(FrameContext(self, frame))
        except Exception as err:
            self._record_drop(self._as_decode_error(err, frame))
            return None

        if action is None:
            return None
        return self._emit(action)

    def handle_command(self, command: str, **args: Any) -> Optional[CanonicalAction]:
        """Normalise one structured command from the capability-binding layer."""

        binding = COMMANDS.get(command)
        if binding is None:
            self._record_drop(UnknownIdentifier(f"unsupported cluster command {command!r}"))
            return None

        _slot, cluster_id, source_path = binding
        if cluster_id not in self.profile.command_clusters:
            self.stats["inactive_cluster"] += 1
            log.debug(
                "[DROP] %s: %s commands inactive on %s",
                self.device_ref,
                CLUSTERNAMES.get(cluster_id, hex(cluster_id)),
                self.profile.name,
            )
            return None

        log.debug("[CMD] %s %s %s", self.device_ref, command, args)
        try:
            action_id = self.normalizer.normalize(command, **args)
        except Exception as err:
            self._record_drop(self._as_decode_error(err))
            return None

        if action_id is None:
            self.stats["no_action"] += 1
            return None

        action = self.build_action(action_id, source_path, command=command, args=dict(args))
        return self._emit(action)

    def build_action(
        self,
        action_id: str,
        source_path: str,
        *,
        frame: Optional[RawFrame] = None,
        **evidence: Any,
    ) -> CanonicalAction:
        raw: dict[str, Any] = frame.describe() if frame is not None else {}
        raw.update(evidence)
        return CanonicalAction(
            action_id=action_id,
            source_path=source_path,
            device_ref=self.device_ref,
            timestamp=frame.received_at if frame is not None else self._clock(),
            raw_evidence=raw,
        )

    def set_sink(self, sink: Optional[ActionSink]) -> None:
        self.emitter.set_sink(sink)

    def set_recency_window(self, window_ms: int) -> None:
        if window_ms == self.resolver.window_ms:
            return
        log.debug("[RESOLVE] %s recency window %d → %d ms", self.device_ref, self.resolver.window_ms, window_ms)
        self.resolver = ButtonIdentityResolver(window_ms)

    def reset(self) -> None:
        """Forget recency state; called when the device is torn down."""

        self.resolver.clear()

    def snapshot(self) -> dict[str, Any]:
        def _names(clusters) -> list[str]:
            return sorted(CLUSTERNAMES.get(c, hex(c)) for c in clusters)

        last = self.last_action
        return {
            "device": self.device_ref,
            "model": self.profile.name,
            "frame_clusters": _names(self.profile.frame_clusters),
            "command_clusters": _names(self.profile.command_clusters),
            "scene_numbering": self.profile.scene_numbering,
            "recency_window_ms": self.resolver.window_ms,
            "capabilities": self.capabilities.populated(),
            "stats": dict(self.stats),
            "press_count": self.press_count,
            "last_action": last.as_event_data() if last else None,
            "recency_cache": self.resolver.snapshot(self._clock()),
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _build_capabilities(self) -> CapabilitySet:
        caps = CapabilitySet()
        for command, (slot, cluster_id, _source) in COMMANDS.items():
            if cluster_id in self.profile.command_clusters:
                setattr(caps, slot, functools.partial(self.handle_command, command))
        return caps

    @staticmethod
    def _as_decode_error(err: Exception, frame: Optional[RawFrame] = None) -> LexmanDecodeError:
        if isinstance(err, LexmanDecodeError):
            if err.frame is None:
                err.frame = frame
            return err
        wrapped = DecodeException(f"{type(err).__name__}: {err}", frame=frame)
        wrapped.__cause__ = err
        return wrapped

    def _record_drop(self, err: LexmanDecodeError) -> None:
        self.stats[err.reason] += 1
        context = err.frame.describe() if err.frame is not None else {}
        if isinstance(err, DecodeException):
            log.warning(
                "[DROP] %s: %s %s",
                self.device_ref,
                err,
                context,
                exc_info=err.__cause__ or err,
            )
            return
        log.debug("[DROP] %s: %s %s", self.device_ref, err, context)

    def _emit(self, action: CanonicalAction) -> CanonicalAction:
        self.last_action = action
        self.press_count += 1
        if self.emitter.emit(action):
            self.stats["emitted"] += 1
        return action


__all__ = ["RemoteDecoder"]
