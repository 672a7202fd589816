"""Routing of raw frames to cluster-specific decoders.

``RemoteDecoder.handle_frame`` classifies every inbound frame by its
``(endpoint, cluster)`` pair and hands it to whichever handler registered for
that pair. To teach the decoder a new frame family:

1. Subclass :class:`BaseFrameHandler` (or implement the :class:`FrameHandler`
   protocol) and override :meth:`BaseFrameHandler.handle`.
2. Decorate the handler with :func:`register_handler`, listing the clusters
   (and optionally endpoints) it understands. Cluster matchers may also be
   predicates, e.g. ``lambda c: c >= 0xFC00`` for any vendor cluster.
3. Return a :class:`~.frames.CanonicalAction` from ``handle`` or raise one of
   the errors in :mod:`.errors`; the decoder owns logging and emission.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import (
    Callable,
    Iterator,
    Optional,
    Protocol,
    Sequence,
    TYPE_CHECKING,
    runtime_checkable,
)

if TYPE_CHECKING:
    from .decoder import RemoteDecoder
    from .frames import CanonicalAction, RawFrame

log = logging.getLogger("lexman.decoder")


@dataclass(slots=True)
class FrameContext:
    """State passed to each handler invocation."""

    decoder: "RemoteDecoder"
    frame: "RawFrame"

    @property
    def now(self) -> float:
        return self.frame.received_at


ClusterMatcher = int | Callable[[int], bool]


@runtime_checkable
class FrameHandler(Protocol):
    """Interface implemented by cluster handlers."""

    def matches(self, endpoint_id: int, cluster_id: int) -> bool:  # pragma: no cover - protocol
        """Return ``True`` when this handler should decode the frame."""

    def handle(self, ctx: FrameContext) -> Optional["CanonicalAction"]:  # pragma: no cover - protocol
        """Decode the frame into at most one canonical action."""


class BaseFrameHandler(FrameHandler):
    """Convenience base class implementing ``matches`` via attributes."""

    clusters: tuple[ClusterMatcher, ...] | None = None
    endpoints: tuple[int, ...] | None = None

    def _matches_cluster(self, cluster_id: int) -> bool:
        if self.clusters is None:
            return True

        for candidate in self.clusters:
            if callable(candidate):
                if candidate(cluster_id):
                    return True
            elif cluster_id == candidate:
                return True

        return False

    def matches(self, endpoint_id: int, cluster_id: int) -> bool:
        endpoint_match = True if self.endpoints is None else endpoint_id in self.endpoints
        return endpoint_match and self._matches_cluster(cluster_id)

    def handle(self, ctx: FrameContext) -> Optional["CanonicalAction"]:
        return None


class FrameHandlerRegistry:
    """Collection of registered handlers."""

    def __init__(self) -> None:
        self._handlers: list[FrameHandler] = []

    def register(self, handler: FrameHandler) -> FrameHandler:
        self._handlers.append(handler)
        return handler

    def iter_for(self, endpoint_id: int, cluster_id: int) -> Iterator[FrameHandler]:
        for handler in self._handlers:
            try:
                matched = handler.matches(endpoint_id, cluster_id)
            except Exception:
                log.debug("[ROUTE] matcher %r failed for cluster 0x%04X", handler, cluster_id, exc_info=True)
                continue
            if matched:
                yield handler

    def first_for(self, endpoint_id: int, cluster_id: int) -> Optional[FrameHandler]:
        return next(self.iter_for(endpoint_id, cluster_id), None)


frame_handler_registry = FrameHandlerRegistry()


def register_handler(
    handler: Optional[type[BaseFrameHandler] | FrameHandler] = None,
    *,
    clusters: Sequence[ClusterMatcher] | None = None,
    endpoints: Sequence[int] | None = None,
    registry: FrameHandlerRegistry = frame_handler_registry,
):
    """Decorator used to register ``FrameHandler`` implementations."""

    def _decorator(obj):
        instance = obj() if isinstance(obj, type) else obj
        if clusters is not None:
            instance.clusters = tuple(clusters)  # type: ignore[attr-defined]
        if endpoints is not None:
            instance.endpoints = tuple(endpoints)  # type: ignore[attr-defined]
        registry.register(instance)
        return obj

    if handler is not None:
        return _decorator(handler)
    return _decorator


__all__ = [
    "BaseFrameHandler",
    "FrameContext",
    "FrameHandler",
    "FrameHandlerRegistry",
    "frame_handler_registry",
    "register_handler",
]
