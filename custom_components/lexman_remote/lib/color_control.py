"""Decoder for color-control (0x0300) frames used as a generic button channel.

The remotes reuse the color-control cluster in two frame shapes:

* **structured** – ``[0x01, identifier, parameter, context, ...]``. The
  ``(parameter, context)`` pair is looked up in
  :data:`~.protocol_const.STRUCTURED_CONTEXT_TABLE`; when it does not match,
  the identifier/parameter pair goes to the
  :class:`~.resolver.ButtonIdentityResolver`.
* **legacy** – the ZCL command id plus a direction byte.

:meth:`ColorControlFrameParser.parse` returns one of :class:`Structured`,
:class:`Legacy` or :class:`Unrecognized` so callers branch on the variant
rather than re-inspecting bytes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from .errors import MalformedFrame, UnknownIdentifier
from .frame_handlers import BaseFrameHandler, FrameContext, register_handler
from .frames import CanonicalAction, ParsedButtonEvidence, RawFrame
from .protocol_const import (
    CLUSTER_COLOR_CONTROL,
    DEFAULT_ENDPOINT_ID,
    DIRECTIONS_NEGATIVE,
    DIRECTIONS_POSITIVE,
    KNOWN_DIRECTIONS,
    LEGACY_COMMAND_TABLE,
    LEGACY_DEFAULT_PAIR,
    STRUCTURED_CONTEXT_TABLE,
    STRUCTURED_MARKER,
    STRUCTURED_MIN_LENGTH,
    DecodePath,
    SourcePath,
)

log = logging.getLogger("lexman.decoder")


@dataclass(frozen=True, slots=True)
class Structured:
    identifier: int
    parameter: int
    context: int

    def evidence(self) -> ParsedButtonEvidence:
        return ParsedButtonEvidence(
            identifier=self.identifier,
            parameter=self.parameter,
            context=self.context,
            decode_path=DecodePath.COLOR_CONTROL_STRUCTURED,
        )


@dataclass(frozen=True, slots=True)
class Legacy:
    command_id: Optional[int]
    direction: int


@dataclass(frozen=True, slots=True)
class Unrecognized:
    reason: str


ColorControlParse = Union[Structured, Legacy, Unrecognized]


def _pick_direction(payload: bytes) -> int:
    """Direction normally lives in byte 0; some firmwares put it in byte 1."""

    first = payload[0]
    if first in KNOWN_DIRECTIONS or len(payload) < 2:
        return first
    return payload[1]


class ColorControlFrameParser:
    def parse(self, frame: RawFrame) -> ColorControlParse:
        payload = frame.payload
        if not payload:
            return Unrecognized("empty payload")

        if payload[0] == STRUCTURED_MARKER and len(payload) >= STRUCTURED_MIN_LENGTH:
            return Structured(identifier=payload[1], parameter=payload[2], context=payload[3])

        return Legacy(command_id=frame.command_id, direction=_pick_direction(payload))

    @staticmethod
    def classify_structured(parsed: Structured) -> Optional[str]:
        """Return the context-table action, or ``None`` when the resolver must decide."""

        return STRUCTURED_CONTEXT_TABLE.get((parsed.parameter, parsed.context))

    @staticmethod
    def classify_legacy(parsed: Legacy, frame: Optional[RawFrame] = None) -> str:
        positive, negative = LEGACY_COMMAND_TABLE.get(parsed.command_id or 0, LEGACY_DEFAULT_PAIR)
        if negative is None:
            # direction is meaningless for this command
            return positive
        if parsed.direction in DIRECTIONS_POSITIVE:
            return positive
        if parsed.direction in DIRECTIONS_NEGATIVE:
            return negative
        raise UnknownIdentifier(
            f"direction 0x{parsed.direction:02x} not valid for command {parsed.command_id}",
            frame=frame,
        )


@register_handler(clusters=(CLUSTER_COLOR_CONTROL,), endpoints=(DEFAULT_ENDPOINT_ID,))
class ColorControlFrameHandler(BaseFrameHandler):
    """Arrow and color buttons reported on the color-control cluster."""

    parser = ColorControlFrameParser()

    def handle(self, ctx: FrameContext) -> Optional[CanonicalAction]:
        frame = ctx.frame
        parsed = self.parser.parse(frame)

        if isinstance(parsed, Structured):
            evidence = parsed.evidence()
            action_id = self.parser.classify_structured(parsed)
            resolved_by = "context"
            if action_id is None:
                action_id = ctx.decoder.resolver.resolve(evidence.identifier, evidence.parameter, ctx.now)
                resolved_by = "resolver"
            log.debug(
                "[COLOR] structured id=0x%02x param=0x%02x ctx=0x%02x -> %s (%s)",
                evidence.identifier,
                evidence.parameter,
                evidence.context,
                action_id,
                resolved_by,
            )
            return ctx.decoder.build_action(
                action_id,
                SourcePath.COLOR_CONTROL,
                frame=frame,
                decode_path=evidence.decode_path,
                identifier=evidence.identifier,
                parameter=evidence.parameter,
                context=evidence.context,
                resolved_by=resolved_by,
            )

        if isinstance(parsed, Legacy):
            action_id = self.parser.classify_legacy(parsed, frame)
            log.debug(
                "[COLOR] legacy cmd=%s direction=0x%02x -> %s",
                parsed.command_id,
                parsed.direction,
                action_id,
            )
            return ctx.decoder.build_action(
                action_id,
                SourcePath.COLOR_CONTROL,
                frame=frame,
                decode_path=DecodePath.COLOR_CONTROL_LEGACY,
                direction=parsed.direction,
            )

        raise MalformedFrame(f"color control frame unrecognized: {parsed.reason}", frame=frame)


__all__ = [
    "Structured",
    "Legacy",
    "Unrecognized",
    "ColorControlParse",
    "ColorControlFrameParser",
    "ColorControlFrameHandler",
]
