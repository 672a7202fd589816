"""Decoder for the ADEO vendor-specific cluster (0xFE00)."""
from __future__ import annotations

import logging
from typing import Optional

from .errors import MalformedFrame, UnknownIdentifier
from .frame_handlers import BaseFrameHandler, FrameContext, register_handler
from .frames import CanonicalAction, ParsedButtonEvidence, RawFrame
from .protocol_const import (
    CLUSTER_MANUFACTURER,
    DEFAULT_ENDPOINT_ID,
    MANUFACTURER_AUX_FALLBACK_OFFSET,
    MANUFACTURER_AUX_OFFSET,
    MANUFACTURER_BUTTON_OFFSET,
    MANUFACTURER_MIN_LENGTH,
    MANUFACTURER_SCENE_MAP,
    DecodePath,
    SourcePath,
    scene_action,
)

log = logging.getLogger("lexman.decoder")


class ManufacturerFrameParser:
    """Pull the scene button out of a vendor-cluster frame.

    The frame is a short fixed layout: the button id sits at offset 5 and the
    auxiliary byte follows it, or is borrowed from offset 1 on six-byte frames.
    """

    def parse(self, frame: RawFrame) -> ParsedButtonEvidence:
        payload = frame.payload
        if len(payload) < MANUFACTURER_MIN_LENGTH:
            raise MalformedFrame(
                f"manufacturer frame needs {MANUFACTURER_MIN_LENGTH} bytes, got {len(payload)}",
                frame=frame,
            )

        button_id = payload[MANUFACTURER_BUTTON_OFFSET]
        if len(payload) > MANUFACTURER_AUX_OFFSET:
            aux = payload[MANUFACTURER_AUX_OFFSET]
        else:
            aux = payload[MANUFACTURER_AUX_FALLBACK_OFFSET]

        return ParsedButtonEvidence(
            identifier=button_id,
            parameter=aux,
            decode_path=DecodePath.MANUFACTURER,
        )

    def classify(self, evidence: ParsedButtonEvidence, frame: Optional[RawFrame] = None) -> str:
        scene = MANUFACTURER_SCENE_MAP.get(evidence.identifier)
        if scene is None:
            raise UnknownIdentifier(
                f"manufacturer button id 0x{evidence.identifier:02x} is not mapped",
                frame=frame,
            )
        return scene_action(scene)


@register_handler(clusters=(CLUSTER_MANUFACTURER,), endpoints=(DEFAULT_ENDPOINT_ID,))
class ManufacturerFrameHandler(BaseFrameHandler):
    """Scene buttons reported on the vendor cluster."""

    parser = ManufacturerFrameParser()

    def handle(self, ctx: FrameContext) -> Optional[CanonicalAction]:
        evidence = self.parser.parse(ctx.frame)
        action_id = self.parser.classify(evidence, ctx.frame)
        log.debug(
            "[MFR] button=0x%02x aux=0x%02x -> %s",
            evidence.identifier,
            evidence.parameter,
            action_id,
        )
        return ctx.decoder.build_action(
            action_id,
            SourcePath.MANUFACTURER,
            frame=ctx.frame,
            button_id=evidence.identifier,
            aux=evidence.parameter,
        )


__all__ = ["ManufacturerFrameParser", "ManufacturerFrameHandler"]
