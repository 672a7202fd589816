"""Errors raised while turning frames into button actions.

None of these are fatal: :class:`~.decoder.RemoteDecoder` catches every one at
the parser boundary, logs it and drops the frame.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .frames import RawFrame


class LexmanDecodeError(Exception):
    """Base class for frame decoding failures."""

    reason = "decode_error"

    def __init__(self, message: str, *, frame: Optional["RawFrame"] = None) -> None:
        super().__init__(message)
        self.frame = frame


class MalformedFrame(LexmanDecodeError):
    """Payload shorter than the decoder needs."""

    reason = "malformed"


class UnknownIdentifier(LexmanDecodeError):
    """Frame shape recognised but its values are not in the mapping tables."""

    reason = "unknown"


class DecodeException(LexmanDecodeError):
    """Unexpected failure while reading frame bytes."""

    reason = "decode_error"


__all__ = [
    "LexmanDecodeError",
    "MalformedFrame",
    "UnknownIdentifier",
    "DecodeException",
]
