"""Convenience re-exports for the Lexman remote decoding library."""

from . import protocol_const as _protocol_const
from .protocol_const import *  # noqa: F401,F403

__all__ = getattr(_protocol_const, "__all__", [])
