"""Value types flowing through the decoder."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional

from .protocol_const import CLUSTERNAMES, DEFAULT_ENDPOINT_ID


@dataclass(frozen=True, slots=True)
class RawFrame:
    """One inbound application-layer payload for an (endpoint, cluster) pair.

    ``received_at`` is a :func:`time.monotonic` reading taken by whoever
    delivered the frame; the recency window is measured against it.
    """

    cluster_id: int
    payload: bytes
    endpoint_id: int = DEFAULT_ENDPOINT_ID
    command_id: Optional[int] = None
    received_at: float = field(default_factory=time.monotonic)

    @classmethod
    def from_hex(
        cls,
        cluster_id: int,
        payload_hex: str,
        *,
        endpoint_id: int = DEFAULT_ENDPOINT_ID,
        command_id: Optional[int] = None,
        received_at: Optional[float] = None,
    ) -> "RawFrame":
        payload = bytes.fromhex(payload_hex.replace(":", " "))
        if received_at is None:
            received_at = time.monotonic()
        return cls(
            cluster_id=cluster_id,
            payload=payload,
            endpoint_id=endpoint_id,
            command_id=command_id,
            received_at=received_at,
        )

    @property
    def cluster_name(self) -> str:
        return CLUSTERNAMES.get(self.cluster_id, f"0x{self.cluster_id:04X}")

    def describe(self) -> dict[str, Any]:
        """Context dict used in logs and as raw evidence."""

        return {
            "endpoint_id": self.endpoint_id,
            "cluster_id": self.cluster_id,
            "command_id": self.command_id,
            "payload": self.payload.hex(),
        }


@dataclass(frozen=True, slots=True)
class ParsedButtonEvidence:
    """Bytes a frame parser pulled out of one frame."""

    identifier: int
    parameter: int
    decode_path: str
    context: Optional[int] = None


@dataclass(frozen=True, slots=True)
class CanonicalAction:
    action_id: str
    source_path: str
    device_ref: str
    timestamp: float
    raw_evidence: dict[str, Any] = field(default_factory=dict)

    def as_event_data(self) -> dict[str, Any]:
        return {
            "action": self.action_id,
            "source": self.source_path,
            "device": self.device_ref,
            "evidence": dict(self.raw_evidence),
        }


__all__ = ["RawFrame", "ParsedButtonEvidence", "CanonicalAction"]
