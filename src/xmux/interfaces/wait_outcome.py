"""
Wait Outcome Model

The single result of one multiplexed wait. Exactly one of the three
kinds is produced per call.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class OutcomeKind(str, Enum):
    """Why a wait returned."""
    TIMEOUT = "TIMEOUT"                   # Deadline passed, nothing ready
    AUXILIARY_READY = "AUXILIARY_READY"   # Auxiliary descriptor readable, no event queued
    EVENT = "EVENT"                       # A complete matching event was dequeued


@dataclass(frozen=True)
class WaitOutcome:
    """
    Tagged result of a multiplexed wait.

    Only EVENT carries a payload. `source` and `descriptor` are
    informational and mostly useful with wait_any(), where several
    sources or auxiliary descriptors share one wait.
    """
    kind: OutcomeKind
    payload: Any = None                  # The dequeued event (EVENT only)
    source: Any = None                   # Source that produced the event (EVENT only)
    descriptor: Optional[int] = None     # Ready auxiliary descriptor (AUXILIARY_READY only)

    @classmethod
    def timeout(cls) -> 'WaitOutcome':
        return cls(OutcomeKind.TIMEOUT)

    @classmethod
    def auxiliary_ready(cls, descriptor: Optional[int] = None) -> 'WaitOutcome':
        return cls(OutcomeKind.AUXILIARY_READY, descriptor=descriptor)

    @classmethod
    def event(cls, payload: Any, source: Any = None) -> 'WaitOutcome':
        return cls(OutcomeKind.EVENT, payload=payload, source=source)

    @property
    def is_timeout(self) -> bool:
        return self.kind is OutcomeKind.TIMEOUT

    @property
    def is_auxiliary_ready(self) -> bool:
        return self.kind is OutcomeKind.AUXILIARY_READY

    @property
    def is_event(self) -> bool:
        return self.kind is OutcomeKind.EVENT

    def to_dict(self) -> dict:
        result = {'kind': self.kind.value}
        if self.kind is OutcomeKind.EVENT:
            result['payload'] = repr(self.payload)
        if self.descriptor is not None:
            result['descriptor'] = self.descriptor
        return result
