"""Contracts between the wait loop, its sources and its callers."""

from .event_source import QueuedEventSource
from .wait_outcome import OutcomeKind, WaitOutcome

__all__ = ['QueuedEventSource', 'OutcomeKind', 'WaitOutcome']
