"""
xmux: Deadline-bounded multiplexed wait over an X event queue

This package answers one question for programs driven by an X connection
that also watch another input: "wait until an event, auxiliary input,
or the deadline, whichever comes first, without ever sleeping through
an event that is already queued."

Architecture:
    X socket + local event queue ─┐
    auxiliary descriptor ─────────┼─▶ wait() ─▶ EVENT | AUXILIARY_READY | TIMEOUT
    deadline ─────────────────────┘

It provides:
    1. wait() / wait_any(): the multiplexed wait loop
    2. Deadline: absolute deadline with per-iteration remaining time
    3. QueuedEventSource: the two-method contract a source must meet
    4. XEventSource + EventFilter: the python-xlib implementation

Version: 1.0.0
"""

__version__ = "1.0.0"

from .engine.deadline import Deadline
from .engine.multiplexed_wait import wait, wait_any
from .errors import ConnectionFault, InvalidInputError, MultiplexError
from .interfaces.event_source import QueuedEventSource
from .interfaces.wait_outcome import OutcomeKind, WaitOutcome
from .sources.event_filter import EventFilter
from .sources.xlib_source import XEventSource

__all__ = [
    "wait",
    "wait_any",
    "Deadline",
    "WaitOutcome",
    "OutcomeKind",
    "QueuedEventSource",
    "XEventSource",
    "EventFilter",
    "MultiplexError",
    "ConnectionFault",
    "InvalidInputError",
    "__version__",
]
