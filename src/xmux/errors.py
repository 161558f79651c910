"""
Errors raised across the multiplexed wait boundary.

Only two conditions ever leave a wait as exceptions: the event-source
connection is gone (ConnectionFault), or the call was malformed
(InvalidInputError). Expired deadlines and interrupted waits are
ordinary control flow and never surface here.
"""


class MultiplexError(Exception):
    """Base class for xmux errors."""


class ConnectionFault(MultiplexError):
    """
    The event-source connection is no longer usable.

    Terminal for any event loop built on top of it: callers should stop
    waiting on the source rather than retry.
    """


class InvalidInputError(MultiplexError, ValueError):
    """Bad timeout, descriptor or source set, rejected before waiting."""
