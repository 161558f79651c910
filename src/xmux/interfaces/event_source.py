"""
Queued Event Source Interface

Defines the two capabilities the multiplexed wait needs from anything
that buffers discrete messages read off a socket: a raw descriptor to
hand to the readiness wait, and a non-blocking "take one if it is complete" check.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class QueuedEventSource(ABC):
    """
    Interface for a socket-fed, locally buffered event queue.

    The queue itself belongs to the underlying library (python-xlib for
    XEventSource). The wait loop never touches it directly, only through
    the two methods below.

    Design principle:
        Readiness on fileno() means "more bytes may be on the socket",
        not "an event is complete". Only try_take_ready() decides
        completeness, so callers must re-check after every readiness
        notification instead of assuming an event arrived.
    """

    @abstractmethod
    def fileno(self) -> int:
        """
        Raw descriptor of the underlying connection.

        Must stay the same for the lifetime of the source.

        Raises:
            ConnectionFault: If the connection has no usable descriptor
        """
        pass

    @abstractmethod
    def try_take_ready(self) -> Optional[Any]:
        """
        Dequeue one complete, matching event if one is already buffered.

        Must not block. Implementations may read bytes that are already
        available on the socket, but must never wait for more, and must
        never return a partially received event.

        Returns:
            The event, or None if nothing complete is queued

        Raises:
            ConnectionFault: If the connection has been closed
        """
        pass
