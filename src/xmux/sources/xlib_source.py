"""
python-xlib Event Source

Adapts an Xlib.display.Display to the QueuedEventSource interface.

python-xlib keeps decoded events in the display's own queue. Asking
pending_events() reads whatever bytes are already on the socket without
waiting, so after it returns the queue holds only complete events; a
trailing partial event stays in the library's receive buffer.
"""

import logging
from collections import deque
from typing import Any, List, Optional

from Xlib import error as XError

from ..errors import ConnectionFault
from ..interfaces.event_source import QueuedEventSource
from .event_filter import EventFilter

logger = logging.getLogger(__name__)


class XEventSource(QueuedEventSource):
    """
    Queued event source over an X display connection.

    Events that do not pass the filter are kept, in arrival order, on
    `deferred` for the caller to handle later. Callers drain it with
    take_deferred() after each wait; nothing else empties it. With
    `max_deferred` set, the oldest deferred event is dropped (and logged)
    once the bound is reached; without it the queue is unbounded.

    Usage:
        display = Display()
        source = XEventSource(display, EventFilter(X.KeyPressMask, window=win.id))
        outcome = wait(source, sys.stdin, timeout=1.0)
        for event in source.take_deferred():
            ...
    """

    def __init__(
        self,
        display: Any,
        event_filter: Optional[EventFilter] = None,
        max_deferred: Optional[int] = None
    ):
        """
        Args:
            display: Connected Xlib.display.Display
            event_filter: Which events count as matching (default: all)
            max_deferred: Most non-matching events to hold (default: no limit)
        """
        if max_deferred is not None and max_deferred < 1:
            raise ValueError(f"max_deferred must be at least 1, got {max_deferred}")
        self.display = display
        self.event_filter = event_filter or EventFilter()
        self.max_deferred = max_deferred
        self.deferred: deque = deque()
        self.dropped = 0

    def fileno(self) -> int:
        try:
            return self.display.fileno()
        except (XError.ConnectionClosedError, OSError, ValueError) as e:
            raise ConnectionFault(f"X connection has no usable descriptor: {e}") from e

    def try_take_ready(self) -> Optional[Any]:
        try:
            count = self.display.pending_events()
            while count > 0:
                event = self.display.next_event()
                count -= 1
                if self.event_filter.matches(event):
                    return event
                self._defer(event)
        except XError.ConnectionClosedError as e:
            logger.warning(f"X connection closed: {e}")
            raise ConnectionFault(f"X connection closed: {e}") from e
        except OSError as e:
            logger.warning(f"X connection failed: {e}")
            raise ConnectionFault(f"X connection failed: {e}") from e
        return None

    def _defer(self, event: Any):
        if self.max_deferred is not None and len(self.deferred) >= self.max_deferred:
            oldest = self.deferred.popleft()
            self.dropped += 1
            logger.warning(
                f"Deferred queue full ({self.max_deferred}), dropped "
                f"{type(oldest).__name__} ({self.dropped} dropped so far)"
            )
        self.deferred.append(event)

    def take_deferred(self) -> List[Any]:
        """Return and clear events that did not match the filter."""
        events = list(self.deferred)
        self.deferred.clear()
        return events
