"""
Tests for XEventSource.

Uses mocks for the X11 display to avoid requiring a real display.
"""

import errno
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from Xlib import X
from Xlib import error as XError

from xmux.errors import ConnectionFault
from xmux.sources.event_filter import EventFilter
from xmux.sources.xlib_source import XEventSource


WINDOW = 0x2c00001


def make_event(event_type, wid=WINDOW):
    return SimpleNamespace(type=event_type, window=SimpleNamespace(id=wid))


def make_display(events):
    """Mock display whose queue holds `events`."""
    queue = list(events)
    display = MagicMock()
    display.pending_events.side_effect = lambda: len(queue)
    display.next_event.side_effect = lambda: queue.pop(0)
    display.fileno.return_value = 7
    return display


class TestXEventSource:
    """Tests for the python-xlib backed source."""

    def test_returns_matching_event(self):
        key = make_event(X.KeyPress)
        source = XEventSource(make_display([key]), EventFilter(X.KeyPressMask, window=WINDOW))

        assert source.try_take_ready() is key
        assert source.take_deferred() == []

    def test_empty_queue_does_not_dequeue(self):
        display = make_display([])
        source = XEventSource(display)

        assert source.try_take_ready() is None
        display.next_event.assert_not_called()

    def test_non_matching_events_are_deferred_in_order(self):
        motion = make_event(X.MotionNotify)
        other_window = make_event(X.KeyPress, wid=0x999)
        key = make_event(X.KeyPress)
        display = make_display([motion, other_window, key])
        source = XEventSource(display, EventFilter(X.KeyPressMask, window=WINDOW))

        assert source.try_take_ready() is key
        assert source.take_deferred() == [motion, other_window]
        assert source.take_deferred() == []

    def test_only_non_matching_events_queued(self):
        motion = make_event(X.MotionNotify)
        source = XEventSource(make_display([motion]), EventFilter(X.KeyPressMask))

        assert source.try_take_ready() is None
        assert list(source.deferred) == [motion]

    def test_stops_at_first_match(self):
        first = make_event(X.KeyPress)
        second = make_event(X.KeyPress)
        display = make_display([first, second])
        source = XEventSource(display, EventFilter(X.KeyPressMask))

        assert source.try_take_ready() is first
        assert source.try_take_ready() is second
        assert source.try_take_ready() is None

    def test_default_filter_accepts_all(self):
        message = SimpleNamespace(type=X.ClientMessage, window=SimpleNamespace(id=1))
        source = XEventSource(make_display([message]))

        assert source.try_take_ready() is message

    def test_fileno_passthrough(self):
        source = XEventSource(make_display([]))
        assert source.fileno() == 7

    def test_fileno_failure_is_connection_fault(self):
        display = make_display([])
        display.fileno.side_effect = OSError(errno.EBADF, 'Bad file descriptor')

        with pytest.raises(ConnectionFault):
            XEventSource(display).fileno()

    def test_closed_connection_is_connection_fault(self):
        display = MagicMock()
        display.pending_events.side_effect = XError.ConnectionClosedError('Display')

        with pytest.raises(ConnectionFault):
            XEventSource(display).try_take_ready()

    def test_socket_error_is_connection_fault(self):
        display = MagicMock()
        display.pending_events.side_effect = ConnectionResetError(errno.ECONNRESET, 'reset')

        with pytest.raises(ConnectionFault):
            XEventSource(display).try_take_ready()


class TestDeferredBound:
    """Optional limit on events held for the caller."""

    def test_unbounded_by_default(self):
        events = [make_event(X.MotionNotify) for _ in range(50)]
        source = XEventSource(make_display(events), EventFilter(X.KeyPressMask))

        assert source.try_take_ready() is None
        assert len(source.take_deferred()) == 50
        assert source.dropped == 0

    def test_oldest_dropped_when_full(self, caplog):
        first, second, third = (make_event(X.MotionNotify) for _ in range(3))
        source = XEventSource(
            make_display([first, second, third]),
            EventFilter(X.KeyPressMask),
            max_deferred=2,
        )

        assert source.try_take_ready() is None

        assert source.take_deferred() == [second, third]
        assert source.dropped == 1
        assert 'Deferred queue full' in caplog.text

    def test_drained_queue_accepts_more(self):
        events = [make_event(X.MotionNotify) for _ in range(4)]
        queue = list(events[:2])
        display = make_display([])
        display.pending_events.side_effect = lambda: len(queue)
        display.next_event.side_effect = lambda: queue.pop(0)
        source = XEventSource(display, EventFilter(X.KeyPressMask), max_deferred=2)

        source.try_take_ready()
        assert source.take_deferred() == events[:2]

        queue.extend(events[2:])
        source.try_take_ready()
        assert source.take_deferred() == events[2:]
        assert source.dropped == 0

    def test_matching_event_still_returned_when_full(self):
        motion = [make_event(X.MotionNotify) for _ in range(3)]
        key = make_event(X.KeyPress)
        source = XEventSource(
            make_display(motion + [key]),
            EventFilter(X.KeyPressMask),
            max_deferred=1,
        )

        assert source.try_take_ready() is key
        assert source.take_deferred() == [motion[-1]]

    @pytest.mark.parametrize('bound', [0, -1])
    def test_bound_must_be_positive(self, bound):
        with pytest.raises(ValueError):
            XEventSource(make_display([]), max_deferred=bound)
