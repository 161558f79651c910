"""
Pytest configuration and fixtures for xmux tests.
"""

import os
import socket
import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from xmux.errors import ConnectionFault
from xmux.interfaces.event_source import QueuedEventSource


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ScriptedSelect:
    """
    select.select stand-in driven by a script.

    Each step is (delay, ready) where `ready` is a set of descriptors
    that become readable after `delay` seconds, or an exception instance
    raised after `delay` seconds. A step whose delay exceeds the bound
    passed in times out and is kept, shortened, for the next call. With
    no steps left every call sleeps its full bound and returns nothing.
    """

    def __init__(self, clock, steps=()):
        self.clock = clock
        self.steps = list(steps)
        self.calls = []

    def __call__(self, rlist, wlist, xlist, timeout=None):
        self.calls.append((list(rlist), timeout))

        if not self.steps:
            self.clock.advance(timeout)
            return [], [], []

        delay, ready = self.steps.pop(0)
        if delay > timeout:
            self.clock.advance(timeout)
            self.steps.insert(0, (delay - timeout, ready))
            return [], [], []

        self.clock.advance(delay)
        if isinstance(ready, BaseException):
            raise ready
        return [fd for fd in rlist if fd in ready], [], []

    @property
    def bounds(self):
        return [timeout for _, timeout in self.calls]


class ScriptedSource(QueuedEventSource):
    """Queued source whose events become complete at scripted clock times."""

    def __init__(self, fd, clock, events=()):
        self.fd = fd
        self.clock = clock
        self.pending = sorted(events, key=lambda item: item[0])
        self.checks = 0
        self.fault = None

    def fileno(self):
        return self.fd

    def try_take_ready(self):
        self.checks += 1
        if self.fault is not None:
            raise self.fault
        if self.pending and self.pending[0][0] <= self.clock() + 1e-9:
            return self.pending.pop(0)[1]
        return None


class LineSource(QueuedEventSource):
    """
    Socket-backed source whose events are newline-terminated lines.

    Reads whatever the socket already has without blocking; bytes after
    the last newline stay buffered as an incomplete event.
    """

    def __init__(self, sock):
        self.sock = sock
        self.sock.setblocking(False)
        self.buffer = b''

    def fileno(self):
        return self.sock.fileno()

    def try_take_ready(self):
        while True:
            try:
                chunk = self.sock.recv(4096)
            except BlockingIOError:
                break
            if not chunk:
                if b'\n' not in self.buffer:
                    raise ConnectionFault("peer closed")
                break
            self.buffer += chunk

        if b'\n' in self.buffer:
            line, self.buffer = self.buffer.split(b'\n', 1)
            return line
        return None


@pytest.fixture
def clock():
    """Fake monotonic clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def make_pipe():
    """Factory for OS pipes, all closed at teardown."""
    opened = []

    def _make():
        r, w = os.pipe()
        opened.extend([r, w])
        return r, w

    yield _make

    for fd in opened:
        try:
            os.close(fd)
        except OSError:
            pass


@pytest.fixture
def socket_pair():
    """Connected (app, server) socket pair, closed at teardown."""
    app, server = socket.socketpair()
    yield app, server
    app.close()
    server.close()
