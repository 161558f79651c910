"""
Multiplexed Wait

Blocks on a socket-fed event queue, one or more auxiliary descriptors
and a deadline at once, and returns as soon as one of them has
something to report.

The ordering below is what makes this correct, not just convenient:

    1. Probe every source's local queue without blocking. An event that
       is already buffered is returned before poll() is ever entered,
       otherwise a quiet socket would leave it stranded until timeout.
    2. Recompute the remaining time against the absolute deadline.
    3. poll() on all descriptors, bounded by that remaining time.
    4. Source descriptor readable -> back to 1. Readable bytes can be a
       partial event, a reply, or several events; only the queue check knows.
    5. Auxiliary descriptor readable -> AUXILIARY_READY.
    6. Nothing readable -> TIMEOUT.

Usage:
    outcome = wait(source, sys.stdin, timeout=1.0)
    if outcome.is_event:
        handle(outcome.payload)
"""

import errno
import logging
import math
import os
import select
import time
from typing import Any, Callable, Iterable, List, Sequence

from ..errors import ConnectionFault, InvalidInputError
from ..interfaces.event_source import QueuedEventSource
from ..interfaces.wait_outcome import WaitOutcome
from .deadline import Clock, Deadline

logger = logging.getLogger(__name__)

SelectFn = Callable[..., Any]


def _is_open(fd: int) -> bool:
    try:
        os.fstat(fd)
    except OSError:
        return False
    return True


# Hang-up and error conditions count as readable: the next read (or queue
# check) is what reports EOF or the broken connection.
POLL_READ_EVENTS = select.POLLIN | select.POLLPRI | select.POLLHUP | select.POLLERR


def poll_readable(rlist, wlist, xlist, timeout):
    """
    select.select-compatible read wait built on poll().

    Unlike select(), poll() has no FD_SETSIZE ceiling, so descriptors
    numbered 1024 and above work. Only read interest is supported.

    Raises:
        OSError: EBADF if any descriptor is not open (POLLNVAL)
    """
    poller = select.poll()
    for fd in rlist:
        poller.register(fd, select.POLLIN | select.POLLPRI)

    # Round up so the wait never ends before the deadline it was given
    timeout_ms = None if timeout is None else math.ceil(timeout * 1000)

    readable = []
    for fd, mask in poller.poll(timeout_ms):
        if mask & select.POLLNVAL:
            raise OSError(errno.EBADF, f"descriptor {fd} is not open")
        if mask & POLL_READ_EVENTS:
            readable.append(fd)
    return readable, [], []


def auxiliary_descriptor(obj: Any) -> int:
    """
    Resolve an auxiliary descriptor from an int or a file-like object.

    Raises:
        InvalidInputError: If obj has no usable, open descriptor
    """
    if isinstance(obj, bool):
        raise InvalidInputError(f"not a descriptor: {obj!r}")
    if isinstance(obj, int):
        fd = obj
    else:
        fileno = getattr(obj, 'fileno', None)
        if fileno is None:
            raise InvalidInputError(f"not a descriptor: {obj!r}")
        try:
            fd = fileno()
        except (OSError, ValueError) as e:
            raise InvalidInputError(f"{obj!r} has no usable descriptor: {e}") from e

    if not isinstance(fd, int) or fd < 0:
        raise InvalidInputError(f"invalid auxiliary descriptor: {fd!r}")
    if not _is_open(fd):
        raise InvalidInputError(f"auxiliary descriptor {fd} is not open")
    return fd


def source_descriptor(source: QueuedEventSource) -> int:
    """
    Raw descriptor of an event source.

    Raises:
        ConnectionFault: If the source can no longer produce one
    """
    try:
        fd = source.fileno()
    except (OSError, ValueError) as e:
        raise ConnectionFault(f"event source has no usable descriptor: {e}") from e

    if not isinstance(fd, int) or fd < 0:
        raise ConnectionFault(f"event source returned invalid descriptor {fd!r}")
    return fd


def _select_failure(
    exc: Exception,
    source_fds: Sequence[int],
    read_fds: Sequence[int]
) -> Exception:
    """Attribute a non-interrupt readiness-wait failure to the source or the caller."""
    for fd in source_fds:
        if not _is_open(fd):
            logger.warning(f"Event source descriptor {fd} closed during wait: {exc}")
            return ConnectionFault(f"event source descriptor {fd} is no longer open: {exc}")
    logger.warning(f"readiness wait rejected descriptors {list(read_fds)}: {exc}")
    return InvalidInputError(f"readiness wait rejected descriptors {list(read_fds)}: {exc}")


def wait_any(
    sources: Iterable[QueuedEventSource],
    auxiliary: Iterable[Any],
    deadline: Deadline,
    select_fn: SelectFn = poll_readable
) -> WaitOutcome:
    """
    Wait on several queued sources and auxiliary descriptors until a
    deadline.

    Sources are checked in the order given and the first complete event
    wins. Auxiliary descriptors are reported in the order given. Events
    already queued always win over auxiliary readiness seen in the same
    iteration.

    A deadline that is already due still gets one zero-length wait,
    so a poll can report an auxiliary descriptor that is readable now.

    Args:
        sources: Event sources to check and watch (at least one)
        auxiliary: Extra readable descriptors (ints or objects with fileno())
        deadline: Absolute deadline shared by every iteration
        select_fn: select.select-compatible callable (default: poll_readable); injectable for tests

    Returns:
        WaitOutcome with kind EVENT, AUXILIARY_READY or TIMEOUT

    Raises:
        ConnectionFault: If a source's connection is unusable
        InvalidInputError: For an empty source list or bad auxiliary descriptors
    """
    sources = list(sources)
    if not sources:
        raise InvalidInputError("at least one event source is required")

    source_fds = [source_descriptor(source) for source in sources]
    aux_fds = [auxiliary_descriptor(obj) for obj in auxiliary]
    read_fds: List[int] = list(dict.fromkeys(source_fds + aux_fds))

    waited = False
    pending_aux = None

    while True:
        for source in sources:
            payload = source.try_take_ready()
            if payload is not None:
                return WaitOutcome.event(payload, source)

        # Auxiliary readiness seen alongside socket readiness, and the
        # re-check above found no complete event.
        if pending_aux is not None:
            return WaitOutcome.auxiliary_ready(pending_aux)

        remaining = deadline.remaining()
        if remaining <= 0 and waited:
            return WaitOutcome.timeout()

        try:
            readable, _, _ = select_fn(read_fds, [], [], remaining)
        except InterruptedError:
            logger.debug("Readiness wait interrupted, retrying with recomputed timeout")
            continue
        except (OSError, ValueError) as e:
            raise _select_failure(e, source_fds, read_fds) from e
        waited = True

        if not readable:
            return WaitOutcome.timeout()

        ready = set(readable)
        ready_aux = next((fd for fd in aux_fds if fd in ready), None)

        if any(fd in ready for fd in source_fds):
            logger.debug(f"Source readable with {deadline.remaining():.3f}s left, re-checking queue")
            pending_aux = ready_aux
            continue

        if ready_aux is not None:
            return WaitOutcome.auxiliary_ready(ready_aux)


def wait(
    source: QueuedEventSource,
    auxiliary: Any,
    timeout: float,
    select_fn: SelectFn = poll_readable,
    clock: Clock = time.monotonic
) -> WaitOutcome:
    """
    Wait for an event from `source`, readiness on `auxiliary`, or `timeout`.

    Blocks for at most `timeout` seconds. A timeout of 0 polls once.

    Args:
        source: Connected queued event source
        auxiliary: Readable descriptor (int or object with fileno())
        timeout: Non-negative seconds
        select_fn: select.select-compatible callable (default: poll_readable); injectable for tests
        clock: Monotonic clock; injectable for tests

    Returns:
        Exactly one WaitOutcome

    Raises:
        ConnectionFault: If the source's connection is unusable
        InvalidInputError: For a bad timeout or auxiliary descriptor
    """
    deadline = Deadline(timeout, clock=clock)
    return wait_any([source], [auxiliary], deadline, select_fn=select_fn)
