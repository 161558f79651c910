"""
Deadline tracking for bounded waits.

A timeout is turned into an absolute point on a monotonic clock exactly
once; every later question ("how long may I still wait?") is answered
against that point, so re-entering a wait never extends it.
"""

import math
import time
from typing import Callable

from ..errors import InvalidInputError

Clock = Callable[[], float]


def validate_timeout(timeout) -> float:
    """
    Check that a timeout is a finite, non-negative number of seconds.

    Returns:
        The timeout as a float

    Raises:
        InvalidInputError: For negative, NaN, infinite, boolean or
            non-numeric values
    """
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise InvalidInputError(f"timeout must be a number of seconds, got {timeout!r}")
    timeout = float(timeout)
    if math.isnan(timeout) or math.isinf(timeout):
        raise InvalidInputError(f"timeout must be finite, got {timeout!r}")
    if timeout < 0:
        raise InvalidInputError(f"timeout must be non-negative, got {timeout!r}")
    return timeout


class Deadline:
    """
    Absolute deadline derived once from `clock() + timeout`.

    Usage:
        deadline = Deadline(0.5)
        while not deadline.expired():
            wait_for_something(deadline.remaining())
    """

    def __init__(self, timeout: float, clock: Clock = time.monotonic):
        """
        Args:
            timeout: Seconds from now until the deadline (>= 0)
            clock: Monotonic clock returning seconds; injectable for tests
        """
        self.timeout = validate_timeout(timeout)
        self.clock = clock
        self.at = clock() + self.timeout

    def remaining(self) -> float:
        """Seconds left until the deadline, never negative."""
        return max(0.0, self.at - self.clock())

    def expired(self) -> bool:
        return self.remaining() <= 0

    def __repr__(self) -> str:
        return f"Deadline(timeout={self.timeout}, at={self.at})"
