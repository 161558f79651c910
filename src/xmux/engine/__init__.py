"""Wait engine - deadline tracking and the multiplexed readiness loop.

Contains:
- Deadline: absolute deadline with per-iteration remaining time
- wait / wait_any: the multiplexed wait over queued sources and descriptors
"""

from .deadline import Deadline, validate_timeout
from .multiplexed_wait import wait, wait_any

__all__ = ['Deadline', 'validate_timeout', 'wait', 'wait_any']
