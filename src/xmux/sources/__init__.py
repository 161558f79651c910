"""Event sources - python-xlib display adapter and event filtering."""

from .event_filter import EventFilter, mask_from_names
from .xlib_source import XEventSource

__all__ = ['EventFilter', 'mask_from_names', 'XEventSource']
