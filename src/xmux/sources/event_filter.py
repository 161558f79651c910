"""
Event Filter

Decides which X events a source hands out as "matching". Follows the
core protocol's event-type to event-mask relationship, so a filter
built from the same mask a window selected with reports exactly the
events that selection produces.
"""

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, Optional

from Xlib import X


# Event type -> the event mask bits that select it
EVENT_TYPE_MASKS = {
    X.KeyPress: X.KeyPressMask,
    X.KeyRelease: X.KeyReleaseMask,
    X.ButtonPress: X.ButtonPressMask,
    X.ButtonRelease: X.ButtonReleaseMask,
    X.MotionNotify: (
        X.PointerMotionMask | X.PointerMotionHintMask | X.ButtonMotionMask |
        X.Button1MotionMask | X.Button2MotionMask | X.Button3MotionMask |
        X.Button4MotionMask | X.Button5MotionMask
    ),
    X.EnterNotify: X.EnterWindowMask,
    X.LeaveNotify: X.LeaveWindowMask,
    X.FocusIn: X.FocusChangeMask,
    X.FocusOut: X.FocusChangeMask,
    X.KeymapNotify: X.KeymapStateMask,
    X.Expose: X.ExposureMask,
    X.VisibilityNotify: X.VisibilityChangeMask,
    X.CreateNotify: X.SubstructureNotifyMask,
    X.DestroyNotify: X.StructureNotifyMask | X.SubstructureNotifyMask,
    X.UnmapNotify: X.StructureNotifyMask | X.SubstructureNotifyMask,
    X.MapNotify: X.StructureNotifyMask | X.SubstructureNotifyMask,
    X.MapRequest: X.SubstructureRedirectMask,
    X.ReparentNotify: X.StructureNotifyMask | X.SubstructureNotifyMask,
    X.ConfigureNotify: X.StructureNotifyMask | X.SubstructureNotifyMask,
    X.ConfigureRequest: X.SubstructureRedirectMask,
    X.GravityNotify: X.StructureNotifyMask | X.SubstructureNotifyMask,
    X.ResizeRequest: X.ResizeRedirectMask,
    X.CirculateNotify: X.StructureNotifyMask | X.SubstructureNotifyMask,
    X.CirculateRequest: X.SubstructureRedirectMask,
    X.PropertyNotify: X.PropertyChangeMask,
    X.ColormapNotify: X.ColormapChangeMask,
}

# Field naming the window an event was reported to, where it is not `window`
REPORTED_WINDOW_FIELDS = {
    X.CreateNotify: 'parent',
    X.DestroyNotify: 'event',
    X.UnmapNotify: 'event',
    X.MapNotify: 'event',
    X.MapRequest: 'parent',
    X.ReparentNotify: 'event',
    X.ConfigureNotify: 'event',
    X.ConfigureRequest: 'parent',
    X.GravityNotify: 'event',
    X.CirculateNotify: 'event',
    X.CirculateRequest: 'parent',
}


def window_id(window: Any) -> Optional[int]:
    """Resource id of a python-xlib window object, or the value if already an id."""
    if window is None:
        return None
    return getattr(window, 'id', window)


EVENT_MASK_NAMES = (
    'KeyPressMask', 'KeyReleaseMask', 'ButtonPressMask', 'ButtonReleaseMask',
    'EnterWindowMask', 'LeaveWindowMask', 'PointerMotionMask',
    'PointerMotionHintMask', 'Button1MotionMask', 'Button2MotionMask',
    'Button3MotionMask', 'Button4MotionMask', 'Button5MotionMask',
    'ButtonMotionMask', 'KeymapStateMask', 'ExposureMask',
    'VisibilityChangeMask', 'StructureNotifyMask', 'ResizeRedirectMask',
    'SubstructureNotifyMask', 'SubstructureRedirectMask', 'FocusChangeMask',
    'PropertyChangeMask', 'ColormapChangeMask', 'OwnerGrabButtonMask',
)


def mask_from_names(names: Iterable[str]) -> int:
    """
    OR together X event masks given by name.

    Accepts "KeyPressMask" as well as "KeyPress".

    Raises:
        ValueError: For names that are not event masks
    """
    mask = 0
    for name in names:
        attr = name if name.endswith('Mask') else name + 'Mask'
        if attr not in EVENT_MASK_NAMES:
            raise ValueError(f"Unknown X event mask: {name!r}")
        mask |= getattr(X, attr)
    return mask


@dataclass(frozen=True)
class EventFilter:
    """
    Selects events by mask, by explicit type, and optionally by window.

    An event matches when its type is selected by `event_mask` or listed
    in `event_types`, and it was reported to `window` (if set). A filter
    with neither mask nor types accepts every type.
    """
    event_mask: int = 0
    event_types: FrozenSet[int] = field(default_factory=frozenset)
    window: Optional[int] = None

    @classmethod
    def from_names(cls, mask_names: Iterable[str], window: Any = None) -> 'EventFilter':
        return cls(event_mask=mask_from_names(mask_names), window=window_id(window))

    def for_window(self, window: Any) -> 'EventFilter':
        return EventFilter(self.event_mask, self.event_types, window_id(window))

    def matches_type(self, event_type: int) -> bool:
        if not self.event_mask and not self.event_types:
            return True
        if event_type in self.event_types:
            return True
        return bool(EVENT_TYPE_MASKS.get(event_type, 0) & self.event_mask)

    def matches(self, event: Any) -> bool:
        event_type = getattr(event, 'type', None)
        if event_type is None or not self.matches_type(event_type):
            return False
        if self.window is None:
            return True
        field_name = REPORTED_WINDOW_FIELDS.get(event_type, 'window')
        return window_id(getattr(event, field_name, None)) == self.window
