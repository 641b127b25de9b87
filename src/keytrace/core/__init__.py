"""Core algorithms and data structures for keytrace.

:mod:`keytrace.core.session` builds on the export and rendering packages,
which in turn import from here, so it is imported directly rather than
re-exported.
"""

from .keycodes import KEYBOARD_LAYOUT, KeyCap, display_name, keyboard_state, marker_label, normalize_code
from .timeline import EventTimeline, KeyEvent, find_nearest_event
from .viewport import ViewportState, pixel_to_time, time_to_pixel
from .extract import extract_segment, extract_segments, segment_bounds
from .transport import Transport

__all__ = [
    "KEYBOARD_LAYOUT",
    "KeyCap",
    "display_name",
    "keyboard_state",
    "marker_label",
    "normalize_code",
    "EventTimeline",
    "KeyEvent",
    "find_nearest_event",
    "ViewportState",
    "pixel_to_time",
    "time_to_pixel",
    "extract_segment",
    "extract_segments",
    "segment_bounds",
    "Transport",
]
