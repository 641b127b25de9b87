"""Zoom/pan state and the time <-> pixel transform.

The transform functions are pure: they only read a :class:`ViewportState`
and a canvas width.  Rendering and hit-testing both go through them so a
marker is always drawn where a click selects it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..types import TimeInterval

MIN_ZOOM = 1.0
MAX_ZOOM = 20.0
WHEEL_IN_FACTOR = 1.1
WHEEL_OUT_FACTOR = 0.9
BUTTON_FACTOR = 1.2


@dataclass(frozen=True)
class ViewportState:
    """Visible sub-range of a buffer of length ``duration`` seconds.

    ``zoom_level`` is kept inside ``[min_zoom, max_zoom]`` and
    ``pan_offset`` inside ``[0, duration - duration / zoom_level]`` so the
    visible window never leaves ``[0, duration]``.  Instances are immutable;
    the zoom and pan helpers return clamped copies.
    """

    duration: float
    zoom_level: float = 1.0
    pan_offset: float = 0.0
    min_zoom: float = MIN_ZOOM
    max_zoom: float = MAX_ZOOM

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise ValueError("duration must not be negative")
        if not 0 < self.min_zoom <= self.max_zoom:
            raise ValueError("zoom bounds must satisfy 0 < min_zoom <= max_zoom")
        zoom = min(self.max_zoom, max(self.min_zoom, float(self.zoom_level)))
        object.__setattr__(self, "zoom_level", zoom)
        object.__setattr__(self, "pan_offset", self._clamp_pan(self.pan_offset))

    def _clamp_pan(self, offset: float) -> float:
        return max(0.0, min(self.max_pan, float(offset)))

    @property
    def visible_duration(self) -> float:
        return self.duration / self.zoom_level

    @property
    def max_pan(self) -> float:
        return max(0.0, self.duration - self.duration / self.zoom_level)

    @property
    def visible(self) -> TimeInterval:
        start = self.pan_offset
        return TimeInterval(start, min(self.duration, start + self.visible_duration))

    # ------------------------------------------------------------------
    # Zoom
    # ------------------------------------------------------------------

    def with_zoom(self, zoom_level: float) -> "ViewportState":
        """Return a copy at ``zoom_level``; the pan offset is re-clamped."""

        return replace(self, zoom_level=zoom_level)

    def zoomed(self, factor: float) -> "ViewportState":
        return self.with_zoom(self.zoom_level * factor)

    def wheel(
        self,
        delta_y: float,
        *,
        in_factor: float = WHEEL_IN_FACTOR,
        out_factor: float = WHEEL_OUT_FACTOR,
    ) -> "ViewportState":
        """Apply one wheel tick: scrolling down zooms out, up zooms in."""

        return self.zoomed(out_factor if delta_y > 0 else in_factor)

    def zoom_in(self, factor: float = BUTTON_FACTOR) -> "ViewportState":
        return self.zoomed(factor)

    def zoom_out(self, factor: float = BUTTON_FACTOR) -> "ViewportState":
        return self.zoomed(1.0 / factor)

    # ------------------------------------------------------------------
    # Pan
    # ------------------------------------------------------------------

    def with_pan(self, offset: float) -> "ViewportState":
        return replace(self, pan_offset=offset)

    def panned_by_pixels(self, delta_x: float, width: float) -> "ViewportState":
        """Pan by a drag of ``delta_x`` pixels on a ``width`` pixel canvas.

        Dragging to the right reveals earlier audio, so the time delta has
        the opposite sign of ``delta_x``.
        """

        if width <= 0:
            raise ValueError("canvas width must be positive")
        pan_delta = -(delta_x / width) * self.visible_duration
        return self.with_pan(self.pan_offset + pan_delta)


def time_to_pixel(t: float, viewport: ViewportState, width: float) -> float:
    """Map ``t`` seconds to an x coordinate on a ``width`` pixel canvas."""

    if width <= 0:
        raise ValueError("canvas width must be positive")
    visible = viewport.visible_duration
    if visible <= 0:
        return 0.0
    return ((t - viewport.pan_offset) / visible) * width


def pixel_to_time(x: float, viewport: ViewportState, width: float) -> float:
    """Inverse of :func:`time_to_pixel`."""

    if width <= 0:
        raise ValueError("canvas width must be positive")
    return viewport.pan_offset + (x / width) * viewport.visible_duration


__all__ = [
    "MIN_ZOOM",
    "MAX_ZOOM",
    "WHEEL_IN_FACTOR",
    "WHEEL_OUT_FACTOR",
    "BUTTON_FACTOR",
    "ViewportState",
    "time_to_pixel",
    "pixel_to_time",
]
