"""Pure waveform frame rendering.

:func:`render_frame` turns the current buffer, timeline and viewport into a
:class:`Frame`: a plain description of everything that should be drawn
(waveform points, spectrogram bars, event markers, playhead, trim markers and
time ticks) in pixel coordinates.  It has no drawing dependency; see
:mod:`keytrace.viz.plot_frame` for a matplotlib consumer.

The "spectrogram" mode is an amplitude heatmap, not a frequency analysis:
each column's bar height and hue come straight from the absolute amplitude
of its representative sample.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Tuple

import numpy as np

from ..core.keycodes import marker_label
from ..core.timeline import EventTimeline
from ..core.viewport import ViewportState, time_to_pixel
from ..types import SampleBuffer, TimeInterval
from ..utils.timeparse import format_seconds

Mode = Literal["waveform", "spectrogram"]

TICK_DIVISIONS = 10
# Hue in degrees for silence; full scale maps to 0 (red).
QUIET_HUE = 240.0


@dataclass(frozen=True)
class EventMarker:
    event_id: str
    x: float
    label: str
    time_label: str
    selected: bool
    highlight: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class TrimMarker:
    kind: Literal["start", "end"]
    x: float
    label: str


@dataclass(frozen=True)
class Tick:
    x: float
    time: float
    label: str


@dataclass
class Frame:
    """Everything needed to draw one redraw of the waveform canvas."""

    width: int
    height: int
    mode: Mode
    visible: TimeInterval
    xs: np.ndarray
    amplitudes: np.ndarray
    ys: np.ndarray
    bar_heights: np.ndarray
    hues: np.ndarray
    markers: List[EventMarker] = field(default_factory=list)
    trims: List[TrimMarker] = field(default_factory=list)
    playhead_x: Optional[float] = None
    ticks: List[Tick] = field(default_factory=list)

    @property
    def baseline(self) -> float:
        return self.height / 2


def column_samples(buffer: SampleBuffer, visible: TimeInterval, width: int) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(xs, indices)`` of the representative sample per column.

    Column ``x`` uses ``start + floor((x / width) * count)``; columns whose
    index lies past the end of the buffer are dropped.
    """

    start = math.floor(visible.start * buffer.sample_rate)
    end = math.floor(visible.end * buffer.sample_rate)
    count = end - start
    xs = np.arange(width)
    indices = start + np.floor((xs / width) * count).astype(np.int64)
    keep = (indices >= 0) & (indices < len(buffer))
    return xs[keep], indices[keep]


def render_frame(
    buffer: Optional[SampleBuffer],
    timeline: EventTimeline,
    viewport: ViewportState,
    *,
    width: int,
    height: int,
    playhead: Optional[float] = None,
    trim_start: Optional[float] = None,
    trim_end: Optional[float] = None,
    mode: Mode = "waveform",
    tick_divisions: int = TICK_DIVISIONS,
) -> Optional[Frame]:
    """Render the current state into a :class:`Frame`.

    Returns ``None`` when there is nothing to draw on: no buffer, or a
    canvas with no area.  Callers treat that as a skipped redraw.
    """

    if buffer is None or width <= 0 or height <= 0:
        return None
    if mode not in ("waveform", "spectrogram"):
        raise ValueError(f"unknown render mode: {mode!r}")

    visible = viewport.visible
    xs, indices = column_samples(buffer, visible, width)
    amplitudes = buffer.samples[indices].astype(np.float64)
    ys = height / 2 - amplitudes * height / 2
    magnitude = np.abs(amplitudes)
    bar_heights = magnitude * height
    hues = (1.0 - np.clip(magnitude, 0.0, 1.0)) * QUIET_HUE

    def to_x(t: float) -> float:
        return time_to_pixel(t, viewport, width)

    trims: List[TrimMarker] = []
    for kind, t in (("start", trim_start), ("end", trim_end)):
        if t is not None and visible.contains(t):
            trims.append(TrimMarker(kind, to_x(t), f"{kind.capitalize()} {format_seconds(t)}"))

    playhead_x = to_x(playhead) if playhead is not None and visible.contains(playhead) else None

    markers: List[EventMarker] = []
    for event in timeline.between(visible.start, visible.end):
        highlight = (to_x(event.window_start), to_x(event.window_end)) if event.selected else None
        markers.append(
            EventMarker(
                event_id=event.id,
                x=to_x(event.event_time),
                label=marker_label(event.key_label),
                time_label=format_seconds(event.event_time),
                selected=event.selected,
                highlight=highlight,
            )
        )

    step = viewport.visible_duration / tick_divisions
    ticks = [
        Tick(
            x=(i / tick_divisions) * width,
            time=visible.start + i * step,
            label=format_seconds(visible.start + i * step, 1),
        )
        for i in range(tick_divisions + 1)
    ]

    return Frame(
        width=width,
        height=height,
        mode=mode,
        visible=visible,
        xs=xs.astype(np.float64),
        amplitudes=amplitudes,
        ys=ys,
        bar_heights=bar_heights,
        hues=hues,
        markers=markers,
        trims=trims,
        playhead_x=playhead_x,
        ticks=ticks,
    )


__all__ = [
    "TICK_DIVISIONS",
    "EventMarker",
    "TrimMarker",
    "Tick",
    "Frame",
    "column_samples",
    "render_frame",
]
