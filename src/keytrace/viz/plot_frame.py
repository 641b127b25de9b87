"""Draw a rendered :class:`~keytrace.viz.waveform.Frame` with matplotlib."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.colors import hsv_to_rgb

from . import styles
from .waveform import Frame


def _column_colors(hues: np.ndarray) -> np.ndarray:
    hsv = np.column_stack([hues / 360.0, np.full_like(hues, 0.8), np.full_like(hues, 0.9)])
    return hsv_to_rgb(hsv) if len(hues) else np.zeros((0, 3))


def draw_frame(ax: Optional[plt.Axes], frame: Optional[Frame]) -> None:
    """Draw ``frame`` on ``ax`` using canvas pixel coordinates.

    The y axis is inverted so that ``y = 0`` is the top edge, matching the
    coordinates produced by :func:`~keytrace.viz.waveform.render_frame`.
    Either argument being ``None`` makes this a no-op.
    """

    if ax is None or frame is None:
        return

    w, h = frame.width, frame.height
    ax.clear()
    ax.set_xlim(0, w)
    ax.set_ylim(h, 0)
    ax.set_axis_off()

    if frame.mode == "spectrogram":
        ax.bar(
            frame.xs,
            frame.bar_heights,
            bottom=h - frame.bar_heights,
            width=1.0,
            align="edge",
            color=_column_colors(frame.hues),
            linewidth=0,
        )
    elif len(frame.xs):
        ax.fill_between(frame.xs, frame.ys, frame.baseline, color=styles.WAVEFORM_COLOR, alpha=styles.WAVEFORM_FILL_ALPHA)
        ax.plot(frame.xs, frame.ys, color=styles.WAVEFORM_COLOR)

    for trim in frame.trims:
        ax.axvline(trim.x, color=styles.TRIM_COLOR, linestyle="--", linewidth=styles.MARKER_WIDTH)
        ax.text(trim.x + 4, 40, trim.label, color=styles.TRIM_COLOR)

    if frame.playhead_x is not None:
        ax.axvline(frame.playhead_x, color=styles.PLAYHEAD_COLOR, linewidth=styles.MARKER_WIDTH)

    for marker in frame.markers:
        color = styles.SELECTED_COLOR if marker.selected else styles.MARKER_COLOR
        width = styles.SELECTED_WIDTH if marker.selected else styles.MARKER_WIDTH
        if marker.highlight is not None:
            ax.axvspan(*marker.highlight, color=styles.SELECTED_COLOR, alpha=styles.HIGHLIGHT_ALPHA, linewidth=0)
        ax.axvline(marker.x, color=color, linewidth=width)
        ax.text(marker.x, 20, marker.label, color=color, ha="center", fontsize=12)
        ax.text(marker.x, h - 10, marker.time_label, color=styles.TEXT_COLOR, ha="center", fontsize=10)

    for tick in frame.ticks:
        ax.text(tick.x, h - 25, tick.label, color=styles.TEXT_COLOR, fontsize=12)


def save_or_show(fig: plt.Figure, save: str | Path | None = None, show: bool = False) -> None:
    """Save ``fig`` to ``save`` and/or display it interactively.

    If ``save`` is ``None`` the figure is shown so that a bare call still
    gives quick feedback during inspection.
    """
    if save:
        fig.savefig(save)
    if show or not save:
        plt.show()


def save_frame(frame: Optional[Frame], save: str | Path | None = None, *, show: bool = False, dpi: int = 100) -> Optional[plt.Figure]:
    """Create a figure sized like the canvas, draw ``frame`` and save it."""

    if frame is None:
        return None
    styles.apply_style()
    fig = plt.figure(figsize=(frame.width / dpi, frame.height / dpi), dpi=dpi)
    ax = fig.add_axes((0, 0, 1, 1))
    draw_frame(ax, frame)
    save_or_show(fig, save, show)
    return fig


__all__ = ["draw_frame", "save_frame", "save_or_show"]
