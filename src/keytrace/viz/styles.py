"""Matplotlib styles for keytrace visualisations."""

from __future__ import annotations

import matplotlib.pyplot as plt

# Base style configuration used for rendered frames.  The values can be
# overridden by supplying a different style mapping to :func:`apply_style`.
BASE_STYLE = {
    "figure.facecolor": "#ffffff",
    "axes.facecolor": "#ffffff",
    "axes.grid": False,
    "font.family": "monospace",
    "font.size": 9,
    "lines.linewidth": 1.0,
}

WAVEFORM_COLOR = "#3b82f6"
WAVEFORM_FILL_ALPHA = 0.25
MARKER_COLOR = "#ef4444"
SELECTED_COLOR = "#dc2626"
MARKER_WIDTH = 2.0
SELECTED_WIDTH = 3.0
HIGHLIGHT_ALPHA = 0.1
TEXT_COLOR = "#6b7280"
PLAYHEAD_COLOR = "#10b981"
TRIM_COLOR = "#f59e0b"


def apply_style(extra: dict | None = None) -> None:
    """Apply a consistent matplotlib style.

    Parameters
    ----------
    extra:
        Optional dictionary of rcParams that override the base style.
    """
    style = BASE_STYLE.copy()
    if extra:
        style.update(extra)
    plt.rcParams.update(style)
