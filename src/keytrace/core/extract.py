"""Sample-accurate extraction of key press segments."""

from __future__ import annotations

import math
from typing import Iterable, List

import numpy as np

from ..types import SampleBuffer
from .timeline import KeyEvent


def segment_bounds(buffer: SampleBuffer, event: KeyEvent) -> tuple[int, int]:
    """Return ``(start_sample, end_sample)`` for ``event``'s window.

    Both bounds use ``floor(t * sample_rate)``; ``end_sample`` may exceed the
    buffer length when the window touches the end of the recording.
    """

    sr = buffer.sample_rate
    return math.floor(event.window_start * sr), math.floor(event.window_end * sr)


def extract_segment(buffer: SampleBuffer, event: KeyEvent) -> SampleBuffer:
    """Copy the samples under ``event``'s window into a new buffer.

    The result always holds ``end_sample - start_sample`` samples (never a
    negative count).  Indices that fall outside the source buffer are filled
    with silence instead of raising.
    """

    start, end = segment_bounds(buffer, event)
    length = max(0, end - start)
    out = np.zeros(length, dtype=np.float32)

    src_lo = max(start, 0)
    src_hi = min(start + length, len(buffer))
    if src_hi > src_lo:
        out[src_lo - start : src_hi - start] = buffer.samples[src_lo:src_hi]
    return SampleBuffer(out, buffer.sample_rate)


def extract_segments(buffer: SampleBuffer, events: Iterable[KeyEvent]) -> List[SampleBuffer]:
    return [extract_segment(buffer, event) for event in events]


__all__ = ["segment_bounds", "extract_segment", "extract_segments"]
