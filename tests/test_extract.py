import math

import numpy as np
import pytest

from keytrace.core.extract import extract_segment, extract_segments, segment_bounds
from keytrace.core.timeline import KeyEvent
from keytrace.types import SampleBuffer


def ramp(duration, sr):
    n = math.floor(duration * sr)
    return SampleBuffer(np.linspace(-1.0, 1.0, n), sr)


def test_one_second_segment_at_16k():
    buf = SampleBuffer.silence(3.0, 16000)
    event = KeyEvent.at(1.20, "a", "KeyA")
    assert event.window_start == pytest.approx(0.70)
    assert event.window_end == pytest.approx(1.70)
    seg = extract_segment(buf, event)
    assert len(seg) == 16000
    assert seg.sample_rate == 16000


def test_segment_starts_at_zero_near_the_beginning():
    buf = ramp(2.0, 8000)
    event = KeyEvent.at(0.10, "a", "KeyA")
    start, end = segment_bounds(buf, event)
    assert start == 0
    seg = extract_segment(buf, event)
    np.testing.assert_array_equal(seg.samples, buf.samples[:end])


def test_length_matches_floor_bounds():
    for sr in (8000, 11025, 22050, 44100, 48000):
        buf = ramp(4.0, sr)
        for t in (0.0, 0.333, 1.2, 2.71828, 3.9):
            event = KeyEvent.at(t, "a", "KeyA")
            expected = math.floor(event.window_end * sr) - math.floor(event.window_start * sr)
            assert len(extract_segment(buf, event)) == expected


def test_segment_copies_samples():
    buf = ramp(2.0, 1000)
    event = KeyEvent.at(1.0, "a", "KeyA")
    seg = extract_segment(buf, event)
    np.testing.assert_array_equal(seg.samples, buf.samples[500:1500])
    assert not np.shares_memory(seg.samples, buf.samples)


def test_segment_past_the_end_is_zero_padded():
    buf = ramp(1.0, 1000)
    event = KeyEvent("e", "a", "KeyA", 0.9, 0.4, 1.2)
    seg = extract_segment(buf, event)
    assert len(seg) == 800
    np.testing.assert_array_equal(seg.samples[:600], buf.samples[400:])
    assert not seg.samples[600:].any()


def test_zero_length_window():
    buf = ramp(1.0, 1000)
    event = KeyEvent("e", "a", "KeyA", 0.5, 0.5, 0.5)
    assert len(extract_segment(buf, event)) == 0


def test_extract_segments():
    buf = ramp(3.0, 1000)
    events = [KeyEvent.at(t, "a", "KeyA") for t in (0.5, 1.5, 2.0)]
    segs = extract_segments(buf, events)
    assert [len(s) for s in segs] == [1000, 1000, 1000]
