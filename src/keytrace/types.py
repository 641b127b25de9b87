"""Common type helpers for keytrace.

This module defines the small immutable containers shared by the timeline,
rendering and export code.  :class:`SampleBuffer` is the ground truth for
every conversion between seconds and sample indices.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class TimeInterval:
    """Simple interval of time expressed in seconds."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        """Return the interval length in seconds."""

        return self.end - self.start

    def contains(self, t: float) -> bool:
        """Return ``True`` when ``t`` lies inside the closed interval."""

        return self.start <= t <= self.end


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """Decoded mono audio snapshot.

    ``samples`` is stored as a read-only one dimensional ``float32`` array so
    that the renderer, the extractor and playback can share a single buffer.
    Amplitudes are expected to lie in ``[-1.0, 1.0]`` but are not checked.
    The duration is always derived from the sample count and rate.
    """

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        if int(self.sample_rate) != self.sample_rate or self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be a positive integer, got {self.sample_rate!r}")
        data = np.array(self.samples, dtype=np.float32, copy=True).reshape(-1)
        data.setflags(write=False)
        object.__setattr__(self, "samples", data)
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    @classmethod
    def from_array(cls, samples: Sequence[float] | np.ndarray, sample_rate: int) -> "SampleBuffer":
        return cls(np.asarray(samples, dtype=np.float32), sample_rate)

    @classmethod
    def silence(cls, duration: float, sample_rate: int) -> "SampleBuffer":
        """Return a buffer of ``floor(duration * sample_rate)`` zero samples."""

        return cls(np.zeros(max(0, math.floor(duration * sample_rate)), dtype=np.float32), sample_rate)

    @property
    def duration(self) -> float:
        """Length of the buffer in seconds."""

        return len(self.samples) / self.sample_rate

    def sample_index(self, t: float) -> int:
        """Return ``floor(t * sample_rate)`` without bounds checking."""

        return math.floor(t * self.sample_rate)

    def __len__(self) -> int:
        return int(self.samples.shape[0])


__all__ = ["TimeInterval", "SampleBuffer"]
