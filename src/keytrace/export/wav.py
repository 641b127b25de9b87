from __future__ import annotations

"""Canonical 16-bit PCM RIFF/WAVE encoding of mono sample buffers."""

import struct

import numpy as np

from ..types import SampleBuffer

HEADER_SIZE = 44
PCM_FORMAT = 1
CHANNELS = 1
BITS_PER_SAMPLE = 16
FULL_SCALE = 32767

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def quantize(samples: np.ndarray) -> np.ndarray:
    """Clamp to ``[-1, 1]`` and map to little-endian signed 16-bit integers.

    ``round(sample * 32767)`` is used (numpy rounds halves to even), which
    keeps the reconstruction error at or below ``1 / 32767`` when decoded
    as ``value / 32767``.
    """

    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    return np.round(clipped * FULL_SCALE).astype("<i2")


def wav_header(num_samples: int, sample_rate: int) -> bytes:
    """Return the 44 byte header for ``num_samples`` mono 16-bit frames."""

    block_align = CHANNELS * BITS_PER_SAMPLE // 8
    data_size = num_samples * block_align
    return _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        CHANNELS,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def encode_wav(buffer: SampleBuffer) -> bytes:
    """Serialise ``buffer`` as a canonical RIFF/WAVE byte string.

    A zero-length buffer yields a bare 44 byte header with an empty data
    chunk.
    """

    pcm = quantize(buffer.samples)
    return wav_header(len(pcm), buffer.sample_rate) + pcm.tobytes()


__all__ = ["HEADER_SIZE", "FULL_SCALE", "quantize", "wav_header", "encode_wav"]
