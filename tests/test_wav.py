import io
import struct

import numpy as np
import soundfile as sf

from keytrace.export.wav import FULL_SCALE, HEADER_SIZE, encode_wav, quantize, wav_header
from keytrace.types import SampleBuffer


def test_header_fields():
    data = encode_wav(SampleBuffer(np.zeros(100), 16000))
    assert len(data) == HEADER_SIZE + 200
    fields = struct.unpack("<4sI4s4sIHHIIHH4sI", data[:HEADER_SIZE])
    assert fields == (
        b"RIFF",
        36 + 200,
        b"WAVE",
        b"fmt ",
        16,
        1,
        1,
        16000,
        32000,
        2,
        16,
        b"data",
        200,
    )


def test_empty_buffer_is_bare_header():
    data = encode_wav(SampleBuffer(np.zeros(0), 44100))
    assert data == wav_header(0, 44100)
    assert len(data) == HEADER_SIZE


def test_quantize_clips_and_scales():
    q = quantize(np.array([0.0, 1.0, -1.0, 2.0, -3.0]))
    assert q.dtype == np.dtype("<i2")
    assert q.tolist() == [0, FULL_SCALE, -FULL_SCALE, FULL_SCALE, -FULL_SCALE]


def test_pcm_decoder_round_trip():
    rng = np.random.default_rng(7)
    original = SampleBuffer(rng.uniform(-1.0, 1.0, size=4000), 22050)
    data = encode_wav(original)

    decoded, sr = sf.read(io.BytesIO(data), dtype="int16")
    assert sr == 22050
    assert sf.info(io.BytesIO(data)).subtype == "PCM_16"
    restored = decoded.astype(np.float64) / FULL_SCALE
    assert restored.shape == (4000,)
    assert np.max(np.abs(restored - original.samples)) <= 1.0 / FULL_SCALE
