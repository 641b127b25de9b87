import io

import numpy as np
import pytest
import soundfile as sf

from keytrace.errors import DecodeFailure, UnsupportedFormat
from keytrace.ingest import check_supported, decode_audio, decode_file, hint_for_path
from keytrace.ingest.decode import normalize_hint


def wav_bytes(data, sr):
    out = io.BytesIO()
    sf.write(out, data, sr, format="WAV", subtype="PCM_16")
    return out.getvalue()


def test_normalize_hint():
    assert normalize_hint("audio/ogg; codecs=vorbis") == "audio/ogg"
    assert normalize_hint("AUDIO/WAV") == "audio/wav"
    assert normalize_hint(".mp3") == "audio/mpeg"
    assert hint_for_path("take1.FLAC") == "audio/flac"


def test_unsupported_type_rejected_before_decoding():
    with pytest.raises(UnsupportedFormat) as excinfo:
        decode_audio(b"", "video/mp4")
    assert excinfo.value.mime_hint == "video/mp4"
    with pytest.raises(UnsupportedFormat):
        check_supported("audio/flac", ["audio/wav"])
    assert check_supported("audio/mpeg") == "audio/mpeg"


def test_garbage_bytes_fail_to_decode():
    with pytest.raises(DecodeFailure) as excinfo:
        decode_audio(b"this is not audio", "audio/wav")
    assert not isinstance(excinfo.value, UnsupportedFormat)
    with pytest.raises(DecodeFailure):
        decode_audio(b"", "audio/wav")


def test_decode_wav_keeps_first_channel():
    left = np.linspace(-0.5, 0.5, 800)
    stereo = np.column_stack([left, np.zeros_like(left)])
    buf = decode_audio(wav_bytes(stereo, 8000), "audio/wav")
    assert buf.sample_rate == 8000
    assert len(buf) == 800
    assert buf.duration == 0.1
    np.testing.assert_allclose(buf.samples, left, atol=1e-4)


def test_decode_flac_file(tmp_path):
    path = tmp_path / "take.flac"
    sf.write(path, np.full(1600, 0.25), 16000)
    buf = decode_file(path)
    assert buf.sample_rate == 16000
    assert len(buf) == 1600
    np.testing.assert_allclose(buf.samples, 0.25, atol=1e-4)


def test_decode_file_checks_suffix(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(UnsupportedFormat):
        decode_file(path)
