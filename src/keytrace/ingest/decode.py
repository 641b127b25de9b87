# src/keytrace/ingest/decode.py
"""Decode audio bytes into a mono :class:`SampleBuffer`.

Decoding is delegated to ``soundfile`` (libsndfile), which reads WAV, OGG,
FLAC and, with libsndfile 1.1 or newer, MP3.  The declared type is checked
before any decoding is attempted; only the first channel of multi-channel
files is kept.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Collection, Optional

import numpy as np
import soundfile as sf

from ..errors import DecodeFailure, UnsupportedFormat
from ..types import SampleBuffer

logger = logging.getLogger(__name__)

ACCEPTED_TYPES = frozenset(
    {
        "audio/wav",
        "audio/x-wav",
        "audio/wave",
        "audio/mp3",
        "audio/mpeg",
        "audio/ogg",
        "audio/flac",
    }
)

# Bare extensions / container names understood as hints.
_EXTENSION_TYPES = {
    "wav": "audio/wav",
    "wave": "audio/wav",
    "mp3": "audio/mpeg",
    "ogg": "audio/ogg",
    "oga": "audio/ogg",
    "flac": "audio/flac",
}


def normalize_hint(mime_hint: str) -> str:
    """Lower-case ``mime_hint`` and expand bare extensions to MIME types.

    Parameters such as ``audio/ogg; codecs=vorbis`` are dropped.
    """

    hint = mime_hint.split(";", 1)[0].strip().lower()
    return _EXTENSION_TYPES.get(hint.lstrip("."), hint)


def check_supported(mime_hint: str, accepted: Optional[Collection[str]] = None) -> str:
    """Return the normalised hint or raise :class:`UnsupportedFormat`."""

    allowed = ACCEPTED_TYPES if accepted is None else {normalize_hint(t) for t in accepted}
    hint = normalize_hint(mime_hint)
    if hint not in allowed:
        raise UnsupportedFormat(mime_hint)
    return hint


def decode_audio(
    data: bytes,
    mime_hint: str,
    *,
    accepted: Optional[Collection[str]] = None,
) -> SampleBuffer:
    """Decode ``data`` into a mono float32 :class:`SampleBuffer`.

    Raises
    ------
    UnsupportedFormat
        If ``mime_hint`` is not an accepted audio type.  Raised before any
        decoding takes place.
    DecodeFailure
        If the bytes are empty or libsndfile cannot read them.
    """

    hint = check_supported(mime_hint, accepted)
    if not data:
        raise DecodeFailure("no audio data to decode")
    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (sf.SoundFileError, RuntimeError, TypeError, ValueError) as exc:
        raise DecodeFailure(f"could not decode {hint} audio: {exc}") from exc

    samples = np.asarray(samples)
    mono = samples[:, 0] if samples.shape[1] else np.zeros(0, dtype=np.float32)
    if samples.shape[1] > 1:
        logger.info("keeping channel 0 of %d-channel audio", samples.shape[1])
    buffer = SampleBuffer(mono, int(sample_rate))
    logger.debug(
        "decoded %s: %d samples at %d Hz (%.3fs)", hint, len(buffer), buffer.sample_rate, buffer.duration
    )
    return buffer


def hint_for_path(path: str | Path) -> str:
    """Guess a MIME hint from a file suffix (``.flac`` -> ``audio/flac``)."""

    return normalize_hint(Path(path).suffix)


def decode_file(
    path: str | Path,
    *,
    mime_hint: Optional[str] = None,
    accepted: Optional[Collection[str]] = None,
) -> SampleBuffer:
    """Read ``path`` and decode it with :func:`decode_audio`."""

    p = Path(path)
    hint = mime_hint or hint_for_path(p)
    check_supported(hint, accepted)
    return decode_audio(p.read_bytes(), hint, accepted=accepted)


__all__ = [
    "ACCEPTED_TYPES",
    "normalize_hint",
    "check_supported",
    "decode_audio",
    "decode_file",
    "hint_for_path",
]
