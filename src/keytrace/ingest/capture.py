"""Capture collaborator interface and an in-memory chunk recorder.

Platform capture services push encoded audio chunks while recording and
hand back the finalised bytes when stopped.  The session only consumes those
final bytes.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, runtime_checkable

from ..errors import CaptureUnavailable

logger = logging.getLogger(__name__)


@runtime_checkable
class CaptureService(Protocol):
    """Protocol describing a capture service.

    ``start_capture`` raises :class:`~keytrace.errors.CaptureUnavailable`
    when the device cannot be acquired.  ``stop_capture`` returns the
    recorded bytes.
    """

    def start_capture(self) -> None: ...

    def stop_capture(self) -> bytes: ...


class ChunkRecorder:
    """Accumulate audio chunks delivered by a platform recorder.

    ``push`` is wired to the platform's data callback; empty chunks are
    skipped.  ``available=False`` simulates a device that cannot be opened.
    """

    def __init__(self, *, available: bool = True) -> None:
        self.available = available
        self.recording = False
        self._chunks: List[bytes] = []

    def start_capture(self) -> None:
        if not self.available:
            raise CaptureUnavailable("could not access microphone")
        self._chunks = []
        self.recording = True

    def push(self, chunk: Optional[bytes]) -> None:
        if not self.recording:
            logger.debug("dropping %d byte chunk delivered outside a recording", len(chunk or b""))
            return
        if chunk:
            self._chunks.append(bytes(chunk))

    def stop_capture(self) -> bytes:
        self.recording = False
        data = b"".join(self._chunks)
        self._chunks = []
        return data

    @property
    def buffered(self) -> int:
        """Number of bytes buffered so far."""

        return sum(len(c) for c in self._chunks)


__all__ = ["CaptureService", "ChunkRecorder"]
