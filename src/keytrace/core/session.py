from __future__ import annotations

"""Recording/inspection session with an explicit state machine.

A :class:`Session` owns the current :class:`~keytrace.types.SampleBuffer`,
the :class:`~keytrace.core.timeline.EventTimeline`, the viewport and the
playback transport.  Capture and input callbacks do not touch that state
directly: they :meth:`Session.post` messages into a single ordered inbox
which :meth:`Session.drain` handles synchronously, so key presses are
appended in exactly the order they were delivered.

User-facing failures (no microphone, undecodable or unsupported audio,
exporting with nothing selected) are recovered here and recorded as
:class:`Notification` objects; the session stays usable after any of them.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, Iterable, List, Literal, Optional, Set, Union

from ..config import Settings
from ..errors import CaptureUnavailable, DecodeFailure, EmptySelection, InvalidTransition, UnsupportedFormat
from ..export.archive import ArchiveSink, export_selected
from ..ingest.capture import CaptureService
from ..ingest.decode import check_supported, decode_audio
from ..types import SampleBuffer
from ..viz.waveform import Frame, Mode, render_frame
from .keycodes import KeyCap, keyboard_state, normalize_code
from .timeline import EventTimeline, KeyEvent, find_nearest_event
from .transport import Scheduler, Transport
from .viewport import ViewportState, pixel_to_time

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    READY = "ready"


TRANSITIONS: Dict[SessionState, Set[SessionState]] = {
    SessionState.IDLE: {SessionState.RECORDING, SessionState.PROCESSING},
    SessionState.RECORDING: {SessionState.PROCESSING},
    SessionState.PROCESSING: {SessionState.READY, SessionState.IDLE},
    SessionState.READY: {SessionState.RECORDING, SessionState.PROCESSING},
}


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    level: Literal["info", "error"] = "info"


@dataclass(frozen=True)
class KeyDown:
    code: str
    key: str
    timestamp: Optional[float] = None
    repeat: bool = False


@dataclass(frozen=True)
class KeyUp:
    code: str
    key: str = ""
    timestamp: Optional[float] = None


@dataclass(frozen=True)
class CaptureFinished:
    data: bytes
    mime_hint: str


Message = Union[KeyDown, KeyUp, CaptureFinished]
Decoder = Callable[..., SampleBuffer]


class Session:
    """State holder for one recording or imported file.

    Parameters
    ----------
    settings:
        Runtime configuration; defaults to :class:`~keytrace.config.Settings`.
    capture:
        Capture collaborator used by :meth:`start_recording`.
    decoder:
        Callable ``(data, mime_hint, accepted=...) -> SampleBuffer``;
        defaults to :func:`~keytrace.ingest.decode.decode_audio`.
    clock:
        Monotonic clock in seconds used to timestamp key presses that arrive
        without one.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        capture: Optional[CaptureService] = None,
        decoder: Decoder = decode_audio,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or Settings()
        self.capture = capture
        self._decoder = decoder
        self._clock = clock

        self.state = SessionState.IDLE
        self.buffer: Optional[SampleBuffer] = None
        self.timeline = EventTimeline()
        self.viewport = self._viewport_for(0.0)
        self.mode: Mode = self.settings.render.mode
        self.trim_start: Optional[float] = None
        self.trim_end: Optional[float] = None
        self.notifications: List[Notification] = []
        self.transport: Optional[Transport] = None

        self._inbox: Deque[Message] = deque()
        self._started_at = 0.0
        self._active: Dict[str, float] = {}
        self._held: Dict[str, str] = {}
        self._previous_timeline: Optional[EventTimeline] = None
        self._drag_x: Optional[float] = None

    # ------------------------------------------------------------------
    # State machine and notifications
    # ------------------------------------------------------------------

    def _transition(self, target: SessionState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(self.state, target)
        logger.debug("session %s -> %s", self.state.value, target.value)
        self.state = target

    def _notify(self, title: str, description: str, level: Literal["info", "error"] = "info") -> None:
        note = Notification(title, description, level)
        self.notifications.append(note)
        if level == "error":
            logger.warning("%s: %s", title, description)
        else:
            logger.info("%s: %s", title, description)

    def _viewport_for(self, duration: float) -> ViewportState:
        vp = self.settings.viewport
        return ViewportState(duration, min_zoom=vp.min_zoom, max_zoom=vp.max_zoom)

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    def post(self, message: Message) -> None:
        self._inbox.append(message)

    def drain(self) -> int:
        """Handle every queued message in arrival order; return the count."""

        handled = 0
        while self._inbox:
            message = self._inbox.popleft()
            if isinstance(message, KeyDown):
                self._on_key_down(message)
            elif isinstance(message, KeyUp):
                self._on_key_up(message)
            elif isinstance(message, CaptureFinished):
                self._finalize(message.data, message.mime_hint)
            else:
                raise TypeError(f"unknown session message: {message!r}")
            handled += 1
        return handled

    def _on_key_down(self, msg: KeyDown) -> None:
        if self.state is not SessionState.RECORDING or msg.repeat:
            return
        now = self._clock() if msg.timestamp is None else msg.timestamp
        t = max(0.0, now - self._started_at)
        if len(self.timeline):
            # Keep insertion order temporal even if the clock stutters.
            t = max(t, self.timeline[-1].event_time)
        window = self.settings.window
        event = self.timeline.append(
            KeyEvent.at(t, msg.key, msg.code, pre_roll=window.pre_roll, post_roll=window.post_roll)
        )
        self._held[msg.code] = event.group
        self._active[event.group] = now + self.settings.capture.active_key_timeout

    def _on_key_up(self, msg: KeyUp) -> None:
        if self.state is not SessionState.RECORDING:
            return
        group = self._held.pop(msg.code, None) or normalize_code(msg.code, msg.key)
        self._active.pop(group, None)

    def active_keys(self, now: Optional[float] = None) -> Set[str]:
        """Key groups pressed within the last ``active_key_timeout`` seconds."""

        now = self._clock() if now is None else now
        self._active = {group: until for group, until in self._active.items() if until > now}
        return set(self._active)

    # ------------------------------------------------------------------
    # Recording and import
    # ------------------------------------------------------------------

    def start_recording(self) -> bool:
        if self.state is SessionState.RECORDING:
            return False
        if self.state not in (SessionState.IDLE, SessionState.READY):
            raise InvalidTransition(self.state, SessionState.RECORDING)
        try:
            if self.capture is None:
                raise CaptureUnavailable("no capture service configured")
            self.capture.start_capture()
        except CaptureUnavailable as exc:
            self._notify("Recording failed", str(exc), "error")
            return False

        self._stop_playback()
        # The new take records into a fresh timeline; the previous one is
        # restored if the captured audio cannot be decoded.
        self._previous_timeline = self.timeline
        self.timeline = EventTimeline()
        self._active.clear()
        self._held.clear()
        self._started_at = self._clock()
        self._transition(SessionState.RECORDING)
        self._notify("Recording started", "Start typing to capture key presses with audio")
        return True

    def stop_recording(self) -> bool:
        """Stop capture and finalise the buffer.

        Calling this when no recording is active does nothing and returns
        ``False``.
        """

        if self.state is not SessionState.RECORDING:
            return False
        data = self.capture.stop_capture() if self.capture is not None else b""
        self._active.clear()
        self._held.clear()
        self._transition(SessionState.PROCESSING)
        self._notify("Recording stopped", "Processing audio...")
        self.post(CaptureFinished(data, self.settings.capture.mime_hint))
        self.drain()
        return True

    def import_audio(self, data: bytes, mime_hint: str) -> bool:
        """Replace the buffer with decoded ``data``; the timeline is reset."""

        if self.state is SessionState.RECORDING:
            self._notify("Import unavailable", "Stop recording before importing audio", "error")
            return False
        try:
            check_supported(mime_hint, self.settings.decode.accepted_types)
        except UnsupportedFormat:
            self._notify("Invalid file type", "Please upload a WAV, MP3, OGG, or FLAC file", "error")
            return False
        self._transition(SessionState.PROCESSING)
        return self._finalize(data, mime_hint, reset_timeline=True)

    def open_recording(self, buffer: SampleBuffer, events: Iterable[KeyEvent] = ()) -> None:
        """Attach an already decoded buffer and its key events."""

        if self.state is SessionState.RECORDING:
            raise InvalidTransition(self.state, SessionState.READY)
        self._transition(SessionState.PROCESSING)
        self.timeline.clear()
        self.timeline.extend(events)
        self._install(buffer)

    def _finalize(self, data: bytes, mime_hint: str, *, reset_timeline: bool = False) -> bool:
        try:
            buffer = self._decoder(data, mime_hint, accepted=self.settings.decode.accepted_types)
        except DecodeFailure as exc:
            self._notify("Audio processing failed", f"Could not process audio: {exc}", "error")
            if self._previous_timeline is not None:
                self.timeline = self._previous_timeline
                self._previous_timeline = None
            self._transition(SessionState.READY if self.buffer is not None else SessionState.IDLE)
            return False
        self._previous_timeline = None
        if reset_timeline:
            self.timeline.clear()
        self._install(buffer)
        return True

    def _install(self, buffer: SampleBuffer) -> None:
        self._stop_playback()
        self.buffer = buffer
        self.viewport = self._viewport_for(buffer.duration)
        self.trim_start = self.trim_end = None
        recorded = len(self.timeline)
        self.timeline.clamp_windows(buffer.duration)
        self._transition(SessionState.READY)
        dropped = recorded - len(self.timeline)
        if dropped:
            self._notify(
                "Key presses dropped",
                f"{dropped} key press(es) after the end of the audio ({buffer.duration:.2f}s) were discarded",
            )
        logger.info(
            "loaded %.3fs of audio at %d Hz with %d key event(s)",
            buffer.duration,
            buffer.sample_rate,
            len(self.timeline),
        )

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def click_time(self, t: float) -> Optional[KeyEvent]:
        """Toggle the event nearest to ``t`` seconds, if one is close enough."""

        if self.buffer is None:
            return None
        event = find_nearest_event(t, self.timeline, threshold=self.settings.selection.hit_threshold)
        if event is not None:
            self.timeline.toggle(event.id)
        return event

    def click(self, x: float, width: float) -> Optional[KeyEvent]:
        if self.buffer is None:
            return None
        return self.click_time(pixel_to_time(x, self.viewport, width))

    def toggle(self, event_id: str) -> KeyEvent:
        return self.timeline.toggle(event_id)

    def keyboard(self, now: Optional[float] = None) -> List[List[KeyCap]]:
        return keyboard_state(self.timeline.counts_by_group(), self.active_keys(now))

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------

    def wheel(self, delta_y: float) -> None:
        vp = self.settings.viewport
        self.viewport = self.viewport.wheel(delta_y, in_factor=vp.wheel_in_factor, out_factor=vp.wheel_out_factor)

    def zoom_in(self) -> None:
        self.viewport = self.viewport.zoom_in(self.settings.viewport.button_factor)

    def zoom_out(self) -> None:
        self.viewport = self.viewport.zoom_out(self.settings.viewport.button_factor)

    def begin_drag(self, x: float) -> None:
        self._drag_x = x

    def drag_to(self, x: float, width: float) -> None:
        if self._drag_x is None or self.buffer is None:
            return
        self.viewport = self.viewport.panned_by_pixels(x - self._drag_x, width)
        self._drag_x = x

    def end_drag(self) -> None:
        self._drag_x = None

    # ------------------------------------------------------------------
    # Trim markers and display mode
    # ------------------------------------------------------------------

    def _clamp_time(self, t: float) -> float:
        duration = self.buffer.duration if self.buffer is not None else 0.0
        return max(0.0, min(duration, t))

    def set_trim_start(self, t: float) -> None:
        self.trim_start = self._clamp_time(t)

    def set_trim_end(self, t: float) -> None:
        self.trim_end = self._clamp_time(t)

    def clear_trim(self) -> None:
        self.trim_start = self.trim_end = None

    def toggle_mode(self) -> Mode:
        self.mode = "spectrogram" if self.mode == "waveform" else "waveform"
        return self.mode

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def attach_player(self, position: Callable[[], float], scheduler: Scheduler) -> Transport:
        """Wire a platform player so the playhead follows playback."""

        self._stop_playback()
        self.transport = Transport(position, scheduler, interval=self.settings.playback.tick_interval)
        return self.transport

    @property
    def playhead(self) -> float:
        return self.transport.playhead if self.transport is not None else 0.0

    def toggle_playback(self) -> bool:
        if self.transport is None or self.buffer is None:
            return False
        return self.transport.toggle()

    def _stop_playback(self) -> None:
        if self.transport is not None:
            self.transport.stop()

    # ------------------------------------------------------------------
    # Rendering and export
    # ------------------------------------------------------------------

    def render(self, width: Optional[int] = None, height: Optional[int] = None) -> Optional[Frame]:
        cfg = self.settings.render
        return render_frame(
            self.buffer,
            self.timeline,
            self.viewport,
            width=cfg.width if width is None else width,
            height=cfg.height if height is None else height,
            playhead=self.playhead if self.transport is not None else None,
            trim_start=self.trim_start,
            trim_end=self.trim_end,
            mode=self.mode,
            tick_divisions=cfg.tick_divisions,
        )

    def export(self, sink: ArchiveSink) -> Any:
        """Export the selected segments to ``sink``.

        Returns whatever ``sink.write`` returns, or ``None`` when nothing is
        selected; in that case the sink is never called.
        """

        try:
            result = export_selected(self.buffer, self.timeline)
        except EmptySelection:
            self._notify("No segments selected", "Please select some key press segments to export", "error")
            return None
        written = sink.write(result.files, result.metadata)
        self._notify("Export complete", f"Exported {len(result.files)} segments")
        return written


__all__ = [
    "SessionState",
    "TRANSITIONS",
    "Notification",
    "KeyDown",
    "KeyUp",
    "CaptureFinished",
    "Session",
]
