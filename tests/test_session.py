import numpy as np
import pytest

from keytrace.config import Settings
from keytrace.core.session import KeyDown, KeyUp, Session, SessionState
from keytrace.core.timeline import KeyEvent
from keytrace.errors import InvalidTransition
from keytrace.export.wav import encode_wav
from keytrace.ingest import ChunkRecorder
from keytrace.types import SampleBuffer


class FakeClock:
    def __init__(self, t=100.0):
        self.t = t

    def __call__(self):
        return self.t


class RecordingSink:
    def __init__(self):
        self.calls = []

    def write(self, files, metadata):
        self.calls.append((dict(files), list(metadata)))
        return "archive.zip"


class FakeScheduler:
    def __init__(self):
        self.callbacks = []

    def call_later(self, delay, callback, *args):
        self.callbacks.append(callback)
        return self

    def cancel(self):
        pass


def wav(duration=3.0, sr=16000):
    return encode_wav(SampleBuffer(np.full(int(duration * sr), 0.1), sr))


def titles(session):
    return [n.title for n in session.notifications]


def recorded_session():
    clock = FakeClock()
    rec = ChunkRecorder()
    session = Session(capture=rec, clock=clock)
    assert session.start_recording()
    session.post(KeyDown("KeyA", "a", timestamp=101.2))
    session.post(KeyDown("KeyA", "a", timestamp=101.3, repeat=True))
    session.post(KeyUp("KeyA", "a", timestamp=101.3))
    session.post(KeyDown("Space", " ", timestamp=102.0))
    session.post(KeyDown("KeyB", "b", timestamp=102.9))
    assert session.drain() == 5
    rec.push(wav())
    assert session.stop_recording()
    return session


def test_record_and_finalize():
    session = recorded_session()
    assert session.state is SessionState.READY
    assert session.buffer.duration == 3.0
    assert [e.key_label for e in session.timeline] == ["a", " ", "b"]
    assert [e.event_time for e in session.timeline] == pytest.approx([1.2, 2.0, 2.9])
    assert session.timeline[2].window_end == 3.0
    assert titles(session) == ["Recording started", "Recording stopped"]
    assert session.viewport.duration == 3.0
    # Stopping twice has no effect.
    assert session.stop_recording() is False
    assert session.state is SessionState.READY


def test_keys_ignored_outside_recording():
    session = Session(capture=ChunkRecorder(), clock=FakeClock())
    session.post(KeyDown("KeyA", "a", timestamp=101.0))
    session.drain()
    assert len(session.timeline) == 0


def test_active_keys_expire():
    clock = FakeClock()
    session = Session(capture=ChunkRecorder(), clock=clock)
    session.start_recording()
    session.post(KeyDown("ShiftLeft", "Shift", timestamp=100.5))
    session.post(KeyDown("KeyQ", "q", timestamp=100.6))
    session.post(KeyUp("ShiftLeft", "Shift"))
    session.drain()
    assert session.active_keys(100.7) == {"q"}
    assert session.active_keys(100.8) == set()
    rows = session.keyboard(100.8)
    caps = {cap.group: cap for row in rows for cap in row}
    assert caps["Shift"].count == 1 and caps["q"].count == 1


def test_key_up_without_label_releases_group():
    session = Session(capture=ChunkRecorder(), clock=FakeClock())
    session.start_recording()
    session.post(KeyDown("F13", "Launch", timestamp=100.5))
    session.drain()
    assert session.timeline[0].group == "launch"
    assert session.active_keys(100.55) == {"launch"}
    session.post(KeyUp("F13"))
    session.drain()
    assert session.active_keys(100.55) == set()


def test_capture_failures_are_notified():
    session = Session()
    assert session.start_recording() is False
    assert session.state is SessionState.IDLE

    session = Session(capture=ChunkRecorder(available=False))
    assert session.start_recording() is False
    note = session.notifications[-1]
    assert note.title == "Recording failed"
    assert note.level == "error"
    assert "microphone" in note.description


def test_recording_clears_previous_timeline():
    session = recorded_session()
    assert session.start_recording()
    assert len(session.timeline) == 0
    with pytest.raises(InvalidTransition):
        session.open_recording(SampleBuffer.silence(1.0, 8000))


def test_import_resets_timeline():
    session = recorded_session()
    assert session.import_audio(wav(2.0, 8000), "audio/wav")
    assert session.state is SessionState.READY
    assert session.buffer.sample_rate == 8000
    assert len(session.timeline) == 0


def test_import_rejects_unsupported_type():
    session = Session()
    assert session.import_audio(b"data", "video/mp4") is False
    assert session.state is SessionState.IDLE
    assert titles(session) == ["Invalid file type"]


def test_failed_decode_keeps_previous_state():
    session = recorded_session()
    buffer, events = session.buffer, list(session.timeline)
    assert session.import_audio(b"not audio", "audio/wav") is False
    assert session.state is SessionState.READY
    assert session.buffer is buffer
    assert list(session.timeline) == events
    assert titles(session)[-1] == "Audio processing failed"

    fresh = Session()
    assert fresh.import_audio(b"not audio", "audio/wav") is False
    assert fresh.state is SessionState.IDLE


def test_failed_decode_after_recording_restores_timeline():
    session = recorded_session()
    buffer, events = session.buffer, list(session.timeline)
    rec = session.capture
    assert session.start_recording()
    session.post(KeyDown("KeyC", "c", timestamp=105.0))
    assert session.drain() == 1
    rec.push(b"not audio")
    assert session.stop_recording()

    assert session.state is SessionState.READY
    assert session.buffer is buffer
    assert list(session.timeline) == events
    assert session.timeline.clamped_to == buffer.duration
    assert all(e.window_end <= buffer.duration for e in session.timeline)
    assert titles(session)[-1] == "Audio processing failed"

    # A later import still clamps to its own duration.
    assert session.import_audio(wav(2.0, 8000), "audio/wav")
    assert session.timeline.clamped_to == 2.0


def test_failed_first_recording_returns_to_idle():
    rec = ChunkRecorder()
    session = Session(capture=rec, clock=FakeClock())
    assert session.start_recording()
    session.post(KeyDown("KeyA", "a", timestamp=101.0))
    session.drain()
    # Capture disappears before the take ends; nothing is decoded.
    session.capture = None
    assert session.stop_recording()
    assert session.state is SessionState.IDLE
    assert session.buffer is None
    assert len(session.timeline) == 0
    note = session.notifications[-1]
    assert note.title == "Audio processing failed"
    assert note.level == "error"


def test_dropped_presses_are_notified():
    session = Session()
    session.open_recording(
        SampleBuffer.silence(3.0, 8000),
        [KeyEvent.at(2.9, "a", "KeyA"), KeyEvent.at(3.05, "b", "KeyB")],
    )
    assert [e.key_label for e in session.timeline] == ["a"]
    note = session.notifications[-1]
    assert note.title == "Key presses dropped"
    assert note.level == "info"
    assert note.description.startswith("1 key press(es)")

    quiet = Session()
    quiet.open_recording(SampleBuffer.silence(3.0, 8000), [KeyEvent.at(1.0, "a", "KeyA")])
    assert quiet.notifications == []


def test_click_selects_nearest_event():
    session = recorded_session()
    assert session.click(120, 300).key_label == "a"
    assert session.timeline.selected_ids == {session.timeline[0].id}
    assert session.click_time(1.6) is None
    assert session.click_time(1.21) is session.timeline[0]
    assert session.timeline.selected_ids == frozenset()


def test_hit_threshold_from_settings():
    settings = Settings.model_validate({"selection": {"hit_threshold": 0.5}})
    session = Session(settings)
    session.open_recording(SampleBuffer.silence(3.0, 8000), [KeyEvent.at(1.0, "a", "KeyA")])
    assert session.click_time(1.4) is not None


def test_viewport_interaction():
    session = recorded_session()
    session.zoom_in()
    assert session.viewport.zoom_level == pytest.approx(1.2)
    session.wheel(-1)
    assert session.viewport.zoom_level == pytest.approx(1.32)
    session.wheel(1)
    assert session.viewport.zoom_level == pytest.approx(1.188)
    session.zoom_out()
    session.zoom_out()
    assert session.viewport.zoom_level == 1.0

    session.viewport = session.viewport.with_zoom(2)
    session.begin_drag(500)
    session.drag_to(400, 1000)
    assert session.viewport.pan_offset == pytest.approx(0.15)
    session.end_drag()
    session.drag_to(0, 1000)
    assert session.viewport.pan_offset == pytest.approx(0.15)


def test_trims_and_mode():
    session = recorded_session()
    session.set_trim_start(-1.0)
    session.set_trim_end(10.0)
    assert (session.trim_start, session.trim_end) == (0.0, 3.0)
    session.clear_trim()
    assert session.trim_start is None and session.trim_end is None
    assert session.toggle_mode() == "spectrogram"
    assert session.toggle_mode() == "waveform"


def test_render_and_playback():
    session = Session()
    assert session.render() is None

    session = recorded_session()
    frame = session.render(width=300, height=100)
    assert len(frame.markers) == 3
    assert frame.playhead_x is None

    sched = FakeScheduler()
    session.attach_player(lambda: 1.5, sched)
    assert session.toggle_playback() is True
    assert session.playhead == 1.5
    assert session.render(width=300, height=100).playhead_x == pytest.approx(150.0)
    assert session.toggle_playback() is False


def test_export_with_nothing_selected():
    session = recorded_session()
    sink = RecordingSink()
    assert session.export(sink) is None
    assert sink.calls == []
    assert titles(session)[-1] == "No segments selected"


def test_export_selected_segments():
    session = recorded_session()
    session.click_time(1.2)
    sink = RecordingSink()
    assert session.export(sink) == "archive.zip"
    files, metadata = sink.calls[0]
    assert list(files) == ["keypress_a_1.200s.wav"]
    assert metadata[0].key_code == "KeyA"
    note = session.notifications[-1]
    assert (note.title, note.description) == ("Export complete", "Exported 1 segments")
