"""Utility modules for bringing audio and key events into keytrace."""

from .capture import CaptureService, ChunkRecorder
from .decode import ACCEPTED_TYPES, check_supported, decode_audio, decode_file, hint_for_path
from .events import EventsParseError, parse_events, read_events

__all__ = [
    "CaptureService",
    "ChunkRecorder",
    "ACCEPTED_TYPES",
    "check_supported",
    "decode_audio",
    "decode_file",
    "hint_for_path",
    "EventsParseError",
    "parse_events",
    "read_events",
]
