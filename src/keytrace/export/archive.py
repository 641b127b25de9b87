from __future__ import annotations

"""Bundle selected key press segments into a downloadable archive.

Each selected event becomes one WAV file named
``keypress_<keyLabel>_<eventTime>s.wav`` plus one entry in a metadata list.
The metadata is written once as ``metadata.json`` next to the audio files.
"""

import io
import json
import logging
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..core.extract import extract_segment
from ..core.keycodes import marker_label
from ..core.timeline import EventTimeline, KeyEvent
from ..errors import EmptySelection
from ..types import SampleBuffer
from .wav import encode_wav

logger = logging.getLogger(__name__)

METADATA_NAME = "metadata.json"
ARCHIVE_PREFIX = "keyboard_segments"

_UNSAFE = set('/\\:*?"<>|\0')


class SegmentMetadata(BaseModel):
    """Metadata describing one exported segment.

    Serialised with camelCase keys (``keyLabel``, ``eventTime`` ...).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    filename: str
    key_label: str
    key_code: str
    event_time: float
    window_start: float
    window_end: float
    duration_seconds: float

    @classmethod
    def for_event(cls, event: KeyEvent, filename: str) -> "SegmentMetadata":
        return cls(
            filename=filename,
            key_label=event.key_label,
            key_code=event.key_code,
            event_time=event.event_time,
            window_start=event.window_start,
            window_end=event.window_end,
            duration_seconds=event.window_duration,
        )


@dataclass
class SegmentExport:
    """Encoded segments keyed by filename plus their metadata records."""

    files: Dict[str, bytes] = field(default_factory=dict)
    metadata: List[SegmentMetadata] = field(default_factory=list)

    def metadata_json(self) -> str:
        return metadata_document(self.metadata)


def metadata_document(metadata: Iterable[SegmentMetadata]) -> str:
    """Serialise metadata records as the JSON document stored in archives."""

    return json.dumps([m.model_dump(by_alias=True) for m in metadata], indent=2)


class ArchiveSink(Protocol):
    """Receives the exported files and metadata and produces a bundle."""

    def write(self, files: Mapping[str, bytes], metadata: Sequence[SegmentMetadata]) -> object: ...


def filename_label(event: KeyEvent) -> str:
    """Key label usable inside a filename.

    The space bar reads ``Space``; labels that are blank or contain path
    separators fall back to the physical key code.
    """

    label = marker_label(event.key_label)
    if not label.strip() or any(ch in _UNSAFE for ch in label):
        label = event.key_code or "key"
    return label


def segment_filename(event: KeyEvent) -> str:
    return f"keypress_{filename_label(event)}_{event.event_time:.3f}s.wav"


def _unique(name: str, taken: Mapping[str, bytes]) -> str:
    if name not in taken:
        return name
    stem = name[: -len(".wav")]
    n = 2
    while f"{stem}_{n}.wav" in taken:
        n += 1
    return f"{stem}_{n}.wav"


def build_segments(buffer: SampleBuffer, events: Iterable[KeyEvent]) -> SegmentExport:
    """Extract and encode one WAV file per event.

    Raises
    ------
    EmptySelection
        If ``events`` is empty.
    """

    result = SegmentExport()
    for event in events:
        name = _unique(segment_filename(event), result.files)
        if name != segment_filename(event):
            logger.warning("duplicate segment name for %s at %.3fs; writing %s", event.key_code, event.event_time, name)
        segment = extract_segment(buffer, event)
        result.files[name] = encode_wav(segment)
        result.metadata.append(SegmentMetadata.for_event(event, name))
    if not result.files:
        raise EmptySelection()
    return result


def export_selected(buffer: Optional[SampleBuffer], timeline: EventTimeline) -> SegmentExport:
    """Build the export for every selected event of ``timeline``."""

    selected = timeline.selected()
    if buffer is None or not selected:
        raise EmptySelection()
    return build_segments(buffer, selected)


def build_archive(
    files: Mapping[str, bytes],
    metadata: Sequence[SegmentMetadata],
    *,
    metadata_name: str = METADATA_NAME,
) -> bytes:
    """Return a zip archive holding ``files`` and a JSON metadata document."""

    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            zf.writestr(name, data)
        zf.writestr(metadata_name, metadata_document(metadata))
    return out.getvalue()


class ZipArchiveSink:
    """Write ``<prefix>_<timestamp>.zip`` archives into ``directory``."""

    def __init__(
        self,
        directory: str | Path = ".",
        *,
        prefix: str = ARCHIVE_PREFIX,
        metadata_name: str = METADATA_NAME,
        clock=datetime.now,
    ) -> None:
        self.directory = Path(directory)
        self.prefix = prefix
        self.metadata_name = metadata_name
        self._clock = clock

    def archive_name(self) -> str:
        stamp = self._clock().strftime("%Y-%m-%dT%H-%M-%S")
        return f"{self.prefix}_{stamp}.zip"

    def write(self, files: Mapping[str, bytes], metadata: Sequence[SegmentMetadata]) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / self.archive_name()
        path.write_bytes(build_archive(files, metadata, metadata_name=self.metadata_name))
        logger.info("wrote %d segment(s) to %s", len(files), path)
        return path


__all__ = [
    "METADATA_NAME",
    "ARCHIVE_PREFIX",
    "SegmentMetadata",
    "SegmentExport",
    "metadata_document",
    "ArchiveSink",
    "filename_label",
    "segment_filename",
    "build_segments",
    "export_selected",
    "build_archive",
    "ZipArchiveSink",
]
