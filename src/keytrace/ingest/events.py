# src/keytrace/ingest/events.py
"""Parser for key event files.

Supports:
A) JSON list of objects (or ``{"events": [...]}``):
   [{"key": "a", "code": "KeyA", "time": 1.25}, ...]

B) CSV with header:
   key,code,time

Column/field aliases follow the export metadata as well, so a
``metadata.json`` written by :mod:`keytrace.export.archive` can be loaded
back (``keyLabel``/``keyCode``/``eventTime``).  Events are returned sorted
by time; presses sharing a timestamp keep their file order.
"""

from __future__ import annotations

import csv
import json
import logging
import pathlib
from typing import Any, Iterable, List, Mapping, Optional, Union

from ..core.timeline import POST_ROLL, PRE_ROLL, KeyEvent
from ..utils.timeparse import parse_time

logger = logging.getLogger(__name__)

_KEY_ALIASES = ("key", "keyLabel", "key_label", "label")
_CODE_ALIASES = ("code", "keyCode", "key_code")
_TIME_ALIASES = ("time", "eventTime", "event_time", "timestamp", "t")


class EventsParseError(ValueError):
    """Raised when a key event file cannot be parsed."""

    def __init__(self, message: str, *, path: Union[str, pathlib.Path], line: int):
        self.path = str(path)
        self.line = line
        super().__init__(f"{self.path}:{self.line}: {message}")


def _pick(row: Mapping[str, Any], aliases: Iterable[str]) -> Optional[Any]:
    for name in aliases:
        if name in row and row[name] is not None:
            return row[name]
    return None


def _event_from_row(
    row: Mapping[str, Any],
    *,
    pre_roll: float,
    post_roll: float,
) -> KeyEvent:
    raw_time = _pick(row, _TIME_ALIASES)
    if raw_time is None or (isinstance(raw_time, str) and not raw_time.strip()):
        raise ValueError("missing event time")
    t = float(raw_time) if isinstance(raw_time, (int, float)) else parse_time(str(raw_time))
    if t < 0:
        raise ValueError(f"negative event time: {t}")

    key = _pick(row, _KEY_ALIASES)
    code = _pick(row, _CODE_ALIASES)
    if key is None and code is None:
        raise ValueError("event needs a key label or a key code")
    # Labels are not stripped: a lone space is the space bar.
    key = "" if key is None else str(key)
    code = "" if code is None else str(code)

    event = KeyEvent.at(
        t,
        key,
        code,
        pre_roll=pre_roll,
        post_roll=post_roll,
        event_id=str(row["id"]) if row.get("id") else None,
    )
    return event


def _sorted(events: List[KeyEvent]) -> List[KeyEvent]:
    ordered = sorted(events, key=lambda e: e.event_time)
    if any(a is not b for a, b in zip(ordered, events)):
        logger.info("reordered %d key events by time", len(events))
    return ordered


def parse_events(
    records: Iterable[Mapping[str, Any]],
    *,
    pre_roll: float = PRE_ROLL,
    post_roll: float = POST_ROLL,
    path: Union[str, pathlib.Path] = "<records>",
    first_line: int = 1,
) -> List[KeyEvent]:
    """Build :class:`KeyEvent` objects from mapping records."""

    events: List[KeyEvent] = []
    for lineno, row in enumerate(records, start=first_line):
        if not isinstance(row, Mapping):
            raise EventsParseError(f"expected an object, got {type(row).__name__}", path=path, line=lineno)
        try:
            events.append(_event_from_row(row, pre_roll=pre_roll, post_roll=post_roll))
        except ValueError as exc:
            raise EventsParseError(str(exc), path=path, line=lineno) from exc
    return _sorted(events)


def read_events(
    path: Union[str, pathlib.Path],
    *,
    pre_roll: float = PRE_ROLL,
    post_roll: float = POST_ROLL,
) -> List[KeyEvent]:
    """Load key events from a JSON or CSV file."""

    p = pathlib.Path(path)
    if p.suffix.lower() == ".csv":
        with open(p, "r", encoding="utf8", newline="") as fh:
            reader = csv.DictReader(fh)
            if not reader.fieldnames:
                return []
            reader.fieldnames = [fn.strip().lstrip("\ufeff") for fn in reader.fieldnames]
            if _pick({f: f for f in reader.fieldnames}, _TIME_ALIASES) is None:
                raise EventsParseError("CSV header must include a time column", path=p, line=1)
            rows = [row for row in reader if any((v or "") != "" for v in row.values())]
        return parse_events(rows, pre_roll=pre_roll, post_roll=post_roll, path=p, first_line=2)

    if p.suffix.lower() in {".json", ".txt"}:
        with open(p, "r", encoding="utf8") as fh:
            try:
                obj = json.load(fh)
            except json.JSONDecodeError as exc:
                raise EventsParseError(exc.msg, path=p, line=exc.lineno) from exc
        if isinstance(obj, Mapping):
            obj = obj.get("events", [])
        if not isinstance(obj, list):
            raise EventsParseError("expected a list of events", path=p, line=1)
        return parse_events(obj, pre_roll=pre_roll, post_roll=post_roll, path=p)

    raise ValueError(f"Unsupported key event file format: {p.suffix}")


__all__ = ["EventsParseError", "parse_events", "read_events"]
