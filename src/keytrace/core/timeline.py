from __future__ import annotations

"""Key events and the ordered, selectable timeline that owns them."""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

import numpy as np

from .keycodes import normalize_code

logger = logging.getLogger(__name__)

PRE_ROLL = 0.5
POST_ROLL = 0.5
HIT_THRESHOLD = 0.1


def _new_id() -> str:
    return f"key-{uuid.uuid4().hex}"


@dataclass
class KeyEvent:
    """A single key-down observation and the audio window around it.

    Attributes
    ----------
    id:
        Opaque unique token.
    key_label:
        Logical key as typed, e.g. ``"a"`` or ``" "``.
    key_code:
        Physical key identifier, e.g. ``"KeyA"`` or ``"ShiftLeft"``.
    event_time:
        Seconds from recording start to the physical press.
    window_start, window_end:
        Bounds of the audio segment associated with the press.  Only
        ``window_end`` is ever adjusted, by :meth:`EventTimeline.clamp_windows`.
    selected:
        Selection flag.  Written exclusively through :class:`EventTimeline`.
    group:
        Logical key group resolved from ``key_code`` at construction.
    """

    id: str
    key_label: str
    key_code: str
    event_time: float
    window_start: float
    window_end: float
    selected: bool = False
    group: str = ""

    def __post_init__(self) -> None:
        if not self.window_start <= self.event_time <= self.window_end:
            raise ValueError(
                f"event window [{self.window_start}, {self.window_end}] "
                f"does not contain event time {self.event_time}"
            )
        if not self.group:
            self.group = normalize_code(self.key_code, self.key_label)

    @classmethod
    def at(
        cls,
        event_time: float,
        key_label: str,
        key_code: str,
        *,
        pre_roll: float = PRE_ROLL,
        post_roll: float = POST_ROLL,
        event_id: Optional[str] = None,
    ) -> "KeyEvent":
        """Build an event with the default window around ``event_time``."""

        event_time = float(event_time)
        return cls(
            id=event_id or _new_id(),
            key_label=key_label,
            key_code=key_code,
            event_time=event_time,
            window_start=max(0.0, event_time - pre_roll),
            window_end=event_time + post_roll,
        )

    @property
    def window_duration(self) -> float:
        return self.window_end - self.window_start


@dataclass
class EventTimeline:
    """Append-ordered collection of :class:`KeyEvent` objects.

    Insertion order is temporal order: :meth:`append` rejects events that
    would make ``event_time`` decrease.  The set of selected ids is derived
    from the per-event flags, which are only written here.
    """

    _events: List[KeyEvent] = field(default_factory=list)
    _index: Dict[str, KeyEvent] = field(default_factory=dict, repr=False)
    clamped_to: Optional[float] = None

    def __post_init__(self) -> None:
        events, self._events = list(self._events), []
        self._index = {}
        self.extend(events)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def append(self, event: KeyEvent) -> KeyEvent:
        if event.id in self._index:
            raise KeyError(f"duplicate event id: {event.id}")
        if self._events and event.event_time < self._events[-1].event_time:
            raise ValueError(
                f"event at {event.event_time:.3f}s precedes the last event at "
                f"{self._events[-1].event_time:.3f}s"
            )
        self._events.append(event)
        self._index[event.id] = event
        return event

    def extend(self, events: Iterable[KeyEvent]) -> None:
        for event in events:
            self.append(event)

    def clear(self) -> None:
        """Drop every event and forget any previous window clamp."""

        self._events.clear()
        self._index.clear()
        self.clamped_to = None

    def clamp_windows(self, duration: float) -> bool:
        """Clamp every ``window_end`` to ``duration``.

        Events pressed after the end of the audio have no samples to point
        at and are dropped.  The clamp is applied once per timeline
        lifetime; subsequent calls return ``False`` without touching the
        events until :meth:`clear`.
        """

        if self.clamped_to is not None:
            logger.debug("windows already clamped to %.3fs; ignoring %.3fs", self.clamped_to, duration)
            return False
        kept = [e for e in self._events if e.event_time <= duration]
        if len(kept) != len(self._events):
            logger.warning(
                "dropping %d key event(s) recorded after the audio ended at %.3fs",
                len(self._events) - len(kept),
                duration,
            )
        for event in kept:
            event.window_end = min(event.window_end, duration)
        self._events = kept
        self._index = {e.id: e for e in kept}
        self.clamped_to = float(duration)
        return True

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def set_selected(self, event_id: str, selected: bool) -> KeyEvent:
        event = self._index[event_id]
        event.selected = bool(selected)
        return event

    def toggle(self, event_id: str) -> KeyEvent:
        """Flip the selection of ``event_id`` and return the event."""

        event = self._index[event_id]
        return self.set_selected(event_id, not event.selected)

    def select_all(self) -> None:
        for event in self._events:
            event.selected = True

    def clear_selection(self) -> None:
        for event in self._events:
            event.selected = False

    @property
    def selected_ids(self) -> frozenset[str]:
        return frozenset(e.id for e in self._events if e.selected)

    def selected(self) -> List[KeyEvent]:
        """Selected events in timeline order."""

        return [e for e in self._events if e.selected]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def times(self) -> np.ndarray:
        return np.array([e.event_time for e in self._events], dtype=float)

    def get(self, event_id: str) -> Optional[KeyEvent]:
        return self._index.get(event_id)

    def between(self, start: float, end: float) -> List[KeyEvent]:
        """Events with ``start <= event_time <= end``."""

        times = self.times
        lo = int(np.searchsorted(times, start, side="left"))
        hi = int(np.searchsorted(times, end, side="right"))
        return self._events[lo:hi]

    def counts_by_group(self) -> Dict[str, int]:
        return dict(Counter(e.group for e in self._events))

    def __iter__(self) -> Iterator[KeyEvent]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __getitem__(self, idx: int) -> KeyEvent:
        return self._events[idx]


def find_nearest_event(
    click_time: float,
    timeline: EventTimeline | Iterable[KeyEvent],
    *,
    threshold: float = HIT_THRESHOLD,
) -> Optional[KeyEvent]:
    """Return the event closest to ``click_time`` or ``None``.

    The match is accepted only when its distance is strictly below
    ``threshold``.  When two events are equally close the earlier one in
    iteration order wins.
    """

    events = list(timeline)
    if not events:
        return None
    times = np.array([e.event_time for e in events], dtype=float)

    j = int(np.searchsorted(times, click_time, side="left"))
    if j == 0:
        idx = 0
    elif j == len(times):
        idx = len(times) - 1
    else:
        prev_diff = abs(times[j - 1] - click_time)
        next_diff = abs(times[j] - click_time)
        idx = j if next_diff < prev_diff else j - 1
    # Several presses may share a timestamp; keep the first of them.
    idx = int(np.searchsorted(times, times[idx], side="left"))

    if abs(times[idx] - click_time) < threshold:
        return events[idx]
    return None


__all__ = [
    "PRE_ROLL",
    "POST_ROLL",
    "HIT_THRESHOLD",
    "KeyEvent",
    "EventTimeline",
    "find_nearest_event",
]
