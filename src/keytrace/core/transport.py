"""Playback state and the recurring playhead refresh."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

TICK_INTERVAL = 1.0 / 60.0


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with an ``asyncio``-style ``call_later``."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Handle: ...


class Transport:
    """Poll a playback position while audio is playing.

    ``position`` returns the player's current time in seconds.  While
    playing, :class:`Transport` schedules itself on ``scheduler`` every
    ``interval`` seconds and stores the polled value in :attr:`playhead`.
    Pausing, stopping or reaching the end cancels the pending tick, so no
    refresh runs once playback is over.
    """

    def __init__(
        self,
        position: Callable[[], float],
        scheduler: Scheduler,
        *,
        interval: float = TICK_INTERVAL,
        on_tick: Optional[Callable[[float], None]] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._position = position
        self._scheduler = scheduler
        self._interval = interval
        self._on_tick = on_tick
        self._handle: Optional[Handle] = None
        self.playing = False
        self.playhead = 0.0

    def play(self) -> None:
        if self.playing:
            return
        self.playing = True
        self._tick()

    def pause(self) -> None:
        if not self.playing:
            return
        self.playing = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        logger.debug("playback paused at %.3fs", self.playhead)

    def stop(self) -> None:
        """Pause and rewind the playhead to the start."""

        self.pause()
        self.playhead = 0.0

    def ended(self) -> None:
        """Called by the player when the audio reaches its end."""

        self.pause()

    def toggle(self) -> bool:
        if self.playing:
            self.pause()
        else:
            self.play()
        return self.playing

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def _tick(self) -> None:
        self._handle = None
        if not self.playing:
            return
        self.playhead = float(self._position())
        if self._on_tick is not None:
            self._on_tick(self.playhead)
            if not self.playing:
                return
        self._handle = self._scheduler.call_later(self._interval, self._tick)


__all__ = ["TICK_INTERVAL", "Scheduler", "Handle", "Transport"]
