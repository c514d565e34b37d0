"""Virtual playback clock that tracks which cue is currently active."""

import asyncio
import enum
import logging
import math
import time
from typing import Callable, Optional

from .models import CueSequence, PlaybackState

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.05
DEFAULT_SEEK_OFFSET = 0.01


class PlaybackStatus(enum.Enum):
    STOPPED = "stopped"
    PLAYING = "playing"


class PlaybackClock:
    """
    Advances a virtual elapsed time over a cue sequence and resolves the active cue.

    While playing, elapsed time is recomputed from a fixed origin on every tick,
    so late or missed ticks never accumulate drift. When an asyncio event loop is
    running, ``play()`` starts a tick task owned by the clock; every transition
    out of PLAYING cancels it. Without a running loop the host calls ``tick()``.

    When no cue contains the elapsed time, the previously active cue stays
    active. Only ``reset()`` clears it.
    """

    def __init__(
        self,
        cues: CueSequence,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        seek_offset: float = DEFAULT_SEEK_OFFSET,
        time_source: Callable[[], float] = time.monotonic,
        on_active_change: Optional[Callable[[int], None]] = None,
    ):
        """
        Initializes the PlaybackClock.

        Args:
            cues: The sequence to resolve against.
            tick_interval: Seconds between ticks while playing.
            seek_offset: Offset added to a cue's start by ``seek_to_cue``.
            time_source: Monotonic wall clock, in seconds.
            on_active_change: Called with the new index whenever the active cue changes.
        """
        if tick_interval <= 0:
            raise ValueError(f"tick_interval must be positive, got {tick_interval}")
        self.cues = cues
        self.tick_interval = tick_interval
        self.seek_offset = seek_offset
        self._now = time_source
        self._on_active_change = on_active_change

        self._status = PlaybackStatus.STOPPED
        self._elapsed = 0.0
        self._active_index: Optional[int] = None
        self._origin = 0.0
        self._task: Optional[asyncio.Task] = None

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def playing(self) -> bool:
        return self._status is PlaybackStatus.PLAYING

    @property
    def elapsed(self) -> float:
        return self._elapsed

    @property
    def active_index(self) -> Optional[int]:
        return self._active_index

    @property
    def total_duration(self) -> float:
        return self.cues.total_duration

    @property
    def progress(self) -> float:
        total = self.total_duration
        return self._elapsed / total if total > 0 else 0.0

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(elapsed=self._elapsed, playing=self.playing, active_index=self._active_index)

    def play(self) -> None:
        if self.playing:
            return
        if self._elapsed >= self.total_duration:
            logger.debug("Playback already at the end; play ignored.")
            return
        self._origin = self._now() - self._elapsed
        self._status = PlaybackStatus.PLAYING
        self._start_ticking()
        logger.debug(f"Playback started at {self._elapsed:.3f}s")

    def pause(self) -> None:
        if not self.playing:
            return
        self._stop()
        logger.debug(f"Playback paused at {self._elapsed:.3f}s")

    def seek(self, seconds: float) -> None:
        """Moves to ``seconds``, clamped to the document, in either state."""
        if math.isnan(seconds):
            seconds = 0.0
        self._elapsed = min(max(seconds, 0.0), self.total_duration)
        if self.playing:
            self._origin = self._now() - self._elapsed
        self._resolve()

    def seek_to_cue(self, index: int) -> None:
        """
        Jumps just past the start of cue ``index``.

        Landing exactly on the start would also match the previous cue when it
        ends on the same timestamp, so the clock lands ``seek_offset`` later.

        Raises:
            CueIndexError: If ``index`` is outside the sequence.
        """
        cue = self.cues[index]
        self.seek(cue.start_seconds + self.seek_offset)

    def reset(self) -> None:
        self._stop()
        self._elapsed = 0.0
        self._active_index = None

    def tick(self) -> None:
        """Recomputes elapsed time from the wall clock. Does nothing while stopped."""
        if not self.playing:
            return
        elapsed = self._now() - self._origin
        if elapsed >= self.total_duration:
            self._elapsed = self.total_duration
            self._stop()
            logger.debug("Playback reached the end of the document.")
        else:
            self._elapsed = max(elapsed, 0.0)
        self._resolve()

    def close(self) -> None:
        """Stops playback and releases the tick task."""
        self._stop()

    def __enter__(self) -> "PlaybackClock":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _resolve(self) -> None:
        index = self.cues.find_active(self._elapsed)
        if index is None or index == self._active_index:
            return
        self._active_index = index
        if self._on_active_change is not None:
            try:
                self._on_active_change(index)
            except Exception as e:
                # A failing listener must not stall the clock.
                logger.error(f"Active cue listener failed for cue {index}: {e}", exc_info=True)

    def _start_ticking(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._task = loop.create_task(self._run())

    async def _run(self) -> None:
        try:
            while self.playing:
                await asyncio.sleep(self.tick_interval)
                self.tick()
        except Exception as e:
            logger.error(f"Playback tick failed at {self._elapsed:.3f}s: {e}", exc_info=True)
        finally:
            if self._task is _current_task() and self.playing:
                self._stop()

    def _stop(self) -> None:
        self._status = PlaybackStatus.STOPPED
        task, self._task = self._task, None
        if task is not None and task is not _current_task():
            task.cancel()


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
