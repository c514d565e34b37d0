"""Data models for SubReader."""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .exceptions import CueIndexError

# H+:MM:SS with a decimal fraction; SRT uses ',' as the fraction separator.
_TIMESTAMP_PATTERN = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2})(?:[.,](\d+))?$")


@dataclass(frozen=True)
class Timestamp:
    """A time value parsed from a subtitle file, kept with its source label."""
    hours: int
    minutes: int
    seconds: int
    milliseconds: int
    label: str

    @classmethod
    def parse(cls, label: str) -> "Timestamp":
        """
        Parses a timestamp label such as ``00:01:02.500`` or ``0:00:01.00``.

        The fractional part is read as a decimal fraction of a second, so
        centisecond ASS values and millisecond SRT values both convert exactly.

        Raises:
            ValueError: If the label is not a recognizable timestamp.
        """
        label = label.strip()
        match = _TIMESTAMP_PATTERN.match(label)
        if not match:
            raise ValueError(f"Invalid timestamp: {label!r}")
        hours, minutes, seconds, fraction = match.groups()
        fraction = (fraction or "0")[:3].ljust(3, "0")
        return cls(
            hours=int(hours),
            minutes=int(minutes),
            seconds=int(seconds),
            milliseconds=int(fraction),
            label=label,
        )

    def to_seconds(self) -> float:
        total_ms = ((self.hours * 60 + self.minutes) * 60 + self.seconds) * 1000 + self.milliseconds
        return total_ms / 1000.0

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class Cue:
    """Represents a single timed line of dialogue."""
    start: Timestamp
    end: Timestamp
    text: str

    @property
    def start_seconds(self) -> float:
        return self.start.to_seconds()

    @property
    def end_seconds(self) -> float:
        return self.end.to_seconds()

    def contains(self, elapsed: float) -> bool:
        """Inclusive on both ends."""
        return self.start_seconds <= elapsed <= self.end_seconds

    def to_dict(self) -> Dict[str, str]:
        return {"start": str(self.start), "end": str(self.end), "text": self.text}


class CueSequence:
    """
    The ordered, read-only list of cues parsed from one document.

    Cues keep the order in which they appeared in the source; nothing is sorted.
    """

    def __init__(self, cues: Sequence[Cue] = ()):
        self._cues: Tuple[Cue, ...] = tuple(cues)

    def __len__(self) -> int:
        return len(self._cues)

    def __iter__(self) -> Iterator[Cue]:
        return iter(self._cues)

    def __getitem__(self, index: int) -> Cue:
        if not isinstance(index, int) or index < 0 or index >= len(self._cues):
            raise CueIndexError(f"Cue index {index!r} out of range [0, {len(self._cues)})")
        return self._cues[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CueSequence):
            return NotImplemented
        return self._cues == other._cues

    def __repr__(self) -> str:
        return f"CueSequence({len(self._cues)} cues)"

    @property
    def total_duration(self) -> float:
        if not self._cues:
            return 0.0
        return self._cues[-1].end_seconds

    def find_active(self, elapsed: float) -> Optional[int]:
        """Returns the first cue index whose interval contains ``elapsed``, or None."""
        for index, cue in enumerate(self._cues):
            if cue.contains(elapsed):
                return index
        return None

    def search(self, query: str) -> List[int]:
        """Case-insensitive substring search over cue text. An empty query matches everything."""
        needle = query.lower()
        return [index for index, cue in enumerate(self._cues) if needle in cue.text.lower()]

    def to_dicts(self) -> List[Dict[str, str]]:
        return [cue.to_dict() for cue in self._cues]


@dataclass(frozen=True)
class PlaybackState:
    """Snapshot of the playback clock."""
    elapsed: float = 0.0
    playing: bool = False
    active_index: Optional[int] = None


@dataclass
class SubtitleDocument:
    """Holds one loaded subtitle file and what was derived from it."""
    original_name: str
    extension: str
    encoding: str
    cues: CueSequence = field(default_factory=CueSequence)
