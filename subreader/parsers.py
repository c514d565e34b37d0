"""Parses decoded subtitle text into cue sequences."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .models import Cue, CueSequence, Timestamp

logger = logging.getLogger(__name__)

TIMECODE_PATTERN = re.compile(r"(\d{2}:\d{2}:\d{2}[,.]\d{3}) --> (\d{2}:\d{2}:\d{2}[,.]\d{3})")
OVERRIDE_TAG_PATTERN = re.compile(r"\{.*?\}")
DIALOGUE_PREFIX = "Dialogue:"
DIALOGUE_MIN_FIELDS = 10
DIALOGUE_TEXT_FIELD = 9


def split_lines(text: str) -> List[str]:
    """Normalizes line endings and splits into lines."""
    return text.replace("\r\n", "\n").split("\n")


def _build_cue(start_label: str, end_label: str, text: str) -> Optional[Cue]:
    """Returns a Cue, or None if the block is malformed or has no text."""
    text = text.strip()
    if not text:
        return None
    try:
        start = Timestamp.parse(start_label)
        end = Timestamp.parse(end_label)
    except ValueError as e:
        logger.debug(f"Skipping block with bad timestamps: {e}")
        return None
    if end.to_seconds() < start.to_seconds():
        logger.debug(f"Skipping block ending before it starts ({start} -> {end})")
        return None
    return Cue(start=start, end=end, text=text)


class SubtitleParser(ABC):
    """Abstract base class for subtitle parsers."""

    @abstractmethod
    def parse(self, text: str) -> List[Cue]:
        """
        Parses decoded subtitle text into cues.

        Malformed blocks are dropped; parsing never fails on bad input.

        Args:
            text: The decoded document text.

        Returns:
            The cues in source order.
        """
        pass


class SequentialBlockParser(SubtitleParser):
    """Parses SRT and WebVTT documents, which share the ``-->`` cue marker."""

    def parse(self, text: str) -> List[Cue]:
        cues: List[Cue] = []
        start: Optional[str] = None
        end: Optional[str] = None
        parts: List[str] = []

        def emit() -> None:
            cue = _build_cue(start, end, " ".join(parts))
            if cue is not None:
                cues.append(cue)

        for line in split_lines(text):
            match = TIMECODE_PATTERN.search(line)
            if match:
                # A marker always opens a fresh cue, even if one is still open.
                start = match.group(1).replace(",", ".")
                end = match.group(2).replace(",", ".")
                parts = []
            elif not line.strip():
                if start is not None:
                    emit()
                    start, end, parts = None, None, []
            elif start is not None:
                parts.append(line.strip())

        if start is not None:
            emit()
        return cues


class DialogueLineParser(SubtitleParser):
    """Parses the ``Dialogue:`` event lines of ASS/SSA documents, stripping override tags."""

    def parse(self, text: str) -> List[Cue]:
        cues: List[Cue] = []
        for line in split_lines(text):
            if not line.startswith(DIALOGUE_PREFIX):
                continue
            fields = line.split(",")
            if len(fields) < DIALOGUE_MIN_FIELDS:
                logger.debug(f"Skipping dialogue line with {len(fields)} fields")
                continue
            dialogue = ",".join(fields[DIALOGUE_TEXT_FIELD:])
            dialogue = OVERRIDE_TAG_PATTERN.sub("", dialogue)
            cue = _build_cue(fields[1], fields[2], dialogue)
            if cue is not None:
                cues.append(cue)
        return cues


PARSERS: Dict[str, SubtitleParser] = {
    ".srt": SequentialBlockParser(),
    ".vtt": SequentialBlockParser(),
    ".ass": DialogueLineParser(),
    ".ssa": DialogueLineParser(),
}


def normalize_extension(extension: str) -> str:
    extension = extension.strip().lower()
    if extension and not extension.startswith("."):
        extension = "." + extension
    return extension


def parse_subtitles(text: str, extension: str) -> CueSequence:
    """
    Dispatches decoded text to the parser registered for ``extension``.

    Unknown extensions produce an empty sequence; rejecting them is left to
    the caller.
    """
    parser = PARSERS.get(normalize_extension(extension))
    if parser is None:
        logger.warning(f"No parser registered for extension '{extension}'. Returning no cues.")
        return CueSequence()

    cues = CueSequence(parser.parse(text))
    logger.info(f"Parsed {len(cues)} cues from '{extension}' document")
    return cues
