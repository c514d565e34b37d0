"""Ties encoding detection, parsing, playback and translation together for one reader."""

import logging
from typing import Callable, List, Optional, Tuple

from .config_loader import default_config, validate_config
from .encoding import EncodingResolver
from .exceptions import SubReaderError
from .models import Cue, SubtitleDocument
from .parsers import normalize_extension, parse_subtitles
from .playback import PlaybackClock
from .translation_cache import TranslateFn, TranslationCache

logger = logging.getLogger(__name__)


class ReaderSession:
    """
    Holds the document currently open in a reader and everything derived from it.

    Loading a new document replaces the cue sequence, tears down the previous
    playback clock, and discards all cached translations.
    """

    def __init__(
        self,
        translate: TranslateFn,
        translate_word: Optional[TranslateFn] = None,
        config: Optional[dict] = None,
        on_active_change: Optional[Callable[[int], None]] = None,
    ):
        """
        Initializes the ReaderSession.

        Args:
            translate: Async ``text -> text`` callable for whole lines.
            translate_word: Async callable for single words. Defaults to ``translate``.
            config: Settings as returned by ``ConfigLoader``. Defaults apply when omitted.
            on_active_change: Forwarded to each playback clock.
        """
        self.config = validate_config(config if config is not None else default_config())
        self.resolver = EncodingResolver(
            default_encoding=self.config.get('default_encoding', 'utf-8'),
            min_confidence=self.config.get('min_confidence', 0.2),
        )
        self.translations = TranslationCache(translate, translate_word)
        self._on_active_change = on_active_change
        self.document: Optional[SubtitleDocument] = None
        self.clock: Optional[PlaybackClock] = None

    def load(self, data: bytes, extension: str, original_name: str = "") -> SubtitleDocument:
        """
        Decodes and parses an uploaded subtitle file and makes it the open document.

        Args:
            data: The raw file bytes.
            extension: The claimed file extension, e.g. ``.srt``.
            original_name: The uploaded file name, kept for display.

        Returns:
            The loaded document.

        Raises:
            EncodingError: If the bytes are empty or cannot be decoded.
        """
        text, encoding = self.resolver.resolve(data)
        logger.info(f"Loading '{original_name or '<unnamed>'}' (Detected: {encoding})")
        cues = parse_subtitles(text, extension)

        if self.clock is not None:
            self.clock.close()
        self.document = SubtitleDocument(
            original_name=original_name,
            extension=normalize_extension(extension),
            encoding=encoding,
            cues=cues,
        )
        self.clock = PlaybackClock(
            cues,
            tick_interval=self.config['tick_interval'],
            seek_offset=self.config['seek_offset'],
            on_active_change=self._on_active_change,
        )
        self.translations.reset(cues)
        logger.info(f"Loaded {len(cues)} cues, total duration {cues.total_duration:.3f}s")
        return self.document

    def _require_document(self) -> SubtitleDocument:
        if self.document is None:
            raise SubReaderError("No subtitle document is loaded.")
        return self.document

    @property
    def generation(self) -> int:
        """Changes every time a document is loaded."""
        return self.translations.generation

    def search(self, query: str) -> List[Tuple[int, Cue]]:
        cues = self._require_document().cues
        return [(index, cues[index]) for index in cues.search(query)]

    def cue_dicts(self, query: str = "") -> List[dict]:
        """Returns the matching cues as ``{"start", "end", "text"}`` mappings, each with its index."""
        cues = self._require_document().cues
        if not query:
            return [dict(cue, index=index) for index, cue in enumerate(cues.to_dicts())]
        return [dict(cues[index].to_dict(), index=index) for index in cues.search(query)]

    async def jump_to_line(self, index: int) -> Optional[str]:
        """
        Moves playback to line ``index``, clears the word selection, and
        requests the line's translation.

        The seek happens before the first suspension point, so the clock is
        already on the new line when this coroutine yields.
        """
        self._require_document()
        self.clock.seek_to_cue(index)
        self.translations.clear_word_selection()
        return await self.translations.request_line_translation(index)

    async def select_word(self, index: int, raw_word: str) -> Optional[str]:
        self._require_document()
        return await self.translations.request_word_translation(index, raw_word)

    def close(self) -> None:
        if self.clock is not None:
            self.clock.close()
