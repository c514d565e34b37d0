"""Caches line and word translations and coalesces duplicate requests."""

import enum
import logging
from typing import Awaitable, Callable, Dict, Optional, Set, Tuple

from .models import CueSequence

logger = logging.getLogger(__name__)

TranslateFn = Callable[[str], Awaitable[str]]
WordKey = Tuple[int, str]

WORD_PUNCTUATION = ".,!?;:()"


class RequestStatus(enum.Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


def normalize_word(raw_word: str) -> str:
    """Strips the word punctuation set and surrounding whitespace."""
    return raw_word.translate(str.maketrans("", "", WORD_PUNCTUATION)).strip()


class TranslationCache:
    """
    Memoizes translations for one loaded document.

    Line requests share a single in-flight slot, so at most one line is being
    translated at a time. Word requests use their own slot and never wait on a
    line. Each request captures the cache ``generation``; a result that settles
    after ``reset()`` belongs to a previous document and is dropped.
    """

    def __init__(self, translate: TranslateFn, translate_word: Optional[TranslateFn] = None):
        """
        Initializes the TranslationCache.

        Args:
            translate: Async callable turning a subtitle line into its translation.
            translate_word: Async callable used for single words. Defaults to ``translate``.
        """
        self._translate = translate
        self._translate_word = translate_word or translate
        self.cues = CueSequence()
        self.generation = 0
        self._lines: Dict[int, str] = {}
        self._words: Dict[WordKey, str] = {}
        self._line_status = RequestStatus.IDLE
        self._words_in_flight: Set[WordKey] = set()
        self.selected_word: Optional[WordKey] = None
        self.word_result: Optional[str] = None

    def reset(self, cues: CueSequence) -> None:
        """Binds a freshly loaded document and discards everything cached for the old one."""
        self.cues = cues
        self.generation += 1
        self._lines = {}
        self._words = {}
        self._line_status = RequestStatus.IDLE
        self._words_in_flight = set()
        self.selected_word = None
        self.word_result = None

    @property
    def line_status(self) -> RequestStatus:
        return self._line_status

    @property
    def word_status(self) -> RequestStatus:
        return RequestStatus.IN_FLIGHT if self._words_in_flight else RequestStatus.IDLE

    def line_translation(self, index: int) -> Optional[str]:
        return self._lines.get(index)

    def word_translation(self, index: int, word: str) -> Optional[str]:
        return self._words.get((index, normalize_word(word)))

    def clear_word_selection(self) -> None:
        self.selected_word = None
        self.word_result = None

    async def request_line_translation(self, index: int) -> Optional[str]:
        """
        Translates cue ``index`` unless it is cached or another line is in flight.

        Returns:
            The cached or freshly translated text, or None if nothing was stored.

        Raises:
            CueIndexError: If ``index`` is outside the loaded sequence.
        """
        text = self.cues[index].text
        if index in self._lines:
            return self._lines[index]
        if self._line_status is RequestStatus.IN_FLIGHT:
            logger.debug(f"Line translation already in flight; ignoring request for cue {index}")
            return None
        if not text.strip():
            return None

        generation = self.generation
        self._line_status = RequestStatus.IN_FLIGHT
        try:
            translated = await self._translate(text)
        except Exception as e:
            logger.warning(f"Translation of cue {index} failed: {e}")
            logger.debug("Translation failure details", exc_info=True)
            return None
        finally:
            if generation == self.generation:
                self._line_status = RequestStatus.IDLE

        if generation != self.generation:
            logger.debug(f"Discarding stale translation for cue {index}")
            return None
        translated = (translated or "").strip()
        if not translated:
            logger.warning(f"Translation of cue {index} came back empty; not caching.")
            return None
        return self._lines.setdefault(index, translated)

    async def request_word_translation(self, index: int, raw_word: str) -> Optional[str]:
        """
        Selects a word of cue ``index`` and translates it.

        The previous word result is cleared as soon as the selection changes.
        The result is cached under ``(index, word)`` and shown only if that word
        is still selected when it arrives.

        Raises:
            CueIndexError: If ``index`` is outside the loaded sequence.
        """
        self.cues[index]  # raises CueIndexError
        word = normalize_word(raw_word)
        if not word:
            return None

        key = (index, word)
        self.selected_word = key
        self.word_result = None
        if key in self._words:
            self.word_result = self._words[key]
            return self.word_result
        if key in self._words_in_flight:
            return None

        generation = self.generation
        self._words_in_flight.add(key)
        try:
            translated = await self._translate_word(word)
        except Exception as e:
            logger.warning(f"Translation of word '{word}' (cue {index}) failed: {e}")
            logger.debug("Word translation failure details", exc_info=True)
            return None
        finally:
            if generation == self.generation:
                self._words_in_flight.discard(key)

        if generation != self.generation:
            logger.debug(f"Discarding stale translation for word '{word}'")
            return None
        translated = (translated or "").strip()
        if not translated:
            return None
        translated = self._words.setdefault(key, translated)
        if self.selected_word == key:
            self.word_result = translated
        return translated
