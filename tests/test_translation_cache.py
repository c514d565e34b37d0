import asyncio
import logging

import pytest

from subreader.exceptions import CueIndexError
from subreader.models import Cue, CueSequence
from subreader.translation_cache import RequestStatus, TranslationCache, normalize_word


class GatedTranslator:
    """Async translate function whose calls block until released."""

    def __init__(self, fail_first: int = 0, reply=None):
        self.calls = []
        self.gate = asyncio.Event()
        self.fail_first = fail_first
        self.reply = reply

    async def __call__(self, text: str) -> str:
        self.calls.append(text)
        await self.gate.wait()
        if len(self.calls) <= self.fail_first:
            raise RuntimeError("service unavailable")
        if self.reply is not None:
            return self.reply
        return f"<{text}>"


async def instant(text: str) -> str:
    return f"<{text}>"


def test_normalize_word():
    assert normalize_word(" Hello, ") == "Hello"
    assert normalize_word("(wait!?)") == "wait"
    assert normalize_word("...") == ""
    assert normalize_word("don't") == "don't"


def test_duplicate_line_requests_call_out_once(hello_world):
    async def scenario():
        translator = GatedTranslator()
        cache = TranslationCache(translator)
        cache.reset(hello_world)

        first = asyncio.ensure_future(cache.request_line_translation(0))
        await asyncio.sleep(0)
        assert cache.line_status is RequestStatus.IN_FLIGHT
        assert await cache.request_line_translation(0) is None

        translator.gate.set()
        assert await first == "<Hello>"
        assert translator.calls == ["Hello"]
        assert cache.line_status is RequestStatus.IDLE
        assert cache.line_translation(0) == "<Hello>"

    asyncio.run(scenario())


def test_other_line_is_ignored_while_one_is_in_flight(hello_world):
    async def scenario():
        translator = GatedTranslator()
        cache = TranslationCache(translator)
        cache.reset(hello_world)

        first = asyncio.ensure_future(cache.request_line_translation(0))
        await asyncio.sleep(0)
        assert await cache.request_line_translation(1) is None
        translator.gate.set()
        await first
        assert translator.calls == ["Hello"]
        assert cache.line_translation(1) is None

    asyncio.run(scenario())


def test_cached_line_does_not_call_out(hello_world):
    async def scenario():
        calls = []

        async def translate(text):
            calls.append(text)
            return "bonjour"

        cache = TranslationCache(translate)
        cache.reset(hello_world)
        assert await cache.request_line_translation(0) == "bonjour"
        assert await cache.request_line_translation(0) == "bonjour"
        assert calls == ["Hello"]

    asyncio.run(scenario())


def test_failed_line_is_logged_and_retryable(hello_world, caplog):
    async def scenario():
        translator = GatedTranslator(fail_first=1)
        translator.gate.set()
        cache = TranslationCache(translator)
        cache.reset(hello_world)

        with caplog.at_level(logging.WARNING, logger="subreader.translation_cache"):
            assert await cache.request_line_translation(1) is None
        assert cache.line_translation(1) is None
        assert cache.line_status is RequestStatus.IDLE
        assert "failed" in caplog.text

        assert await cache.request_line_translation(1) == "<World>"
        assert len(translator.calls) == 2

    asyncio.run(scenario())


def test_empty_translation_is_not_cached(hello_world):
    async def scenario():
        translator = GatedTranslator(reply="   ")
        translator.gate.set()
        cache = TranslationCache(translator)
        cache.reset(hello_world)
        assert await cache.request_line_translation(0) is None
        assert cache.line_translation(0) is None

    asyncio.run(scenario())


def test_whitespace_line_is_never_submitted(hello_world):
    async def scenario():
        translator = GatedTranslator()
        cue = hello_world[0]
        cache = TranslationCache(translator)
        cache.reset(CueSequence([Cue(cue.start, cue.end, "   ")]))
        assert await cache.request_line_translation(0) is None
        assert translator.calls == []

    asyncio.run(scenario())


def test_out_of_range_requests_raise(hello_world):
    cache = TranslationCache(instant)
    cache.reset(hello_world)
    with pytest.raises(CueIndexError):
        asyncio.run(cache.request_line_translation(5))
    with pytest.raises(CueIndexError):
        asyncio.run(cache.request_word_translation(5, "Hello"))


def test_result_arriving_after_reset_is_discarded(hello_world, make_cues):
    async def scenario():
        translator = GatedTranslator()
        cache = TranslationCache(translator)
        cache.reset(hello_world)
        generation = cache.generation

        pending = asyncio.ensure_future(cache.request_line_translation(0))
        await asyncio.sleep(0)
        cache.reset(make_cues((0.0, 1.0, "Other")))
        assert cache.generation == generation + 1
        assert cache.line_status is RequestStatus.IDLE

        translator.gate.set()
        assert await pending is None
        assert cache.line_translation(0) is None

    asyncio.run(scenario())


def test_word_translation_is_normalized_and_cached(hello_world):
    async def scenario():
        calls = []

        async def translate_word(word):
            calls.append(word)
            return "你好"

        cache = TranslationCache(instant, translate_word)
        cache.reset(hello_world)
        assert await cache.request_word_translation(0, "Hello!") == "你好"
        assert cache.selected_word == (0, "Hello")
        assert cache.word_result == "你好"
        assert await cache.request_word_translation(0, "(Hello)") == "你好"
        assert calls == ["Hello"]
        assert cache.word_translation(0, "Hello,") == "你好"

    asyncio.run(scenario())


def test_punctuation_only_word_is_ignored(hello_world):
    async def scenario():
        translator = GatedTranslator()
        cache = TranslationCache(instant, translator)
        cache.reset(hello_world)
        assert await cache.request_word_translation(0, " ?! ") is None
        assert translator.calls == []
        assert cache.selected_word is None

    asyncio.run(scenario())


def test_new_word_selection_clears_previous_result(hello_world):
    async def scenario():
        translator = GatedTranslator()
        cache = TranslationCache(instant, translator)
        cache.reset(hello_world)

        translator.gate.set()
        await cache.request_word_translation(0, "Hello")
        assert cache.word_result == "<Hello>"

        translator.gate.clear()
        pending = asyncio.ensure_future(cache.request_word_translation(1, "World"))
        await asyncio.sleep(0)
        assert cache.selected_word == (1, "World")
        assert cache.word_result is None
        assert cache.word_status is RequestStatus.IN_FLIGHT

        translator.gate.set()
        assert await pending == "<World>"
        assert cache.word_result == "<World>"
        assert cache.word_status is RequestStatus.IDLE

    asyncio.run(scenario())


def test_late_word_result_is_cached_but_not_shown(hello_world):
    async def scenario():
        translator = GatedTranslator()
        cache = TranslationCache(instant, translator)
        cache.reset(hello_world)

        slow = asyncio.ensure_future(cache.request_word_translation(0, "Hello"))
        await asyncio.sleep(0)
        other = asyncio.ensure_future(cache.request_word_translation(1, "World"))
        await asyncio.sleep(0)
        assert len(translator.calls) == 2

        translator.gate.set()
        await asyncio.gather(slow, other)
        assert cache.selected_word == (1, "World")
        assert cache.word_result == "<World>"
        assert cache.word_translation(0, "Hello") == "<Hello>"

    asyncio.run(scenario())


def test_same_word_in_flight_is_coalesced(hello_world):
    async def scenario():
        translator = GatedTranslator()
        cache = TranslationCache(instant, translator)
        cache.reset(hello_world)

        first = asyncio.ensure_future(cache.request_word_translation(0, "Hello"))
        await asyncio.sleep(0)
        assert await cache.request_word_translation(0, "Hello.") is None
        translator.gate.set()
        await first
        assert translator.calls == ["Hello"]
        assert cache.word_result == "<Hello>"

    asyncio.run(scenario())


def test_word_and_line_requests_are_independent(hello_world):
    async def scenario():
        line_translator = GatedTranslator()
        word_translator = GatedTranslator()
        cache = TranslationCache(line_translator, word_translator)
        cache.reset(hello_world)

        line = asyncio.ensure_future(cache.request_line_translation(0))
        await asyncio.sleep(0)
        word = asyncio.ensure_future(cache.request_word_translation(0, "Hello"))
        await asyncio.sleep(0)
        assert cache.line_status is RequestStatus.IN_FLIGHT
        assert cache.word_status is RequestStatus.IN_FLIGHT

        word_translator.gate.set()
        assert await word == "<Hello>"
        assert cache.line_status is RequestStatus.IN_FLIGHT

        line_translator.gate.set()
        assert await line == "<Hello>"

    asyncio.run(scenario())
