import asyncio

import pytest

pytest.importorskip("torch")
pytest.importorskip("transformers")

from subreader.translator import AutoDirectionTranslator, Translator, as_async, contains_cjk


class RecordingTranslator(Translator):
    def __init__(self, tag):
        self.tag = tag
        self.calls = []

    def translate(self, text, source_lang='en', target_lang='zh'):
        self.calls.append((text, source_lang, target_lang))
        return f"{self.tag}:{text}"


def test_contains_cjk():
    assert contains_cjk("你好 world")
    assert not contains_cjk("Hello, world!")


def test_direction_follows_script():
    en_to_zh = RecordingTranslator("zh")
    zh_to_en = RecordingTranslator("en")
    translator = AutoDirectionTranslator(en_to_zh, zh_to_en)

    assert translator.translate("Good morning") == "zh:Good morning"
    assert translator.translate("早上好") == "en:早上好"
    assert en_to_zh.calls == [("Good morning", "en", "zh")]
    assert zh_to_en.calls == [("早上好", "zh", "en")]


def test_as_async_wraps_blocking_translator():
    translate = as_async(RecordingTranslator("zh"))
    assert asyncio.run(translate("Hi")) == "zh:Hi"
