"""Handles text translation using Hugging Face models."""

import asyncio
import logging
import re
import torch
from abc import ABC, abstractmethod
from transformers import AutoTokenizer, AutoModelForSeq2SeqLM
from typing import Awaitable, Callable

from .exceptions import TranslationError

logger = logging.getLogger(__name__)

CJK_PATTERN = re.compile(r"[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff]")


def contains_cjk(text: str) -> bool:
    return bool(CJK_PATTERN.search(text))


class Translator(ABC):
    """Abstract base class for translation services."""

    @abstractmethod
    def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        """
        Translates text from source to target language.

        Args:
            text: The text to translate.
            source_lang: Source language code (e.g., 'en').
            target_lang: Target language code (e.g., 'zh').

        Returns:
            The translated text.

        Raises:
            TranslationError: If translation fails.
        """
        pass

class HuggingFaceTranslator(Translator):
    """Implements translation using Hugging Face Transformers models."""

    def __init__(self, model_name: str = "Helsinki-NLP/opus-mt-en-zh", device: str = "cpu"):
        """
        Initializes the HuggingFaceTranslator.

        Args:
            model_name: The name of the Hugging Face translation model.
            device: The device to run the model on ("cuda" or "cpu").

        Raises:
            ValueError: If the specified device is invalid.
            TranslationError: If the model or tokenizer fails to load.
        """
        self.model_name = model_name
        self.device = device

        # Fall back to CPU rather than failing when CUDA is missing
        if self.device == "cuda" and not torch.cuda.is_available():
            logger.warning("CUDA device requested but not available for translation. Falling back to CPU.")
            self.device = "cpu"
        elif self.device not in ["cuda", "cpu"]:
             raise ValueError(f"Invalid device specified: {self.device}. Choose 'cuda' or 'cpu'.")

        logger.info(f"Initializing HuggingFaceTranslator with model '{self.model_name}' on device '{self.device}'")
        try:
            self.tokenizer = AutoTokenizer.from_pretrained(self.model_name)
            self.model = AutoModelForSeq2SeqLM.from_pretrained(self.model_name)
            self.model.to(self.device)
            self.model.eval() # Set model to evaluation mode
            logger.info(f"Hugging Face translation model '{self.model_name}' loaded successfully.")
        except Exception as e:
            logger.error(f"Failed to load translation model or tokenizer '{self.model_name}': {e}", exc_info=True)
            raise TranslationError(f"Failed to load translation model/tokenizer '{self.model_name}': {e}") from e

    def translate(self, text: str, source_lang: str = 'en', target_lang: str = 'zh') -> str:
        """
        Translates a single string of text.

        The model fixes the language pair; the language codes are only logged.

        Raises:
            TranslationError: If the translation process fails.
        """
        if not text:
            return ""

        logger.debug(f"Translating ({source_lang}->{target_lang}): '{text[:50]}...'")
        try:
            # Tokenize the input text and move tensors to the model's device
            inputs = self.tokenizer(text, return_tensors="pt", padding=True, truncation=True, max_length=512)
            inputs = {k: v.to(self.device) for k, v in inputs.items()}

            # Generate translation using the model
            with torch.no_grad(): # Disable gradient calculation for inference
                translated_tokens = self.model.generate(**inputs)

            # Decode the generated tokens back to text
            translated_text = self.tokenizer.decode(translated_tokens[0], skip_special_tokens=True)

            logger.debug(f"Translation result: '{translated_text[:50]}...'")
            return translated_text

        except Exception as e:
            logger.error(f"Error during translation of text '{text[:50]}...': {e}", exc_info=True)
            raise TranslationError(f"Hugging Face translation failed: {e}") from e


class AutoDirectionTranslator(Translator):
    """
    Translates English into Chinese and Chinese into English.

    The direction is picked per input: text containing CJK characters is
    treated as Chinese.
    """

    def __init__(self, en_to_zh: Translator, zh_to_en: Translator):
        self.en_to_zh = en_to_zh
        self.zh_to_en = zh_to_en

    def translate(self, text: str, source_lang: str = 'auto', target_lang: str = 'auto') -> str:
        # Opus-MT models are single-direction, so route by script
        if contains_cjk(text):
            return self.zh_to_en.translate(text, source_lang='zh', target_lang='en')
        return self.en_to_zh.translate(text, source_lang='en', target_lang='zh')


def build_translator(config: dict) -> Translator:
    """Creates the bidirectional Hugging Face translator described by ``config``."""
    models = config.get('translation_models', {})
    device = config.get('device', 'cpu')
    return AutoDirectionTranslator(
        en_to_zh=HuggingFaceTranslator(models.get('en-zh', 'Helsinki-NLP/opus-mt-en-zh'), device=device),
        zh_to_en=HuggingFaceTranslator(models.get('zh-en', 'Helsinki-NLP/opus-mt-zh-en'), device=device),
    )


def as_async(translator: Translator) -> Callable[[str], Awaitable[str]]:
    """Adapts a blocking translator to the async ``text -> text`` contract."""

    async def translate(text: str) -> str:
        # Model inference blocks; keep it off the event loop
        return await asyncio.to_thread(translator.translate, text)

    return translate
