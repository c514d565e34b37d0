"""Handles character encoding detection for uploaded subtitle files."""

import codecs
import logging
from typing import Tuple

import chardet

from .exceptions import EncodingError

logger = logging.getLogger(__name__)

# Detected labels that are decoded with a wider superset codec.
ENCODING_SUPERSETS = {
    "ascii": "utf-8",
    "gb2312": "gb18030",
    "gbk": "gb18030",
}


class EncodingResolver:
    """Detects the encoding of a raw byte buffer and decodes it to text."""

    def __init__(self, default_encoding: str = "utf-8", min_confidence: float = 0.2):
        """
        Initializes the EncodingResolver.

        Args:
            default_encoding: Encoding used when detection is not confident.
            min_confidence: Minimum detector confidence to accept its guess.
        """
        self.default_encoding = codecs.lookup(default_encoding).name
        self.min_confidence = min_confidence

    def detect(self, data: bytes) -> str:
        """
        Returns the normalized codec name to decode ``data`` with.

        Falls back to the default encoding when the detector has no confident
        guess or names a codec Python does not know.
        """
        result = chardet.detect(data)
        label = result.get("encoding")
        confidence = result.get("confidence") or 0.0
        if not label or confidence < self.min_confidence:
            logger.debug(f"No confident encoding guess ({label}, {confidence:.2f}). Using {self.default_encoding}.")
            return self.default_encoding

        try:
            name = codecs.lookup(label).name
        except LookupError:
            logger.warning(f"Detected encoding '{label}' is not supported. Using {self.default_encoding}.")
            return self.default_encoding
        return ENCODING_SUPERSETS.get(name, name)

    def resolve(self, data: bytes) -> Tuple[str, str]:
        """
        Decodes a raw buffer.

        Args:
            data: The raw uploaded bytes.

        Returns:
            A ``(text, encoding_label)`` tuple.

        Raises:
            EncodingError: If the buffer is empty or cannot be decoded at all.
        """
        if not data:
            raise EncodingError("Cannot decode an empty buffer.")

        encoding = self.detect(data)
        try:
            text = codecs.decode(data, encoding, errors="replace")
        except (UnicodeError, LookupError) as e:
            logger.error(f"Failed to decode buffer as {encoding}: {e}", exc_info=True)
            raise EncodingError(f"Could not decode buffer as {encoding}: {e}") from e

        logger.info(f"Decoded {len(data)} bytes using encoding '{encoding}'")
        return text, encoding
