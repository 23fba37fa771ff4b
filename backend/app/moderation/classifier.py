"""Text check — OCR the drawing and match words against the blocklist.

The recognition engine is a black box behind ``TextRecognizer``. Tesseract
(via pytesseract) is the production engine; when it is missing the classifier
runs without one and every drawing passes this stage.

``ContentClassifier.classify`` never raises: decoding errors, engine errors
and missing engines all come back as "no reasons".
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
import re
from collections.abc import Iterable
from typing import Protocol

import numpy as np
from PIL import Image

from app.moderation.blocklist import BLOCKED_WORDS

logger = logging.getLogger(__name__)

_DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,", re.IGNORECASE)
_NON_LETTERS = re.compile(r"[^a-zäöüß\s]")


class TextRecognizer(Protocol):
    def recognize(self, image_bytes: bytes) -> str: ...


def decode_image_payload(image_payload: str) -> bytes:
    """Strip an optional ``data:image/...;base64,`` prefix and decode."""
    raw = _DATA_URL_PREFIX.sub("", image_payload.strip())
    try:
        return base64.b64decode(raw, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image payload: {e}") from e


def normalize_words(text: str) -> list[str]:
    """Lowercase, blank out everything but letters, drop single-letter tokens."""
    cleaned = _NON_LETTERS.sub(" ", text.lower())
    return [w for w in cleaned.split() if len(w) > 1]


def find_blocked_words(text: str, blocked_words: Iterable[str] = BLOCKED_WORDS) -> list[str]:
    blocked = blocked_words if isinstance(blocked_words, (set, frozenset)) else set(blocked_words)
    return [f'blocked word: "{w}"' for w in normalize_words(text) if w in blocked]


class TesseractRecognizer:
    """pytesseract-backed recognizer for canvas exports (transparent PNGs)."""

    def __init__(self, language: str = "eng", tesseract_cmd: str = "") -> None:
        import pytesseract

        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self._tesseract = pytesseract
        self.language = language

    @classmethod
    def create(cls, language: str = "eng", tesseract_cmd: str = "") -> TesseractRecognizer | None:
        """Build a recognizer if the Tesseract binary is usable, else None."""
        logger.info("Initializing Tesseract recognizer (%s)...", language)
        try:
            recognizer = cls(language=language, tesseract_cmd=tesseract_cmd)
            version = recognizer._tesseract.get_tesseract_version()
        except Exception as e:
            logger.warning("Tesseract not available — OCR disabled: %s", e)
            return None
        logger.info("Tesseract %s ready", version)
        return recognizer

    def recognize(self, image_bytes: bytes) -> str:
        image = prepare_image(image_bytes)
        if image is None:
            return ""
        return self._tesseract.image_to_string(image, lang=self.language)


def prepare_image(image_bytes: bytes) -> Image.Image | None:
    """Flatten onto white and convert to grayscale. None for a blank canvas."""
    with Image.open(io.BytesIO(image_bytes)) as src:
        rgba = src.convert("RGBA")
    background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
    gray = Image.alpha_composite(background, rgba).convert("L")

    pixels = np.asarray(gray)
    if pixels.size == 0 or int(pixels.min()) == int(pixels.max()):
        return None
    return gray


class ContentClassifier:
    """Adapter around the recognizer: image payload in, violation reasons out."""

    def __init__(
        self,
        recognizer: TextRecognizer | None = None,
        blocked_words: Iterable[str] = BLOCKED_WORDS,
    ) -> None:
        self.recognizer = recognizer
        self.blocked_words = frozenset(blocked_words)

    @property
    def ready(self) -> bool:
        return self.recognizer is not None

    async def classify(self, image_payload: str) -> list[str]:
        if self.recognizer is None:
            logger.debug("OCR not ready — skipping text check")
            return []

        try:
            image_bytes = decode_image_payload(image_payload)
            loop = asyncio.get_running_loop()
            text = await loop.run_in_executor(None, self.recognizer.recognize, image_bytes)
        except Exception as e:
            logger.warning("Recognition error: %s", e)
            return []

        if not text or not text.strip():
            return []

        logger.debug("Detected text: %s", text[:100])
        return find_blocked_words(text, self.blocked_words)
