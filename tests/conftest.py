"""Shared test fixtures for the receipt OCR test suite."""

from decimal import Decimal
from pathlib import Path

import cv2
import numpy as np
import pytest

from receipt_ocr.exceptions import AIExtractionError
from receipt_ocr.extraction.ai_extractor import AIExtraction
from receipt_ocr.ocr.tesseract_engine import RecognizedText
from receipt_ocr.utils.config import AIConfig, OCRConfig

RECEIPT_TEXT = (
    "HIRFANLI PETROL A.S.\nFİŞ NO: 276850-5\n28.07.2023\nTOPLAM: 1.850,53 TL"
)


class FakeEngine:
    """Stand-in for TesseractEngine that returns canned text."""

    def __init__(self, text: str = RECEIPT_TEXT, confidence: float = 82.0) -> None:
        self.text = text
        self.confidence = confidence
        self.calls = 0
        self.closed = False

    def recognize(self, image: np.ndarray, lang: str | None = None) -> RecognizedText:
        self.calls += 1
        return RecognizedText(
            text=self.text,
            confidence=self.confidence,
            language=lang or "tur+eng",
            word_count=len(self.text.split()),
        )

    def close(self) -> None:
        self.closed = True


AI_RESULT = AIExtraction(
    amount=Decimal("1850.53"),
    invoice_number="276850-5",
    date="28.07.2023",
    vendor="HIRFANLI PETROL A.S.",
    category="Ulaşım",
    confidence=0.6,
    raw_response="{...}",
    json_found=True,
)


class FakeAI:
    """Stand-in for GeminiExtractor that records calls.

    Returns a fixed result, or raises a fixed error when one is given.
    """

    def __init__(
        self,
        result: AIExtraction = AI_RESULT,
        error: AIExtractionError | None = None,
        key_valid: bool = True,
    ) -> None:
        self.result = result
        self.error = error
        self.key_valid = key_valid
        self.text_calls: list[str] = []
        self.image_calls: list[tuple[bytes, str, list[str] | None]] = []

    async def extract_from_text(self, ocr_text: str) -> AIExtraction:
        self.text_calls.append(ocr_text)
        if self.error is not None:
            raise self.error
        return self.result

    async def extract_from_image(
        self, data: bytes, mime_type: str, categories: list[str] | None = None
    ) -> AIExtraction:
        self.image_calls.append((data, mime_type, categories))
        if self.error is not None:
            raise self.error
        return self.result

    async def check_api_key(self) -> bool:
        return self.key_valid


def make_factory(engine: FakeEngine, counter: list[OCRConfig] | None = None):
    """Build an engine factory that records each construction."""

    def factory(config: OCRConfig) -> FakeEngine:
        if counter is not None:
            counter.append(config)
        return engine

    return factory


def gemini_envelope(text: str) -> dict:
    """Wrap generated text in a generateContent response envelope."""
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def receipt_text() -> str:
    """Recognized text of a typical Turkish fuel receipt."""
    return RECEIPT_TEXT


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic BGR test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def png_bytes(sample_color_image: np.ndarray) -> bytes:
    """PNG-encoded bytes of the synthetic colour image."""
    ok, buffer = cv2.imencode(".png", sample_color_image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def ai_config() -> AIConfig:
    """AI settings with a dummy key so requests are attempted."""
    return AIConfig(api_key="test-key", model="gemini-test")


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
