"""Gemini-assisted receipt field extraction.

Sends recognized text, or the receipt image itself, to the Gemini
``generateContent`` endpoint and reads back a JSON object with the same
fields the rule-based extractor produces.

Transport and envelope failures raise :class:`AIExtractionError` so the
caller can keep its heuristic result. A reply that carries no usable JSON
object is not an error: it yields an empty record with ``json_found=False``.
"""

import base64
import json
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from receipt_ocr.exceptions import AIExtractionError
from receipt_ocr.utils.config import AIConfig
from receipt_ocr.utils.logger import get_logger

from .amounts import parse_amount
from .prompts import get_image_prompt, get_text_prompt

logger = get_logger(__name__)

DEFAULT_AI_CONFIDENCE = 0.5


@dataclass
class AIExtraction:
    """Fields returned by the AI service for one receipt."""

    amount: Decimal | None = None
    invoice_number: str | None = None
    date: str | None = None
    vendor: str | None = None
    category: str | None = None
    confidence: float = 0.0
    raw_response: str = ""
    json_found: bool = False


class _ReceiptPayload(BaseModel):
    """The JSON object the model is asked to produce; every field optional."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    amount: Decimal | None = None
    invoice_number: str | None = Field(default=None, alias="invoiceNumber")
    date: str | None = None
    vendor: str | None = None
    category: str | None = None
    confidence: float | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Decimal | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int | float):
            amount = Decimal(str(value))
        elif isinstance(value, str):
            amount = parse_amount(re.sub(r"[^\d.,\s]", "", value).strip())
        else:
            raise ValueError(f"unsupported amount type: {type(value).__name__}")
        if amount is None or not amount.is_finite() or amount <= 0:
            return None
        return amount

    @field_validator("invoice_number", "date", "vendor", "category", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, int | float) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str):
            raise ValueError(f"expected a string, got {type(value).__name__}")
        return value.strip() or None

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: Any) -> float | None:
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            raise ValueError("confidence must be numeric")
        return float(value)


def find_json_object(text: str) -> dict[str, Any] | None:
    """Return the first well-formed JSON object embedded in free text.

    Models often wrap the object in prose or Markdown fences, so decoding is
    attempted at every ``{`` until one parses to a dict.
    """
    decoder = json.JSONDecoder()
    for match in re.finditer(r"\{", text):
        try:
            obj, _ = decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            return obj
    return None


def normalize_confidence(value: float | None) -> float:
    """Map a model-reported confidence onto [0, 1].

    Missing values default to 0.5; values in (1, 100] are read as percentages.
    """
    if value is None:
        return DEFAULT_AI_CONFIDENCE
    if 1.0 < value <= 100.0:
        value = value / 100.0
    return min(1.0, max(0.0, value))


def _match_category(category: str | None, categories: list[str] | None) -> str | None:
    if category is None or categories is None:
        return category
    for known in categories:
        if known.casefold() == category.casefold():
            return known
    logger.debug("AI category %r is not in the allowed list", category)
    return None


def parse_ai_response(text: str, categories: list[str] | None = None) -> AIExtraction:
    """Decode the model's reply into an :class:`AIExtraction`.

    Args:
        text: The generated text.
        categories: Allowed category names; ``None`` accepts any category.

    Returns:
        The extracted fields, or an empty record with ``json_found=False``
        when the reply holds no valid object. Never raises.
    """
    obj = find_json_object(text)
    if obj is None:
        logger.warning("AI reply contained no JSON object")
        return AIExtraction(raw_response=text)

    try:
        payload = _ReceiptPayload.model_validate(obj)
    except ValidationError as exc:
        logger.warning("AI reply JSON failed validation: %s", exc.errors()[0]["msg"])
        return AIExtraction(raw_response=text)

    return AIExtraction(
        amount=payload.amount,
        invoice_number=payload.invoice_number,
        date=payload.date,
        vendor=payload.vendor,
        category=_match_category(payload.category, categories),
        confidence=normalize_confidence(payload.confidence),
        raw_response=text,
        json_found=True,
    )


def _generated_text(envelope: Any) -> str:
    """Pull ``candidates[0].content.parts[0].text`` out of a response envelope."""
    try:
        text = envelope["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


class GeminiExtractor:
    """Async client for receipt extraction through Gemini.

    Makes exactly one attempt per call; there is no retry.

    Args:
        config: Service settings (key, model, endpoint, generation options).
        transport: Optional httpx transport, used by tests to stub the service.
    """

    def __init__(
        self,
        config: AIConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport

    @property
    def endpoint(self) -> str:
        base = self.config.base_url.rstrip("/")
        return f"{base}/models/{self.config.model}:generateContent"

    async def extract_from_text(self, ocr_text: str) -> AIExtraction:
        """Extract fields from recognized receipt text.

        Raises:
            AIExtractionError: If the key or text is missing, or the call fails.
        """
        if not ocr_text.strip():
            raise AIExtractionError("OCR text is required for AI extraction")

        parts = [{"text": get_text_prompt(ocr_text)}]
        reply = await self._generate(parts, self.config.text_max_output_tokens)
        return parse_ai_response(reply)

    async def extract_from_image(
        self,
        data: bytes,
        mime_type: str,
        categories: list[str] | None = None,
    ) -> AIExtraction:
        """Extract fields, and a category, directly from a receipt image.

        Args:
            data: Encoded image bytes as uploaded.
            mime_type: MIME type of ``data``.
            categories: Allowed categories. Defaults to the configured list.

        Raises:
            AIExtractionError: If the key or image is missing, or the call fails.
        """
        if not data:
            raise AIExtractionError("Image data is required for AI extraction")

        categories = categories if categories is not None else self.config.categories
        parts = [
            {"text": get_image_prompt(categories)},
            {
                "inline_data": {
                    "mime_type": mime_type,
                    "data": base64.b64encode(data).decode("ascii"),
                }
            },
        ]
        reply = await self._generate(parts, self.config.image_max_output_tokens)
        return parse_ai_response(reply, categories)

    async def check_api_key(self) -> bool:
        """Send a minimal request and report whether the key is accepted."""
        if not self.config.api_key:
            return False
        try:
            async with self._client() as client:
                response = await client.post(
                    self.endpoint,
                    json={"contents": [{"parts": [{"text": "Test"}]}]},
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            logger.warning("Gemini key check failed: %s", exc)
            return False
        return response.is_success

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.timeout, transport=self._transport)

    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.config.api_key or ""}

    async def _generate(
        self, parts: list[dict[str, Any]], max_output_tokens: int
    ) -> str:
        if not self.config.api_key:
            raise AIExtractionError("Gemini API key is not configured")

        body = {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": max_output_tokens,
            },
        }
        try:
            async with self._client() as client:
                response = await client.post(
                    self.endpoint, json=body, headers=self._headers()
                )
        except httpx.HTTPError as exc:
            raise AIExtractionError(f"Gemini request failed: {exc}") from exc

        if not response.is_success:
            logger.error(
                "Gemini API error %d: %s", response.status_code, response.text[:500]
            )
            raise AIExtractionError(
                f"Gemini API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            envelope = response.json()
        except ValueError as exc:
            raise AIExtractionError("Gemini response was not valid JSON") from exc

        text = _generated_text(envelope)
        logger.info("Gemini (%s) replied with %d chars", self.config.model, len(text))
        return text
