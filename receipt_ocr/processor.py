"""End-to-end receipt processing pipeline.

Runs preprocessing, recognition, rule-based extraction, optional AI
extraction, and merging as one linear async sequence per upload. Blocking
image and Tesseract work is moved off the event loop; the shared engine is
held exclusively only while text is being recognized.
"""

import asyncio
from enum import StrEnum

from receipt_ocr.exceptions import AIExtractionError
from receipt_ocr.extraction.ai_extractor import AIExtraction, GeminiExtractor
from receipt_ocr.extraction.merge import OCRResult, ResultMerger
from receipt_ocr.extraction.rule_extractor import RuleExtractor
from receipt_ocr.ocr.engine_handle import EngineHandle
from receipt_ocr.ocr.progress import ProgressCallback, ProgressReporter
from receipt_ocr.preprocessing.pipeline import PreprocessingPipeline
from receipt_ocr.utils.config import AppConfig
from receipt_ocr.utils.logger import get_logger

logger = get_logger(__name__)


class ExtractionMode(StrEnum):
    """How field extraction uses the AI service."""

    HEURISTIC = "heuristic"
    AI_TEXT = "ai_text"
    AI_IMAGE = "ai_image"
    HYBRID = "hybrid"


class InvoiceProcessor:
    """Receipt image to :class:`OCRResult` pipeline.

    Args:
        config: Application configuration.
        engine: Recognition engine handle. Built from ``config.ocr`` if omitted.
        ai_extractor: AI client. Built from ``config.ai`` when a key is
            configured; ``None`` disables AI extraction.
    """

    def __init__(
        self,
        config: AppConfig,
        engine: EngineHandle | None = None,
        ai_extractor: GeminiExtractor | None = None,
    ) -> None:
        self.config = config
        self.preprocessing = PreprocessingPipeline(config.preprocessing)
        self.engine = engine or EngineHandle(config.ocr)
        self.rule_extractor = RuleExtractor(config.extraction)
        self.merger = ResultMerger(config.extraction)
        if ai_extractor is None and config.ai.is_configured:
            ai_extractor = GeminiExtractor(config.ai)
        self.ai_extractor = ai_extractor

    @property
    def ai_available(self) -> bool:
        return self.ai_extractor is not None

    async def process(
        self,
        data: bytes,
        mime_type: str = "image/jpeg",
        mode: ExtractionMode | str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> OCRResult:
        """Process one uploaded receipt image.

        Args:
            data: Encoded image bytes (JPEG or PNG).
            mime_type: MIME type of ``data``, forwarded to the AI service.
            mode: Extraction mode. Defaults to ``config.extraction.mode``.
            on_progress: Receives stage updates with non-decreasing fractions.

        Returns:
            The merged extraction result.

        Raises:
            ImageDecodeError: If ``data`` is not a decodable image.
            RecognitionError: If the recognition engine fails.
        """
        mode = ExtractionMode(mode or self.config.extraction.mode)
        progress = ProgressReporter(on_progress)

        prepared = await asyncio.to_thread(self.preprocessing.process_bytes, data)
        progress.report("Image preprocessed", 0.1)

        async with self.engine.acquire(progress) as engine:
            progress.report("Recognizing text", 0.3)
            recognized = await asyncio.to_thread(engine.recognize, prepared.image)

        return await self._extract(
            recognized.text,
            recognized.confidence,
            mode,
            progress,
            image=(data, mime_type),
        )

    async def process_text(
        self,
        text: str,
        use_ai: bool = True,
        confidence: float = 0.0,
        on_progress: ProgressCallback | None = None,
    ) -> OCRResult:
        """Run field extraction on text that has already been recognized.

        Args:
            text: Recognized receipt text.
            use_ai: Whether to ask the AI service to extract from the text.
            confidence: Recognition confidence of ``text`` on 0-100.
            on_progress: Receives stage updates.
        """
        mode = ExtractionMode.AI_TEXT if use_ai else ExtractionMode.HEURISTIC
        progress = ProgressReporter(on_progress)
        return await self._extract(text, confidence, mode, progress)

    async def close(self) -> None:
        """Release the recognition engine."""
        await self.engine.release()

    async def _extract(
        self,
        text: str,
        ocr_confidence: float,
        mode: ExtractionMode,
        progress: ProgressReporter,
        image: tuple[bytes, str] | None = None,
    ) -> OCRResult:
        progress.report("Extracting fields", 0.7)
        heuristic = self.rule_extractor.extract(text)

        ai: AIExtraction | None = None
        ai_error: str | None = None
        if self.ai_extractor is not None and self._should_use_ai(mode, text, image):
            progress.report("AI analysis", 0.8)
            try:
                ai = await self._call_ai(self.ai_extractor, mode, text, image)
            except AIExtractionError as exc:
                logger.warning(
                    "AI extraction unavailable, keeping rule-based result: %s", exc
                )
                ai_error = str(exc)

        result = self.merger.merge(
            text,
            heuristic,
            ocr_confidence,
            ai=ai,
            ai_error=ai_error,
            blend_confidence=mode is ExtractionMode.HYBRID,
        )
        progress.report("Done", 1.0)
        return result

    def _should_use_ai(
        self, mode: ExtractionMode, text: str, image: tuple[bytes, str] | None
    ) -> bool:
        if mode is ExtractionMode.HEURISTIC:
            return False
        if mode is ExtractionMode.AI_TEXT:
            return bool(text.strip())
        return image is not None

    async def _call_ai(
        self,
        extractor: GeminiExtractor,
        mode: ExtractionMode,
        text: str,
        image: tuple[bytes, str] | None,
    ) -> AIExtraction:
        if mode is ExtractionMode.AI_TEXT or image is None:
            return await extractor.extract_from_text(text)
        data, mime_type = image
        return await extractor.extract_from_image(
            data, mime_type, self.config.ai.categories
        )
