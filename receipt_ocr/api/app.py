"""FastAPI application for the receipt OCR service.

Provides endpoints for receipt image extraction, extraction from
already-recognized text, AI key verification, and health checks.
"""

import shutil
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from receipt_ocr import __version__
from receipt_ocr.exceptions import ImageDecodeError, RecognitionError
from receipt_ocr.extraction.merge import OCRResult
from receipt_ocr.extraction.prefill import build_form_suggestion
from receipt_ocr.processor import ExtractionMode, InvoiceProcessor
from receipt_ocr.utils.config import load_config
from receipt_ocr.utils.logger import get_logger

from .schemas import (
    ExtractionResponse,
    FormSuggestionResponse,
    HealthResponse,
    OCRResultResponse,
    TextExtractionRequest,
    VerifyKeyResponse,
)

logger = get_logger(__name__)

_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "application/octet-stream",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the processor, and with it the recognition engine, for the app's lifetime."""
    app.state.processor = InvoiceProcessor(load_config())
    yield
    await app.state.processor.close()


app = FastAPI(
    title="Receipt OCR API",
    description="Extract amount, date, vendor, and invoice number from receipt images",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_processor(request: Request) -> InvoiceProcessor:
    """Return the processor created by the application lifespan."""
    return request.app.state.processor


def _detect_mime_type(content: bytes, declared: str | None) -> str:
    if content.startswith(b"\x89PNG"):
        return "image/png"
    if content.startswith(b"\xff\xd8"):
        return "image/jpeg"
    return declared if declared and declared.startswith("image/") else "image/jpeg"


def _build_response(result: OCRResult, start_time: float) -> ExtractionResponse:
    return ExtractionResponse(
        result=OCRResultResponse.from_result(result),
        suggestion=FormSuggestionResponse.from_suggestion(
            build_form_suggestion(result)
        ),
        processing_time_ms=(time.time() - start_time) * 1000,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check(
    processor: Annotated[InvoiceProcessor, Depends(get_processor)],
) -> HealthResponse:
    """Return service health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=shutil.which("tesseract") is not None,
        ai_configured=processor.ai_available,
    )


@app.post("/ocr", response_model=ExtractionResponse)
async def extract_receipt(
    file: Annotated[UploadFile, File(...)],
    processor: Annotated[InvoiceProcessor, Depends(get_processor)],
    mode: Annotated[ExtractionMode | None, Query()] = None,
) -> ExtractionResponse:
    """Extract fields from an uploaded receipt image.

    Args:
        file: Uploaded receipt image (PNG or JPEG).
        processor: Shared pipeline instance.
        mode: Extraction mode; the configured default when omitted.

    Returns:
        The extraction result and the derived form suggestion.
    """
    start_time = time.time()

    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    content = await file.read()
    try:
        result = await processor.process(
            content,
            mime_type=_detect_mime_type(content, file.content_type),
            mode=mode,
        )
    except ImageDecodeError as exc:
        logger.warning("Rejected upload %s: %s", file.filename, exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RecognitionError as exc:
        logger.error("Recognition failed for %s: %s", file.filename, exc)
        raise HTTPException(
            status_code=422,
            detail=f"{exc}. Please fill in the form manually.",
        ) from exc

    return _build_response(result, start_time)


@app.post("/ocr/text", response_model=ExtractionResponse)
async def extract_text(
    request: TextExtractionRequest,
    processor: Annotated[InvoiceProcessor, Depends(get_processor)],
) -> ExtractionResponse:
    """Extract fields from text that was recognized or edited elsewhere."""
    start_time = time.time()
    result = await processor.process_text(request.text, use_ai=request.use_ai)
    return _build_response(result, start_time)


@app.post("/ai/verify", response_model=VerifyKeyResponse)
async def verify_ai_key(
    processor: Annotated[InvoiceProcessor, Depends(get_processor)],
) -> VerifyKeyResponse:
    """Check whether the configured Gemini API key is accepted."""
    if processor.ai_extractor is None:
        return VerifyKeyResponse(valid=False)
    return VerifyKeyResponse(valid=await processor.ai_extractor.check_api_key())
