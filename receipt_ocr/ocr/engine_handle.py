"""Owned, lazily constructed recognition engine with exclusive access.

A Tesseract engine is costly to set up and holds state, so one instance is
shared by every in-flight upload. The handle builds it on first use, lets
only one recognition job use it at a time, and releases it on request.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from receipt_ocr.utils.config import OCRConfig
from receipt_ocr.utils.logger import get_logger

from .progress import ProgressReporter
from .tesseract_engine import TesseractEngine

logger = get_logger(__name__)

EngineFactory = Callable[[OCRConfig], TesseractEngine]


class EngineHandle:
    """Lifecycle owner for a shared :class:`TesseractEngine`.

    Args:
        config: Recognition settings used to build the engine.
        factory: Engine constructor, replaceable in tests.
    """

    def __init__(
        self, config: OCRConfig, factory: EngineFactory = TesseractEngine
    ) -> None:
        self.config = config
        self._factory = factory
        self._engine: TesseractEngine | None = None
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    @asynccontextmanager
    async def acquire(
        self, progress: ProgressReporter | None = None
    ) -> AsyncIterator[TesseractEngine]:
        """Hold the engine exclusively for the duration of the block.

        The engine is constructed on the first acquire and after every
        :meth:`release`.

        Raises:
            RecognitionError: If the engine cannot be constructed.
        """
        async with self._lock:
            if self._engine is None:
                if progress is not None:
                    progress.report("Starting OCR engine", 0.15)
                logger.info("Initializing recognition engine")
                self._engine = await asyncio.to_thread(self._factory, self.config)
            yield self._engine

    async def release(self) -> None:
        """Tear the engine down; waits for any running recognition to finish."""
        async with self._lock:
            if self._engine is None:
                return
            self._engine.close()
            self._engine = None
