"""Tesseract-backed text extraction for scanned ID documents.

Converts an image or PDF into raw text, reporting progress to an optional
observer. A run cannot be cancelled once started and is never retried;
failures are returned as an unsuccessful result instead of raised.
"""

import asyncio
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import pytesseract

from idverify.utils.config import OCRConfig
from idverify.utils.logger import get_logger

from .document_loader import DocumentLoader, DocumentSource

logger = get_logger(__name__)

STATUS_LOADING = "loading document"
STATUS_RECOGNIZING = "recognizing text"
STATUS_DONE = "done"


@dataclass(frozen=True)
class OCRProgress:
    """A progress event emitted while a document is being read."""

    status: str
    progress: float


ProgressObserver = Callable[[OCRProgress], None]


@dataclass(frozen=True)
class TextExtractionResult:
    """Outcome of a text extraction run."""

    success: bool
    text: str | None = None
    error: str | None = None


class TextExtractor:
    """Wrapper around Tesseract that reads all text from an ID document.

    Args:
        config: OCR settings (language, page segmentation mode, PDF DPI
            and worker pool size).
        loader: Page loader; built from ``config`` when omitted.
    """

    def __init__(
        self, config: OCRConfig | None = None, loader: DocumentLoader | None = None
    ) -> None:
        self.config = config or OCRConfig()
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd
        self.loader = loader or DocumentLoader(dpi=self.config.pdf_dpi)
        self._executor: ThreadPoolExecutor | None = None

    def extract(
        self, source: DocumentSource, observer: ProgressObserver | None = None
    ) -> TextExtractionResult:
        """Read all text from a document.

        Args:
            source: Path to an image or PDF, or the raw file bytes.
            observer: Optional callback receiving progress events. It is
                used for observability only and cannot stop the run.

        Returns:
            The extracted text, or ``success=False`` with an error message
            when loading or OCR fails or no text is found.
        """
        try:
            self._notify(observer, OCRProgress(STATUS_LOADING, 0.0))
            pages = self.loader.load_pages(source)
            page_texts: list[str] = []
            for i, page in enumerate(pages, 1):
                page_texts.append(
                    pytesseract.image_to_string(
                        page,
                        lang=self.config.default_lang,
                        config=f"--psm {self.config.psm}",
                    )
                )
                self._notify(
                    observer, OCRProgress(STATUS_RECOGNIZING, i / len(pages))
                )
        except Exception as exc:
            logger.error("Text extraction failed: %s", exc)
            return TextExtractionResult(
                success=False, error=str(exc) or "OCR processing failed"
            )

        text = "\n\n".join(page_texts)
        if not text.strip():
            logger.warning("OCR produced no text")
            return TextExtractionResult(
                success=False, error="No text found in document"
            )

        self._notify(observer, OCRProgress(STATUS_DONE, 1.0))
        logger.info(
            "Text extraction complete: %d page(s), %d characters",
            len(page_texts),
            len(text),
        )
        return TextExtractionResult(success=True, text=text)

    async def extract_async(
        self, source: DocumentSource, observer: ProgressObserver | None = None
    ) -> TextExtractionResult:
        """Run :meth:`extract` on the bounded OCR worker pool.

        Keeps the event loop free while Tesseract runs. There is no timeout.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._get_executor(), self.extract, source, observer
        )

    def shutdown(self) -> None:
        """Release the OCR worker pool, waiting for running jobs."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_workers, thread_name_prefix="ocr"
            )
        return self._executor

    @staticmethod
    def _notify(observer: ProgressObserver | None, event: OCRProgress) -> None:
        logger.info("OCR %s: %d%%", event.status, round(event.progress * 100))
        if observer is None:
            return
        try:
            observer(event)
        except Exception:
            logger.warning("Progress observer raised; ignoring", exc_info=True)
