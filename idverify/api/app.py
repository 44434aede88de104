"""FastAPI application exposing ID document verification.

The caller (typically the document upload handler) stores the scanned ID
and passes its path here; this service never receives file uploads.
"""

import shutil
from pathlib import Path

from fastapi import FastAPI, HTTPException

from idverify import __version__
from idverify.parsing.id_parser import IDDocumentParser
from idverify.storage.stores import SqliteStore
from idverify.utils.config import load_config
from idverify.utils.logger import get_logger
from idverify.verification.service import VerificationService

from .schemas import (
    ExtractedDataResponse,
    HealthResponse,
    ParseRequest,
    VerificationResponse,
    VerifyRequest,
)

logger = get_logger(__name__)

app = FastAPI(
    title="ID Document Verification API",
    description="Verify scanned government IDs against loan applications",
    version=__version__,
)

_service: VerificationService | None = None


def _get_service() -> VerificationService:
    """Return the shared verification service, building it on first use."""
    global _service
    if _service is None:
        config = load_config()
        store = SqliteStore(config.storage.database_path)
        _service = VerificationService.from_config(config, store, store)
    return _service


def _get_parser() -> IDDocumentParser:
    return _get_service().parser


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.post("/parse", response_model=ExtractedDataResponse)
async def parse_text(request: ParseRequest) -> ExtractedDataResponse:
    """Parse identity fields from OCR text without verifying them."""
    data = _get_parser().parse(request.text)
    return ExtractedDataResponse.from_extracted(data)


@app.post("/verify", response_model=VerificationResponse)
def verify_document(request: VerifyRequest) -> VerificationResponse:
    """Verify a stored ID document against its loan application.

    Identity mismatches, unreadable documents and unknown applications are
    all reported in the body via ``success`` and ``flags``, not as errors.
    Runs in FastAPI's threadpool because OCR and the SQLite write block.
    """
    path = Path(request.document_path)
    if not path.is_file():
        raise HTTPException(
            status_code=400, detail=f"Document not found: {request.document_path}"
        )

    try:
        result = _get_service().process_document_sync(request.application_id, path)
    except Exception as exc:
        logger.error("Verification failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return VerificationResponse.from_result(result)
