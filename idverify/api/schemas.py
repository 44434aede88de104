"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel, Field

from idverify.models import ExtractedIdentityData, VerificationResult


class ParseRequest(BaseModel):
    """Request body for parsing already-extracted OCR text."""

    text: str


class VerifyRequest(BaseModel):
    """Request body for verifying a stored ID document."""

    application_id: int = Field(ge=1)
    document_path: str


class ExtractedDataResponse(BaseModel):
    """Identity fields found in a document; absent fields are ``None``."""

    full_name: str | None = None
    date_of_birth: str | None = None
    address: str | None = None
    id_number: str | None = None
    expiration_date: str | None = None
    state: str | None = None
    raw_text: str | None = None

    @classmethod
    def from_extracted(cls, data: ExtractedIdentityData) -> "ExtractedDataResponse":
        return cls(**data.present_fields())


class FlagResponse(BaseModel):
    """Response schema for a single verification flag."""

    field: str
    severity: str
    message: str
    expected: str | None = None
    actual: str | None = None


class VerificationResponse(BaseModel):
    """Response schema for a verification attempt."""

    success: bool
    confidence_score: int
    auto_approved: bool
    message: str
    flags: list[FlagResponse]
    extracted_data: ExtractedDataResponse

    @classmethod
    def from_result(cls, result: VerificationResult) -> "VerificationResponse":
        return cls(
            success=result.success,
            confidence_score=result.confidence_score,
            auto_approved=result.auto_approved,
            message=result.message,
            flags=[FlagResponse(**f.to_dict()) for f in result.flags],
            extracted_data=ExtractedDataResponse.from_extracted(result.extracted_data),
        )


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
