"""Core data types for identity document verification.

Extracted fields are modelled as an explicit ``Present | Absent`` sum type
so "no pattern matched" can never be confused with an empty value.
"""

from dataclasses import dataclass, field, fields
from enum import StrEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Present(Generic[T]):
    """A field value that was found in the document."""

    value: T


@dataclass(frozen=True)
class Absent:
    """Marker for a field that no parsing rule matched."""

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = Absent()

FieldValue = Present[str] | Absent


def present_or_absent(value: str | None) -> FieldValue:
    """Wrap an optional parsed string, treating blank strings as absent."""
    if value is None or not value.strip():
        return ABSENT
    return Present(value)


class Severity(StrEnum):
    """Severity of a verification flag."""

    WARNING = "warning"
    ERROR = "error"


class VerificationStatus(StrEnum):
    """Status written to the verification status store."""

    VERIFIED = "verified"
    PENDING_REVIEW = "pending_review"


@dataclass(frozen=True)
class ApplicationIdentityRecord:
    """Identity data of record, owned by the loan application system."""

    full_name: str
    date_of_birth: str | None
    street: str
    city: str
    state: str
    zip_code: str

    @property
    def formatted_address(self) -> str:
        return f"{self.street}, {self.city}, {self.state} {self.zip_code}"


# Serialized names follow the application system's camelCase payloads.
_SERIALIZED_NAMES = {
    "full_name": "fullName",
    "date_of_birth": "dateOfBirth",
    "address": "address",
    "id_number": "idNumber",
    "expiration_date": "expirationDate",
    "state": "state",
    "raw_text": "extractedText",
}


@dataclass(frozen=True)
class ExtractedIdentityData:
    """Identity fields parsed from one document's OCR text."""

    full_name: FieldValue = ABSENT
    date_of_birth: FieldValue = ABSENT
    address: FieldValue = ABSENT
    id_number: FieldValue = ABSENT
    expiration_date: FieldValue = ABSENT
    state: FieldValue = ABSENT
    raw_text: FieldValue = ABSENT

    def present_fields(self) -> dict[str, str]:
        """Return the values of all present fields keyed by attribute name."""
        return {
            f.name: getattr(self, f.name).value
            for f in fields(self)
            if isinstance(getattr(self, f.name), Present)
        }

    def to_dict(self) -> dict[str, str]:
        """Serialize present fields with camelCase keys; absent ones are omitted."""
        return {
            _SERIALIZED_NAMES[name]: value
            for name, value in self.present_fields().items()
        }


@dataclass(frozen=True)
class VerificationFlag:
    """A single field-level discrepancy found during verification."""

    field: str
    severity: Severity
    message: str
    expected: str | None = None
    actual: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "field": self.field,
            "severity": str(self.severity),
            "message": self.message,
        }
        if self.expected is not None:
            data["expected"] = self.expected
        if self.actual is not None:
            data["actual"] = self.actual
        return data


@dataclass(frozen=True)
class VerificationResult:
    """Terminal output of exactly one verification attempt."""

    success: bool
    confidence_score: int
    extracted_data: ExtractedIdentityData
    auto_approved: bool
    message: str
    flags: tuple[VerificationFlag, ...] = field(default_factory=tuple)

    @property
    def has_errors(self) -> bool:
        return any(f.severity == Severity.ERROR for f in self.flags)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "confidenceScore": self.confidence_score,
            "flags": [f.to_dict() for f in self.flags],
            "extractedData": self.extracted_data.to_dict(),
            "autoApproved": self.auto_approved,
            "message": self.message,
        }
