"""Shared test fixtures for the ID verification test suite."""

from datetime import date
from pathlib import Path

import pytest

from idverify.models import (
    ApplicationIdentityRecord,
    ExtractedIdentityData,
    Present,
)
from idverify.ocr.text_extractor import TextExtractionResult
from idverify.storage.stores import InMemoryStore

TODAY = date(2026, 10, 19)

SAMPLE_ID_TEXT = (
    "CALIFORNIA\n"
    "DRIVER LICENSE\n"
    "DL D1234567\n"
    "NAME: JOHN DOE\n"
    "DOB: 01/15/1990\n"
    "123 MAIN ST, ANYTOWN, CA 90210\n"
    "EXP: 12/31/2099\n"
)


class FakeExtractor:
    """Stands in for the Tesseract extractor with a canned result."""

    def __init__(self, result: TextExtractionResult) -> None:
        self.result = result
        self.sources: list[object] = []

    def extract(self, source, observer=None) -> TextExtractionResult:
        self.sources.append(source)
        return self.result

    async def extract_async(self, source, observer=None) -> TextExtractionResult:
        return self.extract(source, observer)

    def shutdown(self) -> None:
        pass


@pytest.fixture
def today() -> date:
    """Fixed reference date for expiration checks."""
    return TODAY


@pytest.fixture
def application_record() -> ApplicationIdentityRecord:
    """Identity data of record matching ``SAMPLE_ID_TEXT``."""
    return ApplicationIdentityRecord(
        full_name="John Doe",
        date_of_birth="01/15/1990",
        street="123 Main St",
        city="Anytown",
        state="CA",
        zip_code="90210",
    )


@pytest.fixture
def perfect_extraction() -> ExtractedIdentityData:
    """Extracted data that exactly matches ``application_record``."""
    return ExtractedIdentityData(
        full_name=Present("JOHN DOE"),
        date_of_birth=Present("01/15/1990"),
        address=Present("123 MAIN ST, ANYTOWN, CA 90210"),
        id_number=Present("D1234567"),
        expiration_date=Present("12/31/2099"),
        state=Present("CA"),
        raw_text=Present(SAMPLE_ID_TEXT),
    )


@pytest.fixture
def store(application_record: ApplicationIdentityRecord) -> InMemoryStore:
    """In-memory store holding application 42."""
    return InMemoryStore({42: application_record})


@pytest.fixture
def sample_text_extractor() -> FakeExtractor:
    """Extractor returning the sample driver license text."""
    return FakeExtractor(TextExtractionResult(success=True, text=SAMPLE_ID_TEXT))


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
