"""Tests for the end-to-end verification service."""

import asyncio
import json
import logging

import pytest
from conftest import SAMPLE_ID_TEXT, FakeExtractor

from idverify.decision.engine import (
    MESSAGE_AUTO_APPROVED,
    MESSAGE_FAILED,
    MESSAGE_MINOR_DISCREPANCIES,
)
from idverify.errors import PersistenceError
from idverify.models import (
    ExtractedIdentityData,
    Present,
    Severity,
    VerificationStatus,
)
from idverify.ocr.text_extractor import TextExtractionResult
from idverify.storage.stores import InMemoryStore
from idverify.utils.config import AppConfig
from idverify.verification.service import (
    MESSAGE_APPLICATION_NOT_FOUND,
    MESSAGE_OCR_FAILED,
    VerificationService,
)


class FailingStatusStore:
    """Status store whose writes always fail."""

    def __init__(self) -> None:
        self.attempts = 0

    def update_verification_status(self, application_id, status, payload) -> None:
        self.attempts += 1
        raise RuntimeError("disk full")


def _text_extractor(text: str) -> FakeExtractor:
    return FakeExtractor(TextExtractionResult(success=True, text=text))


@pytest.fixture
def service(store: InMemoryStore, sample_text_extractor) -> VerificationService:
    return VerificationService(store, store, extractor=sample_text_extractor)


class TestEvaluate:
    """Tests for the pure scoring step."""

    def test_perfect_match_auto_approved(
        self, service, perfect_extraction, application_record, today
    ) -> None:
        result = service.evaluate(perfect_extraction, application_record, today)
        assert result.success is True
        assert result.confidence_score == 100
        assert result.auto_approved is True
        assert result.message == MESSAGE_AUTO_APPROVED
        assert result.flags == ()
        assert result.extracted_data is perfect_extraction

    def test_unknown_application(self, service, perfect_extraction, today) -> None:
        result = service.evaluate(perfect_extraction, None, today)
        assert result.success is False
        assert result.confidence_score == 0
        assert result.auto_approved is False
        assert result.message == MESSAGE_APPLICATION_NOT_FOUND
        [flag] = result.flags
        assert flag.field == "application"
        assert flag.severity == Severity.ERROR
        assert result.extracted_data is perfect_extraction

    def test_nothing_extracted_fails(self, service, application_record, today) -> None:
        result = service.evaluate(ExtractedIdentityData(), application_record, today)
        assert result.success is True
        assert result.confidence_score == 0
        assert result.message == MESSAGE_FAILED

    def test_absent_fields_are_not_penalized(
        self, service, application_record, today
    ) -> None:
        extracted = ExtractedIdentityData(full_name=Present("JOHN DOE"))
        result = service.evaluate(extracted, application_record, today)
        assert result.confidence_score == 100
        assert result.flags == ()
        assert result.auto_approved is True

    def test_deterministic(
        self, service, perfect_extraction, application_record, today
    ) -> None:
        first = service.evaluate(perfect_extraction, application_record, today)
        second = service.evaluate(perfect_extraction, application_record, today)
        assert first == second

    def test_verify_extracted_looks_up_record(
        self, service, perfect_extraction, today
    ) -> None:
        assert service.verify_extracted(42, perfect_extraction, today).auto_approved
        assert not service.verify_extracted(7, perfect_extraction, today).success


class TestCommit:
    """Tests for writing outcomes to the status store."""

    def test_approved_result_stored_as_verified(
        self, service, store, perfect_extraction, application_record, today
    ) -> None:
        result = service.evaluate(perfect_extraction, application_record, today)
        service.commit(42, result)

        status, payload = store.statuses[42]
        assert status == VerificationStatus.VERIFIED
        assert payload["confidenceScore"] == 100
        assert json.loads(payload["flags"]) == []
        extracted = json.loads(payload["extractedData"])
        assert extracted["fullName"] == "JOHN DOE"
        assert extracted["idNumber"] == "D1234567"

    def test_review_result_stored_as_pending(
        self, service, store, perfect_extraction, application_record, today
    ) -> None:
        extracted = ExtractedIdentityData(
            full_name=Present("JOHN DOE"), expiration_date=Present("01/01/2020")
        )
        service.commit(42, service.evaluate(extracted, application_record, today))

        status, payload = store.statuses[42]
        assert status == VerificationStatus.PENDING_REVIEW
        flags = json.loads(payload["flags"])
        assert flags == [
            {
                "field": "expirationDate",
                "severity": "error",
                "message": "ID has expired",
                "actual": "01/01/2020",
            }
        ]

    def test_store_errors_become_persistence_errors(
        self, store, perfect_extraction, application_record, today
    ) -> None:
        service = VerificationService(store, FailingStatusStore())
        result = service.evaluate(perfect_extraction, application_record, today)
        with pytest.raises(PersistenceError):
            service.commit(42, result)


class TestProcessDocument:
    """Tests for the full OCR-to-decision pipeline."""

    def test_matching_document_is_verified(
        self, service, store, sample_text_extractor, today
    ) -> None:
        result = asyncio.run(service.process_document(42, "id.png", today=today))

        assert result.success is True
        assert result.auto_approved is True
        assert result.confidence_score == 100
        assert result.extracted_data.raw_text == Present(SAMPLE_ID_TEXT)
        assert sample_text_extractor.sources == ["id.png"]
        assert store.statuses[42][0] == VerificationStatus.VERIFIED

    def test_name_mismatch_goes_to_review(self, store, today) -> None:
        text = SAMPLE_ID_TEXT.replace("JOHN DOE", "JOHN SMITH")
        service = VerificationService(store, store, extractor=_text_extractor(text))

        result = service.process_document_sync(42, "id.png", today=today)

        assert result.confidence_score == 92
        assert result.auto_approved is False
        assert result.message == MESSAGE_MINOR_DISCREPANCIES
        assert [f.severity for f in result.flags] == [Severity.WARNING]
        assert store.statuses[42][0] == VerificationStatus.PENDING_REVIEW

    def test_expired_document_goes_to_review(self, store, today) -> None:
        text = SAMPLE_ID_TEXT.replace("12/31/2099", "01/31/2020")
        service = VerificationService(store, store, extractor=_text_extractor(text))

        result = service.process_document_sync(42, "id.png", today=today)

        assert result.confidence_score == 80
        assert result.auto_approved is False
        assert result.has_errors
        assert store.statuses[42][0] == VerificationStatus.PENDING_REVIEW

    def test_unknown_application_not_persisted(
        self, service, store, today
    ) -> None:
        result = service.process_document_sync(7, "id.png", today=today)

        assert result.success is False
        assert result.message == MESSAGE_APPLICATION_NOT_FOUND
        assert result.extracted_data.full_name == Present("JOHN DOE")
        assert store.statuses == {}

    def test_ocr_failure(self, store, today) -> None:
        extractor = FakeExtractor(
            TextExtractionResult(success=False, error="No text found in document")
        )
        service = VerificationService(store, store, extractor=extractor)

        result = service.process_document_sync(42, "blank.png", today=today)

        assert result.success is False
        assert result.confidence_score == 0
        assert result.message == MESSAGE_OCR_FAILED
        assert result.flags[0].field == "ocr"
        assert result.flags[0].message == "No text found in document"
        assert result.extracted_data.present_fields() == {}
        assert store.statuses == {}

    def test_persistence_failure_still_returns_result(
        self, store, sample_text_extractor, today, caplog
    ) -> None:
        statuses = FailingStatusStore()
        service = VerificationService(store, statuses, extractor=sample_text_extractor)

        with caplog.at_level(logging.ERROR, logger="idverify.verification.service"):
            result = service.process_document_sync(42, "id.png", today=today)

        assert result.auto_approved is True
        assert statuses.attempts == 1
        assert "Failed to persist verification for application 42" in caplog.text

    def test_latest_run_overwrites_status(self, store, today) -> None:
        expired = SAMPLE_ID_TEXT.replace("12/31/2099", "01/31/2020")
        VerificationService(
            store, store, extractor=_text_extractor(expired)
        ).process_document_sync(42, "old.png", today=today)
        VerificationService(
            store, store, extractor=_text_extractor(SAMPLE_ID_TEXT)
        ).process_document_sync(42, "new.png", today=today)

        assert store.statuses[42][0] == VerificationStatus.VERIFIED
        assert store.statuses[42][1]["confidenceScore"] == 100

    def test_from_config(self, store) -> None:
        config = AppConfig()
        config.policy.auto_approve_min_score = 90
        service = VerificationService.from_config(config, store, store)
        assert service.policy.auto_approve_min_score == 90
        assert service.extractor.config is config.ocr
