"""End-to-end ID document verification.

Sequences text extraction, field parsing, matching and the approval
decision for one document, then records the outcome. Scoring is a pure
step (:meth:`VerificationService.evaluate`) kept apart from persistence
(:meth:`VerificationService.commit`) so each can be used on its own.
"""

import asyncio
import json
from datetime import date

from idverify.decision.engine import DecisionEngine
from idverify.errors import PersistenceError
from idverify.matching.field_matcher import FieldMatcher
from idverify.models import (
    ApplicationIdentityRecord,
    ExtractedIdentityData,
    Severity,
    VerificationFlag,
    VerificationResult,
    VerificationStatus,
)
from idverify.ocr.document_loader import DocumentSource
from idverify.ocr.text_extractor import ProgressObserver, TextExtractor
from idverify.parsing.id_parser import IDDocumentParser
from idverify.storage.stores import ApplicationStore, VerificationStatusStore
from idverify.utils.config import AppConfig, VerificationPolicy
from idverify.utils.logger import get_logger

logger = get_logger(__name__)

MESSAGE_APPLICATION_NOT_FOUND = "Application not found"
MESSAGE_OCR_FAILED = "Could not extract text from document"


def application_not_found_result(
    extracted: ExtractedIdentityData,
) -> VerificationResult:
    """Build the terminal result for an unknown application id."""
    return VerificationResult(
        success=False,
        confidence_score=0,
        flags=(
            VerificationFlag(
                field="application",
                severity=Severity.ERROR,
                message=MESSAGE_APPLICATION_NOT_FOUND,
            ),
        ),
        extracted_data=extracted,
        auto_approved=False,
        message=MESSAGE_APPLICATION_NOT_FOUND,
    )


def ocr_failure_result(error: str | None) -> VerificationResult:
    """Build the terminal result for a document whose text could not be read."""
    return VerificationResult(
        success=False,
        confidence_score=0,
        flags=(
            VerificationFlag(
                field="ocr",
                severity=Severity.ERROR,
                message=error or "OCR processing failed",
            ),
        ),
        extracted_data=ExtractedIdentityData(),
        auto_approved=False,
        message=MESSAGE_OCR_FAILED,
    )


class VerificationService:
    """Verifies scanned ID documents against loan applications.

    Args:
        applications: Source of identity data of record.
        statuses: Destination for verification outcomes.
        extractor: OCR text extractor.
        parser: ID field parser.
        policy: Matching and approval thresholds.
    """

    def __init__(
        self,
        applications: ApplicationStore,
        statuses: VerificationStatusStore,
        extractor: TextExtractor | None = None,
        parser: IDDocumentParser | None = None,
        policy: VerificationPolicy | None = None,
    ) -> None:
        self.applications = applications
        self.statuses = statuses
        self.extractor = extractor or TextExtractor()
        self.parser = parser or IDDocumentParser()
        self.policy = policy or VerificationPolicy()
        self.matcher = FieldMatcher(self.policy)
        self.decision_engine = DecisionEngine(self.policy)

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        applications: ApplicationStore,
        statuses: VerificationStatusStore,
    ) -> "VerificationService":
        """Build a service with components configured from ``config``."""
        return cls(
            applications,
            statuses,
            extractor=TextExtractor(config.ocr),
            parser=IDDocumentParser.from_config(config.parsing),
            policy=config.policy,
        )

    def evaluate(
        self,
        extracted: ExtractedIdentityData,
        record: ApplicationIdentityRecord | None,
        today: date | None = None,
    ) -> VerificationResult:
        """Score extracted data against an application record.

        Pure apart from the current date, which ``today`` overrides.

        Args:
            extracted: Fields parsed from the document.
            record: Identity data of record, or ``None`` if the application
                does not exist.
            today: Reference date for the expiration check.

        Returns:
            A fresh verification result.
        """
        if record is None:
            return application_not_found_result(extracted)

        outcome = self.matcher.match(extracted, record, today)
        confidence = outcome.confidence_score
        decision = self.decision_engine.decide(confidence, outcome.flags)

        return VerificationResult(
            success=True,
            confidence_score=confidence,
            flags=tuple(outcome.flags),
            extracted_data=extracted,
            auto_approved=decision.auto_approved,
            message=decision.message,
        )

    def verify_extracted(
        self,
        application_id: int,
        extracted: ExtractedIdentityData,
        today: date | None = None,
    ) -> VerificationResult:
        """Fetch the application of record and evaluate extracted data."""
        record = self.applications.get_application_identity_record(application_id)
        if record is None:
            logger.warning("Application %d not found", application_id)
        return self.evaluate(extracted, record, today)

    def commit(self, application_id: int, result: VerificationResult) -> None:
        """Write a verification outcome to the status store.

        Overwrites any earlier status for the application.

        Raises:
            PersistenceError: If the store rejects the write.
        """
        decision_status = (
            VerificationStatus.VERIFIED
            if result.auto_approved
            else VerificationStatus.PENDING_REVIEW
        )
        payload = {
            "confidenceScore": result.confidence_score,
            "flags": json.dumps([f.to_dict() for f in result.flags]),
            "extractedData": json.dumps(result.extracted_data.to_dict()),
        }
        try:
            self.statuses.update_verification_status(
                application_id, decision_status, payload
            )
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(
                f"Failed to update verification status for {application_id}: {exc}"
            ) from exc
        logger.info(
            "Stored verification status '%s' for application %d",
            decision_status,
            application_id,
        )

    async def process_document(
        self,
        application_id: int,
        source: DocumentSource,
        observer: ProgressObserver | None = None,
        today: date | None = None,
    ) -> VerificationResult:
        """Verify one scanned ID document for a loan application.

        OCR runs on the extractor's worker pool. The outcome is persisted
        on a best-effort basis: a failed write is logged and the result is
        still returned, so the stored status may lag behind it.

        Args:
            application_id: Loan application the document belongs to.
            source: Path to the scanned document, or its raw bytes.
            observer: Optional OCR progress callback.
            today: Reference date for the expiration check.

        Returns:
            The verification result for this attempt.
        """
        logger.info("Processing document for application %d", application_id)

        ocr = await self.extractor.extract_async(source, observer)
        if not ocr.success or not ocr.text:
            logger.warning(
                "OCR failed for application %d: %s", application_id, ocr.error
            )
            return ocr_failure_result(ocr.error)

        extracted = self.parser.parse(ocr.text)
        result = self.verify_extracted(application_id, extracted, today)
        if not result.success:
            return result

        try:
            self.commit(application_id, result)
        except PersistenceError as exc:
            logger.error(
                "Failed to persist verification for application %d: %s",
                application_id,
                exc,
            )

        return result

    def process_document_sync(
        self,
        application_id: int,
        source: DocumentSource,
        observer: ProgressObserver | None = None,
        today: date | None = None,
    ) -> VerificationResult:
        """Blocking wrapper around :meth:`process_document` for scripts."""
        return asyncio.run(
            self.process_document(application_id, source, observer, today)
        )
