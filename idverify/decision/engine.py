"""Auto-approval decision and review routing for verification scores."""

from collections.abc import Iterable
from dataclasses import dataclass

from idverify.models import Severity, VerificationFlag, VerificationStatus
from idverify.utils.config import VerificationPolicy
from idverify.utils.logger import get_logger

logger = get_logger(__name__)

MESSAGE_AUTO_APPROVED = "Document automatically verified and approved"
MESSAGE_MINOR_DISCREPANCIES = (
    "Document requires manual review - minor discrepancies found"
)
MESSAGE_MULTIPLE_DISCREPANCIES = (
    "Document requires manual review - multiple discrepancies found"
)
MESSAGE_FAILED = "Document verification failed - significant mismatches detected"


@dataclass(frozen=True)
class Decision:
    """Outcome of applying the approval policy to one score."""

    auto_approved: bool
    message: str

    @property
    def status(self) -> VerificationStatus:
        if self.auto_approved:
            return VerificationStatus.VERIFIED
        return VerificationStatus.PENDING_REVIEW


class DecisionEngine:
    """Decides between auto-approval and the manual review buckets.

    A document is auto-approved only with a score at or above
    ``auto_approve_min_score`` and no error-level flag; any error blocks
    approval regardless of score.

    Args:
        policy: Score thresholds for approval and message buckets.
    """

    def __init__(self, policy: VerificationPolicy | None = None) -> None:
        self.policy = policy or VerificationPolicy()

    def decide(
        self, confidence_score: int, flags: Iterable[VerificationFlag]
    ) -> Decision:
        has_errors = any(f.severity == Severity.ERROR for f in flags)
        auto_approved = (
            confidence_score >= self.policy.auto_approve_min_score and not has_errors
        )

        if auto_approved:
            message = MESSAGE_AUTO_APPROVED
        elif confidence_score >= self.policy.minor_review_min_score:
            message = MESSAGE_MINOR_DISCREPANCIES
        elif confidence_score >= self.policy.multiple_review_min_score:
            message = MESSAGE_MULTIPLE_DISCREPANCIES
        else:
            message = MESSAGE_FAILED

        logger.info(
            "Decision: score=%d errors=%s auto_approved=%s",
            confidence_score,
            has_errors,
            auto_approved,
        )
        return Decision(auto_approved=auto_approved, message=message)
