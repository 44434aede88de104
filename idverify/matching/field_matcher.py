"""Field-by-field comparison of extracted ID data with the application.

Each present field is checked with its own rule and contributes one score
to the aggregate; absent fields are skipped entirely and never flagged.
"""

from dataclasses import dataclass, field
from datetime import date, datetime

from idverify.models import (
    ApplicationIdentityRecord,
    ExtractedIdentityData,
    Present,
    Severity,
    VerificationFlag,
)
from idverify.utils.config import VerificationPolicy
from idverify.utils.logger import get_logger

from .similarity import round_half_up, similarity

logger = get_logger(__name__)


@dataclass
class MatchOutcome:
    """Scores and flags accumulated while matching one document."""

    total_score: int = 0
    checks_performed: int = 0
    flags: list[VerificationFlag] = field(default_factory=list)
    field_scores: dict[str, int] = field(default_factory=dict)

    def record(self, field_name: str, score: int) -> None:
        self.total_score += score
        self.checks_performed += 1
        self.field_scores[field_name] = score

    @property
    def confidence_score(self) -> int:
        """Average field score clamped to 0-100, or 0 when nothing was checked."""
        if self.checks_performed == 0:
            return 0
        average = round_half_up(self.total_score / self.checks_performed)
        return max(0, min(100, average))


class FieldMatcher:
    """Applies the per-field comparison rules.

    Args:
        policy: Thresholds deciding when mismatches become flags.
    """

    def __init__(self, policy: VerificationPolicy | None = None) -> None:
        self.policy = policy or VerificationPolicy()

    def match(
        self,
        extracted: ExtractedIdentityData,
        record: ApplicationIdentityRecord,
        today: date | None = None,
    ) -> MatchOutcome:
        """Compare every present extracted field with the application.

        Args:
            extracted: Fields parsed from the document.
            record: Identity data of record.
            today: Reference date for the expiration check. Defaults to the
                current date.

        Returns:
            Accumulated scores, checks performed and flags, in field order.
        """
        today = today or date.today()
        outcome = MatchOutcome()

        if isinstance(extracted.full_name, Present):
            self._check_full_name(extracted.full_name.value, record, outcome)
        if isinstance(extracted.date_of_birth, Present) and record.date_of_birth:
            self._check_date_of_birth(extracted.date_of_birth.value, record, outcome)
        if isinstance(extracted.address, Present):
            self._check_address(extracted.address.value, record, outcome)
        if isinstance(extracted.state, Present):
            self._check_state(extracted.state.value, record, outcome)
        if isinstance(extracted.expiration_date, Present):
            self._check_expiration(extracted.expiration_date.value, today, outcome)

        logger.debug(
            "Matched %d field(s): %s", outcome.checks_performed, outcome.field_scores
        )
        return outcome

    def _check_full_name(
        self, value: str, record: ApplicationIdentityRecord, outcome: MatchOutcome
    ) -> None:
        score = similarity(value, record.full_name)
        outcome.record("fullName", score)
        if score < self.policy.name_warning_below:
            outcome.flags.append(
                VerificationFlag(
                    field="fullName",
                    severity=(
                        Severity.ERROR
                        if score < self.policy.name_error_below
                        else Severity.WARNING
                    ),
                    message=f"Name mismatch: {score}% match",
                    expected=record.full_name,
                    actual=value,
                )
            )

    def _check_date_of_birth(
        self, value: str, record: ApplicationIdentityRecord, outcome: MatchOutcome
    ) -> None:
        matched = value == record.date_of_birth
        outcome.record("dateOfBirth", 100 if matched else 0)
        if not matched:
            outcome.flags.append(
                VerificationFlag(
                    field="dateOfBirth",
                    severity=Severity.ERROR,
                    message="Date of birth does not match",
                    expected=record.date_of_birth,
                    actual=value,
                )
            )

    def _check_address(
        self, value: str, record: ApplicationIdentityRecord, outcome: MatchOutcome
    ) -> None:
        expected = record.formatted_address
        score = similarity(value, expected)
        outcome.record("address", score)
        if score < self.policy.address_warning_below:
            outcome.flags.append(
                VerificationFlag(
                    field="address",
                    severity=(
                        Severity.ERROR
                        if score < self.policy.address_error_below
                        else Severity.WARNING
                    ),
                    message=f"Address mismatch: {score}% match",
                    expected=expected,
                    actual=value,
                )
            )

    def _check_state(
        self, value: str, record: ApplicationIdentityRecord, outcome: MatchOutcome
    ) -> None:
        matched = value == record.state
        outcome.record("state", 100 if matched else self.policy.state_mismatch_score)
        if not matched:
            outcome.flags.append(
                VerificationFlag(
                    field="state",
                    severity=Severity.WARNING,
                    message="State does not match",
                    expected=record.state,
                    actual=value,
                )
            )

    def _check_expiration(self, value: str, today: date, outcome: MatchOutcome) -> None:
        expires = self._parse_date(value)
        if expires is None:
            # Unparsable dates are flagged but not scored.
            outcome.flags.append(
                VerificationFlag(
                    field="expirationDate",
                    severity=Severity.WARNING,
                    message="Could not parse expiration date",
                    actual=value,
                )
            )
            return

        if expires < today:
            outcome.record("expirationDate", 0)
            outcome.flags.append(
                VerificationFlag(
                    field="expirationDate",
                    severity=Severity.ERROR,
                    message="ID has expired",
                    actual=value,
                )
            )
        else:
            outcome.record("expirationDate", 100)

    def _parse_date(self, value: str) -> date | None:
        for fmt in self.policy.expiration_date_formats:
            try:
                return datetime.strptime(value.strip(), fmt).date()
            except ValueError:
                continue
        return None
