"""Parse identity fields from raw driver license / ID card OCR text."""

from pathlib import Path

from idverify.models import (
    ABSENT,
    ExtractedIdentityData,
    FieldValue,
    Present,
    present_or_absent,
)
from idverify.utils.config import ParsingConfig
from idverify.utils.logger import get_logger

from .rules import FIELD_NAMES, RuleChains, default_rules, load_rules

logger = get_logger(__name__)


class IDDocumentParser:
    """Turns noisy OCR text into a partially populated identity record.

    Fields whose rules all miss stay absent; parsing never fails.

    Args:
        rules: Rule chains per field. Defaults to the built-in chains.
    """

    def __init__(self, rules: RuleChains | None = None) -> None:
        self.rules = rules if rules is not None else default_rules()

    @classmethod
    def from_config(cls, config: ParsingConfig) -> "IDDocumentParser":
        """Build a parser using the rule file named in the configuration."""
        return cls(load_rules(Path(config.rules_path)))

    def parse(self, text: str) -> ExtractedIdentityData:
        values = {name: self._first_match(name, text) for name in FIELD_NAMES}
        data = ExtractedIdentityData(
            raw_text=Present(text) if text and text.strip() else ABSENT,
            **values,
        )
        found = sorted(set(data.present_fields()) - {"raw_text"})
        logger.info(
            "Parsed %d/%d identity fields: %s",
            len(found),
            len(FIELD_NAMES),
            ", ".join(found) or "none",
        )
        return data

    def _first_match(self, field_name: str, text: str) -> FieldValue:
        for rule in self.rules.get(field_name, []):
            value = rule.apply(text)
            if value:
                return present_or_absent(value)
        return ABSENT
