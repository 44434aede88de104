"""Ordered pattern rules used to pull identity fields out of OCR text.

Each field has a chain of rules tried in order; the first rule that yields
a value wins. Chains are plain data so new ID layouts can be supported by
injecting different rules, or by loading them from YAML.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import yaml

from idverify.errors import RuleConfigError
from idverify.utils.logger import get_logger

logger = get_logger(__name__)

FIELD_NAMES: tuple[str, ...] = (
    "full_name",
    "date_of_birth",
    "id_number",
    "address",
    "state",
    "expiration_date",
)


def slash_date(value: str) -> str:
    """Normalize ``MM-DD-YYYY`` style dates to use slashes."""
    return value.replace("-", "/")


NORMALIZERS: dict[str, Callable[[str], str]] = {
    "slash_date": slash_date,
    "upper": str.upper,
}

_FLAG_NAMES: dict[str, re.RegexFlag] = {
    "IGNORECASE": re.IGNORECASE,
    "MULTILINE": re.MULTILINE,
    "DOTALL": re.DOTALL,
}


class FieldRule(Protocol):
    """Anything that can try to pull one field value out of OCR text."""

    def apply(self, text: str) -> str | None: ...


@dataclass(frozen=True)
class PatternRule:
    """Regex rule returning a capture group from the n-th match.

    Only the ``occurrence``-th match is considered: if it is missing or its
    captured value is blank the rule yields nothing, and later matches of
    the same pattern are not tried.
    """

    pattern: re.Pattern[str]
    group: int = 1
    occurrence: int = 1
    normalize: Callable[[str], str] | None = None

    def apply(self, text: str) -> str | None:
        for index, match in enumerate(self.pattern.finditer(text), 1):
            if index < self.occurrence:
                continue
            value = match.group(self.group) if self.pattern.groups else match.group(0)
            if value is None or not value.strip():
                return None
            value = value.strip()
            return self.normalize(value) if self.normalize else value
        return None


RuleChains = dict[str, list[FieldRule]]

_DATE = r"\d{2}[-/]\d{2}[-/]\d{4}"


def default_rules() -> RuleChains:
    """Build the built-in rule chains for US driver licenses and state IDs."""
    return {
        "full_name": [
            PatternRule(
                re.compile(r"\b(?:LAST NAME|NAME|LN)\b[:\s]*(.*?)(?:\n|$)", re.I)
            ),
            PatternRule(
                re.compile(r"^([A-Z]+[ \t]+[A-Z]+(?:[ \t]+[A-Z]+)?)[ \t]*$", re.M)
            ),
        ],
        "date_of_birth": [
            PatternRule(
                re.compile(rf"(?:DOB|DATE OF BIRTH|BIRTH DATE)[:\s]*({_DATE})", re.I),
                normalize=slash_date,
            ),
            PatternRule(re.compile(rf"\b({_DATE})\b"), normalize=slash_date),
        ],
        "id_number": [
            # The value must carry a digit so "DL NUMBER" is not read as an ID.
            PatternRule(
                re.compile(
                    r"\b(?:DL|ID|LICENSE|NUMBER)[:\s#]*((?=[A-Z]*\d)[A-Z0-9]{6,15})",
                    re.I,
                )
            ),
            PatternRule(re.compile(r"\b([A-Z]\d{7,8})\b")),
        ],
        "address": [
            PatternRule(
                re.compile(
                    r"(\d+\s+[A-Za-z\s]+"
                    r"(?:Street|St|Avenue|Ave|Road|Rd|Drive|Dr|Lane|Ln|Boulevard|Blvd)"
                    r"[,\s]+[A-Za-z\s]+[,\s]+[A-Z]{2}\s+\d{5})",
                    re.I,
                )
            ),
        ],
        "state": [
            PatternRule(re.compile(r"\b([A-Z]{2})\s+\d{5}\b")),
        ],
        "expiration_date": [
            PatternRule(
                re.compile(rf"(?:EXP|EXPIRES|EXPIRATION)[:\s]*({_DATE})", re.I),
                normalize=slash_date,
            ),
            # Unlabelled documents: the first bare date is taken to be the
            # date of birth and the second the expiration date.
            PatternRule(
                re.compile(rf"\b({_DATE})\b"), occurrence=2, normalize=slash_date
            ),
        ],
    }


def _build_rule(field_name: str, rule_def: dict) -> PatternRule:
    """Compile one YAML rule definition into a :class:`PatternRule`."""
    if not isinstance(rule_def, dict) or "pattern" not in rule_def:
        raise RuleConfigError(f"Rule for '{field_name}' needs a 'pattern' key")

    flags = 0
    for name in rule_def.get("flags", []):
        if name not in _FLAG_NAMES:
            raise RuleConfigError(f"Unknown regex flag '{name}' for '{field_name}'")
        flags |= _FLAG_NAMES[name]

    try:
        pattern = re.compile(rule_def["pattern"], flags)
    except re.error as exc:
        raise RuleConfigError(f"Invalid pattern for '{field_name}': {exc}") from exc

    normalize = None
    if rule_def.get("normalize"):
        normalize = NORMALIZERS.get(rule_def["normalize"])
        if normalize is None:
            raise RuleConfigError(
                f"Unknown normalizer '{rule_def['normalize']}' for '{field_name}'"
            )

    occurrence = _int_option(field_name, rule_def, "occurrence", 1)
    if occurrence < 1:
        raise RuleConfigError(f"Occurrence for '{field_name}' must be at least 1")

    # Patterns without groups yield the whole match, so group 1 is allowed.
    group = _int_option(field_name, rule_def, "group", 1)
    if group < 0 or group > max(pattern.groups, 1):
        raise RuleConfigError(
            f"Group {group} for '{field_name}' is out of range; "
            f"pattern has {pattern.groups} group(s)"
        )

    return PatternRule(
        pattern=pattern,
        group=group,
        occurrence=occurrence,
        normalize=normalize,
    )


def _int_option(field_name: str, rule_def: dict, key: str, default: int) -> int:
    value = rule_def.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise RuleConfigError(f"'{key}' for '{field_name}' must be an integer")
    return value


def load_rules(path: Path) -> RuleChains:
    """Load rule chains from YAML, keeping defaults for unlisted fields.

    Args:
        path: YAML file mapping field names to lists of rule definitions.

    Returns:
        Complete rule chains for every field.

    Raises:
        RuleConfigError: If the file names an unknown field or holds an
            invalid rule.
    """
    rules = default_rules()
    if not path.exists():
        logger.debug("No parser rules at %s, using defaults", path)
        return rules

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise RuleConfigError(
            f"Could not read parser rules from {path}: {exc}"
        ) from exc

    if not isinstance(data, dict):
        raise RuleConfigError(
            f"Parser rules in {path} must map field names to rules"
        )

    for field_name, rule_defs in data.items():
        if field_name not in FIELD_NAMES:
            raise RuleConfigError(f"Unknown field in parser rules: {field_name}")
        if rule_defs is not None and not isinstance(rule_defs, list):
            raise RuleConfigError(f"Rules for '{field_name}' must be a list")
        rules[field_name] = [
            _build_rule(field_name, rule_def) for rule_def in rule_defs or []
        ]

    logger.info("Loaded parser rules for %d field(s) from %s", len(data), path)
    return rules
