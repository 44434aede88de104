"""Exceptions raised by the verification pipeline.

Identity mismatches are never raised; they are reported as flags on the
verification result. Only configuration and storage problems use these.
"""


class VerificationError(Exception):
    """Base class for all verification pipeline errors."""


class PersistenceError(VerificationError):
    """Writing or reading a store failed."""


class RuleConfigError(VerificationError):
    """A parser rule definition is invalid."""
