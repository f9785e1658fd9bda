"""
Base rule-set interface for all entity rules.

A rule set maps one raw staging row to either a typed candidate or a
rejection. All rule sets inherit from BaseRuleSet and implement normalize().
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, NamedTuple

from silver_gate.core.models import CleanRecord, Entity, RawRecord

from .coercion import UnparsableValueError, clean_text

# Rejection reasons written to quarantine
MISSING_MANDATORY_KEY = "Missing Mandatory Key"
DUPLICATE_RECORD = "Duplicate Record"
DUPLICATE_ID = "Duplicate ID — Manual Investigation Required"
UNPARSABLE_VALUE = "Unparsable Value"
NEGATIVE_AMOUNT = "Negative Amount"
INVALID_DATE_SEQUENCE = "Invalid Date Sequence"


class Rejection(NamedTuple):
    """Why a row was refused, and which field caused it."""

    field_name: str
    reason: str


class RuleOutcome(NamedTuple):
    """
    Result of normalizing one raw row.

    Exactly one of candidate / rejection is set.
    """

    candidate: CleanRecord | None = None
    rejection: Rejection | None = None

    @classmethod
    def accept(cls, candidate: CleanRecord) -> "RuleOutcome":
        return cls(candidate=candidate)

    @classmethod
    def reject(cls, field_name: str, reason: str) -> "RuleOutcome":
        return cls(rejection=Rejection(field_name, reason))

    @property
    def accepted(self) -> bool:
        return self.candidate is not None


class BaseRuleSet(ABC):
    """
    Abstract base class for per-entity rule sets.

    Rule sets are pure: the only context they take is the run's reference
    date (for range checks) and the pipeline options they were built with.
    """

    entity: Entity
    # Fields that must be non-null before a row may enter deduplication
    mandatory_fields: tuple[str, ...] = ()

    def __init__(self, today: date | None = None, **options: Any):
        """
        Initialize rule set.

        Args:
            today: Reference date for range checks (defaults to date.today())
            **options: Rule-specific options (e.g. max_age_years)
        """
        self.today = today or date.today()
        self.options = options

    @abstractmethod
    def normalize(self, raw: RawRecord) -> RuleOutcome:
        """
        Normalize a raw row into a typed candidate.

        Args:
            raw: The staging row

        Returns:
            RuleOutcome with a candidate or a rejection

        Raises:
            UnparsableValueError: If a value cannot be coerced to its declared type
        """
        pass

    def post_process(self, accepted: list[CleanRecord]) -> list[CleanRecord]:
        """
        Set-level adjustments over the accepted rows (same length and order).

        Default is a no-op; entities that derive fields from neighbouring
        rows override it.
        """
        return accepted

    def missing_key(self, raw: RawRecord) -> Rejection | None:
        """Return a rejection for the first mandatory field that is null or blank."""
        for field_name in self.mandatory_fields:
            if clean_text(raw.get(field_name)) is None:
                return Rejection(field_name, MISSING_MANDATORY_KEY)
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(entity={self.entity.value}, today={self.today})"
