"""
Deduplication resolvers: conflict policies over rows sharing a business key.

Rows are grouped by their cleaned business key in one pass; each group is
then resolved independently. Group order follows first appearance, so the
output order is stable for a given input.
"""

import json
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, NamedTuple

from silver_gate.core.models import CleanRecord, RawRecord
from silver_gate.core.rules import DUPLICATE_ID, DUPLICATE_RECORD


class Candidate(NamedTuple):
    """A typed candidate together with the raw row it came from."""

    raw: RawRecord
    record: CleanRecord


class DuplicateRejection(NamedTuple):
    candidate: Candidate
    field_name: str
    reason: str


class DedupOutcome(NamedTuple):
    """Accepted candidates and rejected duplicates, each in stable order."""

    accepted: list[Candidate]
    rejected: list[DuplicateRejection]


class BaseResolver(ABC):
    """
    Abstract base class for conflict policies.
    """

    def resolve(self, candidates: list[Candidate]) -> DedupOutcome:
        """
        Split candidates into accepted rows and rejected duplicates.

        Args:
            candidates: Typed candidates with non-null business keys

        Returns:
            DedupOutcome
        """
        groups: dict[Any, list[Candidate]] = defaultdict(list)
        for candidate in candidates:
            groups[candidate.record.business_key].append(candidate)

        accepted: list[Candidate] = []
        rejected: list[DuplicateRejection] = []
        for group in groups.values():
            if len(group) == 1:
                accepted.extend(group)
                continue
            kept, dropped = self.resolve_group(group)
            accepted.extend(kept)
            rejected.extend(
                DuplicateRejection(c, c.record.KEY_FIELD, self.reason) for c in dropped
            )
        return DedupOutcome(accepted, rejected)

    @abstractmethod
    def resolve_group(self, group: list[Candidate]) -> tuple[list[Candidate], list[Candidate]]:
        """
        Resolve one group of two or more rows sharing a key.

        Returns:
            (kept, dropped)
        """
        pass

    @property
    @abstractmethod
    def reason(self) -> str:
        """Quarantine reason for dropped rows."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class LatestByDate(BaseResolver):
    """
    Keeps the most recent row per key, quarantining older ones.

    Rows are ranked descending by order_field. Undated rows rank after dated
    ones; exact ties fall back to the canonical raw payload so the winner
    does not depend on read order.
    """

    def __init__(self, order_field: str):
        self.order_field = order_field

    def resolve_group(self, group):
        dated = [c for c in group if getattr(c.record, self.order_field) is not None]
        undated = [c for c in group if getattr(c.record, self.order_field) is None]

        dated.sort(key=lambda c: _payload_fingerprint(c.raw))
        dated.sort(key=lambda c: getattr(c.record, self.order_field), reverse=True)
        undated.sort(key=lambda c: _payload_fingerprint(c.raw))

        ranked = dated + undated
        winner = ranked[0]
        return [winner], [c for c in group if c is not winner]

    @property
    def reason(self) -> str:
        return DUPLICATE_RECORD

    def __repr__(self) -> str:
        return f"LatestByDate(order_field={self.order_field})"


class RejectAllOnConflict(BaseResolver):
    """
    Quarantines every row of a key that appears more than once.

    Ambiguous identifiers are treated as unresolvable: no copy is trusted.
    """

    def resolve_group(self, group):
        return [], list(group)

    @property
    def reason(self) -> str:
        return DUPLICATE_ID


class KeepAll(BaseResolver):
    """No conflict policy: every candidate is accepted (non-unique entities)."""

    def resolve(self, candidates: list[Candidate]) -> DedupOutcome:
        return DedupOutcome(list(candidates), [])

    def resolve_group(self, group):
        return list(group), []

    @property
    def reason(self) -> str:
        return DUPLICATE_RECORD


def _payload_fingerprint(raw: RawRecord) -> str:
    return json.dumps(raw.payload, sort_keys=True, default=str)
