"""
Quality gate: turns one entity's staging rows into a cleansed set and a
quarantine set, then publishes both.

Flow per entity:
1. Rule set normalizes each row (missing keys are rejected here)
2. Resolver applies the entity's conflict policy
3. Rule set post-processes the accepted set (e.g. product timelines)
4. Accepted rows are stamped with the lineage timestamp
5. Rejected rows go to quarantine and the cleansed table is replaced
   wholesale, as one unit where the store supports it

Nothing is written until the whole entity has been staged in memory, so a
failure while staging leaves the published table untouched.
"""

import time
from collections import Counter
from datetime import datetime
from typing import NamedTuple

from pydantic import ValidationError

from silver_gate.core.dedup import BaseResolver, Candidate
from silver_gate.core.models import (
    CleanRecord,
    Entity,
    EntityMetrics,
    EntityStatus,
    QuarantineRecord,
    RawRecord,
)
from silver_gate.core.rules import UNPARSABLE_VALUE, BaseRuleSet, UnparsableValueError
from silver_gate.observability.logger import get_logger
from silver_gate.warehouse.store import CleansedStore, QuarantineSink, StagingSource

logger = get_logger(__name__)


class EntityLoadError(Exception):
    """
    Raised when an entity cannot be loaded; nothing was published for it.

    Attributes:
        entity: Entity being loaded
        source_count: Staging rows read before the failure (0 if the read failed)
    """

    def __init__(self, entity: Entity, message: str, source_count: int = 0):
        self.entity = entity
        self.source_count = source_count
        super().__init__(f"{entity.value}: {message}")


class StagedEntity(NamedTuple):
    """An entity's load computed in memory, ready to publish."""

    entity: Entity
    source_count: int
    accepted: list[CleanRecord]
    quarantined: list[QuarantineRecord]

    @property
    def rejected_by_reason(self) -> dict[str, int]:
        counts = Counter(record.reason for record in self.quarantined)
        return dict(sorted(counts.items()))


class QualityGate:
    """
    Validates, deduplicates and publishes one entity.

    Args:
        rule_set: Entity rule set
        resolver: Conflict policy for rows sharing a business key
        on_unparsable: "fail" raises EntityLoadError on the first value that
                       cannot be coerced; "quarantine" rejects the row as
                       "Unparsable Value" and continues
        bronze_schema: Schema used to tag quarantined rows with their source table
    """

    def __init__(
        self,
        rule_set: BaseRuleSet,
        resolver: BaseResolver,
        on_unparsable: str = "fail",
        bronze_schema: str = "bronze",
    ):
        if on_unparsable not in ("fail", "quarantine"):
            raise ValueError(f"on_unparsable must be 'fail' or 'quarantine', got {on_unparsable!r}")
        self.rule_set = rule_set
        self.resolver = resolver
        self.on_unparsable = on_unparsable
        self.bronze_schema = bronze_schema

    @property
    def entity(self) -> Entity:
        return self.rule_set.entity

    def stage(self, raw_records: list[RawRecord], now: datetime) -> StagedEntity:
        """
        Partition staging rows into accepted and quarantined sets.

        Args:
            raw_records: Every staging row of the entity
            now: Lineage and capture timestamp for this load

        Returns:
            StagedEntity

        Raises:
            EntityLoadError: On an unparsable value when on_unparsable is "fail"
        """
        source_table = self.entity.source_table(self.bronze_schema)
        candidates: list[Candidate] = []
        quarantined: list[QuarantineRecord] = []

        def quarantine(raw: RawRecord, field_name: str, reason: str) -> None:
            quarantined.append(QuarantineRecord(
                source_entity=source_table,
                rejected_field=field_name,
                reason=reason,
                raw_payload=dict(raw.payload),
                captured_at=now,
            ))

        for raw in raw_records:
            try:
                outcome = self.rule_set.normalize(raw)
            except UnparsableValueError as e:
                self._on_unparsable(e, raw_records)
                quarantine(raw, e.field_name, UNPARSABLE_VALUE)
                continue
            except ValidationError as e:
                self._on_unparsable(e, raw_records)
                quarantine(raw, _first_error_field(e), UNPARSABLE_VALUE)
                continue

            if outcome.accepted:
                candidates.append(Candidate(raw, outcome.candidate))
            else:
                quarantine(raw, outcome.rejection.field_name, outcome.rejection.reason)

        resolved = self.resolver.resolve(candidates)
        for duplicate in resolved.rejected:
            quarantine(duplicate.candidate.raw, duplicate.field_name, duplicate.reason)

        accepted = self.rule_set.post_process([c.record for c in resolved.accepted])
        accepted = [record.model_copy(update={"dwh_insertion_date": now}) for record in accepted]

        return StagedEntity(self.entity, len(raw_records), accepted, quarantined)

    def publish(self, staged: StagedEntity, cleansed: CleansedStore, quarantine: QuarantineSink) -> int:
        """
        Append the quarantined rows and replace the cleansed table.

        A failure here leaves the cleansed table as it was.

        Returns:
            Number of rows published to the cleansed store
        """
        return cleansed.publish(staged.entity, staged.accepted, staged.quarantined, quarantine)

    def run(
        self,
        staging: StagingSource,
        cleansed: CleansedStore,
        quarantine: QuarantineSink,
        now: datetime,
    ) -> EntityMetrics:
        """
        Read, stage and publish the entity.

        Returns:
            EntityMetrics with status OK or REJECTIONS

        Raises:
            EntityLoadError: If the entity could not be staged
        """
        start = time.perf_counter()
        raw_records = staging.read(self.entity)
        staged = self.stage(raw_records, now)
        self.publish(staged, cleansed, quarantine)

        rejected_by_reason = staged.rejected_by_reason
        metrics = EntityMetrics(
            entity=self.entity,
            status=EntityStatus.REJECTIONS if staged.quarantined else EntityStatus.OK,
            source_count=staged.source_count,
            accepted_count=len(staged.accepted),
            rejected_count=len(staged.quarantined),
            rejected_by_reason=rejected_by_reason,
            elapsed_seconds=time.perf_counter() - start,
        )

        logger.info(
            f"Loaded {self.entity.value}",
            extra={
                "entity": self.entity.value,
                "source_count": metrics.source_count,
                "accepted_count": metrics.accepted_count,
                "rejected_count": metrics.rejected_count,
                "rejected_by_reason": rejected_by_reason,
            }
        )
        return metrics

    def _on_unparsable(self, error: Exception, raw_records: list[RawRecord]) -> None:
        if self.on_unparsable == "fail":
            raise EntityLoadError(self.entity, str(error), len(raw_records)) from error
        logger.warning(
            "Quarantining unparsable row",
            extra={"entity": self.entity.value, "error": str(error)}
        )

    def __repr__(self) -> str:
        return f"QualityGate(rule_set={self.rule_set!r}, resolver={self.resolver!r}, on_unparsable={self.on_unparsable})"


def _first_error_field(error: ValidationError) -> str:
    for detail in error.errors():
        if detail.get("loc"):
            return str(detail["loc"][0])
    return "record"
