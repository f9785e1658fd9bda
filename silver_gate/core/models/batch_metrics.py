"""
Run metrics models for the batch controller (ephemeral, observability only).
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from .entity import Entity


class RunState(str, Enum):
    """Batch controller lifecycle."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class EntityStatus(str, Enum):
    """
    Outcome of one entity load.

    OK: nothing rejected. REJECTIONS: loaded, some rows quarantined.
    FAILED: nothing published for this entity.
    """

    OK = "OK"
    REJECTIONS = "REJECTIONS"
    FAILED = "FAILED"


class EntityMetrics(BaseModel):
    """
    Counts and timing for one entity load.

    For a loaded entity, accepted_count + rejected_count == source_count and
    rejected_by_reason sums to rejected_count.
    """

    entity: Entity
    status: EntityStatus
    source_count: int = Field(0, ge=0)
    accepted_count: int = Field(0, ge=0)
    rejected_count: int = Field(0, ge=0, validate_default=True)
    rejected_by_reason: dict[str, int] = Field(default_factory=dict)
    elapsed_seconds: float = Field(0.0, ge=0.0)
    error: str | None = None

    @field_validator("rejected_count")
    @classmethod
    def check_mass_conservation(cls, v, info):
        """Validate that every source row is either accepted or rejected."""
        if info.data.get("status") is EntityStatus.FAILED:
            return v
        source_count = info.data.get("source_count", 0)
        accepted_count = info.data.get("accepted_count", 0)
        if accepted_count + v != source_count:
            raise ValueError(
                f"accepted ({accepted_count}) + rejected ({v}) must equal source ({source_count})"
            )
        return v

    @field_validator("rejected_by_reason")
    @classmethod
    def check_reason_totals(cls, v, info):
        """Validate that per-reason counts add up to rejected_count."""
        rejected_count = info.data.get("rejected_count")
        if rejected_count is not None and v and sum(v.values()) != rejected_count:
            raise ValueError(
                f"rejected_by_reason totals {sum(v.values())}, expected {rejected_count}"
            )
        return v

    @property
    def passed(self) -> bool:
        return self.status is not EntityStatus.FAILED


class BatchRunMetrics(BaseModel):
    """
    Per-entity metrics plus aggregate duration for one batch run.

    Attributes:
        state: COMPLETED or FAILED once the run is over
        entities: Metrics for every entity attempted, in processing order
        failed_entity: Entity that stopped the run (FAILED only)
        error: Error description (FAILED only)
    """

    state: RunState
    entities: list[EntityMetrics] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime | None = None
    duration_seconds: float = Field(0.0, ge=0.0)
    failed_entity: Entity | None = None
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.state is RunState.COMPLETED

    @property
    def total_source(self) -> int:
        return sum(m.source_count for m in self.entities)

    @property
    def total_accepted(self) -> int:
        return sum(m.accepted_count for m in self.entities)

    @property
    def total_rejected(self) -> int:
        return sum(m.rejected_count for m in self.entities)

    def for_entity(self, entity: Entity) -> EntityMetrics | None:
        for metrics in self.entities:
            if metrics.entity is entity:
                return metrics
        return None
