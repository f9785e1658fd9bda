"""
Batch run controller: loads every entity in a fixed order.

State machine: IDLE -> RUNNING -> COMPLETED | FAILED

The quarantine sink is cleared once at the start of the run. Entities are
loaded one after the other; the first entity that fails stops the run and
no later entity is attempted. Entities already published stay published,
and the failed entity keeps its previous contents.
"""

import time
from collections.abc import Callable
from datetime import datetime

from silver_gate.core.dedup import DEFAULT_RESOLVERS, BaseResolver
from silver_gate.core.models import (
    BatchRunMetrics,
    Entity,
    EntityMetrics,
    EntityStatus,
    RunState,
)
from silver_gate.core.rules import PipelineConfig, build_rule_set
from silver_gate.observability.logger import get_logger, log_operation
from silver_gate.observability.metrics import record_batch_run, record_entity_load
from silver_gate.warehouse.store import CleansedStore, QuarantineSink, StagingSource

from .quality_gate import QualityGate

logger = get_logger(__name__)


class BatchRunController:
    """
    Sequences entity loads and collects run metrics.

    Only one run may be in progress per controller; concurrent runs against
    the same stores must be serialized by the caller.
    """

    def __init__(
        self,
        staging: StagingSource,
        cleansed: CleansedStore,
        quarantine: QuarantineSink,
        config: PipelineConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
        resolvers: dict[Entity, BaseResolver] | None = None,
    ):
        """
        Initialize batch run controller.

        Args:
            staging: Raw staging rows
            cleansed: Cleansed tables, replaced per entity
            quarantine: Quarantine sink, cleared per run
            config: Pipeline options (defaults apply if None)
            clock: Source of the run timestamp; also fixes "today" for range checks
            resolvers: Conflict policy per entity (defaults to DEFAULT_RESOLVERS)
        """
        self.staging = staging
        self.cleansed = cleansed
        self.quarantine = quarantine
        self.config = config or PipelineConfig()
        self.clock = clock
        self.resolvers = {**DEFAULT_RESOLVERS, **(resolvers or {})}

        self._state = RunState.IDLE
        self._current_entity: Entity | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def current_entity(self) -> Entity | None:
        """Entity being loaded while RUNNING, else None."""
        return self._current_entity

    def build_gate(self, entity: Entity, run_time: datetime) -> QualityGate:
        return QualityGate(
            rule_set=build_rule_set(entity, self.config, today=run_time.date()),
            resolver=self.resolvers[entity],
            on_unparsable=self.config.on_unparsable,
            bronze_schema=self.config.bronze_schema,
        )

    def run_batch(self) -> BatchRunMetrics:
        """
        Load every configured entity.

        Returns:
            BatchRunMetrics with state COMPLETED, or FAILED naming the
            entity that stopped the run and why

        Raises:
            RuntimeError: If a run is already in progress
        """
        if self._state is RunState.RUNNING:
            raise RuntimeError("A batch run is already in progress")

        self._state = RunState.RUNNING
        run_time = self.clock()
        start = time.perf_counter()
        results: list[EntityMetrics] = []
        failed_entity: Entity | None = None
        error: str | None = None

        logger.info(
            "Starting batch run",
            extra={
                "entities": [entity.value for entity in self.config.entity_order],
                "on_unparsable": self.config.on_unparsable,
            }
        )

        try:
            with log_operation("Clearing quarantine", logger=logger):
                self.quarantine.clear()
        except Exception as e:
            error = f"quarantine clear failed: {e}"
        else:
            for entity in self.config.entity_order:
                metrics = self._load_entity(entity, run_time)
                results.append(metrics)
                if not metrics.passed:
                    failed_entity = entity
                    error = metrics.error
                    break

        self._current_entity = None
        self._state = RunState.FAILED if error else RunState.COMPLETED
        duration = time.perf_counter() - start
        record_batch_run(self._state.value, duration)

        run_metrics = BatchRunMetrics(
            state=self._state,
            entities=results,
            started_at=run_time,
            finished_at=self.clock(),
            duration_seconds=duration,
            failed_entity=failed_entity,
            error=error,
        )

        log = logger.error if error else logger.info
        log(
            f"Batch run {self._state.value}",
            extra={
                "duration_seconds": round(duration, 3),
                "total_source": run_metrics.total_source,
                "total_accepted": run_metrics.total_accepted,
                "total_rejected": run_metrics.total_rejected,
                "failed_entity": failed_entity.value if failed_entity else None,
                "error": error,
            }
        )
        return run_metrics

    def _load_entity(self, entity: Entity, run_time: datetime) -> EntityMetrics:
        """Load one entity; any error becomes a FAILED result rather than escaping the run."""
        self._current_entity = entity
        gate = self.build_gate(entity, run_time)

        operation = log_operation(f"Loading {entity.value}", logger=logger, entity=entity.value)
        try:
            with operation:
                metrics = gate.run(self.staging, self.cleansed, self.quarantine, run_time)
        except Exception as e:
            metrics = EntityMetrics(
                entity=entity,
                status=EntityStatus.FAILED,
                source_count=getattr(e, "source_count", 0),
                elapsed_seconds=operation.elapsed_seconds,
                error=f"{type(e).__name__}: {e}",
            )

        record_entity_load(
            entity.value,
            metrics.status.value,
            metrics.accepted_count,
            metrics.rejected_by_reason,
            metrics.elapsed_seconds,
        )
        return metrics
