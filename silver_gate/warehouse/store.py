"""
Storage contracts for the quality gate, plus in-memory implementations.

The gate reads one staging area, replaces one cleansed table per entity
and appends to one quarantine sink. The in-memory stores back unit tests
and dry runs over CSV files.
"""

from abc import ABC, abstractmethod
from collections import Counter
from copy import deepcopy

from silver_gate.core.models import CleanRecord, Entity, QuarantineRecord, RawRecord


class StagingSource(ABC):
    """Read-only access to the raw staging rows of each entity."""

    @abstractmethod
    def read(self, entity: Entity) -> list[RawRecord]:
        """Return every staging row for the entity, in storage order."""
        pass


class CleansedStore(ABC):
    """One typed table per entity, replaced wholesale on each load."""

    @abstractmethod
    def replace(self, entity: Entity, records: list[CleanRecord]) -> int:
        """
        Atomically swap the entity's contents for exactly these records.

        Either the full new set becomes visible or the prior contents stay
        untouched.

        Returns:
            Number of rows published
        """
        pass

    @abstractmethod
    def read(self, entity: Entity) -> list[dict]:
        """Current rows of the entity as column-to-value mappings."""
        pass

    def publish(
        self,
        entity: Entity,
        records: list[CleanRecord],
        quarantined: list[QuarantineRecord],
        quarantine: "QuarantineSink",
    ) -> int:
        """
        Publish one entity load: its rejected rows, then its cleansed rows.

        The replace runs last, so a failing quarantine append leaves the
        cleansed table untouched. Stores that can write both in one
        transaction override this.

        Returns:
            Number of rows published to the cleansed store
        """
        quarantine.append(quarantined)
        return self.replace(entity, records)


class QuarantineSink(ABC):
    """Append-only holding area for rejected rows, cleared once per run."""

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def append(self, records: list[QuarantineRecord]) -> int:
        """
        Append rejected rows.

        Returns:
            Number of rows appended
        """
        pass

    @abstractmethod
    def read(self) -> list[QuarantineRecord]:
        """All quarantined rows in capture order."""
        pass

    @abstractmethod
    def summarize(self) -> dict[tuple[str, str], int]:
        """Quarantined row counts keyed by (source_entity, reason)."""
        pass


class InMemoryStagingSource(StagingSource):
    """
    Staging rows held in a dict, keyed by entity.

    Usage:
        source = InMemoryStagingSource({Entity.ERP_CATEGORY: [{"id": "AC_BR", ...}]})
    """

    def __init__(self, rows: dict[Entity, list[dict]] | None = None):
        self._rows: dict[Entity, list[dict]] = {}
        for entity, entity_rows in (rows or {}).items():
            self.load(entity, entity_rows)

    def load(self, entity: Entity, rows: list[dict]) -> None:
        """Replace the staging rows for an entity (mimics a bulk load)."""
        self._rows[Entity(entity)] = [dict(row) for row in rows]

    def read(self, entity: Entity) -> list[RawRecord]:
        return [RawRecord(entity=entity, payload=row) for row in self._rows.get(entity, [])]


class InMemoryCleansedStore(CleansedStore):
    """Cleansed tables as lists of row dicts; replace() rebinds the list in one step."""

    def __init__(self):
        self._tables: dict[Entity, list[dict]] = {}

    def replace(self, entity: Entity, records: list[CleanRecord]) -> int:
        table = [record.model_dump() for record in records]
        self._tables[entity] = table
        return len(table)

    def read(self, entity: Entity) -> list[dict]:
        return deepcopy(self._tables.get(entity, []))


class InMemoryQuarantineSink(QuarantineSink):
    def __init__(self):
        self.records: list[QuarantineRecord] = []

    def clear(self) -> None:
        self.records = []

    def append(self, records: list[QuarantineRecord]) -> int:
        self.records.extend(records)
        return len(records)

    def read(self) -> list[QuarantineRecord]:
        return list(self.records)

    def summarize(self) -> dict[tuple[str, str], int]:
        return dict(Counter((r.source_entity, r.reason) for r in self.records))
