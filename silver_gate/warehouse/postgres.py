"""
PostgreSQL-backed staging source, cleansed store and quarantine sink.

Identifiers are composed with psycopg.sql so configured schema names are
quoted safely; values always travel as query parameters.
"""

from psycopg import sql
from psycopg.types.json import Jsonb

from silver_gate.core.models import (
    CLEAN_MODELS,
    RAW_COLUMNS,
    CleanRecord,
    Entity,
    QuarantineRecord,
    RawRecord,
)
from silver_gate.observability.logger import get_logger

from .connection import DatabaseConnectionPool
from .store import CleansedStore, QuarantineSink, StagingSource

logger = get_logger(__name__)

# Serializes wholesale replaces across concurrent runs against one database
PUBLISH_LOCK_ID = 715_000_001

QUARANTINE_TABLE = "quality_quarantine"
QUARANTINE_COLUMNS = (
    "source_table", "rejected_column", "rejected_reason", "raw_data", "dwh_insertion_date",
)


def _qualified(schema: str, table: str) -> sql.Identifier:
    return sql.Identifier(schema, table)


def _column_list(columns) -> sql.Composed:
    return sql.SQL(", ").join(sql.Identifier(c) for c in columns)


class PostgresStagingSource(StagingSource):
    """Reads bronze tables; every column arrives as text."""

    def __init__(self, pool: DatabaseConnectionPool, schema: str = "bronze"):
        self.pool = pool
        self.schema = schema

    def read(self, entity: Entity) -> list[RawRecord]:
        columns = RAW_COLUMNS[entity]
        query = sql.SQL("SELECT {columns} FROM {table} ORDER BY ctid").format(
            columns=_column_list(columns),
            table=_qualified(self.schema, entity.table_name),
        )
        rows = self.pool.fetch_all(query)
        logger.debug(
            "Read staging rows",
            extra={"entity": entity.value, "rows": len(rows)}
        )
        return [RawRecord(entity=entity, payload=row) for row in rows]


class PostgresCleansedStore(CleansedStore):
    """
    Silver tables, replaced with TRUNCATE + INSERT inside one transaction.

    Readers keep seeing the prior contents until commit; any error rolls
    the whole replace back.
    """

    def __init__(self, pool: DatabaseConnectionPool, schema: str = "silver"):
        self.pool = pool
        self.schema = schema

    def replace(self, entity: Entity, records: list[CleanRecord]) -> int:
        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                self._swap_rows(cur, entity, records)
            conn.commit()

        return len(records)

    def publish(self, entity, records, quarantined, quarantine) -> int:
        """
        Replace the table and append the rejections in one transaction.

        Only possible when the sink writes to the same database; any other
        sink falls back to append-then-replace.
        """
        if not (isinstance(quarantine, PostgresQuarantineSink) and quarantine.pool is self.pool):
            return super().publish(entity, records, quarantined, quarantine)

        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                self._swap_rows(cur, entity, records)
                quarantine.insert_rows(cur, quarantined)
            conn.commit()

        return len(records)

    def _swap_rows(self, cur, entity: Entity, records: list[CleanRecord]) -> None:
        columns = CLEAN_MODELS[entity].column_names()
        table = _qualified(self.schema, entity.table_name)
        insert = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values})").format(
            table=table,
            columns=_column_list(columns),
            values=sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )

        cur.execute("SELECT pg_advisory_xact_lock(%s)", (PUBLISH_LOCK_ID,))
        cur.execute(sql.SQL("TRUNCATE TABLE {table}").format(table=table))
        if records:
            cur.executemany(insert, [record.as_row() for record in records])

    def read(self, entity: Entity) -> list[dict]:
        columns = CLEAN_MODELS[entity].column_names()
        query = sql.SQL("SELECT {columns} FROM {table} ORDER BY ctid").format(
            columns=_column_list(columns),
            table=_qualified(self.schema, entity.table_name),
        )
        return self.pool.fetch_all(query)


class PostgresQuarantineSink(QuarantineSink):
    """silver.quality_quarantine, with the raw row stored as JSONB."""

    def __init__(self, pool: DatabaseConnectionPool, schema: str = "silver"):
        self.pool = pool
        self.schema = schema
        self.table = _qualified(schema, QUARANTINE_TABLE)

    def clear(self) -> None:
        self.pool.execute(
            sql.SQL("TRUNCATE TABLE {table} RESTART IDENTITY").format(table=self.table)
        )

    def append(self, records: list[QuarantineRecord]) -> int:
        if not records:
            return 0

        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                self.insert_rows(cur, records)
            conn.commit()

        return len(records)

    def insert_rows(self, cur, records: list[QuarantineRecord]) -> None:
        """Insert rejected rows on an open cursor, inside the caller's transaction."""
        if not records:
            return

        insert = sql.SQL("INSERT INTO {table} ({columns}) VALUES (%s, %s, %s, %s, %s)").format(
            table=self.table,
            columns=_column_list(QUARANTINE_COLUMNS),
        )
        rows = [
            (
                record.source_entity,
                record.rejected_field,
                record.reason,
                Jsonb(record.raw_payload),
                record.captured_at,
            )
            for record in records
        ]
        cur.executemany(insert, rows)

    def read(self) -> list[QuarantineRecord]:
        query = sql.SQL("SELECT {columns} FROM {table} ORDER BY quarantine_id").format(
            columns=_column_list(QUARANTINE_COLUMNS),
            table=self.table,
        )
        return [
            QuarantineRecord(
                source_entity=row["source_table"],
                rejected_field=row["rejected_column"],
                reason=row["rejected_reason"],
                raw_payload=row["raw_data"],
                captured_at=row["dwh_insertion_date"],
            )
            for row in self.pool.fetch_all(query)
        ]

    def summarize(self) -> dict[tuple[str, str], int]:
        query = sql.SQL(
            "SELECT source_table, rejected_reason, COUNT(*) AS total "
            "FROM {table} GROUP BY source_table, rejected_reason"
        ).format(table=self.table)
        return {
            (row["source_table"], row["rejected_reason"]): row["total"]
            for row in self.pool.fetch_all(query)
        }
