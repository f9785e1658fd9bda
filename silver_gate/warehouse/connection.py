"""
Warehouse connection settings and the shared psycopg pool.

Settings are read from DB_HOST, DB_PORT, DB_NAME, DB_USER and DB_PASSWORD
unless overridden. The staging reader, the cleansed store and the quarantine
sink all borrow connections from one pool; rows come back as dicts.
"""
import os
import time
from contextlib import contextmanager

from psycopg import OperationalError
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool
from pydantic import BaseModel, Field, SecretStr

from silver_gate.observability.logger import get_logger

logger = get_logger(__name__)

ENV_VARS = {
    "host": "DB_HOST",
    "port": "DB_PORT",
    "database": "DB_NAME",
    "user": "DB_USER",
    "password": "DB_PASSWORD",
}


class WarehouseSettings(BaseModel):
    """
    Connection parameters for the warehouse database.

    Attributes:
        host: Database host
        port: Database port
        database: Database name
        user: Login role
        password: Login password (never logged)
        connect_timeout: Seconds to wait for a connection
    """

    host: str = "localhost"
    port: int = Field(5432, gt=0, lt=65536)
    database: str = "datawarehouse"
    user: str = "pipeline"
    password: SecretStr
    connect_timeout: float = Field(30.0, gt=0)

    class Config:
        frozen = True

    @classmethod
    def from_env(cls, **overrides) -> "WarehouseSettings":
        """
        Build settings from DB_* variables; non-None overrides win.

        Raises:
            ValueError: If no password is configured
        """
        values = {field: os.getenv(var) for field, var in ENV_VARS.items()}
        values.update(overrides)
        values = {field: value for field, value in values.items() if value is not None}

        if "password" not in values:
            raise ValueError(
                "Database password must be provided. "
                "Set DB_PASSWORD or pass --db-password."
            )
        return cls(**values)

    @property
    def conninfo(self) -> str:
        return make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.database,
            user=self.user,
            password=self.password.get_secret_value(),
            connect_timeout=int(self.connect_timeout),
        )

    def __repr__(self) -> str:
        return f"WarehouseSettings({self.user}@{self.host}:{self.port}/{self.database})"


class DatabaseConnectionPool:
    """
    Small connection pool around psycopg_pool.ConnectionPool.

    A batch run is sequential, so a handful of connections is enough.

    Usage:
        with DatabaseConnectionPool(WarehouseSettings.from_env()) as pool:
            rows = pool.fetch_all("SELECT 1 AS ok")
    """

    def __init__(self, settings: WarehouseSettings, min_size: int = 1, max_size: int = 4) -> None:
        self.settings = settings
        self.min_size = min_size
        self.max_size = max_size
        self._pool: ConnectionPool | None = None

    @classmethod
    def from_env(cls, **overrides) -> "DatabaseConnectionPool":
        return cls(WarehouseSettings.from_env(**overrides))

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the pool, retrying while the database is unreachable.

        Raises:
            OperationalError: If every attempt fails
        """
        if self._pool is not None:
            return

        pool = ConnectionPool(
            conninfo=self.settings.conninfo,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.settings.connect_timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )

        for attempt in range(1, max_retries + 1):
            try:
                pool.open(wait=True, timeout=self.settings.connect_timeout)
                break
            except OperationalError as e:
                if attempt == max_retries:
                    raise OperationalError(
                        f"Could not reach {self.settings!r} after {max_retries} attempts: {e}"
                    ) from e
                logger.warning(
                    "Warehouse not reachable, retrying",
                    extra={"attempt": attempt, "max_retries": max_retries, "error": str(e)}
                )
                time.sleep(retry_delay)

        self._pool = pool
        logger.info("Connection pool open", extra={"target": repr(self.settings)})

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self):
        """
        Borrow a connection.

        The transaction commits when the block exits cleanly and rolls back
        if it raises.

        Raises:
            RuntimeError: If the pool is not open
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")

        with self._pool.connection() as conn:
            yield conn

    def fetch_all(self, query, params: tuple | None = None) -> list[dict]:
        """Run a query (str or psycopg.sql.Composable) and return every row."""
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()

    def execute(self, command, params: tuple | None = None) -> int:
        """Run a single statement in its own transaction; returns the row count."""
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(command, params)
                return cur.rowcount

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
