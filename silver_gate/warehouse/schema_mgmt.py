"""
DDL for the bronze staging tables and the silver layer.

Bronze columns are all text so a bulk load never fails on dirty values.
Silver tables carry typed columns and a lineage timestamp. Foreign keys
are deliberately absent: orphaned children are loaded and audited later.
"""

from psycopg import sql

from silver_gate.core.models import RAW_COLUMNS, Entity

from .connection import DatabaseConnectionPool
from .postgres import QUARANTINE_TABLE

SILVER_DDL: dict[Entity, str] = {
    Entity.CUSTOMER: """
        cst_id             INTEGER NOT NULL PRIMARY KEY,
        cst_key            VARCHAR(50) NOT NULL,
        cst_firstname      VARCHAR(50),
        cst_lastname       VARCHAR(50),
        cst_marital_status VARCHAR(50),
        cst_gender         VARCHAR(50),
        cst_create_date    DATE,
        dwh_insertion_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    """,
    Entity.PRODUCT: """
        prd_id             INTEGER NOT NULL PRIMARY KEY,
        cat_id             VARCHAR(50) NOT NULL,
        prd_key            VARCHAR(50) NOT NULL,
        prd_nm             VARCHAR(100),
        prd_cost           DECIMAL(18,2) CHECK (prd_cost >= 0),
        prd_line           VARCHAR(50),
        prd_start_dt       DATE,
        prd_end_dt         DATE,
        dwh_insertion_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    """,
    Entity.SALES_LINE: """
        sls_ord_num        VARCHAR(50) NOT NULL,
        sls_prd_key        VARCHAR(50) NOT NULL,
        sls_cus_id         INTEGER NOT NULL,
        sls_ord_dt         DATE,
        sls_ship_dt        DATE,
        sls_due_dt         DATE,
        sls_sales          DECIMAL(18,2),
        sls_quantity       INTEGER,
        sls_price          DECIMAL(18,2),
        dwh_insertion_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    """,
    Entity.ERP_CUSTOMER_DEMO: """
        cid                VARCHAR(50) NOT NULL PRIMARY KEY,
        bdate              DATE,
        gen                VARCHAR(50),
        dwh_insertion_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    """,
    Entity.ERP_LOCATION: """
        cid                VARCHAR(50) NOT NULL PRIMARY KEY,
        cntry              VARCHAR(50),
        dwh_insertion_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    """,
    Entity.ERP_CATEGORY: """
        id                 VARCHAR(50) NOT NULL PRIMARY KEY,
        cat                VARCHAR(50),
        subcat             VARCHAR(50),
        maintenance        VARCHAR(50),
        dwh_insertion_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    """,
}

QUARANTINE_DDL = """
    quarantine_id      SERIAL PRIMARY KEY,
    source_table       VARCHAR(100) NOT NULL,
    rejected_column    VARCHAR(50) NOT NULL,
    rejected_reason    VARCHAR(250) NOT NULL,
    raw_data           JSONB NOT NULL,
    dwh_insertion_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP
"""


class SchemaManager:
    """
    Creates the bronze and silver schemas and their tables.

    Creation is idempotent (IF NOT EXISTS); drop_existing=True rebuilds
    tables from scratch.
    """

    def __init__(self, pool: DatabaseConnectionPool, bronze_schema: str = "bronze", silver_schema: str = "silver"):
        """
        Initialize schema manager.

        Args:
            pool: Database connection pool
            bronze_schema: Staging schema name
            silver_schema: Cleansed schema name
        """
        self.pool = pool
        self.bronze_schema = bronze_schema
        self.silver_schema = silver_schema

    def create_bronze_schema(self, drop_existing: bool = False) -> list[str]:
        """
        Create the staging tables, one text column per raw field.

        Returns:
            Qualified names of the tables created
        """
        statements = [self._create_schema(self.bronze_schema)]
        created = []
        for entity, columns in RAW_COLUMNS.items():
            body = sql.SQL(", ").join(
                sql.SQL("{} TEXT").format(sql.Identifier(column)) for column in columns
            )
            statements.extend(self._create_table(self.bronze_schema, entity.table_name, body, drop_existing))
            created.append(entity.source_table(self.bronze_schema))

        self._execute_all(statements)
        return created

    def create_silver_schema(self, drop_existing: bool = False) -> list[str]:
        """
        Create the cleansed tables and the quarantine table.

        Returns:
            Qualified names of the tables created
        """
        statements = [self._create_schema(self.silver_schema)]
        created = []
        for entity, body in SILVER_DDL.items():
            statements.extend(self._create_table(self.silver_schema, entity.table_name, sql.SQL(body), drop_existing))
            created.append(entity.target_table(self.silver_schema))

        statements.extend(self._create_table(self.silver_schema, QUARANTINE_TABLE, sql.SQL(QUARANTINE_DDL), drop_existing))
        created.append(f"{self.silver_schema}.{QUARANTINE_TABLE}")

        self._execute_all(statements)
        return created

    def _create_schema(self, schema: str) -> sql.Composed:
        return sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema))

    def _create_table(self, schema: str, table: str, body: sql.Composable, drop_existing: bool) -> list[sql.Composed]:
        qualified = sql.Identifier(schema, table)
        statements = []
        if drop_existing:
            statements.append(sql.SQL("DROP TABLE IF EXISTS {}").format(qualified))
        statements.append(sql.SQL("CREATE TABLE IF NOT EXISTS {} ({})").format(qualified, body))
        return statements

    def _execute_all(self, statements: list[sql.Composed]) -> None:
        """Run DDL statements in one transaction."""
        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                for statement in statements:
                    cur.execute(statement)
            conn.commit()
