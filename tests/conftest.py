"""
Pytest configuration and fixtures for silver-gate tests

Unit tests run against the in-memory stores. Integration and E2E tests
use a PostgreSQL testcontainer or a local Spark session and are skipped
when Docker or Java is not available.
"""
import csv
import shutil
from collections.abc import Callable, Generator
from datetime import datetime
from pathlib import Path

import pytest

from silver_gate.batch import BatchRunController
from silver_gate.batch.readers.csv_reader import CSV_FILES
from silver_gate.core.models import RAW_COLUMNS, Entity
from silver_gate.core.rules import PipelineConfig
from silver_gate.warehouse.store import (
    InMemoryCleansedStore,
    InMemoryQuarantineSink,
    InMemoryStagingSource,
)

RUN_TIME = datetime(2024, 6, 1, 12, 0, 0)


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers or a JVM"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that run the whole batch"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# SAMPLE STAGING DATA
# =======================

def sample_staging_rows() -> dict[Entity, list[dict]]:
    """
    A small, dirty staging area covering every entity.

    Expected outcome per entity:
        crm_cust_info      5 rows -> 2 accepted, 3 rejected (1 missing key, 2 older duplicates)
        crm_prd_info       5 rows -> 2 accepted, 3 rejected (2 duplicate ids, 1 negative cost)
        crm_sales_details  4 rows -> 3 accepted, 1 rejected (date sequence)
        erp_cust_az12      3 rows -> 3 accepted
        erp_loc_a101       4 rows -> 2 accepted, 2 rejected (duplicate id after cleaning)
        erp_px_cat_g1v2    2 rows -> 1 accepted, 1 rejected (missing key)
    """
    return {
        Entity.CUSTOMER: [
            {"cst_id": "11000", "cst_key": "AW00011000", "cst_firstname": " Jon ", "cst_lastname": "Yang ",
             "cst_marital_status": "M", "cst_gender": "M", "cst_create_date": "2021-01-01"},
            {"cst_id": "11000", "cst_key": "AW00011000", "cst_firstname": "Jon", "cst_lastname": "Yang",
             "cst_marital_status": "S", "cst_gender": "M", "cst_create_date": "2022-06-15"},
            {"cst_id": "11000", "cst_key": "AW00011000", "cst_firstname": "Jonathan", "cst_lastname": "Yang",
             "cst_marital_status": "S", "cst_gender": None, "cst_create_date": None},
            {"cst_id": "11001", "cst_key": "AW00011001", "cst_firstname": "Eugene", "cst_lastname": "Huang",
             "cst_marital_status": " s", "cst_gender": "f", "cst_create_date": "2025-10-06"},
            {"cst_id": None, "cst_key": "AW00011002", "cst_firstname": "Ruben", "cst_lastname": "Torres",
             "cst_marital_status": "M", "cst_gender": "M", "cst_create_date": "2025-10-06"},
        ],
        Entity.PRODUCT: [
            {"prd_id": "210", "prd_key": "CO-RF-FR-R92B-58", "prd_nm": "HL Road Frame - Black- 58",
             "prd_cost": None, "prd_line": "R ", "prd_start_dt": "2003-07-01", "prd_end_dt": None},
            {"prd_id": "211", "prd_key": "CO-RF-FR-R92R-58", "prd_nm": "HL Road Frame - Red- 58",
             "prd_cost": "12", "prd_line": "R", "prd_start_dt": "2011-07-01", "prd_end_dt": "2011-06-01"},
            {"prd_id": "212", "prd_key": "AC-HE-HL-U509-R", "prd_nm": "Sport-100 Helmet- Red",
             "prd_cost": "12", "prd_line": "S", "prd_start_dt": "2011-07-01", "prd_end_dt": None},
            {"prd_id": "212", "prd_key": "AC-HE-HL-U509-R", "prd_nm": "Sport-100 Helmet- Red",
             "prd_cost": "14", "prd_line": "S", "prd_start_dt": "2012-07-01", "prd_end_dt": None},
            {"prd_id": "213", "prd_key": "AC-HE-HL-U509", "prd_nm": "Sport-100 Helmet- Black",
             "prd_cost": "-3", "prd_line": "S", "prd_start_dt": "2011-07-01", "prd_end_dt": None},
        ],
        Entity.SALES_LINE: [
            {"sls_ord_num": "SO43697", "sls_prd_key": "BK-R93R-62", "sls_cus_id": "21768",
             "sls_ord_dt": "20101229", "sls_ship_dt": "20110105", "sls_due_dt": "20110110",
             "sls_sales": None, "sls_quantity": "2", "sls_price": "10"},
            {"sls_ord_num": "SO43697", "sls_prd_key": "BK-M82S-44", "sls_cus_id": "21768",
             "sls_ord_dt": "0", "sls_ship_dt": "20110105", "sls_due_dt": "20110110",
             "sls_sales": "100", "sls_quantity": "5", "sls_price": "0"},
            {"sls_ord_num": "SO43698", "sls_prd_key": "BK-M82S-44", "sls_cus_id": "28389",
             "sls_ord_dt": "5489", "sls_ship_dt": "20110105", "sls_due_dt": "20110110",
             "sls_sales": None, "sls_quantity": "0", "sls_price": "0"},
            {"sls_ord_num": "SO43699", "sls_prd_key": "BK-M82S-44", "sls_cus_id": "25863",
             "sls_ord_dt": "20110120", "sls_ship_dt": "20110105", "sls_due_dt": "20110110",
             "sls_sales": "3400", "sls_quantity": "1", "sls_price": "3400"},
        ],
        Entity.ERP_CUSTOMER_DEMO: [
            {"cid": "NASAW00011000", "bdate": "1971-10-06", "gen": "Male"},
            {"cid": "NAS-AW00011001", "bdate": "2024-06-02", "gen": " F"},
            {"cid": "AW00011002", "bdate": "1890-01-01", "gen": None},
        ],
        Entity.ERP_LOCATION: [
            {"cid": "AW-00011000", "cntry": "Australia"},
            {"cid": "AW-00011001", "cntry": "US"},
            {"cid": "AW-00011002", "cntry": "DE"},
            {"cid": "AW00011002", "cntry": " "},
        ],
        Entity.ERP_CATEGORY: [
            {"id": "AC_BR", "cat": "Accessories", "subcat": "Bike Racks", "maintenance": "Yes"},
            {"id": " ", "cat": "Bikes", "subcat": "Road Bikes", "maintenance": "Yes"},
        ],
    }


# =======================
# IN-MEMORY FIXTURES
# =======================

@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock pinned to RUN_TIME so runs are reproducible"""
    return lambda: RUN_TIME


@pytest.fixture
def staging() -> InMemoryStagingSource:
    """Staging area loaded with sample_staging_rows()"""
    return InMemoryStagingSource(sample_staging_rows())


@pytest.fixture
def cleansed() -> InMemoryCleansedStore:
    return InMemoryCleansedStore()


@pytest.fixture
def quarantine() -> InMemoryQuarantineSink:
    return InMemoryQuarantineSink()


@pytest.fixture
def controller(staging, cleansed, quarantine, fixed_clock) -> BatchRunController:
    """Controller over the in-memory stores with default options"""
    return BatchRunController(staging, cleansed, quarantine, config=PipelineConfig(), clock=fixed_clock)


# =======================
# SPARK FIXTURES
# =======================

@pytest.fixture(scope="session")
def spark_session():
    """
    Local Spark session for CSV reader tests

    Skips when no Java runtime is available.
    """
    if shutil.which("java") is None:
        pytest.skip("Java runtime not available for Spark")

    from pyspark.sql import SparkSession

    spark = (
        SparkSession.builder
        .appName("silver-gate-test")
        .master("local[1]")
        .config("spark.sql.shuffle.partitions", "1")
        .config("spark.ui.enabled", "false")
        .getOrCreate()
    )
    spark.sparkContext.setLogLevel("WARN")

    yield spark

    spark.stop()


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container():
    """
    Start PostgreSQL container for integration tests

    Skips when Docker is not reachable.
    """
    from testcontainers.postgres import PostgresContainer

    container = PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_pipeline",
        password="test_password",
        dbname="test_datawarehouse",
    )
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"Docker not available for PostgreSQL container: {e}")

    yield container

    container.stop()


@pytest.fixture
def db_pool(postgres_container) -> Generator:
    """
    Open connection pool on a freshly created bronze and silver schema

    Tables are dropped and recreated for every test.
    """
    from silver_gate.warehouse.connection import DatabaseConnectionPool, WarehouseSettings
    from silver_gate.warehouse.schema_mgmt import SchemaManager

    pool = DatabaseConnectionPool(WarehouseSettings(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_datawarehouse",
        user="test_pipeline",
        password="test_password",
    ))
    pool.open()

    manager = SchemaManager(pool)
    manager.create_bronze_schema(drop_existing=True)
    manager.create_silver_schema(drop_existing=True)

    yield pool

    pool.close()


def load_bronze(pool, rows: dict[Entity, list[dict]], schema: str = "bronze") -> None:
    """Insert staging rows into the bronze tables."""
    from psycopg import sql

    with pool.get_connection() as conn:
        with conn.cursor() as cur:
            for entity, entity_rows in rows.items():
                table = sql.Identifier(schema, entity.table_name)
                cur.execute(sql.SQL("TRUNCATE TABLE {}").format(table))
                for row in entity_rows:
                    columns = list(row)
                    cur.execute(
                        sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
                            table,
                            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
                            sql.SQL(", ").join(sql.Placeholder() * len(columns)),
                        ),
                        [row[c] for c in columns],
                    )
        conn.commit()


def write_csv_exports(base_dir: Path, rows: dict[Entity, list[dict]]) -> None:
    """Write staging rows the way the source systems export them."""
    for entity, entity_rows in rows.items():
        path = base_dir / CSV_FILES[entity]
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=RAW_COLUMNS[entity])
            writer.writeheader()
            for row in entity_rows:
                writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
