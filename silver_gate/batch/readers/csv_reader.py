"""
CSV staging source using Spark.

Reads the bronze CSV exports directly, without a staging database. Every
column is read as a string and empty fields arrive as null, matching what
the bulk loader puts into the bronze tables.
"""

from pathlib import Path

from pyspark.sql import SparkSession
from pyspark.sql.types import StringType, StructField, StructType

from silver_gate.core.models import RAW_COLUMNS, Entity, RawRecord
from silver_gate.observability.logger import get_logger
from silver_gate.warehouse.store import StagingSource

logger = get_logger(__name__)

# Source file per entity, relative to the dataset root
CSV_FILES: dict[Entity, str] = {
    Entity.CUSTOMER: "source_crm/cust_info.csv",
    Entity.PRODUCT: "source_crm/prd_info.csv",
    Entity.SALES_LINE: "source_crm/sales_details.csv",
    Entity.ERP_CUSTOMER_DEMO: "source_erp/cust_az12.csv",
    Entity.ERP_LOCATION: "source_erp/loc_a101.csv",
    Entity.ERP_CATEGORY: "source_erp/px_cat_g1v2.csv",
}


def staging_schema(entity: Entity) -> StructType:
    """All-string schema in bronze column order."""
    return StructType([StructField(column, StringType(), True) for column in RAW_COLUMNS[entity]])


class SparkCsvStagingSource(StagingSource):
    """
    Reads staging rows from CSV files with Spark.

    Args:
        spark: Active Spark session
        base_dir: Dataset root containing source_crm/ and source_erp/
        files: Override of the entity-to-file mapping
    """

    def __init__(self, spark: SparkSession, base_dir: str | Path, files: dict[Entity, str] | None = None):
        self.spark = spark
        self.base_dir = Path(base_dir)
        self.files = {**CSV_FILES, **(files or {})}

    def path_for(self, entity: Entity) -> Path:
        return self.base_dir / self.files[entity]

    def read(self, entity: Entity) -> list[RawRecord]:
        """
        Read one entity's CSV file.

        Raises:
            FileNotFoundError: If the file is missing
        """
        path = self.path_for(entity)
        if not path.exists():
            raise FileNotFoundError(f"Staging file not found for {entity.value}: {path}")

        df = self.spark.read \
            .schema(staging_schema(entity)) \
            .option("header", "true") \
            .option("delimiter", ",") \
            .option("mode", "PERMISSIVE") \
            .option("ignoreLeadingWhiteSpace", "false") \
            .option("ignoreTrailingWhiteSpace", "false") \
            .csv(str(path))

        rows = df.collect()
        logger.debug(
            "Read staging file",
            extra={"entity": entity.value, "path": str(path), "rows": len(rows)}
        )
        return [RawRecord(entity=entity, payload=row.asDict()) for row in rows]


def create_spark_session(app_name: str = "silver-gate") -> SparkSession:
    """Local Spark session for CSV staging reads."""
    return SparkSession.builder \
        .appName(app_name) \
        .master("local[1]") \
        .config("spark.ui.enabled", "false") \
        .config("spark.sql.shuffle.partitions", "1") \
        .getOrCreate()
