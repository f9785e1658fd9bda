"""
Command-line interface for the silver quality gate.

Usage:
    silver-gate run [--csv-dir <dir>] [--dry-run] [--config <yaml>] [options]
    silver-gate init-schema [--with-bronze] [--drop-existing]
    silver-gate quarantine-summary
"""

import argparse
import sys

from silver_gate.batch import BatchRunController
from silver_gate.core.models import BatchRunMetrics
from silver_gate.core.rules import load_pipeline_config
from silver_gate.observability.logger import configure_logging, get_logger
from silver_gate.observability.metrics import start_metrics_server
from silver_gate.warehouse.connection import DatabaseConnectionPool
from silver_gate.warehouse.postgres import (
    PostgresCleansedStore,
    PostgresQuarantineSink,
    PostgresStagingSource,
)
from silver_gate.warehouse.schema_mgmt import SchemaManager
from silver_gate.warehouse.store import InMemoryCleansedStore, InMemoryQuarantineSink

logger = get_logger(__name__)


def format_report(metrics: BatchRunMetrics, output_format: str = "text") -> str:
    """
    Render run metrics for the console.

    Args:
        metrics: Completed or failed run metrics
        output_format: "json" or "text"
    """
    if output_format == "json":
        return metrics.model_dump_json(indent=2)

    lines = [
        "=" * 78,
        f"{'ENTITY':<20} {'STATUS':<11} {'SOURCE':>8} {'ACCEPTED':>9} {'REJECTED':>9} {'SECONDS':>9}",
        "-" * 78,
    ]
    for m in metrics.entities:
        lines.append(
            f"{m.entity.value:<20} {m.status.value:<11} {m.source_count:>8} "
            f"{m.accepted_count:>9} {m.rejected_count:>9} {m.elapsed_seconds:>9.3f}"
        )
        for reason, count in m.rejected_by_reason.items():
            lines.append(f"    {reason}: {count}")
    lines.append("-" * 78)
    lines.append(
        f"{'TOTAL':<20} {metrics.state.value.upper():<11} {metrics.total_source:>8} "
        f"{metrics.total_accepted:>9} {metrics.total_rejected:>9} {metrics.duration_seconds:>9.3f}"
    )
    if metrics.error:
        failed = metrics.failed_entity.value if metrics.failed_entity else "run"
        lines.append(f"FAILED at {failed}: {metrics.error}")
    lines.append("=" * 78)
    return "\n".join(lines)


def _create_pool(args) -> DatabaseConnectionPool:
    pool = DatabaseConnectionPool.from_env(
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password,
    )
    pool.open()
    return pool


def run_command(args) -> int:
    """
    Execute one batch run.

    Returns:
        Process exit code: 0 when the run completed, 1 when it failed
    """
    config = load_pipeline_config(args.config)
    if args.on_unparsable:
        config = config.model_copy(update={"on_unparsable": args.on_unparsable})

    if args.metrics_port:
        start_metrics_server(args.metrics_port)

    spark = None
    pool = None
    try:
        if args.csv_dir:
            # Lazy import: Spark is only needed when reading CSV exports
            from pyspark.sql import SparkSession

            from silver_gate.batch.readers import SparkCsvStagingSource, create_spark_session

            # An embedding application keeps ownership of its own session
            active = SparkSession.getActiveSession()
            if active is None:
                spark = create_spark_session()
            staging = SparkCsvStagingSource(active or spark, args.csv_dir)
        else:
            pool = _create_pool(args)
            staging = PostgresStagingSource(pool, schema=config.bronze_schema)

        if args.dry_run:
            logger.info("DRY RUN MODE: results are kept in memory, nothing is published")
            cleansed = InMemoryCleansedStore()
            quarantine = InMemoryQuarantineSink()
        else:
            pool = pool or _create_pool(args)
            cleansed = PostgresCleansedStore(pool, schema=config.silver_schema)
            quarantine = PostgresQuarantineSink(pool, schema=config.silver_schema)

        controller = BatchRunController(staging, cleansed, quarantine, config=config)
        metrics = controller.run_batch()
    finally:
        if pool is not None:
            pool.close()
        if spark is not None:
            spark.stop()

    print(format_report(metrics, args.format))
    return 0 if metrics.passed else 1


def init_schema_command(args) -> int:
    """Create the silver tables (and optionally the bronze tables)."""
    config = load_pipeline_config(args.config)
    pool = _create_pool(args)
    try:
        manager = SchemaManager(pool, config.bronze_schema, config.silver_schema)
        created = []
        if args.with_bronze:
            created.extend(manager.create_bronze_schema(drop_existing=args.drop_existing))
        created.extend(manager.create_silver_schema(drop_existing=args.drop_existing))
    finally:
        pool.close()

    for table in created:
        print(table)
    return 0


def quarantine_summary_command(args) -> int:
    """Print quarantined row counts per source table and reason."""
    config = load_pipeline_config(args.config)
    pool = _create_pool(args)
    try:
        summary = PostgresQuarantineSink(pool, schema=config.silver_schema).summarize()
    finally:
        pool.close()

    for (source_table, reason), count in sorted(summary.items()):
        print(f"{source_table:<28} {reason:<50} {count:>8}")
    return 0


def _add_db_arguments(parser: argparse.ArgumentParser) -> None:
    """Connection flags; unset flags fall back to the DB_* environment variables."""
    parser.add_argument("--db-host", default=None, help="Database host (env DB_HOST)")
    parser.add_argument("--db-port", type=int, default=None, help="Database port (env DB_PORT)")
    parser.add_argument("--db-name", default=None, help="Database name (env DB_NAME)")
    parser.add_argument("--db-user", default=None, help="Database user (env DB_USER)")
    parser.add_argument("--db-password", default=None, help="Database password (env DB_PASSWORD)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="silver-gate",
        description="Bronze-to-silver validation, deduplication and quarantine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full run against the warehouse
  silver-gate run --config config/pipeline.yaml

  # Validate CSV exports without touching the database
  silver-gate run --csv-dir datasets --dry-run --format json

  # Create tables
  silver-gate init-schema --with-bronze
        """
    )
    parser.add_argument("--log-level", default=None, help="Log level (env LOG_LEVEL, default INFO)")
    parser.add_argument("--log-format", default="json", choices=["json", "text"], help="Log format")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the quality gate over every entity")
    run_parser.add_argument("--config", default=None, help="Path to pipeline YAML file")
    run_parser.add_argument("--csv-dir", default=None, help="Read staging rows from CSV exports under this directory")
    run_parser.add_argument("--dry-run", action="store_true", help="Keep results in memory instead of publishing")
    run_parser.add_argument(
        "--on-unparsable",
        choices=["fail", "quarantine"],
        default=None,
        help="Override the unparsable-value policy from the config",
    )
    run_parser.add_argument("--format", default="text", choices=["text", "json"], help="Report format")
    run_parser.add_argument("--metrics-port", type=int, default=None, help="Expose Prometheus metrics on this port")
    _add_db_arguments(run_parser)

    schema_parser = subparsers.add_parser("init-schema", help="Create silver (and bronze) tables")
    schema_parser.add_argument("--config", default=None, help="Path to pipeline YAML file")
    schema_parser.add_argument("--with-bronze", action="store_true", help="Also create bronze staging tables")
    schema_parser.add_argument("--drop-existing", action="store_true", help="Drop and recreate tables")
    _add_db_arguments(schema_parser)

    summary_parser = subparsers.add_parser("quarantine-summary", help="Count quarantined rows by table and reason")
    summary_parser.add_argument("--config", default=None, help="Path to pipeline YAML file")
    _add_db_arguments(summary_parser)

    return parser


COMMANDS = {
    "run": run_command,
    "init-schema": init_schema_command,
    "quarantine-summary": quarantine_summary_command,
}


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(level=args.log_level, format_type=args.log_format)
    sys.exit(COMMANDS[args.command](args))


if __name__ == "__main__":
    main()
