"""Staging readers."""

from .csv_reader import CSV_FILES, SparkCsvStagingSource, create_spark_session, staging_schema

__all__ = ["CSV_FILES", "SparkCsvStagingSource", "create_spark_session", "staging_schema"]
