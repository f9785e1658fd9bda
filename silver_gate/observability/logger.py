"""
Structured logging for silver-gate runs.

Records are emitted as JSON (python-json-logger) or plain text on stderr,
so stdout stays free for the run report. Fields passed through ``extra``
(entity, counts, reasons) become top-level JSON keys.
"""
import logging
import os
import sys
import time

from pythonjsonlogger import jsonlogger

DEFAULT_LOGGER_NAME = "silver-gate"
PACKAGE_PREFIX = "silver_gate"

JSON_FORMAT = "%(timestamp)s %(level)s %(logger)s %(function)s %(message)s"
TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(funcName)s %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Adds timestamp, level, logger and function fields to every record."""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("timestamp"):
            log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["function"] = record.funcName


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def _build_formatter(format_type: str) -> logging.Formatter:
    if format_type == "json":
        return CustomJsonFormatter(fmt=JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    Attach a single stderr handler to a logger.

    Args:
        name: Logger name
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: LOG_LEVEL, then INFO)
        format_type: "json" or "text" (default: LOG_FORMAT, then json)

    Returns:
        Configured logger
    """
    log_level = _resolve_level(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(_build_formatter(format_type or os.getenv("LOG_FORMAT", "json")))

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Return a logger, setting it up from the environment on first use."""
    logger = logging.getLogger(name)
    return logger if logger.handlers else setup_logger(name)


def configure_logging(level: str | None = None, format_type: str = "json", prefix: str = PACKAGE_PREFIX) -> None:
    """
    Re-apply level and format to the default logger and every package logger.

    Module loggers are created at import time from LOG_LEVEL, before the CLI
    has parsed its flags.
    """
    names = [
        name for name in logging.root.manager.loggerDict
        if name == prefix or name.startswith(f"{prefix}.")
    ]
    for name in [DEFAULT_LOGGER_NAME, *names]:
        setup_logger(name, level=level, format_type=format_type)


class log_operation:
    """
    Logs the start, end and duration of a block.

    Failures are logged with their traceback and re-raised.

    Usage:
        with log_operation("Loading crm_cust_info", logger=logger, entity="crm_cust_info") as op:
            ...
        op.elapsed_seconds
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.start_time: float | None = None
        self.end_time: float | None = None

    @property
    def elapsed_seconds(self) -> float:
        """Seconds since entry; frozen once the block exits."""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return end - self.start_time

    def _fields(self, **more) -> dict:
        return {"operation": self.operation_name, **more, **self.extra_fields}

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.end_time = None
        self.logger.info(f"Starting: {self.operation_name}", extra=self._fields())
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        duration = round(self.elapsed_seconds, 3)

        if exc_type is None:
            self.logger.info(
                f"Completed: {self.operation_name}",
                extra=self._fields(duration_seconds=duration, status="success"),
            )
        else:
            self.logger.error(
                f"Failed: {self.operation_name}",
                extra=self._fields(
                    duration_seconds=duration,
                    status="error",
                    error_type=exc_type.__name__,
                    error_message=str(exc_val),
                ),
                exc_info=(exc_type, exc_val, exc_tb),
            )
        return False
