"""
Core data models for the silver quality gate.

All models use Pydantic for runtime validation and type safety.
"""

from .batch_metrics import BatchRunMetrics, EntityMetrics, EntityStatus, RunState
from .clean_record import (
    CLEAN_MODELS,
    CleanRecord,
    Customer,
    ErpCategory,
    ErpCustomerDemo,
    ErpLocation,
    Product,
    SalesLine,
)
from .entity import ENTITY_ORDER, RAW_COLUMNS, Entity
from .quarantine_record import QuarantineRecord
from .raw_record import RawRecord

__all__ = [
    "Entity",
    "ENTITY_ORDER",
    "RAW_COLUMNS",
    "RawRecord",
    "CleanRecord",
    "CLEAN_MODELS",
    "Customer",
    "Product",
    "SalesLine",
    "ErpCustomerDemo",
    "ErpLocation",
    "ErpCategory",
    "QuarantineRecord",
    "EntityMetrics",
    "EntityStatus",
    "BatchRunMetrics",
    "RunState",
]
