"""
Deduplication resolvers and the per-entity conflict policy table.
"""

from silver_gate.core.models import Entity

from .resolver import (
    BaseResolver,
    Candidate,
    DedupOutcome,
    DuplicateRejection,
    KeepAll,
    LatestByDate,
    RejectAllOnConflict,
)

# Customers keep the latest version; ambiguous product and ERP ids are
# unresolvable. Sales lines have no unique key.
DEFAULT_RESOLVERS: dict[Entity, BaseResolver] = {
    Entity.CUSTOMER: LatestByDate("cst_create_date"),
    Entity.PRODUCT: RejectAllOnConflict(),
    Entity.SALES_LINE: KeepAll(),
    Entity.ERP_CUSTOMER_DEMO: RejectAllOnConflict(),
    Entity.ERP_LOCATION: RejectAllOnConflict(),
    Entity.ERP_CATEGORY: RejectAllOnConflict(),
}


__all__ = [
    "BaseResolver",
    "Candidate",
    "DedupOutcome",
    "DuplicateRejection",
    "LatestByDate",
    "RejectAllOnConflict",
    "KeepAll",
    "DEFAULT_RESOLVERS",
]
