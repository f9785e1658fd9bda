"""
QuarantineRecord model representing a rejected staging row.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class QuarantineRecord(BaseModel):
    """
    A staging row that failed a quality rule, kept for manual remediation.

    Attributes:
        source_entity: Qualified staging table the row came from
        rejected_field: Field that triggered the rejection
        reason: Rejection reason (e.g. "Missing Mandatory Key")
        raw_payload: Verbatim original row, field name to raw text
        captured_at: When the row was quarantined
    """

    source_entity: str = Field(..., min_length=1)
    rejected_field: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)
    raw_payload: dict[str, Any]
    captured_at: datetime = Field(default_factory=datetime.now)

    class Config:
        json_schema_extra = {
            "example": {
                "source_entity": "bronze.erp_loc_a101",
                "rejected_field": "cid",
                "reason": "Duplicate ID — Manual Investigation Required",
                "raw_payload": {"cid": "AW-00011", "cntry": "Australia"},
            }
        }
