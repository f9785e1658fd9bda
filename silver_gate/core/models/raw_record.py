"""
RawRecord model representing one untyped row from the staging area.
"""

from typing import Any

from pydantic import BaseModel, field_validator

from .entity import Entity


class RawRecord(BaseModel):
    """
    One row of untyped text fields read from a bronze table.

    No uniqueness or non-null guarantee: duplicates, blanks and malformed
    values are expected. The payload is kept verbatim so it can be copied
    into quarantine unchanged.

    Attributes:
        entity: Source entity tag
        payload: Field name to raw text (None for SQL NULL)
    """

    entity: Entity
    payload: dict[str, str | None]

    @field_validator("payload", mode="before")
    @classmethod
    def stringify_values(cls, v: Any) -> Any:
        """Staging is text-only; anything else a driver hands back is rendered as text."""
        if isinstance(v, dict):
            return {
                str(key): (value if value is None or isinstance(value, str) else str(value))
                for key, value in v.items()
            }
        return v

    def get(self, field_name: str) -> str | None:
        """Raw value for a field, None when missing."""
        return self.payload.get(field_name)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "entity": "crm_cust_info",
                "payload": {
                    "cst_id": "11000",
                    "cst_key": " AW00011000",
                    "cst_firstname": "Jon ",
                    "cst_lastname": "Yang",
                    "cst_marital_status": "M",
                    "cst_gender": "M",
                    "cst_create_date": "2025-10-06",
                },
            }
        }
