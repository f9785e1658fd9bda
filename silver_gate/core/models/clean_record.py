"""
CleanRecord models: typed, normalized rows of the silver layer.

One variant per entity. Field names follow the silver table columns so a
record can be written with its own field order.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from .entity import Entity

# Width of the silver VARCHAR columns; longer values could not be written
VARCHAR_WIDTH = 50


class CleanRecord(BaseModel):
    """
    Base class for silver rows.

    Attributes:
        dwh_insertion_date: Lineage timestamp, stamped when the row is staged for write
    """

    ENTITY: ClassVar[Entity]
    KEY_FIELD: ClassVar[str]

    dwh_insertion_date: datetime | None = None

    @property
    def business_key(self) -> Any:
        """Natural identifier used for deduplication and cross-entity matching."""
        return getattr(self, self.KEY_FIELD)

    @classmethod
    def column_names(cls) -> list[str]:
        """Silver columns in write order, lineage column last."""
        names = [name for name in cls.model_fields if name != "dwh_insertion_date"]
        return names + ["dwh_insertion_date"]

    def as_row(self) -> tuple:
        """Values in column_names() order, ready for a parameterized INSERT."""
        return tuple(getattr(self, name) for name in self.column_names())


class Customer(CleanRecord):
    """CRM customer master row (silver.crm_cust_info)."""

    ENTITY: ClassVar[Entity] = Entity.CUSTOMER
    KEY_FIELD: ClassVar[str] = "cst_id"

    cst_id: int
    cst_key: str = Field(..., min_length=1, max_length=VARCHAR_WIDTH)
    cst_firstname: str | None = Field(default=None, max_length=VARCHAR_WIDTH)
    cst_lastname: str | None = Field(default=None, max_length=VARCHAR_WIDTH)
    cst_marital_status: str = Field(default="n/a", max_length=VARCHAR_WIDTH)
    cst_gender: str = Field(default="n/a", max_length=VARCHAR_WIDTH)
    cst_create_date: date | None = None


class Product(CleanRecord):
    """
    CRM product row (silver.crm_prd_info).

    prd_end_dt is derived from the next version's start date, never taken
    from the source.
    """

    ENTITY: ClassVar[Entity] = Entity.PRODUCT
    KEY_FIELD: ClassVar[str] = "prd_id"

    prd_id: int
    cat_id: str = Field(..., max_length=VARCHAR_WIDTH)
    prd_key: str = Field(..., max_length=VARCHAR_WIDTH)
    prd_nm: str | None = Field(default=None, max_length=2 * VARCHAR_WIDTH)
    prd_cost: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=18, decimal_places=2)
    prd_line: str = Field(default="n/a", max_length=VARCHAR_WIDTH)
    prd_start_dt: date | None = None
    prd_end_dt: date | None = None


class SalesLine(CleanRecord):
    """
    CRM sales order line (silver.crm_sales_details).

    There is no unique key: an order number spans several lines.
    Negative amounts are legitimate (returns).
    """

    ENTITY: ClassVar[Entity] = Entity.SALES_LINE
    KEY_FIELD: ClassVar[str] = "sls_ord_num"

    sls_ord_num: str = Field(..., min_length=1, max_length=VARCHAR_WIDTH)
    sls_prd_key: str = Field(..., min_length=1, max_length=VARCHAR_WIDTH)
    sls_cus_id: int
    sls_ord_dt: date | None = None
    sls_ship_dt: date | None = None
    sls_due_dt: date | None = None
    sls_sales: Decimal | None = Field(default=None, max_digits=18, decimal_places=2)
    sls_quantity: int | None = None
    sls_price: Decimal | None = Field(default=None, max_digits=18, decimal_places=2)


class ErpCustomerDemo(CleanRecord):
    """ERP customer demographics (silver.erp_cust_az12)."""

    ENTITY: ClassVar[Entity] = Entity.ERP_CUSTOMER_DEMO
    KEY_FIELD: ClassVar[str] = "cid"

    cid: str = Field(..., min_length=1, max_length=VARCHAR_WIDTH)
    bdate: date | None = None
    gen: str = Field(default="n/a", max_length=VARCHAR_WIDTH)


class ErpLocation(CleanRecord):
    """ERP customer location (silver.erp_loc_a101)."""

    ENTITY: ClassVar[Entity] = Entity.ERP_LOCATION
    KEY_FIELD: ClassVar[str] = "cid"

    cid: str = Field(..., min_length=1, max_length=VARCHAR_WIDTH)
    cntry: str = Field(default="n/a", max_length=VARCHAR_WIDTH)


class ErpCategory(CleanRecord):
    """ERP product category (silver.erp_px_cat_g1v2)."""

    ENTITY: ClassVar[Entity] = Entity.ERP_CATEGORY
    KEY_FIELD: ClassVar[str] = "id"

    id: str = Field(..., min_length=1, max_length=VARCHAR_WIDTH)
    cat: str | None = Field(default=None, max_length=VARCHAR_WIDTH)
    subcat: str | None = Field(default=None, max_length=VARCHAR_WIDTH)
    maintenance: str | None = Field(default=None, max_length=VARCHAR_WIDTH)


CLEAN_MODELS: dict[Entity, type[CleanRecord]] = {
    model.ENTITY: model
    for model in (Customer, Product, SalesLine, ErpCustomerDemo, ErpLocation, ErpCategory)
}
