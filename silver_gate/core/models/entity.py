"""
Entity catalogue: the six source tables handled by the quality gate.
"""

from enum import Enum


class Entity(str, Enum):
    """
    Source entities, valued by their table name (identical in bronze and silver).
    """

    CUSTOMER = "crm_cust_info"
    PRODUCT = "crm_prd_info"
    SALES_LINE = "crm_sales_details"
    ERP_CUSTOMER_DEMO = "erp_cust_az12"
    ERP_LOCATION = "erp_loc_a101"
    ERP_CATEGORY = "erp_px_cat_g1v2"

    @property
    def table_name(self) -> str:
        return self.value

    def source_table(self, schema: str = "bronze") -> str:
        """Qualified staging table name, also used as the quarantine source tag."""
        return f"{schema}.{self.value}"

    def target_table(self, schema: str = "silver") -> str:
        """Qualified cleansed table name."""
        return f"{schema}.{self.value}"


# Fixed processing order. No entity reads another's cleansed output.
ENTITY_ORDER: tuple[Entity, ...] = (
    Entity.CUSTOMER,
    Entity.PRODUCT,
    Entity.SALES_LINE,
    Entity.ERP_CUSTOMER_DEMO,
    Entity.ERP_LOCATION,
    Entity.ERP_CATEGORY,
)


# Raw staging columns per entity, in bronze DDL order.
RAW_COLUMNS: dict[Entity, tuple[str, ...]] = {
    Entity.CUSTOMER: (
        "cst_id", "cst_key", "cst_firstname", "cst_lastname",
        "cst_marital_status", "cst_gender", "cst_create_date",
    ),
    Entity.PRODUCT: (
        "prd_id", "prd_key", "prd_nm", "prd_cost",
        "prd_line", "prd_start_dt", "prd_end_dt",
    ),
    Entity.SALES_LINE: (
        "sls_ord_num", "sls_prd_key", "sls_cus_id", "sls_ord_dt",
        "sls_ship_dt", "sls_due_dt", "sls_sales", "sls_quantity", "sls_price",
    ),
    Entity.ERP_CUSTOMER_DEMO: ("cid", "bdate", "gen"),
    Entity.ERP_LOCATION: ("cid", "cntry"),
    Entity.ERP_CATEGORY: ("id", "cat", "subcat", "maintenance"),
}
