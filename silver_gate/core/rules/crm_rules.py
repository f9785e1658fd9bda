"""
CRM rule sets: customers, products and sales lines.
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal

from silver_gate.core.models import Customer, Entity, Product, RawRecord, SalesLine

from .base_rule import INVALID_DATE_SEQUENCE, NEGATIVE_AMOUNT, BaseRuleSet, RuleOutcome
from .coercion import (
    clean_text,
    map_code,
    quantize_amount,
    to_compact_date,
    to_date,
    to_decimal,
    to_int,
)

MARITAL_STATUS_CODES = {"S": "Single", "M": "Married"}
GENDER_CODES = {"M": "Male", "F": "Female"}
PRODUCT_LINE_CODES = {
    "M": "Mountain",
    "R": "Road",
    "S": "Other sales",
    "T": "Touring",
}


class CustomerRules(BaseRuleSet):
    """
    Cleans CRM customers.

    Both the numeric id and the customer key are mandatory. Duplicates are
    resolved downstream by latest creation date.
    """

    entity = Entity.CUSTOMER
    mandatory_fields = ("cst_id", "cst_key")

    def normalize(self, raw: RawRecord) -> RuleOutcome:
        missing = self.missing_key(raw)
        if missing:
            return RuleOutcome(rejection=missing)

        return RuleOutcome.accept(Customer(
            cst_id=to_int("cst_id", raw.get("cst_id")),
            cst_key=clean_text(raw.get("cst_key")),
            cst_firstname=clean_text(raw.get("cst_firstname")),
            cst_lastname=clean_text(raw.get("cst_lastname")),
            cst_marital_status=map_code(raw.get("cst_marital_status"), MARITAL_STATUS_CODES),
            cst_gender=map_code(raw.get("cst_gender"), GENDER_CODES),
            cst_create_date=to_date("cst_create_date", raw.get("cst_create_date")),
        ))


class ProductRules(BaseRuleSet):
    """
    Cleans CRM products.

    The source key "CO-RF-FR-R92B-58" splits into a category id ("CO_RF",
    aligned with the ERP category table) and a product key ("FR-R92B-58",
    aligned with sales lines). The source end date is discarded and rebuilt
    from the version timeline in post_process().
    """

    entity = Entity.PRODUCT
    mandatory_fields = ("prd_id", "prd_key")

    def normalize(self, raw: RawRecord) -> RuleOutcome:
        missing = self.missing_key(raw)
        if missing:
            return RuleOutcome(rejection=missing)

        source_key = clean_text(raw.get("prd_key"))
        cost = to_decimal("prd_cost", raw.get("prd_cost"))
        if cost is None:
            cost = Decimal("0.00")
        if cost < 0:
            return RuleOutcome.reject("prd_cost", NEGATIVE_AMOUNT)

        return RuleOutcome.accept(Product(
            prd_id=to_int("prd_id", raw.get("prd_id")),
            cat_id=source_key[:5].replace("-", "_"),
            prd_key=source_key[6:],
            prd_nm=clean_text(raw.get("prd_nm")),
            prd_cost=cost,
            prd_line=map_code(raw.get("prd_line"), PRODUCT_LINE_CODES),
            prd_start_dt=to_date("prd_start_dt", raw.get("prd_start_dt")),
            prd_end_dt=None,
        ))

    def post_process(self, accepted: list[Product]) -> list[Product]:
        """
        Rebuild a non-overlapping validity timeline per product key.

        Each version ends the day before the next version (by start date)
        starts; the last version stays open-ended. Undated versions sort last.
        """
        versions = defaultdict(list)
        for position, product in enumerate(accepted):
            versions[(product.cat_id, product.prd_key)].append(position)

        end_dates = {}
        for positions in versions.values():
            ordered = sorted(
                positions,
                key=lambda p: (accepted[p].prd_start_dt is None, accepted[p].prd_start_dt or date.min),
            )
            for current, following in zip(ordered, ordered[1:] + [None]):
                next_start = accepted[following].prd_start_dt if following is not None else None
                end_dates[current] = next_start - timedelta(days=1) if next_start else None

        return [
            product.model_copy(update={"prd_end_dt": end_dates[position]})
            for position, product in enumerate(accepted)
        ]


class SalesLineRules(BaseRuleSet):
    """
    Cleans CRM sales lines.

    Financial reconciliation, both computed from the source values:
    - sales is recomputed as quantity * price when missing or inconsistent
    - price is derived as sales / quantity when missing or zero (None when
      quantity is zero)

    Options:
        enforce_date_sequence: Reject lines ordered after they shipped or fell due
    """

    entity = Entity.SALES_LINE
    mandatory_fields = ("sls_ord_num", "sls_prd_key", "sls_cus_id")

    def normalize(self, raw: RawRecord) -> RuleOutcome:
        missing = self.missing_key(raw)
        if missing:
            return RuleOutcome(rejection=missing)

        order_date = to_compact_date("sls_ord_dt", raw.get("sls_ord_dt"))
        ship_date = to_compact_date("sls_ship_dt", raw.get("sls_ship_dt"))
        due_date = to_compact_date("sls_due_dt", raw.get("sls_due_dt"))

        if self.options.get("enforce_date_sequence", True) and order_date is not None:
            if (ship_date is not None and order_date > ship_date) or (
                due_date is not None and order_date > due_date
            ):
                return RuleOutcome.reject("sls_ord_dt", INVALID_DATE_SEQUENCE)

        quantity = to_int("sls_quantity", raw.get("sls_quantity"))
        price = to_decimal("sls_price", raw.get("sls_price"))
        sales = to_decimal("sls_sales", raw.get("sls_sales"))

        return RuleOutcome.accept(SalesLine(
            sls_ord_num=clean_text(raw.get("sls_ord_num")),
            sls_prd_key=clean_text(raw.get("sls_prd_key")),
            sls_cus_id=to_int("sls_cus_id", raw.get("sls_cus_id")),
            sls_ord_dt=order_date,
            sls_ship_dt=ship_date,
            sls_due_dt=due_date,
            sls_sales=reconcile_sales(sales, quantity, price),
            sls_quantity=quantity,
            sls_price=reconcile_price(price, sales, quantity),
        ))


def reconcile_sales(sales: Decimal | None, quantity: int | None, price: Decimal | None) -> Decimal | None:
    """Replace a missing or inconsistent sales amount with quantity * price."""
    expected = None
    if quantity is not None and price is not None:
        expected = quantize_amount("sls_sales", quantity * price)
    if sales is None:
        return expected
    if expected is not None and sales != expected:
        return expected
    return sales


def reconcile_price(price: Decimal | None, sales: Decimal | None, quantity: int | None) -> Decimal | None:
    """Derive a missing or zero price from sales / quantity."""
    if price is not None and price != 0:
        return price
    if sales is None or not quantity:
        return None
    return quantize_amount("sls_price", sales / quantity)
