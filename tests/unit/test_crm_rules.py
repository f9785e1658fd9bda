"""
Unit tests for the CRM rule sets: customers, products and sales lines.
"""

from datetime import date
from decimal import Decimal

import pytest

from silver_gate.core.models import Entity, RawRecord
from silver_gate.core.rules import (
    INVALID_DATE_SEQUENCE,
    MISSING_MANDATORY_KEY,
    NEGATIVE_AMOUNT,
    CustomerRules,
    ProductRules,
    SalesLineRules,
    UnparsableValueError,
)
from silver_gate.core.rules.crm_rules import reconcile_price, reconcile_sales


def customer(**overrides) -> RawRecord:
    payload = {
        "cst_id": "11000", "cst_key": "AW00011000", "cst_firstname": " Jon ", "cst_lastname": "Yang ",
        "cst_marital_status": "M", "cst_gender": "F", "cst_create_date": "2025-10-06",
    }
    payload.update(overrides)
    return RawRecord(entity=Entity.CUSTOMER, payload=payload)


def product(**overrides) -> RawRecord:
    payload = {
        "prd_id": "210", "prd_key": "CO-RF-FR-R92B-58", "prd_nm": "HL Road Frame - Black- 58",
        "prd_cost": "12", "prd_line": "R", "prd_start_dt": "2003-07-01", "prd_end_dt": "2002-01-01",
    }
    payload.update(overrides)
    return RawRecord(entity=Entity.PRODUCT, payload=payload)


def sales_line(**overrides) -> RawRecord:
    payload = {
        "sls_ord_num": "SO43697", "sls_prd_key": "BK-R93R-62", "sls_cus_id": "21768",
        "sls_ord_dt": "20101229", "sls_ship_dt": "20110105", "sls_due_dt": "20110110",
        "sls_sales": "3578", "sls_quantity": "1", "sls_price": "3578",
    }
    payload.update(overrides)
    return RawRecord(entity=Entity.SALES_LINE, payload=payload)


@pytest.mark.unit
class TestCustomerRules:
    def test_normalizes_fields(self):
        outcome = CustomerRules().normalize(customer())

        assert outcome.accepted
        record = outcome.candidate
        assert record.cst_id == 11000
        assert record.cst_firstname == "Jon"
        assert record.cst_lastname == "Yang"
        assert record.cst_marital_status == "Married"
        assert record.cst_gender == "Female"
        assert record.cst_create_date == date(2025, 10, 6)

    def test_unknown_codes_become_not_available(self):
        record = CustomerRules().normalize(customer(cst_marital_status="D", cst_gender=None)).candidate
        assert record.cst_marital_status == "n/a"
        assert record.cst_gender == "n/a"

    @pytest.mark.parametrize("field_name", ["cst_id", "cst_key"])
    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_missing_key_is_rejected(self, field_name, value):
        outcome = CustomerRules().normalize(customer(**{field_name: value}))

        assert not outcome.accepted
        assert outcome.rejection.field_name == field_name
        assert outcome.rejection.reason == MISSING_MANDATORY_KEY

    def test_non_numeric_id_raises(self):
        with pytest.raises(UnparsableValueError):
            CustomerRules().normalize(customer(cst_id="AW11000"))


@pytest.mark.unit
class TestProductRules:
    def test_key_split(self):
        record = ProductRules().normalize(product()).candidate

        assert record.cat_id == "CO_RF"
        assert record.prd_key == "FR-R92B-58"
        assert record.prd_line == "Road"
        assert record.prd_cost == Decimal("12.00")

    def test_source_end_date_is_discarded(self):
        assert ProductRules().normalize(product()).candidate.prd_end_dt is None

    def test_null_cost_defaults_to_zero(self):
        assert ProductRules().normalize(product(prd_cost=None)).candidate.prd_cost == Decimal("0.00")

    def test_negative_cost_is_rejected(self):
        outcome = ProductRules().normalize(product(prd_cost="-3"))

        assert outcome.rejection.field_name == "prd_cost"
        assert outcome.rejection.reason == NEGATIVE_AMOUNT

    def test_garbage_cost_raises(self):
        with pytest.raises(UnparsableValueError):
            ProductRules().normalize(product(prd_cost="twelve"))

    def test_timeline_ends_day_before_next_version(self):
        rules = ProductRules()
        versions = [
            rules.normalize(product(prd_id="212", prd_start_dt="2012-07-01")).candidate,
            rules.normalize(product(prd_id="211", prd_start_dt="2011-07-01")).candidate,
            rules.normalize(product(prd_id="213", prd_start_dt="2013-07-01")).candidate,
        ]

        result = rules.post_process(versions)

        assert [p.prd_id for p in result] == [212, 211, 213]
        assert result[0].prd_end_dt == date(2013, 6, 30)
        assert result[1].prd_end_dt == date(2012, 6, 30)
        assert result[2].prd_end_dt is None

    def test_timeline_is_per_product_key(self):
        rules = ProductRules()
        versions = [
            rules.normalize(product(prd_id="1", prd_key="CO-RF-FR-R92B-58", prd_start_dt="2011-07-01")).candidate,
            rules.normalize(product(prd_id="2", prd_key="CO-RF-FR-R92R-58", prd_start_dt="2012-07-01")).candidate,
        ]

        assert [p.prd_end_dt for p in rules.post_process(versions)] == [None, None]

    def test_undated_versions_sort_last(self):
        rules = ProductRules()
        versions = [
            rules.normalize(product(prd_id="1", prd_start_dt=None)).candidate,
            rules.normalize(product(prd_id="2", prd_start_dt="2011-07-01")).candidate,
        ]

        result = rules.post_process(versions)

        assert result[0].prd_end_dt is None
        assert result[1].prd_end_dt is None


@pytest.mark.unit
class TestSalesLineRules:
    def test_sales_recomputed_when_missing(self):
        record = SalesLineRules().normalize(sales_line(sls_quantity="2", sls_price="10", sls_sales=None)).candidate

        assert record.sls_sales == Decimal("20.00")
        assert record.sls_price == Decimal("10.00")

    def test_price_derived_when_zero(self):
        record = SalesLineRules().normalize(sales_line(sls_quantity="5", sls_price="0", sls_sales="100")).candidate

        assert record.sls_price == Decimal("20.00")
        # quantity * source price disagrees with source sales, so sales is recomputed too
        assert record.sls_sales == Decimal("0.00")

    def test_zero_quantity_does_not_divide(self):
        record = SalesLineRules().normalize(sales_line(sls_quantity="0", sls_price="0", sls_sales=None)).candidate

        assert record.sls_price is None
        assert record.sls_sales == Decimal("0.00")

    def test_consistent_amounts_pass_through(self):
        record = SalesLineRules().normalize(sales_line()).candidate

        assert record.sls_sales == Decimal("3578.00")
        assert record.sls_price == Decimal("3578.00")
        assert record.sls_cus_id == 21768

    def test_inconsistent_sales_recomputed(self):
        record = SalesLineRules().normalize(sales_line(sls_quantity="2", sls_price="10", sls_sales="25")).candidate
        assert record.sls_sales == Decimal("20.00")

    def test_compact_dates(self):
        record = SalesLineRules().normalize(sales_line(sls_ord_dt="0", sls_ship_dt="5489")).candidate

        assert record.sls_ord_dt is None
        assert record.sls_ship_dt is None
        assert record.sls_due_dt == date(2011, 1, 10)

    def test_order_after_ship_is_rejected(self):
        outcome = SalesLineRules().normalize(sales_line(sls_ord_dt="20110120"))

        assert outcome.rejection.field_name == "sls_ord_dt"
        assert outcome.rejection.reason == INVALID_DATE_SEQUENCE

    def test_date_sequence_check_can_be_disabled(self):
        outcome = SalesLineRules(enforce_date_sequence=False).normalize(sales_line(sls_ord_dt="20110120"))
        assert outcome.accepted

    @pytest.mark.parametrize("field_name", ["sls_ord_num", "sls_prd_key", "sls_cus_id"])
    def test_missing_key_is_rejected(self, field_name):
        outcome = SalesLineRules().normalize(sales_line(**{field_name: None}))

        assert outcome.rejection.field_name == field_name
        assert outcome.rejection.reason == MISSING_MANDATORY_KEY


@pytest.mark.unit
class TestReconciliation:
    def test_sales_without_price_is_kept(self):
        assert reconcile_sales(Decimal("50.00"), 2, None) == Decimal("50.00")

    def test_nothing_to_compute(self):
        assert reconcile_sales(None, None, Decimal("10.00")) is None

    def test_price_kept_when_nonzero(self):
        assert reconcile_price(Decimal("7.00"), Decimal("100.00"), 5) == Decimal("7.00")

    def test_price_without_quantity(self):
        assert reconcile_price(None, Decimal("100.00"), None) is None

    def test_price_rounds_to_cents(self):
        assert reconcile_price(None, Decimal("10.00"), 3) == Decimal("3.33")
