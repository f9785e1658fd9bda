"""
Unit tests for Pydantic data models.

Covers record models, quarantine records and the run metrics invariants.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from silver_gate.core.models import (
    CLEAN_MODELS,
    ENTITY_ORDER,
    RAW_COLUMNS,
    BatchRunMetrics,
    Customer,
    Entity,
    EntityMetrics,
    EntityStatus,
    ErpLocation,
    Product,
    QuarantineRecord,
    RawRecord,
    RunState,
)


@pytest.mark.unit
class TestEntity:
    def test_table_names(self):
        assert Entity.CUSTOMER.source_table() == "bronze.crm_cust_info"
        assert Entity.ERP_LOCATION.target_table("silver_v2") == "silver_v2.erp_loc_a101"

    def test_every_entity_is_catalogued(self):
        assert set(ENTITY_ORDER) == set(Entity)
        assert set(RAW_COLUMNS) == set(Entity)
        assert set(CLEAN_MODELS) == set(Entity)


@pytest.mark.unit
class TestRawRecord:
    def test_non_text_values_are_stringified(self):
        raw = RawRecord(entity=Entity.CUSTOMER, payload={"cst_id": 11000, "cst_key": None})

        assert raw.get("cst_id") == "11000"
        assert raw.get("cst_key") is None
        assert raw.get("not_a_column") is None

    def test_raw_record_is_frozen(self):
        raw = RawRecord(entity=Entity.CUSTOMER, payload={})
        with pytest.raises(ValidationError):
            raw.entity = Entity.PRODUCT


@pytest.mark.unit
class TestCleanRecords:
    def test_lineage_column_is_written_last(self):
        assert Customer.column_names()[0] == "cst_id"
        assert Customer.column_names()[-1] == "dwh_insertion_date"
        assert ErpLocation.column_names() == ["cid", "cntry", "dwh_insertion_date"]

    def test_as_row_follows_column_order(self):
        stamp = datetime(2024, 6, 1, 12, 0)
        record = ErpLocation(cid="AW00011000", cntry="Germany", dwh_insertion_date=stamp)

        assert record.as_row() == ("AW00011000", "Germany", stamp)
        assert record.business_key == "AW00011000"

    def test_negative_product_cost_is_invalid(self):
        with pytest.raises(ValidationError):
            Product(prd_id=1, cat_id="CO_RF", prd_key="FR-R92B-58", prd_cost=Decimal("-1.00"))

    def test_value_wider_than_column_is_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            ErpLocation(cid="AW" + "0" * 60)
        assert "cid" in str(exc_info.value)

    def test_customer_key_required(self):
        with pytest.raises(ValidationError):
            Customer(cst_id=1, cst_key="")

    def test_customer_defaults(self):
        record = Customer(cst_id=1, cst_key="AW1", cst_create_date=date(2022, 6, 15))

        assert record.cst_gender == "n/a"
        assert record.dwh_insertion_date is None


@pytest.mark.unit
class TestQuarantineRecord:
    def test_valid_record(self):
        record = QuarantineRecord(
            source_entity="bronze.erp_loc_a101",
            rejected_field="cid",
            reason="Duplicate ID — Manual Investigation Required",
            raw_payload={"cid": "AW-00011", "cntry": "DE"},
        )
        assert isinstance(record.captured_at, datetime)

    def test_empty_reason_is_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            QuarantineRecord(source_entity="bronze.erp_loc_a101", rejected_field="cid", reason="", raw_payload={})
        assert "reason" in str(exc_info.value)


@pytest.mark.unit
class TestEntityMetrics:
    def test_mass_conservation_holds(self):
        metrics = EntityMetrics(
            entity=Entity.CUSTOMER,
            status=EntityStatus.REJECTIONS,
            source_count=5,
            accepted_count=3,
            rejected_count=2,
            rejected_by_reason={"Duplicate Record": 1, "Missing Mandatory Key": 1},
        )
        assert metrics.passed

    def test_mass_conservation_violation(self):
        with pytest.raises(ValidationError):
            EntityMetrics(
                entity=Entity.CUSTOMER,
                status=EntityStatus.OK,
                source_count=5,
                accepted_count=3,
                rejected_count=1,
            )

    def test_reason_totals_must_match(self):
        with pytest.raises(ValidationError):
            EntityMetrics(
                entity=Entity.CUSTOMER,
                status=EntityStatus.REJECTIONS,
                source_count=5,
                accepted_count=3,
                rejected_count=2,
                rejected_by_reason={"Duplicate Record": 1},
            )

    def test_failed_entity_skips_conservation(self):
        metrics = EntityMetrics(entity=Entity.PRODUCT, status=EntityStatus.FAILED, source_count=5, error="boom")
        assert not metrics.passed


@pytest.mark.unit
class TestBatchRunMetrics:
    def test_totals(self):
        run = BatchRunMetrics(
            state=RunState.COMPLETED,
            started_at=datetime(2024, 6, 1),
            entities=[
                EntityMetrics(entity=Entity.CUSTOMER, status=EntityStatus.OK, source_count=2, accepted_count=2),
                EntityMetrics(
                    entity=Entity.PRODUCT,
                    status=EntityStatus.REJECTIONS,
                    source_count=3,
                    accepted_count=1,
                    rejected_count=2,
                    rejected_by_reason={"Duplicate ID — Manual Investigation Required": 2},
                ),
            ],
        )

        assert run.passed
        assert (run.total_source, run.total_accepted, run.total_rejected) == (5, 3, 2)
        assert run.for_entity(Entity.PRODUCT).rejected_count == 2
        assert run.for_entity(Entity.SALES_LINE) is None
