"""
Unit Tests - Snapshot Validation
"""
import pytest
import polars as pl

from bizintel.ingestion.loader import build_snapshot
from bizintel.quality.validators import (
    DataValidator,
    ValidationSeverity,
    ValidationStatus,
    create_inventory_validator,
    create_transactions_validator,
    validate_snapshot,
)


class TestDataValidator:
    """Tests for DataValidator"""

    def test_not_null_check_passes(self):
        """Test not null check with valid data"""
        df = pl.DataFrame({"id": [1, 2, 3], "name": ["a", "b", "c"]})

        validator = DataValidator()
        validator.add_not_null_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.PASSED
        assert result.passed_checks == 1

    def test_not_null_check_fails(self):
        """Test not null check with null values"""
        df = pl.DataFrame({"id": [1, None, 3], "name": ["a", "b", "c"]})

        validator = DataValidator()
        validator.add_not_null_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED
        assert result.failed_checks == 1

    def test_unique_check_fails(self):
        """Test unique check with duplicates"""
        df = pl.DataFrame({"id": [1, 2, 1]})

        result = DataValidator().add_unique_check("id").validate(df)

        assert result.status == ValidationStatus.FAILED
        assert result.checks[0].failed_rows == 1

    def test_range_check(self):
        """Test range check"""
        df = pl.DataFrame({"price": [10.0, 50.0, -5.0, 200.0]})

        validator = DataValidator()
        validator.add_range_check("price", min_value=0, max_value=100)

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED
        # Two values outside range: -5 and 200
        assert result.checks[0].failed_rows == 2

    def test_enum_check(self):
        """Test allowed values check"""
        df = pl.DataFrame({"payment_status": ["Paid", "Overdue", "Refunded"]})

        validator = DataValidator()
        validator.add_enum_check("payment_status", ["Paid", "Partial", "Overdue", "Pending"])

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED

    def test_missing_column_fails_check(self):
        df = pl.DataFrame({"other": [1]})
        result = DataValidator().add_not_null_check("id").validate(df)

        assert result.status == ValidationStatus.FAILED
        assert "not found" in result.checks[0].message

    def test_warning_gives_partial_status(self):
        df = pl.DataFrame({"id": [1, None]})
        validator = DataValidator().add_not_null_check("id", severity=ValidationSeverity.WARNING)

        assert validator.validate(df).status == ValidationStatus.PARTIAL

    def test_strict_mode_fails_on_warning(self):
        df = pl.DataFrame({"id": [1, None]})
        validator = DataValidator(strict_mode=True).add_not_null_check(
            "id", severity=ValidationSeverity.WARNING
        )

        assert validator.validate(df).status == ValidationStatus.FAILED

    def test_referential_integrity(self):
        reference = pl.DataFrame({"product_id": ["a", "b"]})
        df = pl.DataFrame({"product_id": ["a", "c", None]})

        result = (
            DataValidator()
            .add_referential_integrity_check("product_id", reference, "product_id")
            .validate(df)
        )

        assert result.checks[0].failed_rows == 1

    def test_custom_check(self):
        """Test custom validation check"""
        df = pl.DataFrame({"total": [100, 200, 300]})

        validator = DataValidator()
        validator.add_custom_check(
            name="total_sum",
            check_func=lambda df: df["total"].sum() < 1000,
            message_on_fail="Sum exceeds 1000",
        )

        result = validator.validate(df)

        # Sum is 600, which is < 1000
        assert result.status == ValidationStatus.PASSED


class TestSnapshotValidators:
    """Tests for the pre-built snapshot validators"""

    def test_fixture_snapshot_passes(self, snapshot):
        results = validate_snapshot(snapshot)

        assert set(results) == {"transactions", "customers", "products", "inventory"}
        assert all(r.status == ValidationStatus.PASSED for r in results.values())

    def test_orphan_transactions_are_warnings(self, transactions_df, customers_df):
        products = pl.DataFrame({"product_id": ["something-else"]})
        result = create_transactions_validator(customers_df, products).validate(transactions_df)

        assert result.status == ValidationStatus.PARTIAL
        assert result.warning_count == 1

    def test_outstanding_over_total_is_flagged(self, transactions_records, customers_records, products_records):
        records = [dict(transactions_records[0], outstanding_amount=5000.0)]
        snapshot = build_snapshot(records, customers_records, products_records)

        result = create_transactions_validator().validate(snapshot.transactions)
        failed = {c.name for c in result.checks if not c.passed}

        assert "outstanding_within_total" in failed

    def test_negative_stock_is_a_warning(self, inventory_df):
        inventory = inventory_df.with_columns(pl.lit(-1.0).alias("current_stock"))
        result = create_inventory_validator().validate(inventory)

        assert result.status == ValidationStatus.PARTIAL

    @pytest.mark.parametrize("table", ["transactions", "customers", "products", "inventory"])
    def test_empty_snapshot_is_valid(self, table):
        results = validate_snapshot(build_snapshot([], [], [], []))
        assert results[table].status == ValidationStatus.PASSED
