"""
Unit tests for value validation, sanitization and the write pipeline

Tests verify:
- Syntactic validation per type family
- Repair of accounting numbers, boolean synonyms and damaged dates
- The validate, repair, re-validate, mask sequence
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from transformation.transformers.masking import DataMasker, MaskingConfig
from transformation.transformers.pipeline import WritePipeline
from transformation.transformers.sanitizer import (
    DataSanitizer,
    recover_boolean,
    recover_number,
)
from transformation.transformers.validator import InvalidValueError, validate_value


class TestValidateValue:
    """Test validate_value"""

    @pytest.mark.parametrize("sql_type", ["INTEGER", "DECIMAL(18,2)", "BOOLEAN", "DATE", "TIMESTAMP", "TEXT"])
    def test_blank_always_passes(self, sql_type):
        """Test None and '' pass in every family"""
        assert validate_value(None, sql_type) is None
        assert validate_value("", sql_type) is None

    @pytest.mark.parametrize("value", ["42", "-7", "+3", " 12 ", 5, 5.0, Decimal("8")])
    def test_valid_integers(self, value):
        """Test integer forms accepted by INTEGER columns"""
        assert validate_value(value, "INTEGER") is None

    @pytest.mark.parametrize("value", ["4.2", "abc", "1,000", 5.5])
    def test_invalid_integers(self, value):
        """Test non-integral values are rejected by INTEGER columns"""
        message = validate_value(value, "BIGINT")
        assert message is not None
        assert "integer" in message

    @pytest.mark.parametrize("value", ["1.5", "-2", "1e3", Decimal("12.30"), 7])
    def test_valid_decimals(self, value):
        """Test numbers accepted by DECIMAL columns"""
        assert validate_value(value, "DECIMAL(18,2)") is None

    @pytest.mark.parametrize("value", ["1,234.50", "abc", "NaN", "(100)"])
    def test_invalid_decimals(self, value):
        """Test decorated or non-finite values are rejected"""
        assert validate_value(value, "NUMERIC") is not None

    @pytest.mark.parametrize("value", ["true", "F", "1", "0", "t", True])
    def test_valid_booleans(self, value):
        """Test boolean tokens"""
        assert validate_value(value, "BOOLEAN") is None

    def test_invalid_boolean(self):
        """Test synonyms are only accepted after repair"""
        assert "boolean" in validate_value("yes", "BOOLEAN")

    @pytest.mark.parametrize("value", ["2024-10-31", "2024/10/31", date(2024, 10, 31), datetime(2024, 1, 1)])
    def test_valid_dates(self, value):
        """Test dates accepted by DATE columns"""
        assert validate_value(value, "DATE") is None

    @pytest.mark.parametrize("value", ["24/10/31 05:", "hello"])
    def test_invalid_dates(self, value):
        """Test damaged dates are rejected before repair"""
        message = validate_value(value, "TIMESTAMP")
        assert message is not None
        assert value in message

    def test_text_accepts_anything(self):
        """Test text columns never reject"""
        assert validate_value("anything at all", "VARCHAR(255)") is None


class TestSanitizer:
    """Test DataSanitizer repairs"""

    @pytest.mark.parametrize("text,expected", [
        ("1,234.50", "1234.50"),
        ("(100)", "-100"),
        ("$1,000", "1000"),
        ("¥ 88", "88"),
        ("($5)", "-5"),
        ("-$5", "-5"),
        ("€12.5", "12.5"),
    ])
    def test_recover_number(self, text, expected):
        """Test accounting decorations are removed"""
        assert recover_number(text) == expected

    @pytest.mark.parametrize("text,expected", [
        ("Yes", "true"),
        ("ok", "true"),
        ("on", "true"),
        ("off", "false"),
        ("N", "false"),
        ("maybe", "maybe"),
    ])
    def test_recover_boolean(self, text, expected):
        """Test boolean synonyms"""
        assert recover_boolean(text) == expected

    def test_recovered_number_validates(self):
        """Test a repaired number passes validation"""
        recovered = DataSanitizer().try_recover("1,234.50", "DECIMAL(18,2)")

        assert recovered == "1234.50"
        assert validate_value(recovered, "DECIMAL(18,2)") is None

    def test_truncated_time_date(self):
        """Test a truncated time is dropped for DATE and TIMESTAMP columns"""
        sanitizer = DataSanitizer()

        assert sanitizer.try_recover("24/10/31 05:", "DATE") == "2024-10-31"
        assert sanitizer.try_recover("24/10/31 05:", "TIMESTAMP") == "2024-10-31 00:00:00"

    def test_unrecoverable_date_returned_trimmed(self):
        """Test garbage dates come back for re-validation to reject"""
        assert DataSanitizer().try_recover(" soon ", "DATE") == "soon"

    def test_blank_becomes_none(self):
        """Test blanks recover to None"""
        sanitizer = DataSanitizer()

        assert sanitizer.try_recover(None, "INTEGER") is None
        assert sanitizer.try_recover("", "INTEGER") is None

    def test_text_unchanged(self):
        """Test text values are never touched"""
        assert DataSanitizer().try_recover(" (100) ", "TEXT") == " (100) "

    def test_transform_uses_context(self):
        """Test the Transformer interface reads sql_type from context"""
        assert DataSanitizer().transform("(7)", {"sql_type": "INTEGER"}) == "-7"


class TestWritePipeline:
    """Test WritePipeline.prepare"""

    @pytest.fixture
    def pipeline(self):
        masker = DataMasker(MaskingConfig({"tenants": {"name": "name"}}))
        return WritePipeline(masker=masker)

    def test_valid_value_passes_through(self, pipeline):
        """Test valid values are written unchanged"""
        assert pipeline.prepare("42", "INTEGER", "orders", "qty") == "42"

    def test_invalid_value_is_repaired(self, pipeline):
        """Test values failing validation are repaired"""
        assert pipeline.prepare("(100)", "DECIMAL(18,2)", "orders", "amount") == "-100"

    def test_unrepairable_value_raises(self, pipeline):
        """Test values invalid after repair raise InvalidValueError"""
        with pytest.raises(InvalidValueError) as exc_info:
            pipeline.prepare("abc", "INTEGER", "orders", "qty")

        assert exc_info.value.value == "abc"
        assert exc_info.value.sql_type == "INTEGER"
        assert "abc" in exc_info.value.message

    def test_structured_date_is_rendered(self, pipeline):
        """Test date objects are written as local text"""
        assert pipeline.prepare(date(2024, 10, 31), "DATE", "orders", "day") == "2024-10-31"
        assert pipeline.prepare(
            datetime(2024, 10, 31, 5, 6, 7), "TIMESTAMP", "orders", "at"
        ) == "2024-10-31 05:06:07"

    def test_blank_becomes_none(self, pipeline):
        """Test blanks are written as NULL"""
        assert pipeline.prepare("", "TEXT", "orders", "note") is None
        assert pipeline.prepare(None, "INTEGER", "orders", "qty") is None

    def test_masking_is_last(self, pipeline):
        """Test configured columns are masked after validation"""
        assert pipeline.prepare("张三丰", "VARCHAR(255)", "tenants", "name") == "张*丰"

    def test_default_pipeline_masks_nothing(self):
        """Test a pipeline without a masker leaves values alone"""
        assert WritePipeline().prepare("张三丰", "VARCHAR(255)", "tenants", "name") == "张三丰"
