"""Tests for ratebridge.rates.validation."""

import pytest

from ratebridge.core.exceptions import ValidationError
from ratebridge.rates.validation import validate_amount, validate_code, validate_days


class TestValidateCode:
    def test_normalizes(self):
        assert validate_code(" btc ", "from") == "BTC"

    @pytest.mark.parametrize("value", [None, "", "   ", 42])
    def test_required(self, value):
        with pytest.raises(ValidationError, match="from is required") as exc:
            validate_code(value, "from")
        assert exc.value.context["field"] == "from"

    @pytest.mark.parametrize("value", ["B", "BTC/USD", "x" * 16])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValidationError, match="letters or digits"):
            validate_code(value)


class TestValidateAmount:
    @pytest.mark.parametrize("value, expected", [(1, 1.0), ("2.5", 2.5), (0.0001, 0.0001)])
    def test_accepts_positive(self, value, expected):
        assert validate_amount(value) == expected

    @pytest.mark.parametrize("value", [0, -1, "0", "inf", float("nan"), True, "ten", None])
    def test_rejects(self, value):
        with pytest.raises(ValidationError):
            validate_amount(value)


class TestValidateDays:
    @pytest.mark.parametrize("value", [1, 7, 365])
    def test_in_range(self, value):
        assert validate_days(value) == value

    @pytest.mark.parametrize("value", [0, 366])
    def test_out_of_range(self, value):
        with pytest.raises(ValidationError, match="between 1 and 365"):
            validate_days(value)

    def test_rejects_non_int(self):
        with pytest.raises(ValidationError, match="integer"):
            validate_days("7")
