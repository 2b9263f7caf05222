"""Tests for raw condition value parsing."""

from __future__ import annotations

import math

import pytest

from abac_console.authoring import canonical_policy_id, format_value, parse_value
from abac_console.authoring.values import is_invalid_number, parse_number


class TestParseValue:
    """Tests for parse_value."""

    @pytest.mark.parametrize("operator", ["equals", "not_equals", "contains", "regex"])
    @pytest.mark.parametrize("raw", ["superadmin", "a, b", "5", "True", "", " padded "])
    def test_identity_for_plain_strings(self, operator: str, raw: str):
        assert parse_value(raw, operator) == raw

    def test_in_splits_and_trims(self):
        assert parse_value("a, b ,c", "in") == ["a", "b", "c"]

    def test_not_in_preserves_order_and_duplicates(self):
        assert parse_value("z,a, z", "not_in") == ["z", "a", "z"]

    def test_true_false_literals_become_booleans(self):
        assert parse_value("true", "equals") is True
        assert parse_value("false", "equals") is False

    def test_integer_stays_integer(self):
        value = parse_value("5", "greater_than")

        assert value == 5
        assert isinstance(value, int)

    def test_decimal(self):
        assert parse_value("2.5", "less_than") == 2.5

    @pytest.mark.parametrize("raw", ["abc", "", "   ", "inf", "nan", "1,000"])
    def test_non_numeric_is_nan_not_zero(self, raw: str):
        value = parse_value(raw, "greater_than")

        assert math.isnan(value)
        assert is_invalid_number(value)

    def test_numeric_operator_does_not_parse_booleans(self):
        assert is_invalid_number(parse_value("true", "less_than"))

    @pytest.mark.parametrize("operator", ["greater_than", "less_than"])
    def test_numeric_operator_keeps_reference(self, operator: str):
        assert parse_value(" $subject.approval_limit ", operator) == "$subject.approval_limit"

    def test_numeric_operator_rejects_unknown_axis_reference(self):
        assert is_invalid_number(parse_value("$tenant.limit", "greater_than"))


class TestParseNumber:
    """Tests for parse_number edge cases."""

    def test_signed_integers(self):
        assert parse_number("-3") == -3
        assert parse_number("+7") == 7

    def test_scientific_notation(self):
        assert parse_number("1e3") == 1000.0

    def test_is_invalid_number_only_for_nan(self):
        assert not is_invalid_number(0)
        assert not is_invalid_number("nan")


class TestFormatValue:
    """Tests for format_value (display form of a parsed value)."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(["a", "b"], "a, b"), (True, "true"), (False, "false"), (5, "5"), ("x", "x")],
    )
    def test_format(self, value: object, expected: str):
        assert format_value(value) == expected

    @pytest.mark.parametrize(("raw", "operator"), [("a, b", "in"), ("true", "equals"), ("42", "greater_than")])
    def test_parse_of_formatted_value_is_stable(self, raw: str, operator: str):
        parsed = parse_value(raw, operator)

        assert parse_value(format_value(parsed), operator) == parsed


def test_canonical_policy_id_reexported():
    assert canonical_policy_id("custom tenant access") == "CUSTOM_TENANT_ACCESS"
