"""
Tests for meta value coercion and output preparation
"""

import pytest

from meta_api.constants.meta import ValueType
from meta_api.utils.meta_values import canonical_string, coerce_input_value, prepare_output_value


class TestCanonicalString:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("red", "red"),
            (5, "5"),
            (5.0, "5"),
            (2.5, "2.5"),
            (True, "1"),
            (False, ""),
            (None, ""),
        ],
    )
    def test_canonical_forms(self, value, expected):
        assert canonical_string(value) == expected

    def test_equivalent_values_compare_equal(self):
        assert canonical_string("5") == canonical_string(5) == canonical_string(5.0)


class TestCoerceInput:
    def test_string_from_number(self):
        assert coerce_input_value(ValueType.STRING, 42) == "42"

    def test_string_rejects_boolean(self):
        with pytest.raises(ValueError):
            coerce_input_value(ValueType.STRING, True)

    def test_number_from_numeric_string(self):
        assert coerce_input_value(ValueType.NUMBER, "3.5") == 3.5

    def test_number_rejects_text(self):
        with pytest.raises(ValueError):
            coerce_input_value(ValueType.NUMBER, "many")

    @pytest.mark.parametrize("value", ["nan", "inf", "-inf", "Infinity", float("nan"), float("inf")])
    def test_number_rejects_non_finite(self, value):
        with pytest.raises(ValueError):
            coerce_input_value(ValueType.NUMBER, value)

    def test_number_rejects_boolean(self):
        with pytest.raises(ValueError):
            coerce_input_value(ValueType.NUMBER, False)

    @pytest.mark.parametrize(("value", "expected"), [(True, True), ("true", True), ("0", False), (1, True)])
    def test_boolean(self, value, expected):
        assert coerce_input_value(ValueType.BOOLEAN, value) is expected

    def test_boolean_rejects_arbitrary_text(self):
        with pytest.raises(ValueError):
            coerce_input_value(ValueType.BOOLEAN, "maybe")

    def test_array_items_pass_through(self):
        assert coerce_input_value(ValueType.ARRAY, "item") == "item"


class TestPrepareOutput:
    def test_string(self):
        assert prepare_output_value(ValueType.STRING, 5) == "5"
        assert prepare_output_value(ValueType.STRING, True) == "1"

    def test_number(self):
        assert prepare_output_value(ValueType.NUMBER, "2.5") == 2.5
        assert prepare_output_value(ValueType.NUMBER, "abc") is None

    @pytest.mark.parametrize(("value", "expected"), [("", False), ("0", False), ("false", False), ("yes", True), (1, True)])
    def test_boolean(self, value, expected):
        assert prepare_output_value(ValueType.BOOLEAN, value) is expected

    def test_structured_value_under_scalar_type_is_hidden(self):
        assert prepare_output_value(ValueType.STRING, {"a": 1}) is None
        assert prepare_output_value(ValueType.NUMBER, [1, 2]) is None

    def test_structured_type_passes_structures(self):
        assert prepare_output_value(ValueType.OBJECT, {"a": 1}) == {"a": 1}

    def test_blobs_never_returned(self):
        assert prepare_output_value(ValueType.OBJECT, b"\x00\x01") is None

    def test_multi_valued(self):
        assert prepare_output_value(ValueType.NUMBER, ["1", 2], single=False) == [1.0, 2.0]

    def test_none_stays_none(self):
        assert prepare_output_value(ValueType.STRING, None) is None
