"""Tests for orjson serialization of result rows."""

import datetime
import decimal

import orjson

from db_structure_mcp.utils import (
    convert_rows_to_json_safe,
    convert_value_to_json_safe,
    dumps,
)


class TestValueConversion:
    """Test conversion of driver values to JSON-safe values."""

    def test_basic_types_unchanged(self):
        data = {"string": "test", "int": 42, "bool": True, "none": None, "list": [1, 2]}
        assert convert_value_to_json_safe(data) == data

    def test_integral_decimal_becomes_int(self):
        assert convert_value_to_json_safe(decimal.Decimal("16384")) == 16384

    def test_fractional_decimal_becomes_str(self):
        assert convert_value_to_json_safe(decimal.Decimal("0.25")) == "0.25"

    def test_datetime_iso_format(self):
        value = datetime.datetime(2024, 1, 15, 10, 30, 0)
        assert convert_value_to_json_safe(value) == "2024-01-15T10:30:00"

    def test_timedelta_seconds(self):
        assert convert_value_to_json_safe(datetime.timedelta(minutes=2)) == 120.0

    def test_utf8_bytes_decoded(self):
        assert convert_value_to_json_safe(b"utf8mb4_general_ci") == "utf8mb4_general_ci"

    def test_binary_bytes_base64(self):
        assert convert_value_to_json_safe(b"\xff\xfe") == "//4="

    def test_sets_sorted(self):
        assert convert_value_to_json_safe({"b", "a"}) == ["a", "b"]

    def test_unknown_type_falls_back_to_str(self):
        class Opaque:
            def __str__(self):
                return "opaque"

        assert convert_value_to_json_safe(Opaque()) == "opaque"


class TestRows:
    """Test conversion of maintenance result rows."""

    def test_checksum_rows(self):
        rows = [{"Table": "shop.users", "Checksum": decimal.Decimal("2453187921")}]
        assert convert_rows_to_json_safe(rows) == [
            {"Table": "shop.users", "Checksum": 2453187921}
        ]

    def test_dumps_indented(self):
        text = dumps({"size": decimal.Decimal("10"), "names": frozenset({"b", "a"})})

        assert "\n" in text
        assert orjson.loads(text) == {"size": 10, "names": ["a", "b"]}
