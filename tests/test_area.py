"""Unit tests for area unit conversion"""
import pytest

from lrms.services.area import (
    ACRE,
    GUNTHA,
    SQ_M,
    SQ_METERS_PER_ACRE,
    SQ_METERS_PER_GUNTHA,
    from_square_meters,
    parse_area,
    to_square_meters,
)


class TestConversion:
    """Tests for to/from square meters"""

    def test_acre_to_square_meters(self):
        assert to_square_meters(1, ACRE) == pytest.approx(4046.86)
        assert to_square_meters(2.5, ACRE) == pytest.approx(10117.15)

    def test_guntha_to_square_meters(self):
        assert to_square_meters(1, GUNTHA) == pytest.approx(101.17)
        assert to_square_meters(40, GUNTHA) == pytest.approx(4046.8)

    def test_square_meters_unchanged(self):
        assert to_square_meters(500, SQ_M) == 500

    def test_unknown_unit_passes_through(self):
        """Unknown units are taken as square meters"""
        assert to_square_meters(123, "hectare") == 123
        assert from_square_meters(123, "hectare") == 123

    def test_from_square_meters(self):
        assert from_square_meters(SQ_METERS_PER_ACRE, ACRE) == pytest.approx(1)
        assert from_square_meters(SQ_METERS_PER_GUNTHA * 10, GUNTHA) == pytest.approx(10)

    def test_zero(self):
        assert to_square_meters(0, ACRE) == 0
        assert from_square_meters(0, GUNTHA) == 0

    @pytest.mark.parametrize("value", [0.25, 1, 2.5, 13.75, 100, 1234.56])
    def test_acre_round_trip(self, value):
        """acre -> sq_m -> acre recovers the value to 2 decimal places"""
        sq_meters = to_square_meters(value, ACRE)
        assert round(from_square_meters(sq_meters, ACRE), 2) == value

    @pytest.mark.parametrize("value", [0, 1, 101.17, 6070, 99999.5])
    def test_square_meter_conversion_is_idempotent(self, value):
        once = to_square_meters(value, SQ_M)
        assert once == value
        assert to_square_meters(once, SQ_M) == once


class TestParseArea:
    """Tests for normalizing uploaded area objects"""

    def test_square_meters(self):
        assert parse_area({"sqm": 1500}) == (1500, SQ_M)

    def test_acre_and_guntha(self):
        value, unit = parse_area({"acre": 1, "guntha": 20})
        assert unit == SQ_M
        assert value == pytest.approx(4046.86 + 20 * 101.17)

    def test_guntha_only(self):
        value, _ = parse_area({"guntha": 5})
        assert value == pytest.approx(505.85)

    def test_sqm_takes_precedence(self):
        assert parse_area({"sqm": 10, "acre": 3}) == (10, SQ_M)

    def test_missing_area_is_zero(self):
        assert parse_area(None) == (0, SQ_M)
        assert parse_area({}) == (0, SQ_M)
        assert parse_area({"hectare": 1}) == (0, SQ_M)

    @pytest.mark.parametrize("value", [6070, 1500.5, 0])
    def test_bare_number_is_square_meters(self, value):
        assert parse_area(value) == (value, SQ_M)

    @pytest.mark.parametrize("value", ["6070", [6070], True])
    def test_other_shapes_are_zero(self, value):
        assert parse_area(value) == (0, SQ_M)
