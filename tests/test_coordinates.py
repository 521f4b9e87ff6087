import pytest

from schemas import Coordinate
from services.coordinate_service import parse_coordinates


class TestParseCoordinates:
    def test_parses_decimal_pair(self):
        coord = parse_coordinates("40.7128, -74.0060")
        assert coord == Coordinate(latitude=40.7128, longitude=-74.006)

    def test_extra_whitespace_is_valid(self):
        coord = parse_coordinates("  40.0,  -74.0 ")
        assert coord.latitude == 40.0
        assert coord.longitude == -74.0

    def test_integers(self):
        coord = parse_coordinates("10,20")
        assert (coord.latitude, coord.longitude) == (10.0, 20.0)

    def test_bounds_are_inclusive(self):
        assert parse_coordinates("-90, -180") is not None
        assert parse_coordinates("90, 180") is not None

    @pytest.mark.parametrize("text", [
        "91, 0",
        "0, 181",
        "-90.5, 0",
        "abc",
        "",
        "40.7128 -74.0060",
        "1234, 5",
        "40.7128, -74.0060, 3",
        "+40, 20",
        "40., 20",
        ".5, 20",
        "٤٠, ٧٠",
        "４０, ７０",
    ])
    def test_rejects(self, text):
        assert parse_coordinates(text) is None

    def test_none_input(self):
        assert parse_coordinates(None) is None


class TestCoordinateFormatting:
    def test_normalized_string(self):
        assert str(parse_coordinates("40.7128, -74.0060")) == "40.7128,-74.006"
        assert str(parse_coordinates("48.8566, 2.3522")) == "48.8566,2.3522"

    def test_integral_values_drop_fraction(self):
        assert str(parse_coordinates("10.0, -20")) == "10,-20"

    def test_is_immutable(self):
        coord = parse_coordinates("1, 2")
        with pytest.raises(Exception):
            coord.latitude = 5

    def test_small_values_not_in_exponent_form(self):
        assert str(parse_coordinates("0.00001, -0.0000015")) == "0.00001,-0.0000015"
