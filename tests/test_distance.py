"""Tests for the haversine distance helper and branch ranking."""

from types import SimpleNamespace

import pytest

from wabco_booking.tools.distance import calculate_distance, sort_by_distance

DUBAI = (25.2048, 55.2708)
ABU_DHABI = (24.4539, 54.3773)


class TestCalculateDistance:
    def test_same_point_is_zero(self):
        assert calculate_distance(*DUBAI, *DUBAI) == 0

    def test_symmetric(self):
        assert calculate_distance(*DUBAI, *ABU_DHABI) == calculate_distance(*ABU_DHABI, *DUBAI)

    def test_dubai_to_abu_dhabi_km(self):
        assert calculate_distance(*DUBAI, *ABU_DHABI) == pytest.approx(123.0, abs=1.5)

    def test_miles_shorter_than_km(self):
        km = calculate_distance(*DUBAI, *ABU_DHABI, unit="km")
        mi = calculate_distance(*DUBAI, *ABU_DHABI, unit="mi")
        assert mi == pytest.approx(km * 0.6214, abs=0.2)

    def test_rounded_to_one_decimal(self):
        value = calculate_distance(*DUBAI, *ABU_DHABI)
        assert value == round(value, 1)

    def test_quarter_meridian(self):
        # Equator to pole along a meridian is a quarter of the circumference.
        assert calculate_distance(0, 0, 90, 0) == pytest.approx(10007.6, abs=0.05)

    def test_unknown_unit_rejected(self):
        with pytest.raises(ValueError, match="unit"):
            calculate_distance(*DUBAI, *ABU_DHABI, unit="nm")


class TestSortByDistance:
    def test_nearest_first(self):
        far = SimpleNamespace(name="Abu Dhabi", lat=ABU_DHABI[0], lng=ABU_DHABI[1])
        near = SimpleNamespace(name="Dubai", lat=DUBAI[0], lng=DUBAI[1])
        ranked = sort_by_distance([far, near], *DUBAI)
        assert [item.name for item, _ in ranked] == ["Dubai", "Abu Dhabi"]
        assert ranked[0][1] == 0

    def test_items_without_coordinates_go_last(self):
        unknown = SimpleNamespace(name="Unknown", lat=None, lng=None)
        near = SimpleNamespace(name="Dubai", lat=DUBAI[0], lng=DUBAI[1])
        ranked = sort_by_distance([unknown, near], *DUBAI)
        assert ranked[-1] == (unknown, None)
