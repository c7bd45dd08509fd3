"""Distance maths and coordinate helpers."""
import math

import pytest

from brewnear.geo import (
    DEFAULT_COORDINATES,
    bounding_box,
    default_coordinates,
    format_coordinates,
    haversine_km,
    is_valid_coordinates,
)


def test_haversine_zero_distance() -> None:
    assert haversine_km(33.5731, -7.5898, 33.5731, -7.5898) == 0


def test_haversine_casablanca_to_rabat() -> None:
    # about 85 km as the crow flies
    assert haversine_km(33.5731, -7.5898, 34.0209, -6.8416) == pytest.approx(85.2, abs=0.5)


def test_haversine_one_degree_of_latitude() -> None:
    assert haversine_km(0, 0, 1, 0) == pytest.approx(math.pi * 6371 / 180, rel=1e-9)


@pytest.mark.parametrize(
    "lat, lng, valid",
    [
        (0, 0, True),
        (90, 180, True),
        (-90, -180, True),
        (90.1, 0, False),
        (0, -180.5, False),
        (float("nan"), 0, False),
        ("33.5", "-7.5", False),
        (True, 0, False),
        (None, None, False),
    ],
)
def test_is_valid_coordinates(lat, lng, valid) -> None:
    assert is_valid_coordinates(lat, lng) is valid


def test_bounding_box_contains_radius() -> None:
    min_lat, max_lat, min_lng, max_lng = bounding_box(33.5731, -7.5898, 10)
    assert min_lat < 33.5731 < max_lat
    assert min_lng < -7.5898 < max_lng
    # the box edges are at least the radius away from the centre
    assert haversine_km(33.5731, -7.5898, max_lat, -7.5898) == pytest.approx(10, rel=1e-6)
    assert haversine_km(33.5731, -7.5898, 33.5731, max_lng) >= 10 - 1e-9


def test_bounding_box_near_pole_spans_all_longitudes() -> None:
    _, max_lat, min_lng, max_lng = bounding_box(89.99, 0, 50)
    assert max_lat == 90.0
    assert (min_lng, max_lng) == (-180.0, 180.0)


def test_bounding_box_may_cross_antimeridian() -> None:
    _, _, min_lng, max_lng = bounding_box(0, 179.95, 20)
    assert max_lng > 180


def test_default_coordinates_by_city() -> None:
    assert default_coordinates("500 Main St, Los Angeles, CA") == DEFAULT_COORDINATES["los_angeles"]
    assert default_coordinates("Somewhere unknown") == DEFAULT_COORDINATES["default"]
    assert default_coordinates(None) == DEFAULT_COORDINATES["default"]


def test_format_coordinates() -> None:
    assert format_coordinates(33.5731, -7.5898) == "33.573100, -7.589800"
