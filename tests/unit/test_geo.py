"""Tests for coordinate conversion."""

import itertools

import pytest
from geopy.distance import geodesic

from roadsim.core.geo import (
    MAP_CENTER_LAT, MAP_CENTER_LON, distance_from_center_m, geo_to_projected,
    geo_to_world, is_within_local_span, projected_to_geo, projected_to_world,
    world_to_geo, world_to_projected,
)


class TestGeoToWorld:
    def test_center_is_origin(self):
        x, z = geo_to_world(MAP_CENTER_LAT, MAP_CENTER_LON)
        assert x == pytest.approx(0.0, abs=1e-9)
        assert z == pytest.approx(0.0, abs=1e-9)

    def test_east_is_positive_x(self):
        x, z = geo_to_world(MAP_CENTER_LAT, MAP_CENTER_LON + 0.01)
        assert x > 0
        assert z == pytest.approx(0.0, abs=1e-9)

    def test_north_is_negative_z(self):
        x, z = geo_to_world(MAP_CENTER_LAT + 0.01, MAP_CENTER_LON)
        assert z < 0
        assert x == pytest.approx(0.0, abs=1e-9)

    def test_matches_geodesic_at_short_range(self):
        """Flat-earth distance should agree with the ellipsoid within 0.5%."""
        lat, lon = MAP_CENTER_LAT + 0.01, MAP_CENTER_LON + 0.015
        x, z = geo_to_world(lat, lon)
        flat = (x ** 2 + z ** 2) ** 0.5
        true = geodesic((MAP_CENTER_LAT, MAP_CENTER_LON), (lat, lon)).meters
        assert abs(flat - true) / true < 0.005

    def test_custom_center(self):
        x, z = geo_to_world(10.0, 20.0, center_lat=10.0, center_lon=20.0)
        assert (x, z) == pytest.approx((0.0, 0.0), abs=1e-9)


class TestRoundTrip:
    @pytest.mark.parametrize(
        "dlat,dlon",
        list(itertools.product([-0.5, -0.23, 0.0, 0.11, 0.5], [-0.5, -0.07, 0.0, 0.31, 0.5])),
    )
    def test_world_round_trip(self, dlat, dlon):
        lat, lon = MAP_CENTER_LAT + dlat, MAP_CENTER_LON + dlon
        x, z = geo_to_world(lat, lon)
        lat2, lon2 = world_to_geo(x, z)
        assert abs(lat2 - lat) < 1e-6
        assert abs(lon2 - lon) < 1e-6

    def test_projected_round_trip(self):
        lat, lon = -41.2865, 174.7762
        e, n = geo_to_projected(lat, lon)
        lat2, lon2 = projected_to_geo(e, n)
        assert lat2 == pytest.approx(lat, abs=1e-8)
        assert lon2 == pytest.approx(lon, abs=1e-8)

    def test_world_projected_round_trip(self):
        e, n = world_to_projected(120.0, -340.0)
        x, z = projected_to_world(e, n)
        assert (x, z) == pytest.approx((120.0, -340.0), abs=1e-3)


class TestProjection:
    def test_wellington_in_nztm_range(self):
        """Wellington CBD sits near E 1.749M, N 5.428M in NZTM2000."""
        e, n = geo_to_projected(MAP_CENTER_LAT, MAP_CENTER_LON)
        assert 1_740_000 < e < 1_760_000
        assert 5_420_000 < n < 5_435_000

    def test_central_meridian_false_easting(self):
        e, _ = geo_to_projected(-41.0, 173.0)
        assert e == pytest.approx(1_600_000.0, abs=1e-3)


class TestLocalSpan:
    def test_center_distance_zero(self):
        assert distance_from_center_m(MAP_CENTER_LAT, MAP_CENTER_LON) == pytest.approx(0.0)

    def test_nearby_within_span(self):
        assert is_within_local_span(MAP_CENTER_LAT + 0.05, MAP_CENTER_LON)

    def test_far_outside_span(self):
        # Auckland
        assert not is_within_local_span(-36.85, 174.76)
