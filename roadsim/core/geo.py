"""
Coordinate conversion between geographic, projected and world space.

World space is a local flat-earth frame in metres centred on a fixed
reference point: +x is east, +z is south, height (y) comes from the
terrain height field. The equirectangular approximation is only good
for a few kilometres around the centre.

Projected space is NZTM2000 (EPSG:2193), the grid the LINZ raster tiles
are cut on. Transformers are built once per process and never mutated.
"""

import math

from geopy.distance import geodesic
from pyproj import Transformer

EARTH_RADIUS_M = 6_371_000.0

# Wellington CBD
MAP_CENTER_LAT = -41.28889
MAP_CENTER_LON = 174.77722

# Beyond this distance from the centre the flat-earth error is no longer
# negligible for placement (~1m at 20km).
LOCAL_SPAN_LIMIT_M = 20_000.0

NZTM_PROJ = (
    "+proj=tmerc +lat_0=0 +lon_0=173 +k=0.9996 +x_0=1600000 "
    "+y_0=10000000 +ellps=GRS80 +towgs84=0,0,0,0,0,0,0 +units=m +no_defs"
)

_TO_NZTM = Transformer.from_crs("EPSG:4326", NZTM_PROJ, always_xy=True)
_FROM_NZTM = Transformer.from_crs(NZTM_PROJ, "EPSG:4326", always_xy=True)


def geo_to_world(
    lat: float, lon: float,
    center_lat: float = MAP_CENTER_LAT, center_lon: float = MAP_CENTER_LON,
) -> tuple[float, float]:
    """Convert (lat, lon) degrees to world (x, z) metres."""
    x = (math.radians(lon - center_lon) * EARTH_RADIUS_M
         * math.cos(math.radians(center_lat)))
    z = -math.radians(lat - center_lat) * EARTH_RADIUS_M
    return x, z


def world_to_geo(
    x: float, z: float,
    center_lat: float = MAP_CENTER_LAT, center_lon: float = MAP_CENTER_LON,
) -> tuple[float, float]:
    """Exact inverse of geo_to_world. Returns (lat, lon)."""
    lat = center_lat - math.degrees(z / EARTH_RADIUS_M)
    lon = center_lon + math.degrees(
        x / (EARTH_RADIUS_M * math.cos(math.radians(center_lat)))
    )
    return lat, lon


def geo_to_projected(lat: float, lon: float) -> tuple[float, float]:
    """Convert (lat, lon) to NZTM2000 (easting, northing)."""
    e, n = _TO_NZTM.transform(lon, lat)
    return e, n


def projected_to_geo(e: float, n: float) -> tuple[float, float]:
    """Convert NZTM2000 (easting, northing) to (lat, lon)."""
    lon, lat = _FROM_NZTM.transform(e, n)
    return lat, lon


def world_to_projected(
    x: float, z: float,
    center_lat: float = MAP_CENTER_LAT, center_lon: float = MAP_CENTER_LON,
) -> tuple[float, float]:
    lat, lon = world_to_geo(x, z, center_lat, center_lon)
    return geo_to_projected(lat, lon)


def projected_to_world(
    e: float, n: float,
    center_lat: float = MAP_CENTER_LAT, center_lon: float = MAP_CENTER_LON,
) -> tuple[float, float]:
    lat, lon = projected_to_geo(e, n)
    return geo_to_world(lat, lon, center_lat, center_lon)


def distance_from_center_m(
    lat: float, lon: float,
    center_lat: float = MAP_CENTER_LAT, center_lon: float = MAP_CENTER_LON,
) -> float:
    """Geodesic distance from the world centre, in metres."""
    return geodesic((center_lat, center_lon), (lat, lon)).meters


def is_within_local_span(
    lat: float, lon: float,
    center_lat: float = MAP_CENTER_LAT, center_lon: float = MAP_CENTER_LON,
    limit_m: float = LOCAL_SPAN_LIMIT_M,
) -> bool:
    """True if the flat-earth approximation is usable at (lat, lon)."""
    return distance_from_center_m(lat, lon, center_lat, center_lon) <= limit_m
