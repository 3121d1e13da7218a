"""
Tile addressing on the LINZ NZTM2000Quad tile matrix.

Columns increase eastward and rows increase southward from a fixed
top-left origin. Each zoom level halves the ground resolution, so tiles
at one zoom partition the projected plane into equal squares.
"""

import math
from dataclasses import dataclass

ORIGIN_E = -3260586.7284
ORIGIN_N = 10438190.1652
TILE_SIZE_PX = 256
# ScaleDenominator 139770566.007179 * 0.00028 m/px
BASE_RESOLUTION = 39135.758482011

MAX_ZOOM = 22


@dataclass(frozen=True)
class TileAddress:
    """A tile on the NZTM2000Quad grid."""
    col: int
    row: int
    zoom: int

    @property
    def key(self) -> str:
        return f"{self.col},{self.row}"

    def __str__(self) -> str:
        return f"{self.zoom}/{self.col}/{self.row}"


@dataclass(frozen=True)
class TileBounds:
    """Projected bounding box of a tile (metres)."""
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom

    @property
    def centroid(self) -> tuple[float, float]:
        return (self.left + self.right) / 2, (self.top + self.bottom) / 2


def _check_zoom(zoom: int) -> None:
    if not 0 <= zoom <= MAX_ZOOM:
        raise ValueError(f"Zoom {zoom} outside 0..{MAX_ZOOM}")


def resolution(zoom: int) -> float:
    """Ground resolution in metres per pixel at a zoom level."""
    _check_zoom(zoom)
    return BASE_RESOLUTION / 2 ** zoom


def tile_span_m(zoom: int) -> float:
    """Edge length of one tile in metres."""
    return TILE_SIZE_PX * resolution(zoom)


def projected_to_tile(e: float, n: float, zoom: int) -> tuple[int, int]:
    """Return the (col, row) of the tile containing a projected point."""
    span = tile_span_m(zoom)
    col = math.floor((e - ORIGIN_E) / span)
    row = math.floor((ORIGIN_N - n) / span)
    return col, row


def tile_to_bounds(col: int, row: int, zoom: int) -> TileBounds:
    """Projected bounding box of a tile."""
    span = tile_span_m(zoom)
    left = ORIGIN_E + col * span
    top = ORIGIN_N - row * span
    return TileBounds(left=left, top=top, right=left + span, bottom=top - span)


def address_for(e: float, n: float, zoom: int) -> TileAddress:
    col, row = projected_to_tile(e, n, zoom)
    return TileAddress(col, row, zoom)


def tiles_around(e: float, n: float, zoom: int, radius: int = 1) -> list[TileAddress]:
    """Tiles in the (2r+1)^2 neighbourhood of the tile containing (e, n)."""
    col, row = projected_to_tile(e, n, zoom)
    return [
        TileAddress(col + dc, row + dr, zoom)
        for dr in range(-radius, radius + 1)
        for dc in range(-radius, radius + 1)
    ]


def tile_url(template: str, address: TileAddress, **params: str) -> str:
    """Fill a {z}/{x}/{y} URL template for a tile.

    Extra keyword params fill any other placeholders, e.g. {api_key}.
    """
    return template.format(
        z=address.zoom, x=address.col, y=address.row, **params
    )
