"""
Terrain height field built from elevation tiles.

Tiles arrive asynchronously from the elevation loader and are stored as
(N+1) x (N+1) row-major height grids, row 0 along the tile's north edge
and column 0 along its west edge. Height queries convert a world point
to its tile and bilinearly interpolate the four enclosing samples.
Unloaded tiles resolve to None; callers fall back to a default height.
"""

import logging
import math
from typing import Callable

import numpy as np

from roadsim.core.geo import MAP_CENTER_LAT, MAP_CENTER_LON, world_to_projected
from roadsim.core.tiles import TileAddress, address_for, projected_to_tile, tile_to_bounds

logger = logging.getLogger(__name__)

TERRAIN_ZOOM_LEVEL = 17
TILE_SEGMENTS = 32


class HeightField:
    """Per-tile height grids with point queries.

    A tile is either unloaded or loaded. Registering a tile again replaces
    its grid; nothing is ever evicted.
    """

    def __init__(
        self,
        zoom: int = TERRAIN_ZOOM_LEVEL,
        segments: int = TILE_SEGMENTS,
        center_lat: float = MAP_CENTER_LAT,
        center_lon: float = MAP_CENTER_LON,
    ) -> None:
        self._zoom = zoom
        self._segments = segments
        self._center = (center_lat, center_lon)
        self._tiles: dict[tuple[int, int], np.ndarray] = {}
        self._listeners: list[Callable[[TileAddress], None]] = []

    @property
    def zoom(self) -> int:
        return self._zoom

    @property
    def segments(self) -> int:
        return self._segments

    @property
    def tile_count(self) -> int:
        return len(self._tiles)

    def register_tile(self, col: int, row: int, heights) -> None:
        """Store a height grid for a tile and notify subscribers.

        Raises ValueError if the grid is not (N+1) x (N+1).
        """
        size = self._segments + 1
        grid = np.array(heights, dtype=np.float64)
        if grid.ndim == 1 and grid.size == size * size:
            grid = grid.reshape(size, size)
        if grid.shape != (size, size):
            raise ValueError(
                f"Height grid for tile {col},{row} has shape {grid.shape}, "
                f"expected ({size}, {size})"
            )
        grid.setflags(write=False)
        self._tiles[(col, row)] = grid
        logger.debug(f"Registered height tile {self._zoom}/{col}/{row}")
        self._notify(TileAddress(col, row, self._zoom))

    def has_tile(self, col: int, row: int) -> bool:
        return (col, row) in self._tiles

    def get_tile(self, col: int, row: int) -> np.ndarray | None:
        """Read-only height grid for a tile, or None if unloaded."""
        return self._tiles.get((col, row))

    def tile_for_world(self, x: float, z: float) -> TileAddress:
        """Address of the tile covering a world point."""
        e, n = world_to_projected(x, z, *self._center)
        return address_for(e, n, self._zoom)

    def get_height(self, x: float, z: float) -> float | None:
        """Interpolated terrain height at world (x, z), or None if unknown."""
        e, n = world_to_projected(x, z, *self._center)
        col, row = projected_to_tile(e, n, self._zoom)

        grid = self._tiles.get((col, row))
        if grid is None:
            return None

        bounds = tile_to_bounds(col, row, self._zoom)
        u = (e - bounds.left) / bounds.width
        v = (bounds.top - n) / bounds.height
        if u < 0 or u > 1 or v < 0 or v > 1:
            return None

        seg = self._segments
        grid_x = u * seg
        grid_y = v * seg
        x0 = math.floor(grid_x)
        y0 = math.floor(grid_y)
        x1 = min(x0 + 1, seg)
        y1 = min(y0 + 1, seg)
        tx = grid_x - x0
        ty = grid_y - y0

        h00 = grid[y0, x0]
        h10 = grid[y0, x1]
        h01 = grid[y1, x0]
        h11 = grid[y1, x1]

        top = h00 + (h10 - h00) * tx
        bottom = h01 + (h11 - h01) * tx
        return float(top + (bottom - top) * ty)

    def subscribe(self, callback: Callable[[TileAddress], None]) -> Callable[[], None]:
        """Register a listener for tile registrations.

        Returns a function that removes the listener; calling it twice is
        harmless.
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, address: TileAddress) -> None:
        for cb in list(self._listeners):
            try:
                cb(address)
            except Exception as e:
                logger.warning(f"Height tile listener failed for {address}: {e}")
