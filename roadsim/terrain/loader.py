"""
Asynchronous elevation tile worker.

Fetches terrain-RGB tiles over HTTP, decodes them off the event loop in
an executor thread and registers the resulting grid with the height
field. Failures are reported as a TileLoadResult error payload; the
tile simply stays unloaded.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp
import numpy as np

from roadsim.core.geo import MAP_CENTER_LAT, MAP_CENTER_LON, world_to_projected
from roadsim.core.tiles import TileAddress, tile_url, tiles_around
from roadsim.terrain.decoder import TileDecodeError, decode_tile_image
from roadsim.terrain.height_field import HeightField

logger = logging.getLogger(__name__)


@dataclass
class TileLoadResult:
    """Outcome of one tile load: either a height grid or an error."""
    address: TileAddress
    heights: np.ndarray | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ElevationTileLoader:
    """Loads elevation tiles into a HeightField.

    Tiles already in the height field are not refetched, and concurrent
    requests for the same tile share a single fetch.
    """

    def __init__(
        self,
        height_field: HeightField,
        url_template: str,
        api_key: str = "",
        timeout_s: float = 15.0,
        session: Any = None,
        center_lat: float = MAP_CENTER_LAT,
        center_lon: float = MAP_CENTER_LON,
    ) -> None:
        self._field = height_field
        self._template = url_template
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._session = session
        self._owns_session = session is None
        self._center = (center_lat, center_lon)
        self._in_flight: dict[tuple[int, int], asyncio.Task] = {}

    async def close(self) -> None:
        """Close the HTTP session if this loader created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "ElevationTileLoader":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def url_for(self, address: TileAddress) -> str:
        return tile_url(self._template, address, api_key=self._api_key)

    async def load(self, col: int, row: int) -> TileLoadResult:
        """Load one tile. Never raises for fetch or decode failures."""
        address = TileAddress(col, row, self._field.zoom)
        existing = self._field.get_tile(col, row)
        if existing is not None:
            return TileLoadResult(address, heights=existing)

        key = (col, row)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(address))
            self._in_flight[key] = task
        return await asyncio.shield(task)

    async def ensure_around(self, x: float, z: float, radius: int = 1) -> list[TileLoadResult]:
        """Load the tile neighbourhood around a world point concurrently."""
        e, n = world_to_projected(x, z, *self._center)
        addresses = tiles_around(e, n, self._field.zoom, radius)
        return list(await asyncio.gather(
            *(self.load(a.col, a.row) for a in addresses)
        ))

    async def _load(self, address: TileAddress) -> TileLoadResult:
        try:
            return await self._fetch_and_register(address)
        finally:
            self._in_flight.pop((address.col, address.row), None)

    async def _fetch_and_register(self, address: TileAddress) -> TileLoadResult:
        url = self.url_for(address)
        try:
            data = await self._fetch(url)
            loop = asyncio.get_running_loop()
            heights = await loop.run_in_executor(
                None, decode_tile_image, data, self._field.segments
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Elevation tile {address} fetch failed: {e}")
            return TileLoadResult(address, error=f"fetch failed: {e}")
        except TileDecodeError as e:
            logger.warning(f"Elevation tile {address} decode failed: {e}")
            return TileLoadResult(address, error=f"decode failed: {e}")

        self._field.register_tile(address.col, address.row, heights)
        logger.info(f"Loaded elevation tile {address}")
        return TileLoadResult(address, heights=self._field.get_tile(address.col, address.row))

    async def _fetch(self, url: str) -> bytes:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout_s),
            )
        async with self._session.get(url) as resp:
            resp.raise_for_status()
            return await resp.read()
