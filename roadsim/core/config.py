"""
World configuration: environment defaults plus an optional YAML file.

Environment variables provide process-wide defaults; a YAML file with a
top-level `world:` mapping overrides them for a specific map.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from roadsim.core.geo import MAP_CENTER_LAT, MAP_CENTER_LON

logger = logging.getLogger(__name__)

DEFAULT_ELEVATION_URL = (
    "https://basemaps.linz.govt.nz/v1/tiles/elevation/NZTM2000Quad/"
    "{z}/{x}/{y}.png?api={api_key}&pipeline=terrain-rgb"
)

CENTER_LAT = float(os.environ.get("ROADSIM_CENTER_LAT", str(MAP_CENTER_LAT)))
CENTER_LON = float(os.environ.get("ROADSIM_CENTER_LON", str(MAP_CENTER_LON)))
TERRAIN_ZOOM = int(os.environ.get("ROADSIM_TERRAIN_ZOOM", "17"))
ELEVATION_URL = os.environ.get("ROADSIM_ELEVATION_URL", DEFAULT_ELEVATION_URL)
LINZ_API_KEY = os.environ.get("LINZ_API_KEY", "")


@dataclass
class WorldConfig:
    """Settings for one simulation world."""
    center_lat: float = CENTER_LAT
    center_lon: float = CENTER_LON
    terrain_zoom: int = TERRAIN_ZOOM
    tile_segments: int = 32
    chunk_size_m: float = 150.0
    elevation_url: str = ELEVATION_URL
    api_key: str = LINZ_API_KEY
    fetch_timeout_s: float = 15.0
    road_features: str | None = None
    traffic_seed: int | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "WorldConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(d) - known
        if unknown:
            raise ValueError(f"Unknown world config keys: {sorted(unknown)}")
        return replace(cls(), **d)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "WorldConfig":
        """Load config from a YAML file with a top-level 'world' key."""
        path = Path(path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        section = raw.get("world", {}) or {}
        config = cls.from_dict(section)
        # Relative feature paths resolve against the config file
        if config.road_features and not Path(config.road_features).is_absolute():
            config.road_features = str(path.parent / config.road_features)
        logger.info(
            f"Loaded world config {path.name}: centre "
            f"({config.center_lat:.5f}, {config.center_lon:.5f}), "
            f"zoom {config.terrain_zoom}"
        )
        return config
