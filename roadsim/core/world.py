"""
Simulation world root.

Constructs every core service once from a WorldConfig and hands them to
consumers by reference. The host render loop calls tick() each frame.
"""

import logging
from typing import Iterable

from roadsim.core.config import WorldConfig
from roadsim.physics.collision import CollisionRegistry, PhysicsObject, PositionTable
from roadsim.roads.features import load_feature_collection
from roadsim.roads.graph import RoadGraph
from roadsim.roads.pathfinding import PathFinder
from roadsim.roads.traffic import TrafficSpawner
from roadsim.terrain.height_field import HeightField
from roadsim.terrain.loader import ElevationTileLoader

logger = logging.getLogger(__name__)


class World:
    """Owns the height field, road network and collision registry."""

    def __init__(self, config: WorldConfig, features: Iterable = ()) -> None:
        self.config = config
        self.height_field = HeightField(
            zoom=config.terrain_zoom,
            segments=config.tile_segments,
            center_lat=config.center_lat,
            center_lon=config.center_lon,
        )
        self.roads = RoadGraph(
            features,
            center_lat=config.center_lat,
            center_lon=config.center_lon,
            chunk_size=config.chunk_size_m,
            seed=config.traffic_seed,
        )
        self.paths = PathFinder(self.roads)
        self.traffic = TrafficSpawner(self.roads, seed=config.traffic_seed)
        self.positions = PositionTable()
        self.collisions = CollisionRegistry(self.positions)
        self._frame = 0

    @classmethod
    def from_config(cls, config: WorldConfig) -> "World":
        """Build a world, loading road features from config if set."""
        features = []
        if config.road_features:
            features = load_feature_collection(config.road_features)
            logger.info(f"Loaded {len(features)} road features from {config.road_features}")
        return cls(config, features)

    def tile_loader(self, session=None) -> ElevationTileLoader:
        """Elevation loader feeding this world's height field."""
        return ElevationTileLoader(
            self.height_field,
            url_template=self.config.elevation_url,
            api_key=self.config.api_key,
            timeout_s=self.config.fetch_timeout_s,
            session=session,
            center_lat=self.config.center_lat,
            center_lon=self.config.center_lon,
        )

    def ground_height(self, x: float, z: float, default: float = 0.0) -> float:
        """Terrain height with a fallback for tiles not yet loaded."""
        h = self.height_field.get_height(x, z)
        return default if h is None else h

    def spawn(self, obj: PhysicsObject, x: float, y: float, z: float) -> None:
        """Place an entity and register its collision volume."""
        previous = self.collisions.get_object(obj.object_id)
        if previous is not None and previous.handle != obj.handle:
            self.positions.remove(previous.handle)
        self.positions.set(obj.handle, x, y, z)
        self.collisions.register(obj)

    def despawn(self, object_id: str) -> None:
        obj = self.collisions.get_object(object_id)
        if obj is None:
            return
        self.collisions.unregister(object_id)
        self.positions.remove(obj.handle)

    def tick(self, delta_time: float) -> int:
        """Per-frame update. Returns the number of colliding pairs."""
        self._frame += 1
        return self.collisions.update(delta_time)

    @property
    def frame(self) -> int:
        return self._frame
