"""
Ambient traffic spawning over the road graph.

Keeps a small pool of AI cars around the player. Each step drops cars
whose spawn chunk has left the player's 3x3 chunk neighbourhood and, if
the pool is short, spawns one car on a random walk from a junction in a
random active chunk. Routes are shifted onto the left lane.
"""

import itertools
import logging
import math
import random
from dataclasses import dataclass

from roadsim.roads.graph import ChunkId, RoadGraph, WorldPoint, chunk_ids_around

logger = logging.getLogger(__name__)

ROAD_WIDTH_M = 12.0
LANE_OFFSET_M = ROAD_WIDTH_M / 5
MAX_CARS = 8
MIN_SPAWN_DISTANCE_M = 50.0
ROUTE_SEGMENTS = 10
SPEED_RANGE_MS = (8.0, 12.0)
CAR_COLORS = ("red", "blue", "white", "silver", "black")


def _normalize(dx: float, dz: float) -> tuple[float, float]:
    length = math.hypot(dx, dz)
    if length == 0:
        return 0.0, 0.0
    return dx / length, dz / length


def apply_lane_offset(points: list[WorldPoint], offset: float = LANE_OFFSET_M) -> list[WorldPoint]:
    """Shift a centreline sideways onto the left-hand lane.

    Each vertex moves along the perpendicular of the averaged incoming
    and outgoing directions, so corners stay joined.
    """
    if len(points) < 2:
        return list(points)

    shifted = []
    last = len(points) - 1
    for i, (x, z) in enumerate(points):
        incoming = _normalize(x - points[i - 1][0], z - points[i - 1][1]) if i > 0 else None
        outgoing = _normalize(points[i + 1][0] - x, points[i + 1][1] - z) if i < last else None
        incoming = incoming or outgoing
        outgoing = outgoing or incoming
        dx, dz = _normalize(incoming[0] + outgoing[0], incoming[1] + outgoing[1])
        # Up (0, 1, 0) x direction, projected onto the ground plane
        px, pz = dz, -dx
        shifted.append((x + px * offset, z + pz * offset))
    return shifted


@dataclass
class TrafficCar:
    """One spawned AI car."""
    car_id: str
    path: list[WorldPoint]
    color: str
    speed_ms: float
    spawn_chunk: ChunkId


class TrafficSpawner:
    """Maintains the AI car pool around a moving player."""

    def __init__(
        self,
        graph: RoadGraph,
        max_cars: int = MAX_CARS,
        min_spawn_distance_m: float = MIN_SPAWN_DISTANCE_M,
        seed: int | None = None,
    ) -> None:
        self._graph = graph
        self._max_cars = max_cars
        self._min_distance = min_spawn_distance_m
        self._rng = random.Random(seed)
        self._ids = itertools.count(1)
        self.cars: list[TrafficCar] = []

    def step(self, player_x: float, player_z: float) -> list[TrafficCar]:
        """Cull out-of-area cars and spawn at most one. Returns the pool."""
        if math.isnan(player_x) or math.isnan(player_z):
            logger.warning("Traffic step skipped: player position is NaN")
            return self.cars

        active = chunk_ids_around(player_x, player_z, 1, self._graph.chunk_size)
        active_set = set(active)
        self.cars = [c for c in self.cars if c.spawn_chunk in active_set]

        if len(self.cars) < self._max_cars:
            car = self._spawn(self._rng.choice(active), player_x, player_z)
            if car is not None:
                self.cars.append(car)
                logger.debug(
                    f"Spawned {car.car_id} in chunk {car.spawn_chunk}, "
                    f"{len(self.cars)} cars active"
                )
        return self.cars

    def _spawn(self, cid: ChunkId, player_x: float, player_z: float) -> TrafficCar | None:
        node = self._graph.get_random_node_in_chunk(cid)
        if node is None:
            return None
        if math.dist(node.position, (player_x, player_z)) <= self._min_distance:
            return None

        route = self._graph.get_random_path(node.node_id, ROUTE_SEGMENTS)
        if len(route) < 2:
            logger.debug(f"No route out of node {node.node_id}")
            return None

        return TrafficCar(
            car_id=f"car-{next(self._ids)}",
            path=apply_lane_offset(route),
            color=self._rng.choice(CAR_COLORS),
            speed_ms=self._rng.uniform(*SPEED_RANGE_MS),
            spawn_chunk=cid,
        )
