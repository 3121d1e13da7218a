"""
Road network graph built from line features.

Every polyline becomes a pair of directed edges between junction nodes
at its two endpoints. Endpoints are merged by rounding their world
coordinates to the nearest metre, which fuses abutting features whose
vertices do not quite coincide. Edges keep the full centreline so
followers trace the real curve rather than a chord.

Nodes are also bucketed into square chunks for neighbourhood lookups.
The graph is built once and treated as read-only afterwards.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Iterable

from shapely.geometry import LineString, Point
from shapely.strtree import STRtree

from roadsim.core.geo import MAP_CENTER_LAT, MAP_CENTER_LON, geo_to_world, is_within_local_span
from roadsim.roads.features import RoadFeature, parse_feature

logger = logging.getLogger(__name__)

CHUNK_SIZE_M = 150.0

WorldPoint = tuple[float, float]
ChunkId = tuple[int, int]


def _round_half_up(v: float) -> int:
    return math.floor(v + 0.5)


def node_key(x: float, z: float) -> str:
    """Junction identity for a world point, to the nearest metre."""
    return f"{_round_half_up(x)},{_round_half_up(z)}"


def chunk_id(x: float, z: float, chunk_size: float = CHUNK_SIZE_M) -> ChunkId:
    return math.floor(x / chunk_size), math.floor(z / chunk_size)


def chunk_ids_around(
    x: float, z: float, radius: int = 1, chunk_size: float = CHUNK_SIZE_M,
) -> list[ChunkId]:
    """Chunk ids in the (2r+1)^2 square centred on the chunk holding (x, z)."""
    cx, cz = chunk_id(x, z, chunk_size)
    return [
        (cx + i, cz + j)
        for i in range(-radius, radius + 1)
        for j in range(-radius, radius + 1)
    ]


def polyline_length(points: Iterable[WorldPoint]) -> float:
    total = 0.0
    prev = None
    for p in points:
        if prev is not None:
            total += math.dist(prev, p)
        prev = p
    return total


@dataclass(frozen=True)
class RoadEdge:
    """Directed road segment from one junction to another."""
    edge_id: str
    source: str
    target: str
    points: tuple[WorldPoint, ...]
    road_name: str

    @property
    def length(self) -> float:
        return polyline_length(self.points)


@dataclass
class RoadNode:
    """Road junction (or dead end)."""
    node_id: str
    position: WorldPoint
    edges: list[RoadEdge] = field(default_factory=list)


class RoadGraph:
    """Junction/segment graph with chunked spatial lookup."""

    def __init__(
        self,
        features: Iterable = (),
        center_lat: float = MAP_CENTER_LAT,
        center_lon: float = MAP_CENTER_LON,
        chunk_size: float = CHUNK_SIZE_M,
        seed: int | None = None,
    ) -> None:
        self._center = (center_lat, center_lon)
        self._chunk_size = chunk_size
        self._rng = random.Random(seed)
        self.nodes: dict[str, RoadNode] = {}
        self.chunked_nodes: dict[ChunkId, list[RoadNode]] = {}
        self._edge_count = 0
        self._road_lines: list[LineString] = []
        self._road_index: STRtree | None = None

        far = 0
        for record in features:
            feature = parse_feature(record)
            if feature is None:
                continue
            if not self._near_center(feature):
                far += 1
            self.add_feature(feature)

        if far:
            logger.warning(
                f"{far} road features start outside the local flat-earth span; "
                f"their geometry will be distorted"
            )
        logger.info(
            f"Road graph built: {len(self.nodes)} nodes, {self._edge_count} edges, "
            f"{len(self.chunked_nodes)} chunks"
        )

    @property
    def chunk_size(self) -> float:
        return self._chunk_size

    @property
    def edge_count(self) -> int:
        return self._edge_count

    def _near_center(self, feature: RoadFeature) -> bool:
        if not feature.lines or not feature.lines[0]:
            return True
        lon, lat = feature.lines[0][0]
        return is_within_local_span(lat, lon, *self._center)

    def add_feature(self, feature: RoadFeature) -> None:
        """Add every polyline of a validated feature."""
        for line in feature.lines:
            points = [geo_to_world(lat, lon, *self._center) for lon, lat in line]
            self.add_polyline(points, feature.name)

    def add_polyline(self, points: list[WorldPoint], road_name: str) -> None:
        """Add one world-space polyline as a pair of directed edges."""
        if len(points) < 2:
            return

        start = self._get_or_create_node(points[0])
        end = self._get_or_create_node(points[-1])

        # Snap the ends onto the (possibly merged) junctions
        forward = (start.position, *points[1:-1], end.position)

        start.edges.append(RoadEdge(
            edge_id=f"{start.node_id}-{end.node_id}",
            source=start.node_id,
            target=end.node_id,
            points=forward,
            road_name=road_name,
        ))
        end.edges.append(RoadEdge(
            edge_id=f"{end.node_id}-{start.node_id}",
            source=end.node_id,
            target=start.node_id,
            points=tuple(reversed(forward)),
            road_name=road_name,
        ))
        self._edge_count += 2
        self._road_lines.append(LineString(forward))
        self._road_index = None

    def _get_or_create_node(self, position: WorldPoint) -> RoadNode:
        key = node_key(*position)
        node = self.nodes.get(key)
        if node is None:
            node = RoadNode(node_id=key, position=(float(position[0]), float(position[1])))
            self.nodes[key] = node
            cid = chunk_id(*node.position, self._chunk_size)
            self.chunked_nodes.setdefault(cid, []).append(node)
        return node

    def get_node(self, node_id: str) -> RoadNode | None:
        return self.nodes.get(node_id)

    def get_closest_node(self, x: float, z: float) -> RoadNode | None:
        """Nearest node within the 3x3 chunk neighbourhood of (x, z).

        Nodes in farther chunks are never considered, even if nothing
        closer exists.
        """
        closest = None
        min_dist = math.inf
        for cid in chunk_ids_around(x, z, 1, self._chunk_size):
            for node in self.chunked_nodes.get(cid, ()):
                d = math.dist(node.position, (x, z))
                if d < min_dist:
                    min_dist = d
                    closest = node
        return closest

    def get_nodes_in_chunk(self, cid: ChunkId) -> list[RoadNode]:
        return list(self.chunked_nodes.get(cid, ()))

    def get_random_node_in_chunk(self, cid: ChunkId) -> RoadNode | None:
        nodes = self.chunked_nodes.get(cid)
        if not nodes:
            return None
        return self._rng.choice(nodes)

    def get_random_path(self, start_node_id: str, max_segments: int = 5) -> list[WorldPoint]:
        """Random walk along the network from a node.

        At each junction an outgoing edge is picked uniformly, excluding
        the one leading straight back to the previous node. Stops at a
        dead end or after max_segments edges. Returns [] for an unknown
        start node.
        """
        current = self.nodes.get(start_node_id)
        if current is None:
            return []

        path: list[WorldPoint] = [current.position]
        previous_id = None
        for _ in range(max_segments):
            candidates = [e for e in current.edges if e.target != previous_id]
            if not candidates:
                break
            edge = self._rng.choice(candidates)
            path.extend(edge.points[1:])
            previous_id = current.node_id
            current = self.nodes.get(edge.target)
            if current is None:
                break
        return path

    def distance_to_road(self, x: float, z: float) -> float:
        """Distance from (x, z) to the nearest road centreline, inf if none."""
        if not self._road_lines:
            return math.inf
        if self._road_index is None:
            self._road_index = STRtree(self._road_lines)
        point = Point(x, z)
        idx = self._road_index.nearest(point)
        return float(self._road_lines[idx].distance(point))
