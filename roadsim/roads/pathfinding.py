"""
A* route search over the road graph.

Start and end are arbitrary world points snapped to their closest
junctions. Edge cost is the length of the edge's centreline and the
heuristic is the straight-line distance to the goal, which never
overestimates, so returned routes are shortest for that metric.
"""

import heapq
import itertools
import logging
import math

from roadsim.roads.graph import RoadEdge, RoadGraph, RoadNode, WorldPoint

logger = logging.getLogger(__name__)


class PathFinder:
    """Shortest-path queries against a RoadGraph."""

    def __init__(self, graph: RoadGraph) -> None:
        self._graph = graph

    @staticmethod
    def _heuristic(a: RoadNode, b: RoadNode) -> float:
        return math.dist(a.position, b.position)

    def find_path(self, start: WorldPoint, end: WorldPoint) -> list[WorldPoint]:
        """Route between two world points as a centreline point sequence.

        Returns [] when either point has no nearby junction or the two
        junctions are not connected.
        """
        start_node = self._graph.get_closest_node(*start)
        end_node = self._graph.get_closest_node(*end)
        if start_node is None or end_node is None:
            logger.debug(f"No road junction near {start} or {end}")
            return []
        if start_node.node_id == end_node.node_id:
            return [start_node.position]

        edges = self._search(start_node, end_node)
        if edges is None:
            logger.debug(f"No route from {start_node.node_id} to {end_node.node_id}")
            return []
        return self._expand(edges)

    def find_path_length(self, start: WorldPoint, end: WorldPoint) -> float | None:
        """Length in metres of the route between two points, or None."""
        path = self.find_path(start, end)
        if not path:
            return None
        return sum(math.dist(a, b) for a, b in zip(path, path[1:]))

    def _search(self, start: RoadNode, goal: RoadNode) -> list[RoadEdge] | None:
        """A* from start to goal. Returns the edges taken, in order."""
        nodes = self._graph.nodes
        counter = itertools.count()  # insertion order breaks f ties
        g_score: dict[str, float] = {start.node_id: 0.0}
        came_by: dict[str, RoadEdge] = {}
        closed: set[str] = set()
        open_heap = [(self._heuristic(start, goal), next(counter), start.node_id)]

        while open_heap:
            _, _, current_id = heapq.heappop(open_heap)
            if current_id in closed:
                continue
            if current_id == goal.node_id:
                return self._edges_to(current_id, start.node_id, came_by)
            closed.add(current_id)

            current_g = g_score[current_id]
            for edge in nodes[current_id].edges:
                neighbor_id = edge.target
                if neighbor_id in closed:
                    continue
                neighbor = nodes.get(neighbor_id)
                if neighbor is None:
                    continue
                tentative = current_g + edge.length
                if tentative < g_score.get(neighbor_id, math.inf):
                    g_score[neighbor_id] = tentative
                    came_by[neighbor_id] = edge
                    f = tentative + self._heuristic(neighbor, goal)
                    heapq.heappush(open_heap, (f, next(counter), neighbor_id))

        return None

    @staticmethod
    def _edges_to(goal_id: str, start_id: str, came_by: dict[str, RoadEdge]) -> list[RoadEdge]:
        edges = []
        node_id = goal_id
        while node_id != start_id:
            edge = came_by[node_id]
            edges.append(edge)
            node_id = edge.source
        edges.reverse()
        return edges

    @staticmethod
    def _expand(edges: list[RoadEdge]) -> list[WorldPoint]:
        """Concatenate edge centrelines without repeating junction points."""
        path: list[WorldPoint] = list(edges[0].points)
        for edge in edges[1:]:
            path.extend(edge.points[1:])
        return path
