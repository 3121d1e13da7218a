"""Tests for A* routing."""

import math

import pytest

from roadsim.roads.graph import RoadGraph
from roadsim.roads.pathfinding import PathFinder

A, B, C, D, E = (0, 0), (100, 0), (100, 100), (0, 100), (50, 50)


def _square(with_diagonal: bool) -> RoadGraph:
    """Four corners joined around the edge; optional diagonal A-E-C."""
    g = RoadGraph()
    for p, q in ((A, B), (B, C), (C, D), (D, A)):
        g.add_polyline([p, q], "Side")
    if with_diagonal:
        g.add_polyline([A, E], "Diagonal")
        g.add_polyline([E, C], "Diagonal")
    return g


def _length(path):
    return sum(math.dist(a, b) for a, b in zip(path, path[1:]))


class TestFindPath:
    def test_diagonal_is_shortest(self):
        path = PathFinder(_square(True)).find_path(A, C)
        assert _length(path) == pytest.approx(100 * math.sqrt(2))
        assert path[0] == A and path[-1] == C
        assert E in path

    def test_removing_diagonal_lengthens_route(self):
        with_diag = _length(PathFinder(_square(True)).find_path(A, C))
        without = _length(PathFinder(_square(False)).find_path(A, C))
        assert without == pytest.approx(200.0)
        assert without > with_diag

    def test_snaps_to_nearest_junctions(self):
        path = PathFinder(_square(False)).find_path((3, -2), (98, 4))
        assert path == [A, B]

    def test_same_node(self):
        assert PathFinder(_square(False)).find_path((1, 1), (2, -1)) == [A]

    def test_no_nearby_node(self):
        assert PathFinder(_square(False)).find_path(A, (5000, 5000)) == []

    def test_empty_graph(self):
        assert PathFinder(RoadGraph()).find_path(A, B) == []

    def test_disconnected_components(self):
        g = RoadGraph()
        g.add_polyline([(0, 0), (50, 0)], "West")
        g.add_polyline([(200, 0), (250, 0)], "East")
        assert PathFinder(g).find_path((0, 0), (250, 0)) == []

    def test_curved_edge_costed_by_polyline(self):
        """A short chord with a long detour loses to a straight road."""
        g = RoadGraph()
        g.add_polyline([(0, 0), (50, 140), (100, 0)], "Detour")
        g.add_polyline([(0, 0), (50, -10)], "Straight")
        g.add_polyline([(50, -10), (100, 0)], "Straight")
        path = PathFinder(g).find_path((0, 0), (100, 0))
        assert (50, -10) in path
        assert (50, 140) not in path

    def test_interior_points_preserved_without_duplicates(self):
        g = RoadGraph()
        g.add_polyline([(0, 0), (20, 5), (40, 0)], "One")
        g.add_polyline([(40, 0), (60, -5), (80, 0)], "Two")
        path = PathFinder(g).find_path((0, 0), (80, 0))
        assert path == [(0, 0), (20, 5), (40, 0), (60, -5), (80, 0)]

    def test_deterministic(self):
        g = _square(False)  # two equal-length routes A->C
        finder = PathFinder(g)
        assert finder.find_path(A, C) == finder.find_path(A, C)

    def test_find_path_length(self):
        finder = PathFinder(_square(True))
        assert finder.find_path_length(A, C) == pytest.approx(100 * math.sqrt(2))
        assert finder.find_path_length(A, (5000, 0)) is None
