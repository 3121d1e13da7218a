"""Tests for the collision registry."""

import pytest

from roadsim.physics.collision import CollisionRegistry, PhysicsObject, PositionTable


@pytest.fixture
def positions():
    return PositionTable()


@pytest.fixture
def registry(positions):
    return CollisionRegistry(positions)


def _obj(object_id, hits=None, size=(2.0, 2.0, 2.0), kind="aiCar"):
    callback = hits.append if hits is not None else None
    return PhysicsObject(object_id=object_id, size=size, kind=kind, on_collide=callback)


class TestRegistration:
    def test_register_and_get(self, registry):
        obj = _obj("car")
        registry.register(obj)
        assert registry.get_object("car") is obj
        assert registry.count == 1

    def test_unregister(self, registry):
        registry.register(_obj("car"))
        registry.unregister("car")
        assert registry.get_object("car") is None
        assert registry.count == 0

    def test_unregister_unknown_is_noop(self, registry):
        registry.unregister("ghost")

    def test_reregister_replaces(self, registry):
        registry.register(_obj("car", kind="aiCar"))
        registry.register(_obj("car", kind="playerCar"))
        assert registry.count == 1
        assert registry.get_object("car").kind == "playerCar"

    def test_handle_defaults_to_id(self):
        assert _obj("car").handle == "car"


class TestUpdate:
    def test_overlap_calls_both_once(self, registry, positions):
        a_hits, b_hits = [], []
        registry.register(_obj("a", a_hits))
        registry.register(_obj("b", b_hits))
        positions.set("a", 0, 0, 0)
        positions.set("b", 1, 0, 1)
        assert registry.update(1 / 60) == 1
        assert [o.object_id for o in a_hits] == ["b"]
        assert [o.object_id for o in b_hits] == ["a"]

    def test_no_overlap(self, registry, positions):
        a_hits, b_hits = [], []
        registry.register(_obj("a", a_hits))
        registry.register(_obj("b", b_hits))
        positions.set("a", 0, 0, 0)
        positions.set("b", 5, 0, 0)
        assert registry.update(1 / 60) == 0
        assert a_hits == [] and b_hits == []

    def test_touching_faces_do_not_collide(self, registry, positions):
        hits = []
        registry.register(_obj("a", hits))
        registry.register(_obj("b"))
        positions.set("a", 0, 0, 0)
        positions.set("b", 2, 0, 0)
        registry.update(1 / 60)
        assert hits == []

    def test_vertical_separation(self, registry, positions):
        hits = []
        registry.register(_obj("a", hits))
        registry.register(_obj("bridge"))
        positions.set("a", 0, 0, 0)
        positions.set("bridge", 0, 10, 0)
        registry.update(1 / 60)
        assert hits == []

    def test_fires_every_frame(self, registry, positions):
        hits = []
        registry.register(_obj("a", hits))
        registry.register(_obj("b"))
        positions.set("a", 0, 0, 0)
        positions.set("b", 0.5, 0, 0)
        for _ in range(3):
            registry.update(1 / 60)
        assert len(hits) == 3

    def test_reads_positions_each_tick(self, registry, positions):
        hits = []
        registry.register(_obj("a", hits))
        registry.register(_obj("b"))
        positions.set("a", 0, 0, 0)
        positions.set("b", 50, 0, 0)
        registry.update(1 / 60)
        positions.set("b", 1, 0, 0)
        registry.update(1 / 60)
        assert len(hits) == 1

    def test_three_way_overlap(self, registry, positions):
        hits = {k: [] for k in "abc"}
        for k in "abc":
            registry.register(_obj(k, hits[k]))
            positions.set(k, 0, 0, 0)
        assert registry.update(1 / 60) == 3
        assert all(len(v) == 2 for v in hits.values())

    def test_missing_position_skipped(self, registry, positions):
        hits = []
        registry.register(_obj("a", hits))
        registry.register(_obj("b"))
        positions.set("a", 0, 0, 0)
        assert registry.update(1 / 60) == 0

    def test_callback_error_does_not_stop_frame(self, registry, positions):
        def explode(other):
            raise RuntimeError("bad consumer")

        b_hits = []
        registry.register(PhysicsObject("a", (2, 2, 2), "sign", on_collide=explode))
        registry.register(_obj("b", b_hits))
        positions.set("a", 0, 0, 0)
        positions.set("b", 0, 0, 0)
        registry.update(1 / 60)
        assert len(b_hits) == 1

    def test_unregister_during_dispatch(self, registry, positions):
        b_hits = []
        registry.register(PhysicsObject(
            "a", (2, 2, 2), "cone", on_collide=lambda other: registry.unregister("b"),
        ))
        registry.register(_obj("b", b_hits))
        positions.set("a", 0, 0, 0)
        positions.set("b", 0, 0, 0)
        registry.update(1 / 60)
        assert b_hits == []


class TestQueryRegion:
    def test_returns_intersecting(self, registry, positions):
        for k, x in (("near", 1.0), ("far", 30.0)):
            registry.register(_obj(k))
            positions.set(k, x, 0, 0)
        found = registry.query_region((-5, -5, -5), (5, 5, 5))
        assert [o.object_id for o in found] == ["near"]

    def test_excludes_id(self, registry, positions):
        for k in ("me", "other"):
            registry.register(_obj(k))
            positions.set(k, 0, 0, 0)
        found = registry.query_region((-1, -1, -1), (1, 1, 1), exclude_id="me")
        assert [o.object_id for o in found] == ["other"]

    def test_empty_registry(self, registry):
        assert registry.query_region((0, 0, 0), (1, 1, 1)) == []
