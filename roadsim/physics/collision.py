"""
Axis-aligned bounding-box collision registry.

Simulated entities register a PhysicsObject; their positions live in a
PositionTable owned by the simulation loop and are resolved through the
object's handle every tick. Each update tests every unordered pair of
registered objects and invokes both callbacks on overlap. There is no
contact state: overlapping boxes report every frame.

The pair test is quadratic but vectorised; object counts are in the
tens. A uniform grid or sweep-and-prune broad phase would be needed for
hundreds.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]


class PositionTable:
    """Entity positions keyed by handle, owned by the simulation loop."""

    def __init__(self) -> None:
        self._positions: dict[str, np.ndarray] = {}

    def set(self, handle: str, x: float, y: float, z: float) -> None:
        self._positions[handle] = np.array((x, y, z), dtype=np.float64)

    def get(self, handle: str) -> np.ndarray | None:
        return self._positions.get(handle)

    def remove(self, handle: str) -> None:
        self._positions.pop(handle, None)

    def __contains__(self, handle: str) -> bool:
        return handle in self._positions

    def __len__(self) -> int:
        return len(self._positions)


@dataclass(eq=False)
class PhysicsObject:
    """A registered collision volume.

    `handle` keys the object's position in the PositionTable and defaults
    to `object_id`. `size` is the full box extent on each axis.
    """
    object_id: str
    size: Vec3
    kind: str
    on_collide: Optional[Callable[["PhysicsObject"], None]] = None
    quaternion: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)
    handle: str = ""

    def __post_init__(self) -> None:
        if not self.handle:
            self.handle = self.object_id


class CollisionRegistry:
    """Registry of collision volumes with per-frame overlap dispatch.

    Single-threaded: register/unregister and update must not interleave.
    """

    def __init__(self, positions: PositionTable) -> None:
        self._positions = positions
        self._objects: dict[str, PhysicsObject] = {}

    @property
    def positions(self) -> PositionTable:
        return self._positions

    @property
    def count(self) -> int:
        return len(self._objects)

    def register(self, obj: PhysicsObject) -> None:
        """Add an object, replacing any existing one with the same id."""
        self._objects[obj.object_id] = obj

    def unregister(self, object_id: str) -> None:
        """Remove an object. Unknown ids are ignored."""
        self._objects.pop(object_id, None)

    def get_object(self, object_id: str) -> PhysicsObject | None:
        return self._objects.get(object_id)

    def get_position(self, object_id: str) -> np.ndarray | None:
        obj = self._objects.get(object_id)
        if obj is None:
            return None
        return self._positions.get(obj.handle)

    def _resolve(self) -> tuple[list[PhysicsObject], np.ndarray, np.ndarray]:
        """Objects with a known position and their box corners."""
        resolved = []
        centers = []
        halves = []
        for obj in self._objects.values():
            pos = self._positions.get(obj.handle)
            if pos is None:
                logger.debug(f"No position for physics object {obj.object_id}")
                continue
            resolved.append(obj)
            centers.append(pos)
            halves.append(np.asarray(obj.size, dtype=np.float64) / 2)
        if not resolved:
            empty = np.empty((0, 3))
            return resolved, empty, empty
        centers = np.vstack(centers)
        halves = np.vstack(halves)
        return resolved, centers - halves, centers + halves

    def find_overlaps(self) -> list[tuple[PhysicsObject, PhysicsObject]]:
        """All unordered overlapping pairs, in registration order."""
        objs, mins, maxs = self._resolve()
        if len(objs) < 2:
            return []
        overlap = np.all(
            (maxs[:, None, :] > mins[None, :, :]) & (mins[:, None, :] < maxs[None, :, :]),
            axis=2,
        )
        ii, jj = np.nonzero(np.triu(overlap, k=1))
        return [(objs[i], objs[j]) for i, j in zip(ii, jj)]

    def update(self, delta_time: float) -> int:
        """Run one frame of collision detection. Returns the pair count.

        Each overlapping pair calls both objects' callbacks once. Objects
        unregistered by an earlier callback in the same frame are skipped.
        """
        pairs = self.find_overlaps()
        for a, b in pairs:
            self._dispatch(a, b)
            self._dispatch(b, a)
        return len(pairs)

    def _dispatch(self, obj: PhysicsObject, other: PhysicsObject) -> None:
        if obj.on_collide is None:
            return
        if self._objects.get(obj.object_id) is not obj:
            return
        if self._objects.get(other.object_id) is not other:
            return
        try:
            obj.on_collide(other)
        except Exception as e:
            logger.warning(f"Collision callback for {obj.object_id} failed: {e}")

    def query_region(
        self, region_min: Vec3, region_max: Vec3, exclude_id: str | None = None,
    ) -> list[PhysicsObject]:
        """Objects whose box intersects an axis-aligned region."""
        objs, mins, maxs = self._resolve()
        if not objs:
            return []
        lo = np.asarray(region_min, dtype=np.float64)
        hi = np.asarray(region_max, dtype=np.float64)
        hits = np.all((maxs > lo) & (mins < hi), axis=1)
        return [o for o, hit in zip(objs, hits) if hit and o.object_id != exclude_id]
