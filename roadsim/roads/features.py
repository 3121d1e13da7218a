"""
Road feature ingestion.

Raw GeoJSON-style records are validated once at the boundary into a
closed set of shapes: a RoadFeature carries either one LineString or a
MultiLineString, each as (lon, lat) vertex lists. Records that are not
line geometry or have no name are skipped.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from shapely.errors import ShapelyError
from shapely.geometry import LineString, MultiLineString, shape
from shapely.geometry.base import BaseGeometry

logger = logging.getLogger(__name__)


class GeometryKind(Enum):
    LINE_STRING = "LineString"
    MULTI_LINE_STRING = "MultiLineString"


@dataclass(frozen=True)
class RoadFeature:
    """A named road made of one or more polylines in (lon, lat)."""
    name: str
    kind: GeometryKind
    lines: tuple[tuple[tuple[float, float], ...], ...]

    @classmethod
    def from_geometry(cls, geometry: BaseGeometry, name: str) -> "RoadFeature":
        if isinstance(geometry, LineString):
            kind = GeometryKind.LINE_STRING
            parts = [geometry]
        elif isinstance(geometry, MultiLineString):
            kind = GeometryKind.MULTI_LINE_STRING
            parts = list(geometry.geoms)
        else:
            raise ValueError(f"Unsupported road geometry {geometry.geom_type}")
        lines = tuple(
            tuple((float(c[0]), float(c[1])) for c in part.coords)
            for part in parts
        )
        return cls(name=name, kind=kind, lines=lines)


def parse_feature(record: Any) -> RoadFeature | None:
    """Validate one feature record. Returns None for anything unusable."""
    if isinstance(record, RoadFeature):
        return record
    if not isinstance(record, dict):
        logger.debug(f"Skipping non-mapping road record: {type(record).__name__}")
        return None

    name = (record.get("properties") or {}).get("name")
    if not name:
        logger.debug("Skipping road feature without a name")
        return None

    geometry = record.get("geometry")
    if not geometry:
        logger.debug(f"Skipping road feature '{name}' without geometry")
        return None
    kind = geometry.get("type") if isinstance(geometry, dict) else None
    if kind not in (GeometryKind.LINE_STRING.value, GeometryKind.MULTI_LINE_STRING.value):
        logger.debug(f"Skipping road feature '{name}' with geometry type {kind}")
        return None
    if kind == GeometryKind.MULTI_LINE_STRING.value:
        geometry = _drop_short_parts(geometry, name)
        if geometry is None:
            return None

    try:
        geom = shape(geometry)
    except (ShapelyError, KeyError, TypeError, ValueError, IndexError) as e:
        logger.debug(f"Skipping malformed road feature '{name}': {e}")
        return None
    return RoadFeature.from_geometry(geom, str(name))


def _drop_short_parts(geometry: dict, name: str) -> dict | None:
    """Keep only the MultiLineString parts with at least two vertices."""
    parts = geometry.get("coordinates")
    if not isinstance(parts, (list, tuple)):
        logger.debug(f"Skipping road feature '{name}' with malformed coordinates")
        return None
    usable = [p for p in parts if isinstance(p, (list, tuple)) and len(p) >= 2]
    if len(usable) < len(parts):
        logger.debug(f"Dropped {len(parts) - len(usable)} short parts from road '{name}'")
    if not usable:
        logger.debug(f"Skipping road feature '{name}' with no usable parts")
        return None
    return {**geometry, "coordinates": usable}


def parse_features(records: Iterable[Any]) -> list[RoadFeature]:
    """Validate a collection of records, dropping malformed ones."""
    features = []
    skipped = 0
    for record in records:
        feature = parse_feature(record)
        if feature is None:
            skipped += 1
        else:
            features.append(feature)
    if skipped:
        logger.info(f"Skipped {skipped} malformed road features")
    return features


def load_feature_collection(path: str | Path) -> list[RoadFeature]:
    """Read a GeoJSON FeatureCollection (or bare feature list) from disk."""
    with open(path) as f:
        raw = json.load(f)
    records = raw.get("features", []) if isinstance(raw, dict) else raw
    return parse_features(records)
