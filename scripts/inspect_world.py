"""
Inspect a simulation world from the command line.

Usage:
    python -m scripts.inspect_world summary --config config/world.yaml --features roads.geojson
    python -m scripts.inspect_world route --features roads.geojson 0 0 250 -400
    python -m scripts.inspect_world height -- -41.2889 174.7772
"""

import asyncio
import logging
import math

import click

from roadsim.core.config import WorldConfig
from roadsim.core.geo import geo_to_world
from roadsim.core.world import World

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _load_world(config_path: str | None, features_path: str | None) -> World:
    config = WorldConfig.from_yaml(config_path) if config_path else WorldConfig()
    if features_path:
        config.road_features = features_path
    return World.from_config(config)


@click.group()
def cli() -> None:
    """Road simulation world inspection tools."""


@cli.command()
@click.option("--config", "config_path", type=click.Path(exists=True), default=None)
@click.option("--features", "features_path", type=click.Path(exists=True), default=None)
def summary(config_path: str | None, features_path: str | None) -> None:
    """Print road graph statistics."""
    world = _load_world(config_path, features_path)
    roads = world.roads
    dead_ends = sum(1 for n in roads.nodes.values() if len(n.edges) == 1)
    print(f"Nodes:     {len(roads.nodes)}")
    print(f"Edges:     {roads.edge_count}")
    print(f"Chunks:    {len(roads.chunked_nodes)}")
    print(f"Dead ends: {dead_ends}")


@cli.command()
@click.option("--config", "config_path", type=click.Path(exists=True), default=None)
@click.option("--features", "features_path", type=click.Path(exists=True), default=None)
@click.argument("x1", type=float)
@click.argument("z1", type=float)
@click.argument("x2", type=float)
@click.argument("z2", type=float)
def route(config_path, features_path, x1: float, z1: float, x2: float, z2: float) -> None:
    """Shortest road route between two world points."""
    world = _load_world(config_path, features_path)
    path = world.paths.find_path((x1, z1), (x2, z2))
    if not path:
        print("No route")
        raise SystemExit(1)
    length = sum(math.dist(a, b) for a, b in zip(path, path[1:]))
    print(f"Route: {len(path)} points, {length:.1f} m")
    print(f"  from ({path[0][0]:.1f}, {path[0][1]:.1f}) to ({path[-1][0]:.1f}, {path[-1][1]:.1f})")


@cli.command()
@click.option("--config", "config_path", type=click.Path(exists=True), default=None)
@click.argument("lat", type=float)
@click.argument("lon", type=float)
def height(config_path: str | None, lat: float, lon: float) -> None:
    """Fetch the covering elevation tile and print terrain height."""
    world = _load_world(config_path, None)
    x, z = geo_to_world(lat, lon, world.config.center_lat, world.config.center_lon)
    address = world.height_field.tile_for_world(x, z)

    async def fetch():
        async with world.tile_loader() as loader:
            return await loader.load(address.col, address.row)

    result = asyncio.run(fetch())
    if not result.ok:
        print(f"Tile {address} unavailable: {result.error}")
        raise SystemExit(1)
    h = world.height_field.get_height(x, z)
    print(f"World ({x:.1f}, {z:.1f}) tile {address}: {h:.2f} m")


if __name__ == "__main__":
    cli()
