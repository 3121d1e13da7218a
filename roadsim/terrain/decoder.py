"""
Terrain-RGB elevation decoding.

Each pixel encodes height as -10000 + (R*65536 + G*256 + B) * 0.1 metres.
A decoded raster is down-sampled to the (N+1) x (N+1) vertex grid the
height field stores.
"""

import io

import numpy as np
from PIL import Image, UnidentifiedImageError

HEIGHT_OFFSET_M = -10000.0
HEIGHT_SCALE_M = 0.1


class TileDecodeError(Exception):
    """Raised when an elevation raster cannot be decoded."""


def decode_terrain_rgb(r, g, b):
    """Decode terrain-RGB channels to metres. Works on scalars or arrays."""
    r = np.asarray(r, dtype=np.float64)
    g = np.asarray(g, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    heights = HEIGHT_OFFSET_M + (r * 65536 + g * 256 + b) * HEIGHT_SCALE_M
    if heights.ndim == 0:
        return float(heights)
    return heights


def encode_terrain_rgb(height_m: float) -> tuple[int, int, int]:
    """Inverse of decode_terrain_rgb, quantised to 0.1m."""
    value = int(round((height_m - HEIGHT_OFFSET_M) / HEIGHT_SCALE_M))
    if not 0 <= value < 2 ** 24:
        raise ValueError(f"Height {height_m} outside terrain-RGB range")
    return (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF


def sample_height_grid(pixels: np.ndarray, segments: int = 32) -> np.ndarray:
    """Sample an (H, W, 3+) RGB array into a (segments+1)^2 height grid.

    Vertex (j, i) reads pixel (floor(j/N * (W-1)), floor(i/N * (H-1))).
    """
    if pixels.ndim != 3 or pixels.shape[2] < 3:
        raise TileDecodeError(f"Expected an RGB raster, got shape {pixels.shape}")
    height, width = pixels.shape[:2]
    steps = np.arange(segments + 1) / segments
    cols = np.floor(steps * (width - 1)).astype(int)
    rows = np.floor(steps * (height - 1)).astype(int)
    sampled = pixels[np.ix_(rows, cols)]
    return decode_terrain_rgb(sampled[..., 0], sampled[..., 1], sampled[..., 2])


def decode_tile_image(data: bytes, segments: int = 32) -> np.ndarray:
    """Decode encoded image bytes (PNG/WebP) into a height grid."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            pixels = np.asarray(image.convert("RGB"))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise TileDecodeError(f"Unreadable elevation raster: {e}") from e
    return sample_height_grid(pixels, segments)
