"""
Slippy-map tile coordinates.

Maps WGS84 coordinates to Web Mercator tile indices and builds the
square tile window that the mosaic loader fetches.

Usage:
    from .tiles import locate, tile_grid

    center = locate(40.6892, -74.0, 18)
    grid = tile_grid(center, 3)   # 9 tiles, center in the middle
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class TileIndex:
    """Web Mercator tile coordinates."""

    x: int
    y: int
    zoom: int

    def __post_init__(self) -> None:
        n = 2 ** self.zoom
        if not (0 <= self.x < n and 0 <= self.y < n):
            raise ValueError(
                f"Tile ({self.x}, {self.y}) outside the world at zoom {self.zoom} "
                f"(valid range 0..{n - 1})"
            )

    def url(self, template: str) -> str:
        """Substitute z/x/y into a tile server URL template."""
        return template.format(z=self.zoom, x=self.x, y=self.y)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Get WGS84 bounds (west, south, east, north)."""
        return tile_bounds_wgs84(self)

    def __str__(self) -> str:
        return f"{self.zoom}/{self.x}/{self.y}"


def locate(lat: float, lng: float, zoom: int) -> TileIndex:
    """Convert WGS84 coordinates to the tile containing them.

    No clamping is done near the poles: latitudes past roughly +/-85.05°
    land outside the world and TileIndex raises ValueError.

    Args:
        lat: Latitude in degrees
        lng: Longitude in degrees
        zoom: Zoom level

    Returns:
        TileIndex containing the coordinate
    """
    lat_rad = math.radians(lat)
    n = 2 ** zoom
    x = math.floor(n * (lng + 180.0) / 360.0)
    y = math.floor(
        n * (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0
    )
    return TileIndex(x=x, y=y, zoom=zoom)


def tile_grid(center: TileIndex, grid_size: int) -> list[TileIndex]:
    """Build the square tile window centered on a tile.

    Tiles are ordered row by row (top to bottom, left to right), so the
    center tile sits at index len(grid) // 2. X wraps around the
    antimeridian; a window reaching past the poles raises ValueError.

    Args:
        center: Reference tile
        grid_size: Tiles per side, positive and odd

    Returns:
        grid_size * grid_size tiles
    """
    if grid_size < 1 or grid_size % 2 == 0:
        raise ValueError(f"grid_size must be a positive odd integer, got {grid_size}")

    n = 2 ** center.zoom
    half = grid_size // 2

    tiles = []
    for dy in range(-half, half + 1):
        for dx in range(-half, half + 1):
            tiles.append(TileIndex(
                x=(center.x + dx) % n,
                y=center.y + dy,
                zoom=center.zoom,
            ))
    return tiles


def tile_bounds_wgs84(tile: TileIndex) -> tuple[float, float, float, float]:
    """Get WGS84 bounds for a Web Mercator tile.

    Returns:
        Tuple of (west, south, east, north) in WGS84 degrees
    """
    n = 2 ** tile.zoom

    def tile_to_lon(x: int) -> float:
        return x / n * 360.0 - 180.0

    def tile_to_lat(y: int) -> float:
        return math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * y / n))))

    return (
        tile_to_lon(tile.x),
        tile_to_lat(tile.y + 1),
        tile_to_lon(tile.x + 1),
        tile_to_lat(tile.y),
    )
