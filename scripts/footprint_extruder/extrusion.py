"""
Footprint extrusion.

Converts a sketched polygon in raster pixels into a block of the
requested height:

1. Normalize pixels into a fixed window around the scene origin
   ([0, W] -> [-extent, extent], [0, H] -> [extent, -extent])
2. Build the footprint polygon in click order
3. Extrude along +Z with flat caps

Self-intersecting footprints are passed through unchecked. Footprints
with fewer than three distinct vertices or no area are rejected.
"""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
import trimesh
from shapely.geometry import Polygon

from .errors import DegeneratePolygonError

# Footprints with less area than this (in normalized units) are degenerate
MIN_AREA = 1e-9

# Heights below this produce a flat footprint instead of a prism
MIN_HEIGHT = 1e-6

DEFAULT_COLOR = (128, 128, 128, 255)


@dataclass
class ExtrudedSolid:
    """A footprint extruded to a height. Replaced, never mutated."""

    footprint: Polygon
    height: float
    mesh: trimesh.Trimesh

    @property
    def extent(self) -> float:
        """Size of the mesh along the extrusion axis."""
        return float(self.mesh.bounds[1][2] - self.mesh.bounds[0][2])

    @property
    def base(self) -> NDArray[np.float64]:
        """Footprint vertices lying on the z=0 plane."""
        vertices = self.mesh.vertices
        return vertices[np.isclose(vertices[:, 2], 0.0)][:, :2]


def normalize_points(
    points: list[tuple[float, float]],
    buffer_size: tuple[int, int],
    extent: float = 2.0,
) -> NDArray[np.float64]:
    """Map buffer pixels into the scene window.

    The vertical axis is flipped so that screen-down maps to scene -Y.

    Args:
        points: (x, y) pixel coordinates
        buffer_size: Raster buffer (width, height)
        extent: Half-size of the output window

    Returns:
        (N, 2) array of normalized coordinates
    """
    width, height = buffer_size
    coords = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    x = coords[:, 0] / width * (2 * extent) - extent
    y = -(coords[:, 1] / height) * (2 * extent) + extent
    return np.column_stack([x, y])


def build_footprint(
    points: list[tuple[float, float]],
    buffer_size: tuple[int, int],
    extent: float = 2.0,
) -> Polygon:
    """Build the normalized footprint polygon in click order.

    Raises:
        DegeneratePolygonError: Fewer than three distinct vertices, or no area
    """
    distinct = {(float(x), float(y)) for x, y in points}
    if len(distinct) < 3:
        raise DegeneratePolygonError(
            f"Footprint needs at least 3 distinct points, got {len(distinct)}"
        )

    polygon = Polygon(normalize_points(points, buffer_size, extent))
    if polygon.area < MIN_AREA:
        raise DegeneratePolygonError(
            f"Footprint has no area ({polygon.area:.3g}); points may be collinear"
        )
    return polygon


def _flat_mesh(polygon: Polygon) -> trimesh.Trimesh:
    vertices, faces = trimesh.creation.triangulate_polygon(polygon)
    vertices = np.column_stack([vertices, np.zeros(len(vertices))])
    return trimesh.Trimesh(vertices=vertices, faces=faces)


def build_solid(
    points: list[tuple[float, float]],
    height: float,
    buffer_size: tuple[int, int],
    extent: float = 2.0,
    color: tuple[int, int, int, int] = DEFAULT_COLOR,
) -> ExtrudedSolid:
    """Extrude a sketched footprint.

    Args:
        points: Footprint vertices in buffer pixels, click order
        height: Extrusion depth along +Z
        buffer_size: Raster buffer (width, height)
        extent: Half-size of the normalized window
        color: RGBA vertex color

    Returns:
        ExtrudedSolid with base on z=0 and top on z=height
    """
    if height < 0:
        raise ValueError(f"Height must be non-negative, got {height}")

    footprint = build_footprint(points, buffer_size, extent)

    if height < MIN_HEIGHT:
        mesh = _flat_mesh(footprint)
    else:
        mesh = trimesh.creation.extrude_polygon(footprint, height=height)

    mesh.visual.vertex_colors = color
    return ExtrudedSolid(footprint=footprint, height=float(height), mesh=mesh)
