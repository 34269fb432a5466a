"""
Footprint Extruder

Trace a building footprint over a slippy-map tile mosaic and extrude it
into a simple 3D block:
- Tile locator (WGS84 -> Web Mercator tile index)
- Parallel tile fetching and compositing into a raster buffer
- Click-driven polygon sketching with automatic closure
- Footprint extrusion with trimesh, one live building at a time
- Scene host with perspective camera, orbit controls and render loop

Usage:
    # Replay a session from recorded clicks
    python -m footprint_extruder.cli sketch --clicks clicks.json --height 3

    # List presets
    python -m footprint_extruder.cli presets
"""

from .config import ExtruderConfig
from .errors import (
    FootprintExtruderError,
    MountTargetError,
    MosaicError,
    DegeneratePolygonError,
)
from .tiles import TileIndex, locate, tile_grid, tile_bounds_wgs84
from .mosaic import MosaicLoader, MosaicResult, TileBarrier, TileResult, TileStatus
from .sketch import SketchSurface, SketchState, BoundingRect
from .extrusion import ExtrudedSolid, build_solid, build_footprint, normalize_points
from .controls import HeightControl
from .scene_host import SceneHost, OrbitControls, RenderTarget
from .session import SketchSession
from .presets import SketchPreset, get_preset, list_presets, apply_preset, PRESETS

__all__ = [
    # Configuration
    "ExtruderConfig",
    "SketchPreset",
    "get_preset",
    "list_presets",
    "apply_preset",
    "PRESETS",
    # Errors
    "FootprintExtruderError",
    "MountTargetError",
    "MosaicError",
    "DegeneratePolygonError",
    # Tiles
    "TileIndex",
    "locate",
    "tile_grid",
    "tile_bounds_wgs84",
    # Mosaic
    "MosaicLoader",
    "MosaicResult",
    "TileBarrier",
    "TileResult",
    "TileStatus",
    # Sketch
    "SketchSurface",
    "SketchState",
    "BoundingRect",
    # Extrusion
    "ExtrudedSolid",
    "build_solid",
    "build_footprint",
    "normalize_points",
    # Scene
    "HeightControl",
    "SceneHost",
    "OrbitControls",
    "RenderTarget",
    "SketchSession",
]
__version__ = "0.1.0"
