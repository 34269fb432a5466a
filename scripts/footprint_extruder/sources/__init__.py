"""
Data sources for the footprint extruder.

Provides access to slippy-map raster tiles (OpenStreetMap or any
{z}/{x}/{y} tile server).
"""

from .tiles import TileSource

__all__ = [
    "TileSource",
]
