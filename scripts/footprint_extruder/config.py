"""
Configuration dataclasses for the footprint extruder.

Centralizes every tunable value of a sketch session: the tile server,
the mosaic window, sketch styling, the height control range and the
3D scene camera/controls.
"""

import math
from dataclasses import dataclass, field
from typing import Literal


@dataclass
class SourceConfig:
    """Tile server settings."""

    # Standard slippy-map tile server
    tile_url: str = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"

    timeout: float = 10.0  # Per-request timeout in seconds
    user_agent: str = "FootprintExtruder/0.1 (+https://www.openstreetmap.org/copyright)"


@dataclass
class MosaicConfig:
    """Tile window and raster buffer settings."""

    # Statue of Liberty
    lat: float = 40.6892
    lng: float = -74.0
    zoom: int = 18

    grid_size: int = 3  # Odd, tiles per side

    # Raster buffer size in pixels
    width: int = 400
    height: int = 500

    workers: int = 4
    timeout: float = 30.0  # Whole mosaic, seconds


@dataclass
class SketchStyle:
    """Overlay colors and stroke sizes."""

    stroke_color: str = "#FF0000"
    line_width: int = 5
    dot_radius: float = 5.0
    dot_color: str = "#000000"


@dataclass
class SketchConfig:
    """Point capture settings."""

    closing_threshold: float = 20.0  # Pixels
    style: SketchStyle = field(default_factory=SketchStyle)


@dataclass
class HeightConfig:
    """Height input range."""

    minimum: float = 0.0
    maximum: float = 10.0
    step: float = 0.1
    initial: float = 0.1
    widget: Literal["range", "number"] = "number"


@dataclass
class CameraConfig:
    """Perspective camera placement."""

    fov: float = 75.0  # Vertical, degrees
    near: float = 0.1
    far: float = 1000.0
    position: tuple[float, float, float] = (0.0, 2.0, 5.0)
    target: tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass
class ControlsConfig:
    """Orbit controls limits."""

    enabled: bool = True
    damping_factor: float = 0.05
    min_distance: float = 1.0
    max_distance: float = 50.0
    max_polar_angle: float = math.pi / 2  # Keep above the horizon


@dataclass
class SceneConfig:
    """3D scene settings."""

    camera: CameraConfig = field(default_factory=CameraConfig)
    controls: ControlsConfig = field(default_factory=ControlsConfig)

    fps: float = 60.0

    # Footprints are normalized into [-extent, extent] on both axes
    extent: float = 2.0

    solid_color: tuple[int, int, int, int] = (128, 128, 128, 255)
    directional_color: tuple[int, int, int] = (255, 255, 255)
    directional_intensity: float = 1.0
    directional_position: tuple[float, float, float] = (1.0, 1.0, 1.0)
    ambient_color: tuple[int, int, int] = (0x40, 0x40, 0x40)


@dataclass
class ExtruderConfig:
    """Master configuration for a sketch session."""

    source: SourceConfig = field(default_factory=SourceConfig)
    mosaic: MosaicConfig = field(default_factory=MosaicConfig)
    sketch: SketchConfig = field(default_factory=SketchConfig)
    height: HeightConfig = field(default_factory=HeightConfig)
    scene: SceneConfig = field(default_factory=SceneConfig)

    @property
    def buffer_size(self) -> tuple[int, int]:
        """Raster buffer (width, height) in pixels."""
        return (self.mosaic.width, self.mosaic.height)

    def validate(self) -> None:
        """Check values that would otherwise fail deep inside a session.

        Raises:
            ValueError: On the first invalid setting found
        """
        if self.mosaic.grid_size < 1 or self.mosaic.grid_size % 2 == 0:
            raise ValueError(
                f"grid_size must be a positive odd integer, got {self.mosaic.grid_size}"
            )
        # Every grid cell needs at least one pixel per side
        grid_size = self.mosaic.grid_size
        if self.mosaic.width < grid_size or self.mosaic.height < grid_size:
            raise ValueError(
                f"Raster buffer {self.mosaic.width}x{self.mosaic.height} is smaller "
                f"than the {grid_size}x{grid_size} tile grid"
            )
        if not 0 <= self.mosaic.zoom <= 22:
            raise ValueError(f"zoom must be within 0-22, got {self.mosaic.zoom}")
        if self.mosaic.timeout <= 0 or self.source.timeout <= 0:
            raise ValueError("Timeouts must be positive")
        if self.sketch.closing_threshold <= 0:
            raise ValueError("closing_threshold must be positive")
        if self.height.minimum > self.height.maximum:
            raise ValueError(
                f"Height range is inverted: {self.height.minimum} > {self.height.maximum}"
            )
        if self.height.step <= 0:
            raise ValueError("Height step must be positive")
        if not self.height.minimum <= self.height.initial <= self.height.maximum:
            raise ValueError(
                f"Initial height {self.height.initial} outside "
                f"[{self.height.minimum}, {self.height.maximum}]"
            )
        for name in ("{z}", "{x}", "{y}"):
            if name not in self.source.tile_url:
                raise ValueError(f"tile_url is missing the {name} placeholder")
