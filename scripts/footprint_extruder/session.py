"""
Sketch session.

Wires the components of one sketch-and-extrude session together and
owns all of their state: tile mosaic -> scene background -> sketch
surface -> extruded building. Each piece of state has a single owner;
the session only moves data between them.
"""

from pathlib import Path
from typing import Optional

from .config import ExtruderConfig
from .controls import HeightControl
from .extrusion import ExtrudedSolid, build_solid
from .mosaic import MosaicLoader, MosaicResult
from .scene_host import RenderTarget, SceneHost
from .sketch import SketchSurface
from .sources.tiles import TileSource
from .tiles import TileIndex, locate


class SketchSession:
    """One sketch-and-extrude session.

    Example:
        session = SketchSession(ExtruderConfig(), target=RenderTarget(400, 500))
        session.start()
        for x, y in clicks:
            session.click(x, y)
        session.set_height(3.5)
        session.export(Path("out"))
    """

    def __init__(
        self,
        config: Optional[ExtruderConfig] = None,
        source: Optional[TileSource] = None,
        target: Optional[RenderTarget] = None,
        progress: bool = False,
    ):
        """Initialize session.

        Args:
            config: Session configuration (defaults if None)
            source: Tile fetcher (built from config if None)
            target: Render target; defaults to one the size of the raster buffer
            progress: Show progress bar while loading tiles
        """
        self.config = config or ExtruderConfig()
        self.config.validate()

        self.source = source or TileSource.from_config(self.config.source)
        self.target = target if target is not None else RenderTarget(*self.config.buffer_size)
        self.progress = progress

        self.host = SceneHost(self.config.scene)
        self.height_control = HeightControl.from_config(self.config.height)
        self.height_control.on_change(self.rebuild_solid)

        self.center: Optional[TileIndex] = None
        self.mosaic: Optional[MosaicResult] = None
        self.surface: Optional[SketchSurface] = None
        self.confirm_enabled = False

    @property
    def points(self) -> list[tuple[float, float]]:
        return list(self.surface.points) if self.surface else []

    @property
    def is_closed(self) -> bool:
        return self.surface is not None and self.surface.is_closed

    @property
    def solid(self) -> Optional[ExtrudedSolid]:
        return self.host.solid

    def start(self) -> MosaicResult:
        """Mount, load the mosaic and begin accepting clicks.

        Raises:
            MountTargetError: If the render target is missing
            MosaicError: If any tile fails or the mosaic times out
        """
        self.host.mount(self.target)

        mosaic = self.config.mosaic
        self.center = locate(mosaic.lat, mosaic.lng, mosaic.zoom)

        # Tiles are only fetched once per session
        loader = MosaicLoader.from_config(self.config, source=self.source, progress=self.progress)
        try:
            self.mosaic = loader.load(self.center, mosaic.grid_size)
        finally:
            self.source.close()
        self.mosaic.raise_for_status()

        self.host.set_background(self.mosaic.buffer)

        self.surface = SketchSurface.from_config(self.mosaic.buffer, self.config)
        self.surface.on_redraw(self.host.set_background)
        self.surface.on_close(self._on_shape_closed)
        self.surface.attach(self.host)

        return self.mosaic

    def click(self, client_x: float, client_y: float) -> None:
        """Deliver a primary click on the render target."""
        self.host.dispatch_click(client_x, client_y)

    def _on_shape_closed(self, points: list[tuple[float, float]]) -> None:
        self.confirm_enabled = True
        self.height_control.show()
        self.rebuild_solid(self.height_control.value)

    def set_height(self, value: float) -> float:
        """Change the height input; the building is rebuilt if the shape is closed."""
        return self.height_control.set_value(value)

    def rebuild_solid(self, height: float) -> Optional[ExtrudedSolid]:
        """Build a fresh solid at the given height and swap it into the scene."""
        if not self.is_closed:
            return None

        scene = self.config.scene
        solid = build_solid(
            self.surface.points,
            height,
            self.surface.size,
            extent=scene.extent,
            color=scene.solid_color,
        )
        self.host.replace_solid(solid)
        self.host.ensure_lighting()
        return solid

    def export(self, output_dir: Path) -> dict[str, Path]:
        """Write the sketch overlay and, if built, the building.

        Returns:
            Mapping of artifact name to written path
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        written = {}

        if self.surface is not None:
            sketch_path = output_dir / "sketch.png"
            self.surface.buffer.save(sketch_path)
            written["sketch"] = sketch_path

        if self.host.solid is not None:
            glb_path = output_dir / "building.glb"
            self.host.export_glb(glb_path)
            written["building"] = glb_path

        return written
