"""
3D scene hosting.

Owns the trimesh scene, the perspective camera and its orbit controls,
the background texture (the sketched mosaic), the single extruded
building and the render loop. The render loop redraws every frame
whether or not anything changed.

Coordinate system is Y-up like a typical WebGL scene: the footprint
lies in the XY plane and is extruded towards the camera along +Z.
"""

import math
import sys
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from numpy.typing import NDArray
from PIL import Image
import trimesh
from trimesh.scene.lighting import DirectionalLight

from .config import CameraConfig, ControlsConfig, SceneConfig
from .errors import MountTargetError
from .extrusion import ExtrudedSolid
from .sketch import BoundingRect

# Keeps the orbit away from the exact poles
EPS = 1e-6


def look_at(
    eye: tuple[float, float, float],
    target: tuple[float, float, float] = (0.0, 0.0, 0.0),
    up: tuple[float, float, float] = (0.0, 1.0, 0.0),
) -> NDArray[np.float64]:
    """Camera-to-world transform looking from eye towards target.

    The camera looks down its local -Z axis (OpenGL convention).
    """
    eye_v = np.asarray(eye, dtype=np.float64)
    forward = np.asarray(target, dtype=np.float64) - eye_v
    forward /= np.linalg.norm(forward)

    z_axis = -forward
    x_axis = np.cross(np.asarray(up, dtype=np.float64), z_axis)
    if np.linalg.norm(x_axis) < EPS:
        # Looking straight along the up vector
        x_axis = np.array([1.0, 0.0, 0.0])
    x_axis /= np.linalg.norm(x_axis)
    y_axis = np.cross(z_axis, x_axis)

    matrix = np.eye(4)
    matrix[:3, 0] = x_axis
    matrix[:3, 1] = y_axis
    matrix[:3, 2] = z_axis
    matrix[:3, 3] = eye_v
    return matrix


class OrbitControls:
    """Damped orbit of a camera around a target point.

    Rotation and dolly requests accumulate as deltas; update() applies a
    damped share of them, clamps the distance and keeps the camera above
    the horizon.
    """

    def __init__(
        self,
        position: tuple[float, float, float],
        target: tuple[float, float, float] = (0.0, 0.0, 0.0),
        damping_factor: float = 0.05,
        min_distance: float = 1.0,
        max_distance: float = 50.0,
        min_polar_angle: float = 0.0,
        max_polar_angle: float = math.pi / 2,
        enable_damping: bool = True,
    ):
        self.target = np.asarray(target, dtype=np.float64)
        self.damping_factor = damping_factor
        self.min_distance = min_distance
        self.max_distance = max_distance
        self.min_polar_angle = min_polar_angle
        self.max_polar_angle = max_polar_angle
        self.enable_damping = enable_damping

        offset = np.asarray(position, dtype=np.float64) - self.target
        self.radius = float(np.linalg.norm(offset))
        self.polar = math.acos(min(max(offset[1] / self.radius, -1.0), 1.0))
        self.azimuth = math.atan2(offset[0], offset[2])

        self._delta_azimuth = 0.0
        self._delta_polar = 0.0
        self._scale = 1.0

    @classmethod
    def from_config(cls, camera: CameraConfig, config: ControlsConfig) -> "OrbitControls":
        return cls(
            position=camera.position,
            target=camera.target,
            damping_factor=config.damping_factor,
            min_distance=config.min_distance,
            max_distance=config.max_distance,
            max_polar_angle=config.max_polar_angle,
        )

    @property
    def position(self) -> NDArray[np.float64]:
        sin_polar = math.sin(self.polar)
        offset = np.array([
            self.radius * sin_polar * math.sin(self.azimuth),
            self.radius * math.cos(self.polar),
            self.radius * sin_polar * math.cos(self.azimuth),
        ])
        return self.target + offset

    @property
    def matrix(self) -> NDArray[np.float64]:
        return look_at(tuple(self.position), tuple(self.target))

    def rotate(self, d_azimuth: float, d_polar: float) -> None:
        """Queue a rotation in radians (positive polar tips towards the horizon)."""
        self._delta_azimuth += d_azimuth
        self._delta_polar += d_polar

    def dolly(self, scale: float) -> None:
        """Queue a distance change; scale < 1 moves closer."""
        if scale <= 0:
            raise ValueError(f"Dolly scale must be positive, got {scale}")
        self._scale *= scale

    def update(self) -> bool:
        """Apply pending deltas.

        Returns:
            True if the camera moved
        """
        before = self.position

        share = self.damping_factor if self.enable_damping else 1.0
        self.azimuth += self._delta_azimuth * share
        self.polar += self._delta_polar * share

        lower = max(self.min_polar_angle, EPS)
        upper = min(self.max_polar_angle, math.pi - EPS)
        self.polar = min(max(self.polar, lower), upper)

        self.radius = min(max(self.radius * self._scale, self.min_distance), self.max_distance)
        self._scale = 1.0

        if self.enable_damping:
            self._delta_azimuth *= 1.0 - self.damping_factor
            self._delta_polar *= 1.0 - self.damping_factor
        else:
            self._delta_azimuth = 0.0
            self._delta_polar = 0.0

        return bool(np.linalg.norm(self.position - before) > EPS)


@dataclass
class AmbientLight:
    """Uniform fill light; glTF has no ambient light so it is kept on the host."""

    color: tuple[int, int, int]
    intensity: float = 1.0
    name: str = "ambient"


@dataclass
class RenderTarget:
    """Drawable surface the host presents frames to."""

    width: int
    height: int
    rect: Optional[BoundingRect] = None
    presenter: Optional[Callable[["SceneHost"], None]] = None

    @property
    def bounding_rect(self) -> BoundingRect:
        return self.rect or BoundingRect(0, 0, self.width, self.height)


class SceneHost:
    """Owns the 3D scene, camera, controls and render loop.

    Example:
        host = SceneHost()
        host.mount(RenderTarget(800, 600))
        host.set_background(mosaic)
        host.replace_solid(build_solid(points, 3.0, (400, 500)))
        host.ensure_lighting()
        host.run(max_frames=1)
    """

    SOLID_NODE = "building"

    def __init__(self, config: Optional[SceneConfig] = None):
        self.config = config or SceneConfig()
        camera = self.config.camera

        self.camera = trimesh.scene.Camera(
            name="camera",
            resolution=(800, 600),
            fov=self._fov(camera.fov, 800 / 600),
            z_near=camera.near,
            z_far=camera.far,
        )
        self.scene = trimesh.Scene(
            camera=self.camera,
            camera_transform=look_at(camera.position, camera.target),
        )

        self.controls: Optional[OrbitControls] = None
        if self.config.controls.enabled:
            self.controls = OrbitControls.from_config(camera, self.config.controls)

        self.target: Optional[RenderTarget] = None
        self.background: Optional[Image.Image] = None
        self.background_revision = 0
        self.solid: Optional[ExtrudedSolid] = None
        self.lights: list = []
        self.frame = 0

        self._click_listeners: list[Callable[[float, float], None]] = []
        self._running = False

    @staticmethod
    def _fov(vertical: float, aspect: float) -> tuple[float, float]:
        """(horizontal, vertical) field of view in degrees."""
        horizontal = math.degrees(2 * math.atan(math.tan(math.radians(vertical) / 2) * aspect))
        return (horizontal, vertical)

    # ------------------------------------------------------------------
    # Render target
    # ------------------------------------------------------------------

    def mount(self, target: Optional[RenderTarget]) -> None:
        """Attach the render target.

        Raises:
            MountTargetError: If there is nothing to mount into
        """
        if target is None:
            print("[scene] Error: render target not found, rendering aborted", file=sys.stderr)
            raise MountTargetError("Render target not found")

        self.target = target
        self.camera.resolution = (target.width, target.height)
        self.camera.fov = self._fov(self.config.camera.fov, target.width / target.height)

    @property
    def bounding_rect(self) -> BoundingRect:
        if self.target is None:
            raise MountTargetError("Render target not mounted")
        return self.target.bounding_rect

    # ------------------------------------------------------------------
    # Pointer input
    # ------------------------------------------------------------------

    def add_click_listener(self, callback: Callable[[float, float], None]) -> None:
        self._click_listeners.append(callback)

    def remove_click_listener(self, callback: Callable[[float, float], None]) -> None:
        if callback in self._click_listeners:
            self._click_listeners.remove(callback)

    def dispatch_click(self, client_x: float, client_y: float) -> None:
        """Deliver a primary click to every listener."""
        for callback in list(self._click_listeners):
            callback(client_x, client_y)

    # ------------------------------------------------------------------
    # Scene content
    # ------------------------------------------------------------------

    def set_background(self, image: Image.Image) -> None:
        """Use an image as the scene background texture."""
        self.background = image
        self.background_revision += 1

    @property
    def solid_count(self) -> int:
        """Number of building nodes in the scene (0 or 1)."""
        return len(self.scene.graph.geometry_nodes.get(self.SOLID_NODE, []))

    def replace_solid(self, solid: ExtrudedSolid) -> None:
        """Swap the displayed building for a new one."""
        if self.SOLID_NODE in self.scene.geometry:
            self.scene.delete_geometry(self.SOLID_NODE)

        self.scene.add_geometry(
            solid.mesh,
            node_name=self.SOLID_NODE,
            geom_name=self.SOLID_NODE,
        )
        self.solid = solid

    def ensure_lighting(self) -> None:
        """Add one directional and one ambient light, once."""
        if any(isinstance(light, DirectionalLight) for light in self.lights):
            return

        config = self.config
        sun = DirectionalLight(
            name="sun",
            color=[*config.directional_color, 255],
            intensity=config.directional_intensity,
        )
        self.lights.append(sun)
        self.lights.append(AmbientLight(color=config.ambient_color))

        # Setting lights explicitly keeps trimesh from auto-lighting the scene
        self.scene.lights = [sun]
        self.scene.graph[sun.name] = look_at(config.directional_position)

    # ------------------------------------------------------------------
    # Render loop
    # ------------------------------------------------------------------

    def render_frame(self) -> None:
        """Update controls and present one frame."""
        if self.target is None:
            raise MountTargetError("Render target not mounted")

        if self.controls is not None:
            self.controls.update()
            self.scene.camera_transform = self.controls.matrix

        if self.target.presenter is not None:
            self.target.presenter(self)
        self.frame += 1

    def run(self, max_frames: Optional[int] = None) -> int:
        """Render continuously at the configured frame rate.

        Args:
            max_frames: Stop after this many frames (None = until stop())

        Returns:
            Number of frames rendered
        """
        interval = 1.0 / self.config.fps
        rendered = 0
        self._running = True

        while self._running and (max_frames is None or rendered < max_frames):
            start = time.perf_counter()
            self.render_frame()
            rendered += 1
            elapsed = time.perf_counter() - start
            if elapsed < interval:
                time.sleep(interval - elapsed)

        self._running = False
        return rendered

    def stop(self) -> None:
        self._running = False

    def export_glb(self, path) -> None:
        """Write the scene geometry (without camera) to a binary glTF file."""
        export = trimesh.Scene(geometry=dict(self.scene.geometry))
        export.export(file_obj=str(path), file_type="glb")
