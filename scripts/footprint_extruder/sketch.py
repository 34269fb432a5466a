"""
Footprint sketching over the tile mosaic.

The sketch surface turns pointer clicks on the rendered view into
polygon vertices in raster buffer pixels. Every redraw starts from a
pristine copy of the mosaic, so the overlay never accumulates stale
strokes.

States:
    OPEN    accepting points (initial)
    CLOSED  the newest point landed near the first one; terminal
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from PIL import Image, ImageDraw

from .config import ExtruderConfig, SketchStyle

# Vertices required before a click near the first point closes the shape
MIN_VERTICES = 3


class SketchState(Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class BoundingRect:
    """On-screen rectangle of the render target, in client pixels."""

    left: float
    top: float
    width: float
    height: float


class SketchSurface:
    """Owns the overlay buffer and the point sequence."""

    def __init__(
        self,
        mosaic: Image.Image,
        closing_threshold: float = 20.0,
        style: Optional[SketchStyle] = None,
    ):
        """Initialize sketch surface.

        Args:
            mosaic: Clean composited tile mosaic; copied, never drawn on
            closing_threshold: Distance in pixels from the first point that closes the shape
            style: Overlay colors and stroke sizes
        """
        self._mosaic = mosaic.convert("RGB").copy()
        self.closing_threshold = closing_threshold
        self.style = style or SketchStyle()

        self.points: list[tuple[float, float]] = []
        self.state = SketchState.OPEN
        self.buffer = self._mosaic.copy()
        self.revision = 0

        self._close_listeners: list[Callable[[list[tuple[float, float]]], None]] = []
        self._redraw_listeners: list[Callable[[Image.Image], None]] = []
        self._host = None

    @classmethod
    def from_config(cls, mosaic: Image.Image, config: ExtruderConfig) -> "SketchSurface":
        return cls(
            mosaic,
            closing_threshold=config.sketch.closing_threshold,
            style=config.sketch.style,
        )

    @property
    def size(self) -> tuple[int, int]:
        return self._mosaic.size

    @property
    def mosaic(self) -> Image.Image:
        """Copy of the clean mosaic."""
        return self._mosaic.copy()

    @property
    def is_closed(self) -> bool:
        return self.state is SketchState.CLOSED

    def on_close(self, callback: Callable[[list[tuple[float, float]]], None]) -> None:
        """Register a callback fired once when the shape closes."""
        self._close_listeners.append(callback)

    def on_redraw(self, callback: Callable[[Image.Image], None]) -> None:
        """Register a callback fired with the buffer after every repaint."""
        self._redraw_listeners.append(callback)

    def attach(self, host) -> None:
        """Start receiving clicks from a scene host."""
        self._host = host
        host.add_click_listener(self._on_host_click)

    def detach(self) -> None:
        if self._host is not None:
            self._host.remove_click_listener(self._on_host_click)
            self._host = None

    def _on_host_click(self, client_x: float, client_y: float) -> None:
        self.handle_click(client_x, client_y, self._host.bounding_rect)

    def to_buffer(
        self,
        client_x: float,
        client_y: float,
        rect: BoundingRect,
    ) -> tuple[float, float]:
        """Map client coordinates to buffer pixels by linear rescaling."""
        width, height = self.size
        x = (client_x - rect.left) * width / rect.width
        y = (client_y - rect.top) * height / rect.height
        return (x, y)

    def handle_click(
        self,
        client_x: float,
        client_y: float,
        rect: Optional[BoundingRect] = None,
    ) -> bool:
        """Handle a click at client coordinates.

        Args:
            client_x: Click X in client pixels
            client_y: Click Y in client pixels
            rect: Render target bounds (defaults to the buffer itself)

        Returns:
            True if the point was accepted
        """
        if self.is_closed:
            return False
        if rect is None:
            width, height = self.size
            rect = BoundingRect(0, 0, width, height)
        return self.add_point(*self.to_buffer(client_x, client_y, rect))

    def add_point(self, x: float, y: float) -> bool:
        """Append a vertex in buffer pixels and close the shape if it returns to the start.

        Returns:
            True if the point was accepted
        """
        if self.is_closed:
            return False

        self.points.append((x, y))
        self.redraw()

        if len(self.points) > MIN_VERTICES:
            first_x, first_y = self.points[0]
            distance = math.hypot(x - first_x, y - first_y)
            if distance < self.closing_threshold:
                self._close()

        return True

    def _close(self) -> None:
        self.state = SketchState.CLOSED
        self.redraw(close_shape=True)
        self.detach()
        print(f"[sketch] Shape closed with {len(self.points)} points")

        points = list(self.points)
        for callback in self._close_listeners:
            callback(points)

    def redraw(self, close_shape: Optional[bool] = None) -> Image.Image:
        """Repaint the buffer as clean mosaic + dots + connecting lines.

        Args:
            close_shape: Draw the segment back to the first point
                (defaults to whether the shape is closed)

        Returns:
            The repainted buffer
        """
        if close_shape is None:
            close_shape = self.is_closed

        buffer = self._mosaic.copy()
        draw = ImageDraw.Draw(buffer)
        style = self.style

        r = style.dot_radius
        for x, y in self.points:
            draw.ellipse([x - r, y - r, x + r, y + r], fill=style.dot_color)

        if len(self.points) > 1:
            path = list(self.points)
            if close_shape:
                path.append(self.points[0])
            draw.line(path, fill=style.stroke_color, width=style.line_width, joint="curve")

            # Round caps
            cap = style.line_width / 2
            for x, y in (path[0], path[-1]):
                draw.ellipse([x - cap, y - cap, x + cap, y + cap], fill=style.stroke_color)

        self.buffer = buffer
        self.revision += 1
        for callback in self._redraw_listeners:
            callback(buffer)
        return buffer
