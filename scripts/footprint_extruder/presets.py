"""
Sketch presets.

Two flavours of the sketch tool exist. They differ only in tile window,
closing distance and overlay styling, so each is expressed as a preset
that can be applied on top of an ExtruderConfig.
"""

from dataclasses import dataclass, replace
from typing import Literal

from .config import ExtruderConfig


@dataclass
class SketchPreset:
    """Tile window, closing distance and styling for one flavour."""

    name: str
    description: str

    grid_size: int
    closing_threshold: float  # Pixels

    stroke_color: str
    line_width: int
    dot_radius: float

    widget: Literal["range", "number"]


PRESETS: dict[str, SketchPreset] = {
    "marker": SketchPreset(
        name="Marker",
        description="3x3 tile window, loose 20px closing distance, bold red strokes",
        grid_size=3,
        closing_threshold=20.0,
        stroke_color="#FF0000",
        line_width=5,
        dot_radius=5.0,
        widget="number",
    ),

    "outline": SketchPreset(
        name="Outline",
        description="5x5 tile window, tight 5px closing distance, thin teal strokes",
        grid_size=5,
        closing_threshold=5.0,
        stroke_color="#294c53",
        line_width=2,
        dot_radius=2.0,
        widget="range",
    ),
}


def get_preset(name: str) -> SketchPreset:
    """Get a sketch preset by name.

    Args:
        name: Preset name (case-insensitive)

    Returns:
        SketchPreset configuration

    Raises:
        KeyError: If preset name not found
    """
    name_lower = name.lower().replace(" ", "_").replace("-", "_")
    if name_lower not in PRESETS:
        available = ", ".join(sorted(PRESETS.keys()))
        raise KeyError(f"Unknown preset '{name}'. Available: {available}")
    return PRESETS[name_lower]


def list_presets() -> list[str]:
    """List all available preset names."""
    return sorted(PRESETS.keys())


def apply_preset(config: ExtruderConfig, name: str) -> ExtruderConfig:
    """Apply a preset to a config in place and return it."""
    preset = get_preset(name)

    config.mosaic.grid_size = preset.grid_size
    config.sketch.closing_threshold = preset.closing_threshold
    config.sketch.style = replace(
        config.sketch.style,
        stroke_color=preset.stroke_color,
        line_width=preset.line_width,
        dot_radius=preset.dot_radius,
    )
    config.height.widget = preset.widget

    return config
