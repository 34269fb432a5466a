#!/usr/bin/env python3
"""
Command-line interface for the footprint extruder.

Usage:
    # Tile containing a coordinate
    python -m footprint_extruder.cli locate --lat 40.6892 --lng -74 --zoom 18

    # Tile window around a coordinate
    python -m footprint_extruder.cli grid --lat 40.6892 --lng -74 --zoom 18 --grid-size 3

    # Fetch and composite the tile mosaic
    python -m footprint_extruder.cli mosaic --lat 40.6892 --lng -74 -o mosaic.png

    # Extrude a footprint given in buffer pixels
    python -m footprint_extruder.cli extrude --points footprint.json --height 3 -o building.glb

    # Replay a whole session from recorded clicks
    python -m footprint_extruder.cli sketch --clicks clicks.json --height 3 --output-dir out

    # List sketch presets
    python -m footprint_extruder.cli presets
"""

import argparse
import json
import sys
from pathlib import Path


def _load_points(path: str) -> list[tuple[float, float]]:
    """Read a JSON list of [x, y] pairs."""
    with open(path) as f:
        data = json.load(f)
    return [(float(x), float(y)) for x, y in data]


def _build_config(args: argparse.Namespace):
    from .config import ExtruderConfig
    from .presets import apply_preset

    config = ExtruderConfig()
    if getattr(args, "preset", None):
        apply_preset(config, args.preset)

    mosaic = config.mosaic
    for name in ("lat", "lng", "zoom", "grid_size", "workers"):
        value = getattr(args, name, None)
        if value is not None:
            setattr(mosaic, name, value)
    if getattr(args, "timeout", None) is not None:
        mosaic.timeout = args.timeout
    if getattr(args, "tile_url", None):
        config.source.tile_url = args.tile_url
    if getattr(args, "threshold", None) is not None:
        config.sketch.closing_threshold = args.threshold

    config.validate()
    return config


def cmd_locate(args: argparse.Namespace) -> int:
    """Print the tile containing a coordinate."""
    from .tiles import locate

    tile = locate(args.lat, args.lng, args.zoom)
    bounds = tile.bounds
    print(f"Tile: {tile}")
    print(f"Bounds: W={bounds[0]:.6f}, S={bounds[1]:.6f}, E={bounds[2]:.6f}, N={bounds[3]:.6f}")
    return 0


def cmd_grid(args: argparse.Namespace) -> int:
    """Print the tile window around a coordinate."""
    from .tiles import locate, tile_grid

    center = locate(args.lat, args.lng, args.zoom)
    grid = tile_grid(center, args.grid_size)

    print(f"Center: {center}")
    print(f"Window: {args.grid_size}x{args.grid_size} ({len(grid)} tiles)\n")
    for row in range(args.grid_size):
        cells = grid[row * args.grid_size:(row + 1) * args.grid_size]
        print("  " + "  ".join(f"{t.x}/{t.y}" for t in cells))
    return 0


def cmd_mosaic(args: argparse.Namespace) -> int:
    """Fetch and composite the tile mosaic."""
    from .mosaic import MosaicLoader
    from .sources.tiles import TileSource
    from .tiles import locate

    config = _build_config(args)
    center = locate(config.mosaic.lat, config.mosaic.lng, config.mosaic.zoom)

    source = TileSource.from_config(config.source)
    loader = MosaicLoader.from_config(config, source=source, progress=True)
    try:
        result = loader.load(center, config.mosaic.grid_size)
    finally:
        source.close()
    result.raise_for_status()

    output_path = Path(args.output)
    result.buffer.save(output_path)
    print(f"Saved to: {output_path}")
    return 0


def cmd_extrude(args: argparse.Namespace) -> int:
    """Extrude a footprint to GLB."""
    from .extrusion import build_solid
    from .scene_host import SceneHost

    points = _load_points(args.points)
    solid = build_solid(points, args.height, (args.width, args.buffer_height))

    host = SceneHost()
    host.replace_solid(solid)

    output_path = Path(args.output)
    host.export_glb(output_path)

    print(f"Footprint: {len(points)} points, area {solid.footprint.area:.4f}")
    print(f"Mesh: {len(solid.mesh.vertices)} vertices, {len(solid.mesh.faces)} faces, "
          f"height {solid.extent:.2f}")
    print(f"Saved to: {output_path}")
    return 0


def cmd_sketch(args: argparse.Namespace) -> int:
    """Replay recorded clicks through a full session."""
    from .session import SketchSession

    config = _build_config(args)
    clicks = _load_points(args.clicks)

    session = SketchSession(config, progress=True)
    session.start()

    for x, y in clicks:
        session.click(x, y)

    if not session.is_closed:
        print(f"Shape not closed after {len(clicks)} clicks; "
              f"last click must land within {config.sketch.closing_threshold}px of the first")
    elif args.height is not None:
        height = session.set_height(args.height)
        print(f"Height: {height}")

    written = session.export(Path(args.output_dir))
    for name, path in written.items():
        print(f"Saved {name}: {path}")
    return 0


def cmd_presets(args: argparse.Namespace) -> int:
    """List available sketch presets."""
    from .presets import PRESETS

    print("Available sketch presets:\n")
    for name, preset in sorted(PRESETS.items()):
        print(f"  {name}")
        print(f"    {preset.description}")
        print(f"    Grid: {preset.grid_size}x{preset.grid_size}, "
              f"closing distance: {preset.closing_threshold}px")
        print()
    return 0


def _add_location_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--lat", type=float, help="Center latitude")
    parser.add_argument("--lng", type=float, help="Center longitude")
    parser.add_argument("--zoom", type=int, help="Zoom level")
    parser.add_argument("--grid-size", type=int, help="Tiles per side (odd)")
    parser.add_argument("--preset", help="Sketch preset (see 'presets' command)")
    parser.add_argument("--tile-url", help="Tile URL template with {z}/{x}/{y}")
    parser.add_argument("--workers", type=int, help="Parallel tile fetches")
    parser.add_argument("--timeout", type=float, help="Seconds to wait for the whole mosaic")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sketch building footprints over map tiles and extrude them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Locate command
    locate_parser = subparsers.add_parser("locate", help="Tile containing a coordinate")
    locate_parser.add_argument("--lat", type=float, required=True, help="Latitude")
    locate_parser.add_argument("--lng", type=float, required=True, help="Longitude")
    locate_parser.add_argument("--zoom", type=int, default=18, help="Zoom level")

    # Grid command
    grid_parser = subparsers.add_parser("grid", help="Tile window around a coordinate")
    grid_parser.add_argument("--lat", type=float, required=True, help="Latitude")
    grid_parser.add_argument("--lng", type=float, required=True, help="Longitude")
    grid_parser.add_argument("--zoom", type=int, default=18, help="Zoom level")
    grid_parser.add_argument("--grid-size", type=int, default=3, help="Tiles per side (odd)")

    # Mosaic command
    mosaic_parser = subparsers.add_parser("mosaic", help="Fetch and composite the tile mosaic")
    _add_location_args(mosaic_parser)
    mosaic_parser.add_argument("--output", "-o", default="mosaic.png", help="Output PNG path")

    # Extrude command
    extrude_parser = subparsers.add_parser("extrude", help="Extrude a footprint to GLB")
    extrude_parser.add_argument("--points", required=True,
                                help="JSON file with [[x, y], ...] in buffer pixels")
    extrude_parser.add_argument("--height", type=float, default=1.0, help="Extrusion height")
    extrude_parser.add_argument("--width", type=int, default=400, help="Buffer width in pixels")
    extrude_parser.add_argument("--buffer-height", type=int, default=500,
                                help="Buffer height in pixels")
    extrude_parser.add_argument("--output", "-o", default="building.glb", help="Output GLB path")

    # Sketch command
    sketch_parser = subparsers.add_parser("sketch", help="Replay recorded clicks through a session")
    _add_location_args(sketch_parser)
    sketch_parser.add_argument("--clicks", required=True,
                               help="JSON file with [[x, y], ...] click positions")
    sketch_parser.add_argument("--height", type=float, help="Height to set after closing")
    sketch_parser.add_argument("--threshold", type=float, help="Closing distance in pixels")
    sketch_parser.add_argument("--output-dir", default="sketch-output", help="Output directory")

    # Presets command
    subparsers.add_parser("presets", help="List available sketch presets")

    return parser


COMMANDS = {
    "locate": cmd_locate,
    "grid": cmd_grid,
    "mosaic": cmd_mosaic,
    "extrude": cmd_extrude,
    "sketch": cmd_sketch,
    "presets": cmd_presets,
}


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return 0

    try:
        return command(args)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
