#!/usr/bin/env python3
"""Pytest configuration and shared fixtures."""
import pytest
import tempfile
import threading
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

import requests
from PIL import Image

from footprint_extruder.config import ExtruderConfig


def tile_color(tile) -> tuple[int, int, int]:
    """Distinct solid color per tile so composited cells can be told apart."""
    return (tile.x * 37 % 256, tile.y * 53 % 256, (tile.x + tile.y) * 11 % 256)


class FakeTileSource:
    """Offline stand-in for TileSource.

    Serves solid-colored 256x256 tiles, fails tiles listed in `fail`, and
    holds tiles listed in `stall` until `release` is set.
    """

    def __init__(self, fail=(), stall=()):
        self.fail = set(fail)
        self.stall = set(stall)
        self.release = threading.Event()
        self.requested = []
        self.closed = False
        self._lock = threading.Lock()

    def fetch(self, tile):
        with self._lock:
            self.requested.append(tile)
        if tile in self.stall:
            self.release.wait(timeout=5)
        if tile in self.fail:
            raise requests.ConnectionError(f"connection refused for {tile}")
        return Image.new("RGB", (256, 256), tile_color(tile))

    def close(self):
        self.closed = True


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_source():
    source = FakeTileSource()
    yield source
    source.release.set()


@pytest.fixture
def config():
    """Default config with a short mosaic timeout."""
    config = ExtruderConfig()
    config.mosaic.timeout = 5.0
    config.scene.fps = 1000.0
    return config


@pytest.fixture
def mosaic_image():
    """Plain green 400x500 mosaic."""
    return Image.new("RGB", (400, 500), (10, 200, 10))


@pytest.fixture
def triangle_clicks():
    """Three vertices plus a click 3px from the first one."""
    return [(100.0, 100.0), (300.0, 120.0), (200.0, 350.0), (102.0, 102.0)]
