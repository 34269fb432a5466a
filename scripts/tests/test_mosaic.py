#!/usr/bin/env python3
"""Tests for tile mosaic loading."""
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from footprint_extruder.errors import MosaicError
from footprint_extruder.mosaic import (
    MosaicLoader,
    TileBarrier,
    TileResult,
    TileStatus,
)
from footprint_extruder.tiles import TileIndex, tile_grid

from conftest import FakeTileSource, tile_color


CENTER = TileIndex(x=77186, y=98587, zoom=18)


def loaded(tile):
    return TileResult(tile=tile, status=TileStatus.LOADED)


def failed(tile):
    return TileResult(tile=tile, status=TileStatus.FAILED, error="boom")


class TestTileBarrier:
    """Tests for the tile completion barrier."""

    def test_eight_of_nine_does_not_complete(self):
        """Test completion waits for every tile."""
        calls = []
        barrier = TileBarrier(9, on_complete=calls.append)
        for tile in tile_grid(CENTER, 3)[:8]:
            barrier.report(loaded(tile))

        assert calls == []
        assert not barrier.settled
        assert barrier.loaded_count == 8

    def test_ninth_success_completes_once(self):
        """Test completion fires exactly once after the last success."""
        calls = []
        barrier = TileBarrier(9, on_complete=calls.append)
        grid = tile_grid(CENTER, 3)
        settled = [barrier.report(loaded(tile)) for tile in grid]

        assert settled == [False] * 8 + [True]
        assert len(calls) == 1
        assert len(calls[0]) == 9
        assert barrier.completed

        # Late duplicate report is ignored
        assert barrier.report(loaded(grid[0])) is False
        assert len(calls) == 1

    def test_one_failure_fails_once(self):
        """Test a single failed tile prevents completion."""
        completed, failures = [], []
        barrier = TileBarrier(9, on_complete=completed.append, on_failure=failures.append)
        grid = tile_grid(CENTER, 3)
        barrier.report(failed(grid[0]))
        for tile in grid[1:]:
            barrier.report(loaded(tile))

        assert completed == []
        assert len(failures) == 1
        assert barrier.failed
        assert not barrier.completed

    def test_expire_fails_once(self):
        """Test expiry settles the barrier as failed."""
        failures = []
        barrier = TileBarrier(9, on_failure=failures.append)
        grid = tile_grid(CENTER, 3)
        for tile in grid[:5]:
            barrier.report(loaded(tile))

        outstanding = [TileResult(tile=t, status=TileStatus.TIMED_OUT) for t in grid[5:]]
        assert barrier.expire(outstanding) is True
        assert barrier.expire(outstanding) is False
        assert len(failures) == 1
        assert len(failures[0]) == 9

        # Reports after expiry are ignored
        assert barrier.report(loaded(grid[5])) is False


class TestMosaicLoader:
    """Tests for fetching and compositing."""

    def test_loads_complete_mosaic(self, fake_source):
        """Test every tile is fetched and the result is complete."""
        loader = MosaicLoader(fake_source, width=400, height=500)
        result = loader.load(CENTER, 3)

        assert result.complete
        assert result.buffer.size == (400, 500)
        assert len(result.tiles) == 9
        assert all(t.status is TileStatus.LOADED for t in result.tiles)
        assert sorted(fake_source.requested, key=str) == sorted(tile_grid(CENTER, 3), key=str)
        assert result.center == CENTER
        result.raise_for_status()

    def test_tiles_painted_into_their_cells(self, fake_source):
        """Test each tile lands in its own grid cell regardless of arrival order."""
        loader = MosaicLoader(fake_source, width=400, height=500)
        result = loader.load(CENTER, 3)

        for index, tile in enumerate(tile_grid(CENTER, 3)):
            left, top, right, bottom = loader.cell_box(index, 3)
            center = ((left + right) // 2, (top + bottom) // 2)
            pixel = result.buffer.getpixel(center)
            assert all(abs(a - b) <= 1 for a, b in zip(pixel, tile_color(tile)))

    def test_cells_cover_buffer_without_overlap(self):
        """Test cell boxes tile the buffer exactly."""
        loader = MosaicLoader(FakeTileSource(), width=400, height=500)
        for size in (1, 3, 5):
            boxes = [loader.cell_box(i, size) for i in range(size * size)]
            area = sum((r - l) * (b - t) for l, t, r, b in boxes)
            assert area == 400 * 500
            assert boxes[0][:2] == (0, 0)
            assert boxes[-1][2:] == (400, 500)

    def test_on_complete_fires_once_with_buffer(self, fake_source):
        """Test the completion callback receives the composited buffer."""
        calls = []
        loader = MosaicLoader(fake_source, width=400, height=500)
        result = loader.load(CENTER, 3, on_complete=calls.append)

        assert len(calls) == 1
        assert calls[0] is result.buffer

    def test_failed_tile_reported(self):
        """Test a failed fetch is surfaced instead of stalling."""
        bad = tile_grid(CENTER, 3)[2]
        source = FakeTileSource(fail=[bad])
        completed, failures = [], []

        loader = MosaicLoader(source, width=400, height=500)
        result = loader.load(CENTER, 3, on_complete=completed.append, on_failure=failures.append)

        assert not result.complete
        assert completed == []
        assert len(failures) == 1
        assert [t.tile for t in result.failed] == [bad]
        assert result.tiles[2].status is TileStatus.FAILED
        assert "connection refused" in result.tiles[2].error

        with pytest.raises(MosaicError) as exc_info:
            result.raise_for_status()
        assert exc_info.value.failed[0].tile == bad

    def test_stalled_tile_times_out(self):
        """Test a tile that never answers becomes an explicit timeout."""
        stalled = tile_grid(CENTER, 3)[7]
        source = FakeTileSource(stall=[stalled])
        failures = []

        try:
            loader = MosaicLoader(source, width=400, height=500, timeout=0.3)
            result = loader.load(CENTER, 3, on_failure=failures.append)
        finally:
            source.release.set()

        assert not result.complete
        assert len(failures) == 1
        assert result.tiles[7].status is TileStatus.TIMED_OUT
        assert sum(t.ok for t in result.tiles) == 8
        with pytest.raises(MosaicError):
            result.raise_for_status()

    def test_from_config(self, config, fake_source):
        """Test loader settings come from the mosaic config."""
        config.mosaic.width = 300
        config.mosaic.height = 300
        config.mosaic.workers = 2
        loader = MosaicLoader.from_config(config, source=fake_source)

        assert loader.source is fake_source
        assert (loader.width, loader.height) == (300, 300)
        assert loader.workers == 2
        assert loader.timeout == config.mosaic.timeout
