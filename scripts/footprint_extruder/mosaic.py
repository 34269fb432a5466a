"""
Tile mosaic loading.

Fetches a square window of map tiles in parallel and composites them
into a single raster buffer. Every tile reports a typed result (loaded,
failed or timed out) to a TileBarrier, which signals completion exactly
once when all tiles succeeded, or failure exactly once otherwise.

Usage:
    loader = MosaicLoader(TileSource(), width=400, height=500)
    result = loader.load(locate(40.6892, -74.0, 18), grid_size=3)
    result.raise_for_status()
    result.buffer.save("mosaic.png")
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from PIL import Image
from tqdm import tqdm

from .config import ExtruderConfig
from .errors import MosaicError
from .sources.tiles import TileSource
from .tiles import TileIndex, tile_grid


class TileStatus(Enum):
    """Lifecycle of a single tile fetch."""

    PENDING = "pending"
    LOADED = "loaded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class TileResult:
    """Outcome of fetching one tile."""

    tile: TileIndex
    status: TileStatus = TileStatus.PENDING
    image: Optional[Image.Image] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is TileStatus.LOADED


class TileBarrier:
    """Join point for a fixed number of tile results.

    on_complete(results) fires once when every expected tile has
    reported success. on_failure(results) fires once when every tile
    has reported and at least one failed, or when expire() is called
    first. Reports arriving after either signal are ignored.
    """

    def __init__(
        self,
        expected: int,
        on_complete: Optional[Callable[[list[TileResult]], None]] = None,
        on_failure: Optional[Callable[[list[TileResult]], None]] = None,
    ):
        self.expected = expected
        self.on_complete = on_complete
        self.on_failure = on_failure

        self.results: list[TileResult] = []
        self.completed = False
        self.failed = False
        self._lock = threading.Lock()

    @property
    def settled(self) -> bool:
        return self.completed or self.failed

    @property
    def loaded_count(self) -> int:
        return sum(1 for r in self.results if r.ok)

    def report(self, result: TileResult) -> bool:
        """Record one tile result.

        Returns:
            True if this report settled the barrier
        """
        with self._lock:
            if self.settled:
                return False
            self.results.append(result)
            if len(self.results) < self.expected:
                return False
            if all(r.ok for r in self.results):
                self.completed = True
            else:
                self.failed = True
            results = list(self.results)

        if self.completed:
            if self.on_complete:
                self.on_complete(results)
        elif self.on_failure:
            self.on_failure(results)
        return True

    def expire(self, outstanding: list[TileResult]) -> bool:
        """Give up waiting; outstanding results are recorded as-is.

        Returns:
            True if this call settled the barrier
        """
        with self._lock:
            if self.settled:
                return False
            self.results.extend(outstanding)
            self.failed = True
            results = list(self.results)

        if self.on_failure:
            self.on_failure(results)
        return True


@dataclass
class MosaicResult:
    """Composited raster plus the per-tile outcome."""

    buffer: Image.Image
    tiles: list[TileResult]
    grid_size: int
    complete: bool

    @property
    def failed(self) -> list[TileResult]:
        return [t for t in self.tiles if not t.ok]

    @property
    def center(self) -> TileIndex:
        return self.tiles[len(self.tiles) // 2].tile

    def raise_for_status(self) -> None:
        """Raise MosaicError if any tile did not load."""
        if self.complete:
            return
        failed = self.failed
        details = ", ".join(
            f"{t.tile} ({t.status.value}: {t.error})" for t in failed[:5]
        )
        more = f" and {len(failed) - 5} more" if len(failed) > 5 else ""
        raise MosaicError(
            f"{len(failed)} of {len(self.tiles)} tiles did not load: {details}{more}",
            failed=failed,
        )


class MosaicLoader:
    """Fetches a tile window and composites it into a raster buffer.

    Tiles are fetched on a thread pool. Only the calling thread pastes
    into the buffer, one grid cell per tile, so arrival order does not
    affect the final image.
    """

    def __init__(
        self,
        source: TileSource,
        width: int = 400,
        height: int = 500,
        workers: int = 4,
        timeout: float = 30.0,
        progress: bool = False,
    ):
        """Initialize loader.

        Args:
            source: Tile fetcher
            width: Raster buffer width in pixels
            height: Raster buffer height in pixels
            workers: Parallel fetches
            timeout: Seconds to wait for the whole mosaic
            progress: Show progress bar
        """
        self.source = source
        self.width = width
        self.height = height
        self.workers = workers
        self.timeout = timeout
        self.progress = progress

    @classmethod
    def from_config(
        cls,
        config: ExtruderConfig,
        source: Optional[TileSource] = None,
        progress: bool = False,
    ) -> "MosaicLoader":
        return cls(
            source=source or TileSource.from_config(config.source),
            width=config.mosaic.width,
            height=config.mosaic.height,
            workers=config.mosaic.workers,
            timeout=config.mosaic.timeout,
            progress=progress,
        )

    def cell_box(self, index: int, grid_size: int) -> tuple[int, int, int, int]:
        """Pixel box (left, top, right, bottom) of a grid cell.

        Edges are rounded from exact fractions of the buffer so that
        neighbouring cells share a border and never overlap.
        """
        col = index % grid_size
        row = index // grid_size
        left = round(col * self.width / grid_size)
        right = round((col + 1) * self.width / grid_size)
        top = round(row * self.height / grid_size)
        bottom = round((row + 1) * self.height / grid_size)
        return (left, top, right, bottom)

    def _fetch(self, tile: TileIndex) -> TileResult:
        try:
            image = self.source.fetch(tile)
        except Exception as e:
            print(f"[mosaic] Error fetching {tile}: {e}")
            return TileResult(tile=tile, status=TileStatus.FAILED, error=str(e))
        return TileResult(tile=tile, status=TileStatus.LOADED, image=image)

    def _paint(self, buffer: Image.Image, image: Image.Image, index: int, grid_size: int) -> None:
        left, top, right, bottom = self.cell_box(index, grid_size)
        cell = image.resize((right - left, bottom - top), Image.Resampling.BILINEAR)
        buffer.paste(cell, (left, top))

    def load(
        self,
        center: TileIndex,
        grid_size: int,
        on_complete: Optional[Callable[[Image.Image], None]] = None,
        on_failure: Optional[Callable[[list[TileResult]], None]] = None,
    ) -> MosaicResult:
        """Fetch and composite the tile window around a center tile.

        Blocks until every tile has reported or the timeout expires.

        Args:
            center: Tile at the middle of the window
            grid_size: Tiles per side (odd)
            on_complete: Called once with the buffer when all tiles loaded
            on_failure: Called once with all tile results otherwise

        Returns:
            MosaicResult (check .complete or call raise_for_status())
        """
        tiles = tile_grid(center, grid_size)
        buffer = Image.new("RGB", (self.width, self.height))
        results = [TileResult(tile=tile) for tile in tiles]

        barrier = TileBarrier(
            expected=len(tiles),
            on_complete=(lambda _: on_complete(buffer)) if on_complete else None,
            on_failure=on_failure,
        )

        print(f"[mosaic] Fetching {len(tiles)} tiles around {center}")

        executor = ThreadPoolExecutor(max_workers=self.workers)
        futures = {
            executor.submit(self._fetch, tile): index
            for index, tile in enumerate(tiles)
        }
        bar = tqdm(total=len(futures), desc="Loading tiles", disable=not self.progress)

        try:
            for future in as_completed(futures, timeout=self.timeout):
                index = futures[future]
                result = future.result()
                if result.ok:
                    self._paint(buffer, result.image, index, grid_size)
                results[index] = result
                bar.update(1)
                barrier.report(result)
        except FuturesTimeout:
            outstanding = []
            for index, result in enumerate(results):
                if result.status is TileStatus.PENDING:
                    results[index] = TileResult(
                        tile=result.tile,
                        status=TileStatus.TIMED_OUT,
                        error=f"no response within {self.timeout}s",
                    )
                    outstanding.append(results[index])
            print(f"[mosaic] Timed out with {len(outstanding)} tiles outstanding")
            barrier.expire(outstanding)
        finally:
            bar.close()
            executor.shutdown(wait=False, cancel_futures=True)

        if barrier.completed:
            print(f"[mosaic] Loaded {len(tiles)} tiles into {self.width}x{self.height} buffer")

        return MosaicResult(
            buffer=buffer,
            tiles=results,
            grid_size=grid_size,
            complete=barrier.completed,
        )
