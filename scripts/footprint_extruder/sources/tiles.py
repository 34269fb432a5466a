"""
Slippy-map raster tile fetcher.

Fetches 256x256 tiles from any server exposing the standard
{z}/{x}/{y} URL scheme (OpenStreetMap by default). Tiles are not cached
between sessions.
"""

import io
from typing import Optional

import requests
from PIL import Image

from ..config import SourceConfig
from ..tiles import TileIndex


class TileSource:
    """Fetches raster tiles over HTTP."""

    def __init__(
        self,
        url_template: str = SourceConfig.tile_url,
        timeout: float = SourceConfig.timeout,
        user_agent: str = SourceConfig.user_agent,
        session: Optional[requests.Session] = None,
    ):
        """Initialize tile source.

        Args:
            url_template: URL pattern with {z}, {x}, {y} placeholders
            timeout: Request timeout in seconds
            user_agent: User-Agent header (tile servers reject anonymous clients)
            session: Optional pre-configured requests session
        """
        self.url_template = url_template
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    @classmethod
    def from_config(cls, config: SourceConfig) -> "TileSource":
        return cls(
            url_template=config.tile_url,
            timeout=config.timeout,
            user_agent=config.user_agent,
        )

    def fetch(self, tile: TileIndex) -> Image.Image:
        """Fetch a tile.

        Args:
            tile: Tile to fetch

        Returns:
            RGB image

        Raises:
            requests.RequestException: If the request fails or times out
            PIL.UnidentifiedImageError: If the body is not an image
        """
        url = tile.url(self.url_template)
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()

        with Image.open(io.BytesIO(response.content)) as img:
            return img.convert("RGB")

    def close(self) -> None:
        self.session.close()
