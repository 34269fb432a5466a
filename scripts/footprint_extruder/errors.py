"""Exception types raised by the footprint extruder."""


class FootprintExtruderError(Exception):
    """Base class for all footprint extruder errors."""


class MountTargetError(FootprintExtruderError):
    """No render target to draw into. Fatal at startup."""


class MosaicError(FootprintExtruderError):
    """One or more tiles failed or timed out, so the mosaic never completed."""

    def __init__(self, message: str, failed: list = None):
        super().__init__(message)
        self.failed = failed or []


class DegeneratePolygonError(FootprintExtruderError):
    """Footprint has fewer than three distinct points or no area."""
