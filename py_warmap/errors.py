"""Exception types raised by the war map service."""


class WarMapError(Exception):
    """Base class for service errors."""


class FeedError(WarMapError):
    """The war API could not be reached or returned an unusable payload."""

    def __init__(self, message: str, path: str = "", status_code: int = None):
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class StaticDataError(WarMapError):
    """The static geometry file is missing or malformed."""


class GeometryError(WarMapError):
    """A polygon is degenerate (fewer than three distinct vertices)."""
