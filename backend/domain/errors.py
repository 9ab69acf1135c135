"""
Error types shared by the directory services.

A payload that cannot be decoded is not an error: the resolver degrades to a
"Custom Location" place instead.
"""


class DirectoryError(Exception):
    """Base exception for all directory errors."""


class ResolutionError(DirectoryError):
    """The grounding service call failed or returned no text."""

    def __init__(self, message: str, timed_out: bool = False):
        self.timed_out = timed_out
        super().__init__(message)


class GeolocationError(DirectoryError):
    """The device location is unavailable or access was denied."""

    def __init__(self, message: str = "Could not detect your location."):
        super().__init__(message)
