"""Custom exception hierarchy for geoguard."""

from __future__ import annotations


class GeoguardError(Exception):
    """Base exception for all geoguard errors."""


class GeoguardConfigError(GeoguardError):
    """Invalid or missing configuration."""


class SourceError(GeoguardError):
    """Base for failures of a position source."""


class SourceUnavailableError(SourceError):
    """The live device could not be reached (network failure, HTTP error, timeout).

    The monitor flips to disconnected when this is raised and never
    schedules a retry; the caller has to call ``connect()`` again.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class InvalidSampleError(GeoguardError):
    """A position sample was rejected (missing, non-finite or sentinel coordinates).

    The sample is discarded and every piece of engine state is kept as it
    was before the sample arrived.
    """

    def __init__(self, message: str, *, reason: str = "") -> None:
        self.reason = reason
        super().__init__(message)


class SimulationError(GeoguardError):
    """Invalid simulation request (unknown kind, out-of-range heading or speed)."""
