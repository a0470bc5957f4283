"""
Resolution Errors

Each error maps to one terminal state of the resolution pipeline and
carries the HTTP status the route reports it with.
"""


class ResolutionError(Exception):
    """Base class for reportable resolution outcomes."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidQueryError(ResolutionError):
    """Empty or over-length query."""
    status_code = 400


class NoResultsError(ResolutionError):
    """Search provider returned no candidates."""
    status_code = 404


class QuotaExceededError(ResolutionError):
    """Client used up its daily search quota."""
    status_code = 429


class UpstreamFetchError(ResolutionError):
    """Every candidate failed or the deadline ran out."""
    status_code = 502
