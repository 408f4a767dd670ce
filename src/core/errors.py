"""
Error taxonomy shared by the store, the search provider and the HTTP layer.
Every error carries a stable machine-checkable kind and an HTTP status.
"""
from typing import Optional


class AppError(Exception):
    """Base application error."""

    kind: str = "internal"
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(AppError):
    """Malformed, missing or out-of-range input."""

    kind = "invalid_argument"
    status_code = 400
    default_message = "Invalid argument"


class Unauthenticated(AppError):
    """Missing, invalid or expired credential."""

    kind = "unauthenticated"
    status_code = 401
    default_message = "Authentication required"


class NotFoundOrForbidden(AppError):
    """Raised for both a missing row and a row owned by someone else."""

    kind = "not_found_or_forbidden"
    status_code = 404
    default_message = "Not found or unauthorized"


class Conflict(AppError):
    kind = "conflict"
    status_code = 409
    default_message = "Resource already exists"


class UpstreamUnavailable(AppError):
    """The search provider could not be reached or answered with an error."""

    kind = "upstream_unavailable"
    status_code = 502
    default_message = "Upstream search provider unavailable"


class UpstreamMalformed(AppError):
    """The search provider answered with a payload we cannot parse."""

    kind = "upstream_malformed"
    status_code = 502
    default_message = "Upstream search provider returned a malformed payload"


class Internal(AppError):
    """Unexpected storage failure."""
