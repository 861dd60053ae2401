"""
Error taxonomy for the API.

Every error carries an HTTP status, a machine-readable kind and a
human-readable message; app.py renders them as ``{"kind", "message"}``.
"""

from typing import Dict


class ApiError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    kind = "internal_error"
    default_message = "An unexpected error occurred."

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class InvalidScopeError(ApiError):
    """The scope identifier is missing or malformed."""

    status_code = 400
    kind = "invalid_scope"
    default_message = "Missing or malformed scope identifier."


class AuthenticationError(ApiError):
    status_code = 401
    kind = "unauthorized"
    default_message = "Authentication required."


class PermissionDeniedError(ApiError):
    status_code = 403
    kind = "forbidden"
    default_message = "Access denied."


class StatsComputationError(ApiError):
    """The aggregation query failed; nothing was cached."""

    status_code = 500
    kind = "stats_unavailable"
    default_message = "Failed to compute statistics."


class DatabaseUnavailableError(ApiError):
    status_code = 503
    kind = "database_unavailable"
    default_message = "Database unavailable."
