"""
Utility functions for ResearchStats.

Shared helpers used across multiple modules.
"""

from .errors import (
    ApiError,
    AuthenticationError,
    DatabaseUnavailableError,
    InvalidScopeError,
    PermissionDeniedError,
    StatsComputationError,
)
from .scope import validate_scope

__all__ = [
    "ApiError",
    "AuthenticationError",
    "DatabaseUnavailableError",
    "InvalidScopeError",
    "PermissionDeniedError",
    "StatsComputationError",
    "validate_scope",
]
