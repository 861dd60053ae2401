"""
Data models for ResearchStats API.

Contains Pydantic models for request/response validation.
"""

from .schemas import (
    CacheClearResponse,
    CacheInfoResponse,
    CategoryCount,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RangeCount,
)

__all__ = [
    "CacheClearResponse",
    "CacheInfoResponse",
    "CategoryCount",
    "ErrorResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "RangeCount",
]
