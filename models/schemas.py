"""
Pydantic schemas for API request/response validation.

Stats bundles are returned as plain dicts because their keys come from
the dimension tables; the item and envelope shapes are declared here.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class CategoryCount(BaseModel):
    """One group of a categorical, ordinal or unwound dimension."""
    category: Any = Field(..., description="Grouped value (null when the field was missing)")
    count: float = Field(..., ge=0, description="Documents (or weighted elements) in the group")
    percent: float = Field(..., ge=0, description="count / total * 100, one decimal")
    avg_percentage: Optional[float] = Field(
        None,
        description="Mean of the element's percentage sub-field, when the dimension averages one"
    )


class RangeCount(BaseModel):
    """One bucket of a numeric dimension."""
    range: str = Field(..., description="Bucket label, e.g. '10-50' or '10000+'")
    count: int = Field(..., ge=0)
    percent: float = Field(..., ge=0)


class CacheInfoResponse(BaseModel):
    """Cache state for one scope."""
    cached: bool
    expires_in: Optional[int] = Field(None, ge=0, description="Seconds until the entry expires")
    expires_at: Optional[str] = Field(None, description="ISO-8601 UTC expiry timestamp")


class MessageResponse(BaseModel):
    message: str


class CacheClearResponse(BaseModel):
    message: str
    cleared: int = Field(..., ge=0, description="Number of entries removed")


class ErrorResponse(BaseModel):
    """Body of every error response."""
    kind: str = Field(..., description="Machine-readable error kind")
    message: str = Field(..., description="Human-readable explanation")


# === AUTH MODELS ===


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=200)


class LoginResponse(BaseModel):
    token: str
    username: str
    role: str
