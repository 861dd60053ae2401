"""
Authentication routes.

Issues and revokes the bearer tokens that gate the mutating and
administrative stats routes.
"""

import logging
from typing import Dict

from fastapi import APIRouter, Header, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from config import get_settings
from models.schemas import LoginRequest, LoginResponse
from utils.auth import authenticate_user, revoke_token, strip_bearer
from utils.errors import AuthenticationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

# Rate limiter for auth endpoints
limiter = Limiter(key_func=get_remote_address)


@router.post("/login", response_model=LoginResponse)
@limiter.limit(lambda: get_settings().login_rate_limit)
def login(request: Request, body: LoginRequest) -> LoginResponse:
    """Log in with username and password. Returns an auth token. Rate limited."""
    result = authenticate_user(body.username, body.password)
    if not result:
        raise AuthenticationError("Invalid username or password.")

    return LoginResponse(
        token=result["token"],
        username=result["username"],
        role=result["role"],
    )


@router.post("/logout")
def logout(authorization: str = Header("")) -> Dict[str, str]:
    """Log out and revoke the current auth token."""
    if revoke_token(strip_bearer(authorization)):
        return {"message": "Logged out successfully."}
    return {"message": "Token not found or already revoked."}
