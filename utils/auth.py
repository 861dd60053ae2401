"""
Token-based authentication for the user/admin roles.

Uses bcrypt for password hashing with automatic salting.
Tokens have expiration and can be revoked.
"""

import logging
import secrets
from datetime import datetime, timezone, timedelta
from typing import Optional, Tuple

import bcrypt

from config import get_settings
from database.connection import get_users_collection

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt with automatic salting."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check if a password matches its bcrypt hash (constant-time comparison)."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def generate_token() -> str:
    """Generate a cryptographically secure random auth token."""
    return secrets.token_hex(32)


def authenticate_user(username: str, password: str) -> Optional[dict]:
    """
    Authenticate a user by username and password.

    Inactive accounts are refused even with the right password.

    Returns:
        dict with username, role and a fresh token if valid, None otherwise.
    """
    users_col = get_users_collection()
    if users_col is None:
        logger.error("Database unavailable during authentication attempt")
        return None

    user = users_col.find_one({"username": username.strip()})

    if not user:
        logger.warning("Failed login attempt for unknown username: %s***", username[:3])
        return None

    if not verify_password(password, user.get("password_hash", "")):
        logger.warning("Failed login attempt (bad password) for user: %s", user["username"])
        return None

    if not user.get("is_active", False):
        logger.warning("Login refused for inactive account: %s", user["username"])
        return None

    token = generate_token()
    now = datetime.now(timezone.utc)
    token_expires = now + timedelta(hours=get_settings().auth_token_expiry_hours)

    users_col.update_one(
        {"_id": user["_id"]},
        {"$set": {
            "auth_token": token,
            "token_expires_at": token_expires,
            "last_login": now,
        }},
    )

    logger.info("Successful login for user: %s (role: %s)", user["username"], user.get("role"))

    return {
        "username": user["username"],
        "role": user.get("role", "user"),
        "token": token,
    }


def get_current_user(token: str) -> Optional[dict]:
    """
    Look up a user by their auth token.

    Validates token existence and expiration.

    Args:
        token: The Bearer token from the Authorization header

    Returns:
        User document (without secrets) if token is valid and not expired, None otherwise.
    """
    if not token:
        return None

    users_col = get_users_collection()
    if users_col is None:
        logger.error("Database unavailable during token validation")
        return None

    user = users_col.find_one(
        {"auth_token": token},
        {"password_hash": 0, "_id": 0},
    )

    if not user or not user.get("is_active", False):
        return None

    expires_at = user.get("token_expires_at")
    if expires_at:
        if isinstance(expires_at, str):
            try:
                expires_at = datetime.fromisoformat(expires_at)
            except (ValueError, TypeError):
                return None

        # MongoDB may return naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        if datetime.now(timezone.utc) > expires_at:
            logger.info("Expired token used by user: %s", user.get("username", "unknown"))
            users_col.update_one(
                {"auth_token": token},
                {"$set": {"auth_token": ""}},
            )
            return None

    user.pop("auth_token", None)
    user.pop("token_expires_at", None)

    return user


def revoke_token(token: str) -> bool:
    """
    Revoke/invalidate a user's auth token (logout).

    Returns:
        True if token was revoked, False otherwise
    """
    if not token:
        return False

    users_col = get_users_collection()
    if users_col is None:
        return False

    result = users_col.update_one(
        {"auth_token": token},
        {"$set": {"auth_token": "", "token_expires_at": None}},
    )

    return result.modified_count > 0


def strip_bearer(authorization: Optional[str]) -> str:
    """Return the raw token from an Authorization header value."""
    token = authorization or ""
    if token.startswith("Bearer "):
        token = token[7:]
    return token.strip()


def require_role(token: str, allowed_roles: list) -> Tuple[Optional[dict], Optional[str]]:
    """
    Validate token and check if user has one of the allowed roles.

    Returns:
        Tuple of (user_dict, error_message). If error_message is not None, auth failed.
    """
    if not token:
        return None, "Missing auth token. Include 'Authorization: Bearer <token>' header."

    user = get_current_user(strip_bearer(token))
    if not user:
        return None, "Invalid or expired auth token. Please log in again."

    if user.get("role") not in allowed_roles:
        return None, f"Access denied. Required role: {', '.join(allowed_roles)}. Your role: {user.get('role')}"

    return user, None
