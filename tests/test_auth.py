"""
Unit tests for authentication utilities and the auth routes.

Tests password hashing, token validation, and role-based access control.
"""

from datetime import datetime, timezone, timedelta
from unittest.mock import patch, MagicMock

from utils.auth import (
    authenticate_user,
    generate_token,
    get_current_user,
    hash_password,
    require_role,
    strip_bearer,
    verify_password,
)


class TestPasswordHashing:
    """Tests for bcrypt password hashing."""

    def test_hash_is_different_from_plaintext(self):
        password = "mypassword123"
        hashed = hash_password(password)
        assert isinstance(hashed, str)
        assert hashed != password

    def test_different_hashes_for_same_password(self):
        """bcrypt uses random salt, so same password produces different hashes."""
        assert hash_password("samepassword") != hash_password("samepassword")

    def test_verify_correct_password(self):
        hashed = hash_password("correctpassword")
        assert verify_password("correctpassword", hashed) is True

    def test_verify_wrong_password(self):
        hashed = hash_password("correctpassword")
        assert verify_password("wrongpassword", hashed) is False

    def test_verify_invalid_hash(self):
        """Should return False for non-bcrypt hash, not crash."""
        assert verify_password("test", "not-a-valid-hash") is False


class TestTokens:
    """Tests for token generation and lookup."""

    def test_token_is_64_hex_chars(self):
        token = generate_token()
        assert len(token) == 64
        int(token, 16)

    def test_strip_bearer(self):
        assert strip_bearer("Bearer abc") == "abc"
        assert strip_bearer("abc") == "abc"
        assert strip_bearer(None) == ""

    def test_expired_token_rejected(self):
        users = MagicMock()
        users.find_one.return_value = {
            "username": "u",
            "role": "user",
            "is_active": True,
            "token_expires_at": datetime.now(timezone.utc) - timedelta(minutes=1),
        }
        with patch("utils.auth.get_users_collection", return_value=users):
            assert get_current_user("tok") is None
        users.update_one.assert_called_once()

    def test_inactive_user_rejected(self):
        users = MagicMock()
        users.find_one.return_value = {"username": "u", "role": "user", "is_active": False}
        with patch("utils.auth.get_users_collection", return_value=users):
            assert get_current_user("tok") is None

    def test_valid_token_strips_secrets(self):
        users = MagicMock()
        users.find_one.return_value = {
            "username": "u",
            "role": "admin",
            "is_active": True,
            "auth_token": "tok",
            "token_expires_at": datetime.now(timezone.utc) + timedelta(hours=1),
        }
        with patch("utils.auth.get_users_collection", return_value=users):
            user = get_current_user("tok")
        assert user["role"] == "admin"
        assert "auth_token" not in user


class TestAuthenticateUser:
    """Tests for username/password login."""

    def _users(self, **overrides):
        users = MagicMock()
        users.find_one.return_value = {
            "_id": "x",
            "username": "researcher",
            "role": "user",
            "is_active": True,
            "password_hash": "hash",
            **overrides,
        }
        return users

    def test_success_issues_token(self):
        users = self._users()
        with patch("utils.auth.get_users_collection", return_value=users), \
             patch("utils.auth.verify_password", return_value=True):
            result = authenticate_user("researcher", "pw")
        assert result["role"] == "user"
        assert len(result["token"]) == 64
        users.update_one.assert_called_once()

    def test_inactive_account_refused(self):
        users = self._users(is_active=False)
        with patch("utils.auth.get_users_collection", return_value=users), \
             patch("utils.auth.verify_password", return_value=True):
            assert authenticate_user("researcher", "pw") is None

    def test_database_down(self):
        with patch("utils.auth.get_users_collection", return_value=None):
            assert authenticate_user("researcher", "pw") is None


class TestRequireRole:
    """Tests for role-based access control."""

    def test_missing_token(self):
        user, error = require_role("", ["admin"])
        assert user is None
        assert "Missing auth token" in error

    def test_invalid_token(self):
        with patch("utils.auth.get_current_user", return_value=None):
            user, error = require_role("Bearer fake-token", ["admin"])
        assert user is None
        assert "Invalid or expired" in error

    def test_wrong_role(self):
        with patch("utils.auth.get_current_user", return_value={"username": "u", "role": "user"}):
            user, error = require_role("valid-token", ["admin"])
        assert user is None
        assert "Access denied" in error

    def test_correct_role(self):
        with patch("utils.auth.get_current_user", return_value={"username": "a", "role": "admin"}):
            user, error = require_role("valid-token", ["user", "admin"])
        assert error is None
        assert user["role"] == "admin"


class TestAuthRoutes:
    """Integration tests for the login/logout flow."""

    def test_login_success(self, test_app):
        client, _ = test_app
        result = {"username": "researcher", "role": "user", "token": "test-token-123"}
        with patch("routes.auth.authenticate_user", return_value=result):
            resp = client.post("/api/auth/login", json={"username": "researcher", "password": "pw"})
        assert resp.status_code == 200
        assert resp.json() == {"token": "test-token-123", "username": "researcher", "role": "user"}

    def test_login_failure(self, test_app):
        client, _ = test_app
        with patch("routes.auth.authenticate_user", return_value=None):
            resp = client.post("/api/auth/login", json={"username": "researcher", "password": "bad"})
        assert resp.status_code == 401
        assert resp.json()["kind"] == "unauthorized"

    def test_login_validation_error(self, test_app):
        client, _ = test_app
        resp = client.post("/api/auth/login", json={"username": ""})
        assert resp.status_code == 422
        assert resp.json()["kind"] == "invalid_request"

    def test_logout(self, test_app):
        client, _ = test_app
        with patch("routes.auth.revoke_token", return_value=True) as revoke:
            resp = client.post("/api/auth/logout", headers={"Authorization": "Bearer test-token"})
        assert resp.status_code == 200
        revoke.assert_called_once_with("test-token")
