"""Tests for the access guard and cookie options."""

import time

import pytest
from jose import jwt
from pydantic import ValidationError

from auth import AccessGuard, Identity, cookie_options
from config import DEV_TOKEN_SECRET, Settings
from errors import Unauthorized


@pytest.fixture
def guard():
    return AccessGuard("test-secret", expires_hours=24)


class TestAccessGuard:
    def test_issue_then_verify(self, guard):
        token = guard.issue({"email": "guest@example.com"})
        assert guard.verify(token) == Identity(email="guest@example.com")

    def test_token_expires_after_one_day(self, guard):
        claims = jwt.get_unverified_claims(guard.issue({"email": "guest@example.com"}))
        assert claims["exp"] - claims["iat"] == 24 * 3600

    @pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
    def test_missing_or_garbage_token(self, guard, token):
        with pytest.raises(Unauthorized):
            guard.verify(token)

    def test_wrong_signature(self, guard):
        token = AccessGuard("other-secret").issue({"email": "guest@example.com"})
        with pytest.raises(Unauthorized):
            guard.verify(token)

    def test_expired_token(self, guard):
        past = int(time.time()) - 10
        token = jwt.encode({"sub": "guest@example.com", "exp": past}, "test-secret", algorithm="HS256")
        with pytest.raises(Unauthorized):
            guard.verify(token)

    def test_token_without_subject(self, guard):
        token = jwt.encode({"exp": int(time.time()) + 60}, "test-secret", algorithm="HS256")
        with pytest.raises(Unauthorized):
            guard.verify(token)

    def test_empty_secret_is_rejected(self):
        with pytest.raises(RuntimeError):
            AccessGuard("")


class TestCookieOptions:
    def test_production_cookie_is_cross_site(self, db_url):
        settings = Settings(DATABASE_URL=db_url, ENVIRONMENT="production", ACCESS_TOKEN_SECRET="prod-secret")
        assert cookie_options(settings) == {"httponly": True, "secure": True, "samesite": "none"}

    def test_development_cookie_is_strict(self, db_url):
        settings = Settings(DATABASE_URL=db_url, ENVIRONMENT="development")
        assert cookie_options(settings) == {"httponly": True, "secure": False, "samesite": "strict"}


class TestTokenSecretSetting:
    def test_production_requires_a_private_secret(self, db_url, monkeypatch):
        monkeypatch.delenv("ACCESS_TOKEN_SECRET", raising=False)
        with pytest.raises(ValidationError):
            Settings(DATABASE_URL=db_url, ENVIRONMENT="production")

    @pytest.mark.parametrize("secret", ["", DEV_TOKEN_SECRET])
    def test_production_rejects_placeholder_secret(self, db_url, secret):
        with pytest.raises(ValidationError):
            Settings(DATABASE_URL=db_url, ENVIRONMENT="production", ACCESS_TOKEN_SECRET=secret)

    def test_development_falls_back_to_dev_secret(self, db_url, monkeypatch):
        monkeypatch.delenv("ACCESS_TOKEN_SECRET", raising=False)
        settings = Settings(DATABASE_URL=db_url, ENVIRONMENT="development")
        assert settings.ACCESS_TOKEN_SECRET == DEV_TOKEN_SECRET
