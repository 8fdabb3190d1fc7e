"""Unit tests for server-side JWT handling and password hashing."""

from datetime import timedelta

import jwt
import pytest

from storefront.api.shared.auth import (
    create_access_token,
    decode_access_token,
    hash_password,
    normalize_security_answer,
    verify_password,
)
from storefront.config import AuthConfig
from storefront.db.models.base import utcnow


@pytest.fixture
def config() -> AuthConfig:
    return AuthConfig(jwt_secret="unit-test-secret", jwt_expires_hours=4)


class TestAccessTokens:
    def test_round_trip_claims(self, config):
        token = create_access_token(42, "asha", "admin", config=config)

        claims = decode_access_token(token, config=config)

        assert claims["userId"] == 42
        assert claims["username"] == "asha"
        assert claims["role"] == "admin"
        assert claims["exp"] - claims["iat"] == 4 * 3600

    def test_wrong_secret(self, config):
        token = create_access_token(1, "asha", "user", config=config)

        with pytest.raises(jwt.InvalidSignatureError):
            decode_access_token(token, config=AuthConfig(jwt_secret="other"))

    def test_expired(self, config):
        token = jwt.encode(
            {"userId": 1, "exp": utcnow() - timedelta(seconds=5)},
            config.jwt_secret,
            algorithm="HS256",
        )

        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(token, config=config)

    def test_user_id_must_be_integer(self, config):
        token = jwt.encode(
            {"userId": "1", "exp": utcnow() + timedelta(hours=1)},
            config.jwt_secret,
            algorithm="HS256",
        )

        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(token, config=config)

    def test_user_id_required(self, config):
        token = jwt.encode({"exp": utcnow() + timedelta(hours=1)}, config.jwt_secret, algorithm="HS256")

        with pytest.raises(jwt.MissingRequiredClaimError):
            decode_access_token(token, config=config)


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("s3cret!")

        assert hashed != "s3cret!"
        assert verify_password("s3cret!", hashed)
        assert not verify_password("guess", hashed)

    def test_malformed_hash_never_matches(self):
        assert verify_password("s3cret!", "not-a-bcrypt-hash") is False


def test_security_answers_compare_loosely():
    assert normalize_security_answer("  Rex ") == normalize_security_answer("rex")
    assert normalize_security_answer(None) == ""
