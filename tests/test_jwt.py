"""Tests for bearer token issuing and verification."""

import base64
import json
import time
from datetime import datetime, timedelta

import pytest
from jose import jwt

from app.exceptions import InvalidSignatureError, TokenExpiredError
from app.services.jwt import JWTService


def _b64(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()


class TestIssue:
    """Tests for token creation."""

    def test_roundtrip_user_id(self, token_service: JWTService):
        """A freshly issued token verifies to the same user id."""
        token = token_service.issue("user-123")
        assert token_service.verify(token) == "user-123"

    def test_claims(self, token_service: JWTService):
        """Token carries subject, issue time and a 24h expiry by default."""
        token = token_service.issue("user-123")
        claims = jwt.get_unverified_claims(token)
        assert claims["sub"] == "user-123"
        assert claims["exp"] - claims["iat"] == 24 * 60 * 60

    def test_header_algorithm(self, token_service: JWTService):
        """Token is signed with the configured algorithm."""
        token = token_service.issue("user-123")
        assert jwt.get_unverified_header(token)["alg"] == "HS256"

    def test_rejects_non_hmac_algorithm(self):
        """Only symmetric HMAC algorithms can be configured."""
        with pytest.raises(ValueError):
            JWTService(secret_key="secret", algorithm="RS256")


class TestVerify:
    """Tests for token validation failures."""

    def test_expired_token(self, token_service: JWTService):
        """A token past its expiry fails with TokenExpiredError."""
        issued_yesterday = JWTService(
            secret_key=token_service.secret_key,
            clock=lambda: datetime.utcnow() - timedelta(hours=25),
        )
        token = issued_yesterday.issue("user-123")
        with pytest.raises(TokenExpiredError):
            token_service.verify(token)

    def test_wrong_secret(self, token_service: JWTService):
        """A token signed with another key fails the signature check."""
        token = JWTService(secret_key="some-other-secret").issue("user-123")
        with pytest.raises(InvalidSignatureError):
            token_service.verify(token)

    def test_tampered_payload(self, token_service: JWTService):
        """Swapping the payload invalidates the signature."""
        header, _, signature = token_service.issue("user-123").split(".")
        exp = int(time.time()) + 3600
        forged = f"{header}.{_b64({'sub': 'admin', 'exp': exp})}.{signature}"
        with pytest.raises(InvalidSignatureError):
            token_service.verify(forged)

    def test_other_algorithm_same_secret(self, token_service: JWTService):
        """HS512 with the right secret is still rejected when HS256 is configured."""
        token = JWTService(secret_key=token_service.secret_key, algorithm="HS512").issue("user-123")
        with pytest.raises(InvalidSignatureError):
            token_service.verify(token)

    def test_alg_none(self, token_service: JWTService):
        """Unsigned tokens are rejected."""
        exp = int(time.time()) + 3600
        token = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64({'sub': 'user-123', 'exp': exp})}."
        with pytest.raises(InvalidSignatureError):
            token_service.verify(token)

    def test_garbage(self, token_service: JWTService):
        """Malformed input fails like a bad signature."""
        with pytest.raises(InvalidSignatureError):
            token_service.verify("invalid.token.here")

    def test_missing_subject(self, token_service: JWTService):
        """A correctly signed token without a subject is not a credential."""
        claims = {"exp": datetime.utcnow() + timedelta(hours=1)}
        token = jwt.encode(claims, token_service.secret_key, algorithm="HS256")
        with pytest.raises(InvalidSignatureError):
            token_service.verify(token)
