"""
Tests for issuing and verifying access tokens.
"""

from datetime import timedelta

import jwt
import pytest
from freezegun import freeze_time

from storefront.auth.jwt_service import JWTService
from storefront.exceptions import ConfigurationError, ExpiredTokenError, InvalidTokenError

pytestmark = pytest.mark.unit

SECRET = "unit-test-secret"


class TestIssueAndVerify:
    """Round trips through a single service."""

    def test_verify_returns_issued_claims(self):
        """Claims survive the round trip and the subject is a string."""
        service = JWTService(SECRET)
        token = service.issue(42, {"username": "alice", "email": "alice@mail.com"})

        claims = service.verify(token)

        assert claims["sub"] == "42"
        assert claims["username"] == "alice"
        assert claims["email"] == "alice@mail.com"
        assert claims["exp"] - claims["iat"] == 1440 * 60

    def test_default_ttl_follows_configuration(self):
        service = JWTService(SECRET, access_token_expire_minutes=30)
        assert service.default_ttl == timedelta(minutes=30)

    def test_issue_uses_configured_algorithm(self):
        service = JWTService(SECRET, algorithm="HS512")
        token = service.issue("7")
        assert jwt.get_unverified_header(token)["alg"] == "HS512"


class TestExpiry:
    """Tokens are valid strictly before ``iat + ttl``."""

    def test_valid_until_expiry_then_rejected(self):
        service = JWTService(SECRET)
        with freeze_time("2026-01-01 00:00:00") as frozen:
            token = service.issue(1, ttl=timedelta(hours=1))

            frozen.move_to("2026-01-01 00:59:59")
            assert service.verify(token)["sub"] == "1"

            frozen.move_to("2026-01-01 01:00:00")
            with pytest.raises(ExpiredTokenError):
                service.verify(token)

    def test_expired_error_is_an_invalid_token_error(self):
        """Handlers catching InvalidTokenError also catch expiry."""
        service = JWTService(SECRET)
        token = service.issue(1, ttl=timedelta(seconds=-1))

        with pytest.raises(InvalidTokenError) as exc_info:
            service.verify(token)

        assert exc_info.value.code == "TOKEN_EXPIRED"


class TestRejection:
    """Tokens that must never verify."""

    def test_signature_from_other_secret(self):
        token = JWTService("another-secret").issue(1)
        with pytest.raises(InvalidTokenError) as exc_info:
            JWTService(SECRET).verify(token)
        assert exc_info.value.code == "TOKEN_INVALID"

    def test_tampered_payload(self):
        service = JWTService(SECRET)
        header, _, signature = service.issue(1).split(".")
        _, forged_payload, _ = service.issue(2, {"username": "mallory"}).split(".")

        with pytest.raises(InvalidTokenError):
            service.verify(f"{header}.{forged_payload}.{signature}")

    def test_malformed_token(self):
        with pytest.raises(InvalidTokenError):
            JWTService(SECRET).verify("not-a-token")

    def test_missing_subject(self):
        token = jwt.encode({"iat": 1, "exp": 4102444800}, SECRET, algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            JWTService(SECRET).verify(token)


class TestConfiguration:
    def test_issue_without_secret(self):
        with pytest.raises(ConfigurationError):
            JWTService("").issue(1)

    def test_verify_without_secret(self):
        token = JWTService(SECRET).issue(1)
        with pytest.raises(ConfigurationError):
            JWTService("").verify(token)
