"""
JWT Service

Issues and verifies signed, time-limited identity tokens with PyJWT. Tokens are
self-contained; there is no server-side session or revocation list.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from storefront.exceptions import ConfigurationError, ExpiredTokenError, InvalidTokenError
from storefront.settings import Settings

DEFAULT_ALGORITHM = "HS256"
DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES = 1440

# Claims every token must carry; decoding fails when any is missing.
REQUIRED_CLAIMS = ("sub", "iat", "exp")


class JWTService:
    """Sign and verify access tokens with a shared secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = DEFAULT_ALGORITHM,
        access_token_expire_minutes: int = DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES,
    ) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.access_token_expire_minutes = access_token_expire_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "JWTService":
        return cls(
            secret=settings.jwt.secret_key,
            algorithm=settings.jwt.algorithm,
            access_token_expire_minutes=settings.jwt.access_token_expire_minutes,
        )

    @property
    def default_ttl(self) -> timedelta:
        return timedelta(minutes=self.access_token_expire_minutes)

    def issue(
        self,
        subject: str | int,
        claims: dict[str, Any] | None = None,
        ttl: timedelta | None = None,
    ) -> str:
        """Create a token for ``subject`` that expires ``ttl`` from now.

        Raises:
            ConfigurationError: If no signing secret is configured
        """
        if not self.secret:
            raise ConfigurationError("JWT signing secret is not configured")

        now = datetime.now(UTC)
        payload: dict[str, Any] = dict(claims or {})
        payload.update(
            {
                "sub": str(subject),
                "iat": now,
                "exp": now + (ttl if ttl is not None else self.default_ttl),
            }
        )
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """Decode ``token``, checking both signature and expiry.

        Raises:
            ExpiredTokenError: If the token is past its ``exp`` claim
            InvalidTokenError: If the token is malformed or the signature does not match
        """
        if not self.secret:
            raise ConfigurationError("JWT signing secret is not configured")

        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={
                    "require": list(REQUIRED_CLAIMS),
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_iat": True,
                },
            )
        except jwt.ExpiredSignatureError as e:
            raise ExpiredTokenError() from e
        except jwt.PyJWTError as e:
            raise InvalidTokenError() from e
