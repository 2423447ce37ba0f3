"""
FastAPI dependencies for authentication.

Services are built once per application in ``create_app`` and read back from
``app.state``; nothing here touches module-level configuration.
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.jwt_service import JWTService
from storefront.auth.passwords import PasswordHasher
from storefront.db import get_session
from storefront.exceptions import AuthenticationRequiredError, InvalidTokenError
from storefront.logging import get_logger
from storefront.users.schemas import TokenClaims
from storefront.users.service import UserService

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_jwt_service(request: Request) -> JWTService:
    return request.app.state.jwt_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_user_service(
    session: AsyncSession = Depends(get_session),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    jwt_service: JWTService = Depends(get_jwt_service),
) -> UserService:
    return UserService(session, password_hasher, jwt_service)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    jwt_service: JWTService = Depends(get_jwt_service),
) -> TokenClaims:
    """Resolve the caller from an ``Authorization: Bearer <token>`` header."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequiredError()

    claims = jwt_service.verify(credentials.credentials)
    try:
        user = TokenClaims(
            user_id=int(claims["sub"]),
            username=claims.get("username"),
            email=claims.get("email"),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.debug("auth.token.bad_subject", error=str(e))
        raise InvalidTokenError() from e

    return user


__all__ = [
    "bearer_scheme",
    "get_current_user",
    "get_jwt_service",
    "get_password_hasher",
    "get_user_service",
]
