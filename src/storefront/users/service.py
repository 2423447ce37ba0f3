"""
Account registration and login.

Registration checks uniqueness before hashing so duplicate submissions fail fast,
but the database unique constraints stay authoritative: a violation raised on
insert is reported as the same duplicate-credential error.

Login fails with one uniform error whether the username is unknown or the
password is wrong.
"""

from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.jwt_service import JWTService
from storefront.auth.passwords import PasswordHasher
from storefront.exceptions import (
    DuplicateCredentialError,
    InvalidCredentialsError,
    NotFoundError,
    StoreError,
)
from storefront.logging import get_logger
from storefront.users.models import User
from storefront.users.schemas import RegisterRequest

logger = get_logger(__name__)


class UserService:
    """Asynchronous account orchestration service."""

    def __init__(
        self,
        session: AsyncSession,
        password_hasher: PasswordHasher,
        jwt_service: JWTService | None = None,
    ) -> None:
        self.session = session
        self.password_hasher = password_hasher
        self.jwt_service = jwt_service

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    async def register(self, data: RegisterRequest) -> User:
        """Create an account, rejecting duplicate usernames or emails."""
        await self._ensure_available(data.username, str(data.email))

        password_hash = await self.password_hasher.hash_async(data.password)
        user = User(
            username=data.username,
            email=str(data.email),
            password_hash=password_hash,
            fullname=data.fullname,
            tel=data.tel,
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.info("auth.register.duplicate", username=data.username, source="constraint")
            raise DuplicateCredentialError() from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError(f"Failed to create user: {e}") from e

        await self.session.refresh(user)
        logger.info("auth.register.success", user_id=user.id, username=user.username)
        return user

    async def _ensure_available(self, username: str, email: str) -> None:
        try:
            result = await self.session.execute(
                select(User.username, User.email).where(
                    or_(User.username == username, User.email == email)
                )
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to check credentials: {e}") from e

        for existing_username, existing_email in result.all():
            if existing_username == username:
                logger.info("auth.register.duplicate", username=username, field="username")
                raise DuplicateCredentialError("Username already exists")
            if existing_email == email:
                logger.info("auth.register.duplicate", username=username, field="email")
                raise DuplicateCredentialError("Email already exists")

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------
    async def login(self, username: str, password: str) -> tuple[User, str]:
        """Verify credentials and issue an access token."""
        if self.jwt_service is None:
            raise RuntimeError("JWT service is not configured")

        user = await self._find_by_username(username)
        if user is None:
            await self.password_hasher.dummy_verify_async()
            logger.info("auth.login.failed", username=username)
            raise InvalidCredentialsError()

        if not await self.password_hasher.verify_async(password, user.password_hash):
            logger.info("auth.login.failed", username=username)
            raise InvalidCredentialsError()

        token = self.jwt_service.issue(user.id, self._claims_for(user))
        logger.info("auth.login.success", user_id=user.id, username=user.username)
        return user, token

    @staticmethod
    def _claims_for(user: User) -> dict[str, Any]:
        return {"username": user.username, "email": user.email}

    async def _find_by_username(self, username: str) -> User | None:
        try:
            result = await self.session.execute(select(User).where(User.username == username))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to look up user: {e}") from e
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def get_user(self, user_id: int) -> User:
        try:
            user = await self.session.get(User, user_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load user: {e}") from e
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def list_users(self) -> list[User]:
        try:
            result = await self.session.execute(
                select(User).order_by(User.created_at.desc(), User.id.desc())
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list users: {e}") from e
        return list(result.scalars().all())


__all__ = ["UserService"]
