"""
Password hashing with Passlib.

bcrypt is CPU bound, so the async helpers run it in the threadpool to keep the
event loop responsive.
"""

from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from storefront.settings import Settings


class PasswordHasher:
    """bcrypt hashing and constant-time verification."""

    def __init__(self, rounds: int = 10) -> None:
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(rounds=settings.auth.bcrypt_rounds)

    def hash(self, password: str) -> str:
        """Hash password."""
        return str(self.context.hash(password))

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify password."""
        return bool(self.context.verify(password, password_hash))

    def dummy_verify(self) -> None:
        """Spend roughly one verification's worth of time without a stored hash."""
        self.context.dummy_verify()

    async def hash_async(self, password: str) -> str:
        return await run_in_threadpool(self.hash, password)

    async def verify_async(self, password: str, password_hash: str) -> bool:
        return await run_in_threadpool(self.verify, password, password_hash)

    async def dummy_verify_async(self) -> None:
        await run_in_threadpool(self.dummy_verify)
