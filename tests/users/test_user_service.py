"""
Tests for account registration and login against a real (in-memory) store.
"""

import pytest

from storefront.exceptions import DuplicateCredentialError, InvalidCredentialsError, NotFoundError
from storefront.users.models import User
from storefront.users.schemas import RegisterRequest
from storefront.users.service import UserService

pytestmark = pytest.mark.unit


@pytest.fixture
def service(session, password_hasher, jwt_service) -> UserService:
    return UserService(session, password_hasher, jwt_service)


@pytest.fixture
def alice_request(alice) -> RegisterRequest:
    return RegisterRequest(**alice)


class TestRegister:
    """Registration stores a hashed password and enforces uniqueness."""

    async def test_register_assigns_id_and_hashes_password(self, service, alice_request):
        user = await service.register(alice_request)

        assert user.id is not None
        assert user.username == "alice"
        assert user.password_hash != alice_request.password
        assert user.password_hash.startswith("$2b$")

    async def test_duplicate_username(self, service, alice_request, alice):
        await service.register(alice_request)

        with pytest.raises(DuplicateCredentialError) as exc_info:
            await service.register(RegisterRequest(**{**alice, "email": "other@mail.com"}))

        assert exc_info.value.message == "Username already exists"
        assert exc_info.value.status_code == 409

    async def test_duplicate_email(self, service, alice_request, alice):
        await service.register(alice_request)

        with pytest.raises(DuplicateCredentialError) as exc_info:
            await service.register(RegisterRequest(**{**alice, "username": "alice2"}))

        assert exc_info.value.message == "Email already exists"

    async def test_unique_constraint_is_authoritative(self, service, alice_request, monkeypatch):
        """A duplicate that slips past the pre-check is still reported as a duplicate."""
        await service.register(alice_request)

        async def skip_precheck(username: str, email: str) -> None:
            return None

        monkeypatch.setattr(service, "_ensure_available", skip_precheck)

        with pytest.raises(DuplicateCredentialError):
            await service.register(alice_request)


class TestLogin:
    """Login issues a token and never reveals which part was wrong."""

    async def test_login_after_register(self, service, alice_request, jwt_service):
        registered = await service.register(alice_request)

        user, token = await service.login("alice", alice_request.password)

        assert user.id == registered.id
        claims = jwt_service.verify(token)
        assert claims["sub"] == str(registered.id)
        assert claims["username"] == "alice"
        assert claims["email"] == "alice@mail.com"

    async def test_wrong_password_and_unknown_user_look_identical(self, service, alice_request):
        await service.register(alice_request)

        with pytest.raises(InvalidCredentialsError) as wrong_password:
            await service.login("alice", "not-the-password")
        with pytest.raises(InvalidCredentialsError) as unknown_user:
            await service.login("bob", "whatever")

        assert wrong_password.value.to_dict() == unknown_user.value.to_dict()
        assert wrong_password.value.status_code == 401


class TestQueries:
    async def test_get_user_missing(self, service):
        with pytest.raises(NotFoundError):
            await service.get_user(999)

    async def test_list_users(self, service, alice_request, alice):
        await service.register(alice_request)
        await service.register(
            RegisterRequest(**{**alice, "username": "bob", "email": "bob@mail.com"})
        )

        users = await service.list_users()

        assert {user.username for user in users} == {"alice", "bob"}
        assert all(isinstance(user, User) for user in users)
