"""Tests for bcrypt password hashing."""

import pytest

from storefront.auth.passwords import PasswordHasher

pytestmark = pytest.mark.unit


def test_hash_is_bcrypt_with_configured_cost(password_hasher):
    hashed = password_hasher.hash("s3cret-pass")

    assert hashed != "s3cret-pass"
    assert hashed.startswith("$2b$04$")


def test_verify_accepts_only_the_hashed_password(password_hasher):
    hashed = password_hasher.hash("s3cret-pass")

    assert password_hasher.verify("s3cret-pass", hashed)
    assert not password_hasher.verify("wrong-pass", hashed)


def test_hashes_are_salted(password_hasher):
    assert password_hasher.hash("same") != password_hasher.hash("same")


async def test_async_variants_match_sync_behaviour():
    """Hashing off the event loop gives the same results."""
    hasher = PasswordHasher(rounds=4)
    hashed = await hasher.hash_async("s3cret-pass")

    assert await hasher.verify_async("s3cret-pass", hashed)
    assert not await hasher.verify_async("nope", hashed)
    await hasher.dummy_verify_async()
