"""
Tests for password hashing, token handling and the auth service.
"""

from datetime import timedelta

import pytest
from jose import jwt

from flashpress.auth import AuthService, ConflictError, InvalidCredentialsError
from flashpress.auth.security import (
    ALGORITHM, create_access_token, decode_access_token, hash_password, verify_password
)
from flashpress.db.storage import MemoryStorage

SECRET = "unit-test-secret"


@pytest.fixture
def storage():
    return MemoryStorage(seed=False)


@pytest.fixture
def auth_service(storage):
    return AuthService(storage, SECRET, expire_days=7)


def test_hash_and_verify_password():
    hashed = hash_password("correct horse")

    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_verify_password_rejects_malformed_hash():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_long_passwords_are_accepted():
    password = "x" * 100
    assert verify_password(password, hash_password(password))


def test_token_round_trip_and_claims():
    token = create_access_token({"userId": "u-1", "username": "alice"}, SECRET)

    claims = jwt.decode(token, SECRET, algorithms=[ALGORITHM])
    assert claims["userId"] == "u-1"
    assert claims["username"] == "alice"
    assert claims["exp"] - claims["iat"] == int(timedelta(days=7).total_seconds())


def test_decode_rejects_bad_signature_and_expired_tokens():
    token = create_access_token({"userId": "u-1"}, SECRET)
    expired = create_access_token({"userId": "u-1"}, SECRET, expires_delta=timedelta(seconds=-10))

    assert decode_access_token(token, "another-secret") is None
    assert decode_access_token(expired, SECRET) is None
    assert decode_access_token("garbage", SECRET) is None


async def test_register_then_login(auth_service):
    registered = await auth_service.register("a", "a@x.com", "p")
    logged_in = await auth_service.login("a", "p")

    payload = auth_service.verify_token(logged_in.token)
    assert payload.user_id == registered.user.id
    assert payload.username == "a"
    assert not hasattr(registered.user, "password")


async def test_login_by_email(auth_service):
    await auth_service.register("alice", "alice@example.com", "pw")

    result = await auth_service.login("alice@example.com", "pw")

    assert result.user.username == "alice"


async def test_login_with_mixed_case_email_domain(auth_service, storage):
    await auth_service.register("bob", "Bob@Example.COM", "pw")

    assert (await storage.get_user_by_username("bob")).email == "Bob@example.com"
    assert (await auth_service.login("Bob@Example.COM", "pw")).user.username == "bob"
    assert (await auth_service.login("Bob@example.com", "pw")).user.username == "bob"

    with pytest.raises(InvalidCredentialsError):
        await auth_service.login("bob@example.com", "pw")


async def test_register_duplicate_email(auth_service, storage):
    await auth_service.register("alice", "alice@example.com", "pw")

    with pytest.raises(ConflictError, match="User with this email already exists"):
        await auth_service.register("bob", "alice@example.com", "pw")

    assert await storage.get_user_by_username("bob") is None


async def test_register_duplicate_username(auth_service):
    await auth_service.register("alice", "alice@example.com", "pw")

    with pytest.raises(ConflictError, match="Username already taken"):
        await auth_service.register("alice", "other@example.com", "pw")


async def test_login_failures_are_indistinguishable(auth_service):
    await auth_service.register("alice", "alice@example.com", "pw")

    with pytest.raises(InvalidCredentialsError) as wrong_password:
        await auth_service.login("alice", "nope")
    with pytest.raises(InvalidCredentialsError) as unknown_user:
        await auth_service.login("nobody", "pw")

    assert str(wrong_password.value) == str(unknown_user.value) == "Invalid credentials"


def test_verify_token_never_raises(auth_service):
    missing_claims = create_access_token({"sub": "someone"}, SECRET)

    assert auth_service.verify_token("") is None
    assert auth_service.verify_token("not.a.token") is None
    assert auth_service.verify_token(missing_claims) is None
