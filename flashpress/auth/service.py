"""
Registration, login and token verification.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from pydantic.networks import validate_email

from flashpress.auth.security import (
    create_access_token, decode_access_token, hash_password, verify_password
)
from flashpress.db.entities import DuplicateEntryError, PublicUser, User
from flashpress.db.storage import Storage

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class AuthError(Exception):
    """Base class for registration and login failures."""


class ConflictError(AuthError):
    """Username or email already registered."""


class InvalidCredentialsError(AuthError):
    """Unknown identifier or wrong password; deliberately indistinguishable."""

    def __init__(self):
        super().__init__(INVALID_CREDENTIALS)


def normalize_email(value: str) -> Optional[str]:
    """
    Normalize an address the way EmailStr does at registration (lowercase
    domain, IDNA decoded). Returns None when the value is not an address.
    """
    try:
        return validate_email(value)[1]
    except ValueError:
        return None


@dataclass
class TokenPayload:
    user_id: str
    username: str


@dataclass
class AuthResult:
    user: PublicUser
    token: str


class AuthService:
    """
    Issues and verifies signed, time-limited tokens tied to a user.

    The secret is fixed for the lifetime of the service; changing it
    invalidates every outstanding token.
    """

    def __init__(self, storage: Storage, secret_key: str, expire_days: int = 7):
        self.storage = storage
        self.secret_key = secret_key
        self.token_lifetime = timedelta(days=expire_days)

    def generate_token(self, user: User) -> str:
        return create_access_token(
            {"userId": user.id, "username": user.username},
            self.secret_key,
            expires_delta=self.token_lifetime,
        )

    def verify_token(self, token: str) -> Optional[TokenPayload]:
        """
        Decode a token. Returns None for any failure and never raises.
        """
        if not token:
            return None

        payload = decode_access_token(token, self.secret_key)
        if not payload:
            return None

        user_id = payload.get("userId")
        username = payload.get("username")
        if not isinstance(user_id, str) or not isinstance(username, str):
            return None

        return TokenPayload(user_id=user_id, username=username)

    async def register(self, username: str, email: str, password: str) -> AuthResult:
        """
        Create a user and issue a token.

        Raises:
            ConflictError: email or username already present
        """
        email = normalize_email(email) or email

        if await self.storage.get_user_by_email(email):
            raise ConflictError("User with this email already exists")

        if await self.storage.get_user_by_username(username):
            raise ConflictError("Username already taken")

        try:
            user = await self.storage.create_user(
                username=username,
                email=email,
                password=hash_password(password),
            )
        except DuplicateEntryError as e:
            raise ConflictError(str(e)) from e

        logger.info(f"New user registered: {username}")
        return AuthResult(user=PublicUser.from_user(user), token=self.generate_token(user))

    async def login(self, identifier: str, password: str) -> AuthResult:
        """
        Authenticate by username, falling back to email. An email is matched
        as typed and then in its normalized form.

        Raises:
            InvalidCredentialsError: unknown identifier or wrong password
        """
        user = await self.storage.get_user_by_username(identifier)
        if not user:
            user = await self.storage.get_user_by_email(identifier)
        if not user and "@" in identifier:
            email = normalize_email(identifier)
            if email and email != identifier:
                user = await self.storage.get_user_by_email(email)

        if not user or not verify_password(password, user.password):
            raise InvalidCredentialsError()

        logger.info(f"User logged in: {user.username}")
        return AuthResult(user=PublicUser.from_user(user), token=self.generate_token(user))
