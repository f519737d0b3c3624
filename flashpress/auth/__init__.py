"""Password hashing, token issuance and request authentication."""

from flashpress.auth.service import (
    AuthError,
    AuthResult,
    AuthService,
    ConflictError,
    InvalidCredentialsError,
    TokenPayload,
)

__all__ = [
    "AuthError",
    "AuthResult",
    "AuthService",
    "ConflictError",
    "InvalidCredentialsError",
    "TokenPayload",
]
