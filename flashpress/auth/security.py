"""Password hashing and signed token helpers"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import jwt, JWTError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_TOKEN_EXPIRE = timedelta(days=7)
BCRYPT_MAX_BYTES = 72  # bcrypt ignores (newer releases reject) anything longer


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password using bcrypt with a fresh salt"""
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(_password_bytes(password), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a bcrypt hash"""
    hash_bytes = hashed_password.encode("utf-8") if isinstance(hashed_password, str) else hashed_password
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hash_bytes)
    except ValueError as e:
        logger.warning(f"Password verification error: {e}")
        return False


def create_access_token(
    data: dict,
    secret_key: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed JWT carrying `data` plus iat/exp claims"""
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({
        "iat": now,
        "exp": now + (expires_delta or DEFAULT_TOKEN_EXPIRE),
    })
    return jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, secret_key: str) -> Optional[dict]:
    """Decode and verify a JWT; None when malformed, expired or badly signed"""
    try:
        return jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Token rejected: {e}")
        return None
