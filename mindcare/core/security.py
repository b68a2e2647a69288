"""Password hashing and signed session tokens."""

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from mindcare.core.config import Settings, get_settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class TokenError(Exception):
    """Session token is missing required claims, expired or tampered with."""


def hash_password(password: str) -> str:
    """Hash a plaintext password for storage."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Check a plaintext password against its stored hash."""
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(
    user_id: uuid.UUID,
    role: str,
    name: str,
    settings: Settings | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Issue a signed session token for a user.

    Args:
        user_id: The user's ID, stored as the ``sub`` claim
        role: ``patient`` or ``therapist``
        name: Display name
        settings: Application settings
        expires_delta: Lifetime override; defaults to the configured lifetime

    Returns:
        Encoded JWT
    """
    settings = settings or get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "name": name,
        "exp": datetime.now(UTC) + expires_delta,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """Verify a session token and return its claims.

    Raises:
        TokenError: If the signature, expiry or claims are invalid
    """
    settings = settings or get_settings()
    try:
        claims = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as e:
        raise TokenError(str(e)) from e

    if not claims.get("sub") or not claims.get("role"):
        raise TokenError("Token is missing required claims")
    try:
        claims["sub"] = uuid.UUID(claims["sub"])
    except ValueError as e:
        raise TokenError("Token subject is not a valid id") from e
    return claims
