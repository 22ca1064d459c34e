# backend/linklian/core/security.py

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from ..config import get_settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hashes a plain-text password."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifies a plain-text password against a hashed one."""
    return pwd_context.verify(plain_password, hashed_password)


def generate_initial_password(length: int = 12) -> str:
    """Random password for an imported account, to be changed on first login."""
    return secrets.token_urlsafe(length)[:length]


def create_signed_token(
    claims: Dict[str, Any],
    expires_delta: timedelta,
    secret_key: Optional[str] = None,
) -> str:
    """
    Signs ``claims`` into a JWT that expires after ``expires_delta``.

    Args:
        claims: Payload to embed. ``exp`` is added here.
        expires_delta: Lifespan of the token.
        secret_key: Signing key. Defaults to the import token secret.

    Returns:
        The encoded JWT string.
    """
    settings = get_settings()
    to_encode = dict(claims)
    to_encode["exp"] = datetime.now(timezone.utc) + expires_delta

    return jwt.encode(
        to_encode,
        secret_key or settings.import_token_secret,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_signed_token(token: str, secret_key: Optional[str] = None) -> Dict[str, Any]:
    """
    Decodes and verifies a JWT created by :func:`create_signed_token`.

    Raises ``jwt.ExpiredSignatureError`` for an expired token and
    ``jwt.PyJWTError`` for anything else that fails verification; callers
    translate those into their own errors.
    """
    settings = get_settings()
    return jwt.decode(
        token,
        secret_key or settings.import_token_secret,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["exp"]},
    )
