"""
Security utilities.
Password hashing and JWT token handling.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import get_settings

logger = logging.getLogger(__name__)

_pwd_context: Optional[CryptContext] = None


def get_password_context() -> CryptContext:
    """Get bcrypt password context (singleton)."""
    global _pwd_context
    if _pwd_context is None:
        settings = get_settings()
        _pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.bcrypt_rounds,
        )
    return _pwd_context


def hash_password(password: str) -> str:
    """Hash a plain-text password with bcrypt."""
    return get_password_context().hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Check a plain-text password against its bcrypt hash."""
    try:
        return get_password_context().verify(plain_password, password_hash)
    except ValueError:
        # Malformed hash stored for this user
        logger.warning("Password hash could not be parsed")
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to embed; must contain `sub` (the user id as a string)
        expires_delta: Token lifetime, defaults to `jwt_expire_hours`

    Returns:
        Encoded JWT
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.jwt_expire_hours))

    to_encode = data.copy()
    to_encode.update(
        {
            "exp": expire,
            "iat": now,
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "type": "access",
        }
    )
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_user_token(user) -> str:
    """Create an access token carrying the user's identity claims."""
    return create_access_token(
        {
            "sub": str(user.user_id),
            "email": user.email,
            "name": user.name,
            "role": user.role,
        }
    )


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT.

    Returns:
        The token payload, or None when the token is invalid or expired
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        logger.debug(f"Token rejected: {e}")
        return None

    if payload.get("type") != "access":
        return None
    return payload


def generate_numeric_code(length: int = 6) -> str:
    """Generate a random numeric one-time code."""
    return "".join(secrets.choice("0123456789") for _ in range(length))
