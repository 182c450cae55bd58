# megaflix/utils/security.py
from datetime import datetime, timedelta
from typing import Any, Optional
from jose import jwt, JWTError, ExpiredSignatureError
from passlib.context import CryptContext
import logging
from ..config import settings

logger = logging.getLogger(__name__)

# argon2 (no 72-byte limit)
pwd_context = CryptContext(
    schemes=['argon2'],
    deprecated='auto'
)

ACCESS_TOKEN_TYPE = 'access'
RESET_TOKEN_TYPE = 'password_reset'

# ============================================================
# Passwords
# ============================================================

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.error(f"Password verification error: {e}")
        return False

# ============================================================
# JWT Functions
# ============================================================

def _encode(payload: dict, expires_delta: timedelta) -> str:
    now = datetime.utcnow()
    to_encode = {**payload, 'iat': now, 'exp': now + expires_delta}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(subject: Any, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a new JWT access token.

    Args:
        subject: User ID
        expires_delta: Custom expiration time

    Returns:
        JWT token string with expiration
    """
    return _encode(
        {'sub': str(subject), 'type': ACCESS_TOKEN_TYPE},
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> dict:
    """
    Decode and validate a JWT token.

    Raises:
        ExpiredSignatureError: If token has expired
        JWTError: If token is invalid or of another type
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        logger.warning("Token has expired")
        raise
    except JWTError as e:
        logger.warning(f"Invalid token: {e}")
        raise

    if payload.get('type') != expected_type:
        raise JWTError(f"Unexpected token type: {payload.get('type')}")
    return payload


def decode_access_token(token: str) -> dict:
    return decode_token(token, ACCESS_TOKEN_TYPE)


def create_password_reset_token(user_id: int, hashed_password: str) -> str:
    """
    Short-lived reset token.
    Carries a fingerprint of the current hash, so it stops working once the
    password has been changed.
    """
    return _encode(
        {'sub': str(user_id), 'type': RESET_TOKEN_TYPE, 'fp': hashed_password[-16:]},
        timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
    )


def verify_password_reset_token(token: str) -> Optional[dict]:
    """Reset token payload, or None when invalid or expired"""
    try:
        return decode_token(token, RESET_TOKEN_TYPE)
    except JWTError:
        return None
