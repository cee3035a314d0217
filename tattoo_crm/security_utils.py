"""
Security Utilities
Password hashing, JWT access/refresh tokens and signed short-lived tokens
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from jose import JWTError
from jose import jwt as jose_jwt
from passlib.context import CryptContext

from .config import (
    JWT_ACCESS_SECRET,
    JWT_ACCESS_TTL,
    JWT_REFRESH_SECRET,
    JWT_REFRESH_TTL,
    SESSION_SECRET,
)

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 8


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error(f"Password verification error: {e}")
        return False


# ============================================================================
# JWT TOKENS
# ============================================================================

_TTL_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_TTL_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_ttl(value: str) -> timedelta:
    """
    Parse a TTL string like "15m", "7d", "3600" into a timedelta.

    Raises:
        ValueError: If the value is not a supported duration
    """
    match = _TTL_PATTERN.match(str(value or ""))
    if not match:
        raise ValueError(f"Invalid TTL value: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _TTL_UNITS[unit])


def build_token_payload(user) -> dict[str, Any]:
    return {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "branchId": user.branch_id,
    }


def create_jwt_token(data: dict[str, Any], secret: str, expires_delta: timedelta, token_type: str) -> str:
    to_encode = data.copy()
    now = datetime.utcnow()
    to_encode.update({"exp": now + expires_delta, "iat": now, "type": token_type})
    return jose_jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def create_token_pair(user) -> dict[str, str]:
    """Issue an access/refresh token pair for a user"""
    payload = build_token_payload(user)
    return {
        "accessToken": create_jwt_token(payload, JWT_ACCESS_SECRET, parse_ttl(JWT_ACCESS_TTL), "access"),
        "refreshToken": create_jwt_token(
            payload, JWT_REFRESH_SECRET, parse_ttl(JWT_REFRESH_TTL), "refresh"
        ),
    }


def decode_jwt_token(token: str, token_type: str = "access") -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    secret = JWT_ACCESS_SECRET if token_type == "access" else JWT_REFRESH_SECRET
    try:
        payload = jose_jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None
    if payload.get("type") != token_type:
        logger.warning(f"JWT type mismatch: expected {token_type}")
        return None
    return payload


# ============================================================================
# TIMED TOKENS (download links)
# ============================================================================


def generate_timed_token(data: dict[str, Any], salt: str) -> str:
    serializer = URLSafeTimedSerializer(SESSION_SECRET)
    return serializer.dumps(data, salt=salt)


def verify_timed_token(token: str, salt: str, max_age: int) -> Optional[dict[str, Any]]:
    """
    Verify and decode a timed token

    Args:
        token: The token to verify
        salt: Namespace the token was issued for
        max_age: Maximum age in seconds

    Returns:
        Decoded data if valid, None if invalid or expired
    """
    serializer = URLSafeTimedSerializer(SESSION_SECRET)
    try:
        return serializer.loads(token, salt=salt, max_age=max_age)
    except SignatureExpired:
        logger.warning("Token expired")
        return None
    except BadSignature:
        logger.warning("Invalid token signature")
        return None
