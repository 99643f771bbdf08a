"""
MT5 CRM Backend - Security Module
JWT Authentication, Password Hashing, Token Management
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Any
import uuid

import bcrypt
from jose import jwt, JWTError

from mt5crm.config import settings


# JWT Settings
ALGORITHM = settings.JWT_ALGORITHM
ACCESS_TOKEN_TYPE = "access"

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_PASSWORD_BYTES = 72


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        True if password matches, False otherwise (including malformed hashes)
    """
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        return False


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: The plain text password to hash
        rounds: Work factor, defaults to settings.BCRYPT_ROUNDS (12)

    Returns:
        The hashed password string
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def create_access_token(
    subject: str | Any,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict] = None,
    jti: Optional[str] = None,
    issued_at: Optional[datetime] = None,
) -> tuple[str, str]:
    """
    Create a signed JWT access token.

    Args:
        subject: The subject of the token (the user id)
        expires_delta: Optional custom lifetime (default ACCESS_TOKEN_EXPIRE_MINUTES)
        additional_claims: Optional additional claims to include in token
        jti: Optional JWT ID for token tracking (auto-generated if not provided)
        issued_at: Optional issue time (defaults to now)

    Returns:
        Tuple of (encoded JWT token string, jti)
    """
    now = issued_at or datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    token_jti = jti or str(uuid.uuid4())

    # NumericDate keeps sub-second precision so the window is exactly [iat, exp)
    to_encode = {
        "exp": (now + expires_delta).timestamp(),
        "sub": str(subject),
        "iat": now.timestamp(),
        "type": ACCESS_TOKEN_TYPE,
        "jti": token_jti
    }

    if additional_claims:
        to_encode.update(additional_claims)

    encoded_jwt = jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=ALGORITHM
    )
    return encoded_jwt, token_jti


def decode_token(token: str) -> Optional[dict]:
    """
    Decode a JWT and check its signature, without checking expiry.

    Args:
        token: The JWT token string to decode

    Returns:
        Decoded token payload as dict, or None if malformed or badly signed
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[ALGORITHM],
            options={"verify_exp": False},
        )
        return payload
    except JWTError:
        return None


def verify_token(token: str, now: Optional[datetime] = None) -> Optional[dict]:
    """
    Verify a JWT access token.

    A token is valid on [iat, exp); at exp it is already rejected.

    Args:
        token: The JWT token string to verify
        now: Optional reference time (defaults to now)

    Returns:
        Token claims if valid, None otherwise
    """
    payload = decode_token(token)

    if payload is None:
        return None

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None

    exp = payload.get("exp")
    if not isinstance(exp, (int, float)):
        return None

    now = now or datetime.now(timezone.utc)
    if now.timestamp() >= exp:
        return None

    if not payload.get("sub"):
        return None

    return payload


def seconds_until_expiry(payload: dict, now: Optional[datetime] = None) -> int:
    """Remaining lifetime of a decoded token in whole seconds (never negative)."""
    now = now or datetime.now(timezone.utc)
    exp = datetime.fromtimestamp(payload.get("exp", 0), tz=timezone.utc)
    return max(int((exp - now).total_seconds()), 0)
