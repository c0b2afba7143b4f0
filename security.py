"""Password hashing and bearer-token handling."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import JWT_ALGORITHM, JWT_AUDIENCE, JWT_EXPIRES_IN, JWT_SECRET
from errors import AuthenticationError

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)

_DURATION_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    "y": timedelta(days=365),
}


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def parse_duration(value: str) -> timedelta:
    """Parse ``7d`` / ``12h`` / ``3600`` style lifetimes; a bare number means seconds."""
    match = re.fullmatch(r"\s*(\d+)\s*([smhdwy]?)\s*", value or "")
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit or "s"]


def sign_access_token(user_id: int, now: Optional[datetime] = None) -> tuple[str, int]:
    """Return the signed token and its expiry as epoch milliseconds."""
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + parse_duration(JWT_EXPIRES_IN)
    payload = {
        "userId": str(user_id),
        "aud": JWT_AUDIENCE,
        "iat": issued_at,
        "exp": expires_at,
    }
    token = jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)
    return token, int(expires_at.timestamp()) * 1000


def verify_access_token(token: str) -> Optional[int]:
    """Return the user id carried by a valid token, or ``None``."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE)
    except jwt.PyJWTError as exc:
        logger.info("Rejected access token: %s", exc)
        return None

    user_id = payload.get("userId")
    if not isinstance(user_id, str) or not user_id.isdigit():
        return None
    return int(user_id)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> int:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Unauthorized")

    user_id = verify_access_token(credentials.credentials)
    if user_id is None:
        raise AuthenticationError("Invalid or expired token")
    return user_id
