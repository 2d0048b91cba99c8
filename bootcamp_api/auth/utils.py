"""
Password hashing and token signing helpers.
"""
import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from bootcamp_api.config import get_settings
from bootcamp_api.models.user import TokenData

settings = get_settings()


def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash"""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a session token for a user.

    `iat` keeps sub-second precision so a token issued right after a password
    change still compares as newer than the change; `jti` makes every token
    string distinct.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.access_token_expire_days))
    claims = {
        "sub": user_id,
        "iat": now.timestamp(),
        "exp": int(expire.timestamp()),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[TokenData]:
    """Verify signature and expiry; None for anything unusable."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    user_id = payload.get("sub")
    issued_at = payload.get("iat")
    expires_at = payload.get("exp")
    if not user_id or issued_at is None or expires_at is None:
        return None
    return TokenData(
        user_id=user_id,
        issued_at=datetime.fromtimestamp(float(issued_at), tz=timezone.utc),
        expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
    )


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def hash_reset_token(token: str) -> str:
    """Unsalted so the stored value can be looked up."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
