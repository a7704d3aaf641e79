import hashlib
import secrets
from functools import lru_cache
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash checked against when no account matches, so lookups cost the same."""
    return get_password_hash(secrets.token_hex(16))


def create_session_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a session token carrying the user id."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.SESSION_TOKEN_EXPIRE_DAYS)
    )
    payload = {"userId": user_id, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session_token(token: str) -> dict:
    """Decode and verify a session token. Raises jwt.PyJWTError when invalid."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
