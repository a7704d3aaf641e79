import random
import re
from datetime import timedelta
from typing import Optional, Tuple

import jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import AuthError, ConflictError, NotFoundError, ValidationError
from core.security import (
    create_session_token,
    decode_session_token,
    dummy_password_hash,
    generate_reset_token,
    get_password_hash,
    hash_reset_token,
    verify_password,
)
from models.models import User, utcnow
from utils.logger import logger

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INVALID_CREDENTIALS = "Invalid email or password"
EMAIL_TAKEN = "Email already exists, please use a different one"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def random_avatar_url() -> str:
    return f"https://avatar.iran.liara.run/public/{random.randint(1, 100)}.png"


class AuthService:
    """Authentication service for user management."""

    def __init__(self, db: Session):
        self.db = db

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def _check_password(self, password: str):
        if len(password) < settings.PASSWORD_MIN_LENGTH:
            raise ValidationError(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
            )

    def register(self, email: Optional[str], password: Optional[str], full_name: Optional[str]) -> User:
        """Create a new user, hashing the password before it is persisted."""
        email = normalize_email(email)
        full_name = (full_name or "").strip()
        if not email or not password or not full_name:
            raise ValidationError("All fields are required")

        self._check_password(password)

        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format")

        if self.get_user_by_email(email):
            raise ConflictError(EMAIL_TAKEN)

        user = User(
            email=email,
            full_name=full_name,
            hashed_password=get_password_hash(password),
            profile_pic=random_avatar_url(),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Another signup for the same email committed first.
            self.db.rollback()
            raise ConflictError(EMAIL_TAKEN)
        self.db.refresh(user)

        logger.info(f"Created user: {user.id}")
        return user

    def authenticate(self, email: Optional[str], password: Optional[str]) -> Tuple[User, str]:
        """Check credentials and return the user with a fresh session token.

        Unknown email and wrong password raise the same error after the same
        bcrypt work, so neither the message nor the timing reveals an account.
        """
        if not email or not password:
            raise ValidationError("All fields are required")

        user = self.get_user_by_email(email)
        if not user:
            verify_password(password, dummy_password_hash())
            raise AuthError(INVALID_CREDENTIALS)
        if not verify_password(password, user.hashed_password):
            raise AuthError(INVALID_CREDENTIALS)

        logger.info(f"User logged in: {user.id}")
        return user, create_session_token(user.id)

    def resolve_session(self, token: Optional[str]) -> User:
        """Resolve a session token to the user it was issued for."""
        if not token:
            raise AuthError("Unauthorized - No token provided")

        try:
            payload = decode_session_token(token)
        except jwt.PyJWTError:
            raise AuthError("Unauthorized - Invalid token")

        user_id = payload.get("userId")
        if not user_id:
            raise AuthError("Unauthorized - Invalid token")

        user = self.get_user_by_id(user_id)
        if not user:
            raise AuthError("Unauthorized - User not found")
        return user

    def issue_reset_token(self, email: Optional[str]) -> Tuple[User, str]:
        """Store a hashed reset token for the user and return the raw token.

        Reissuing overwrites the previous token, so at most one is live.
        """
        if not normalize_email(email):
            raise ValidationError("Email is required")

        user = self.get_user_by_email(email)
        if not user:
            raise NotFoundError("User not found")

        token = generate_reset_token()
        user.reset_password_token = hash_reset_token(token)
        user.reset_password_expires = utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
        self.db.commit()

        logger.info(f"Issued password reset token for user: {user.id}")
        return user, token

    def revoke_reset_token(self, user: User):
        user.reset_password_token = None
        user.reset_password_expires = None
        self.db.commit()

    def consume_reset_token(self, token: str, new_password: Optional[str]) -> User:
        """Replace the password of the user holding a live reset token."""
        if not new_password:
            raise ValidationError("New password is required")
        self._check_password(new_password)

        user = (
            self.db.query(User)
            .filter(
                User.reset_password_token == hash_reset_token(token or ""),
                User.reset_password_expires > utcnow(),
            )
            .first()
        )
        if not user:
            raise ValidationError("Invalid or expired token")

        user.hashed_password = get_password_hash(new_password)
        user.reset_password_token = None
        user.reset_password_expires = None
        self.db.commit()

        logger.info(f"Password reset for user: {user.id}")
        return user
