from typing import Dict, Optional
from sqlalchemy.orm import Session
from core.exceptions import ValidationError
from models.models import User
from utils.logger import logger

# Request field name -> User column
ONBOARDING_FIELDS = {
    "fullName": "full_name",
    "bio": "bio",
    "nativeLanguage": "native_language",
    "learningLanguage": "learning_language",
    "location": "location",
}


class UserService:
    """Service for managing user profiles."""

    def __init__(self, db: Session):
        self.db = db

    def complete_onboarding(self, user: User, profile: Dict[str, Optional[str]]) -> User:
        """Fill in the profile and mark the user as onboarded.

        Every field in ONBOARDING_FIELDS is required; ``profilePic`` is optional
        and keeps the current avatar when omitted.
        """
        missing = [field for field in ONBOARDING_FIELDS if not (profile.get(field) or "").strip()]
        if missing:
            raise ValidationError("All fields are required", missingFields=missing)

        for field, column in ONBOARDING_FIELDS.items():
            setattr(user, column, profile[field].strip())
        if profile.get("profilePic"):
            user.profile_pic = profile["profilePic"]
        user.is_onboarded = True

        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User onboarded: {user.id}")
        return user
