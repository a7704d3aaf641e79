from pydantic import BaseModel
from typing import List
from dotenv import load_dotenv
import os

load_dotenv()


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    """Application settings and configuration."""

    # App settings
    APP_NAME: str = "Tribeo Backend"
    VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "5001"))
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Security
    SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "your-secret-key-change-in-production")
    ALGORITHM: str = "HS256"
    SESSION_TOKEN_EXPIRE_DAYS: int = 7
    SESSION_COOKIE_NAME: str = "jwt"
    PASSWORD_MIN_LENGTH: int = 6
    BCRYPT_ROUNDS: int = 10
    RESET_TOKEN_EXPIRE_MINUTES: int = 10

    # CORS
    ALLOWED_ORIGINS: List[str] = _split(os.getenv("ALLOWED_ORIGINS", "http://localhost:5173"))
    ALLOWED_HOSTS: List[str] = _split(os.getenv("ALLOWED_HOSTS", "*"))

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./tribeo.db")

    # Stream (chat/video)
    STREAM_API_KEY: str = os.getenv("STREAM_API_KEY", "")
    STREAM_API_SECRET: str = os.getenv("STREAM_API_SECRET", "")

    # Outgoing mail
    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    EMAIL_USER: str = os.getenv("EMAIL_USER", "")
    EMAIL_PASS: str = os.getenv("EMAIL_PASS", "")
    EMAIL_FROM_NAME: str = "Tribeo"

    # Frontend base URL used in password reset links
    CLIENT_URL: str = os.getenv("CLIENT_URL", "http://localhost:5173")

    @property
    def IS_PRODUCTION(self) -> bool:
        return self.ENVIRONMENT == "production"


# Create settings instance
settings = Settings()
