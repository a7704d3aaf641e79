from fastapi import APIRouter, HTTPException, Depends, Response, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from models.models import User
from connect_db import get_db
from core.config import settings
from core.dependencies import get_current_user, get_mailer, get_realtime_delegate
from core.exceptions import AppError, ExternalServiceError
from core.security import create_session_token
from services.auth_service import AuthService
from services.chat_service import RealtimeDelegate, provision_identity
from services.email_service import Mailer, send_password_reset_email
from services.user_service import UserService
from utils.logger import logger

router = APIRouter()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Pydantic models
class SignupRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class OnboardingRequest(CamelModel):
    full_name: Optional[str] = None
    bio: Optional[str] = None
    native_language: Optional[str] = None
    learning_language: Optional[str] = None
    location: Optional[str] = None
    profile_pic: Optional[str] = None


class ForgotPasswordRequest(CamelModel):
    email: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    new_password: Optional[str] = None


class UserResponse(CamelModel):
    id: str
    email: str
    full_name: str
    bio: Optional[str] = None
    profile_pic: Optional[str] = None
    native_language: Optional[str] = None
    learning_language: Optional[str] = None
    location: Optional[str] = None
    is_onboarded: bool
    created_at: Optional[datetime] = None


class AuthResponse(CamelModel):
    success: bool = True
    user: UserResponse


class MessageResponse(CamelModel):
    success: bool = True
    message: str


def set_session_cookie(response: Response, token: str):
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=int(timedelta(days=settings.SESSION_TOKEN_EXPIRE_DAYS).total_seconds()),
        httponly=True,
        samesite="strict",
        secure=settings.IS_PRODUCTION,
    )


def internal_error(db: Session, action: str, e: Exception) -> HTTPException:
    db.rollback()
    logger.error(f"{action} error: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error"
    )


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    response: Response,
    db: Session = Depends(get_db),
    delegate: RealtimeDelegate = Depends(get_realtime_delegate)
):
    """Register a new user and start a session."""
    try:
        auth_service = AuthService(db)
        # bcrypt is CPU bound; keep it off the event loop.
        user = await run_in_threadpool(auth_service.register, payload.email, payload.password, payload.full_name)

        # Chat is secondary; signup succeeds even if Stream is unreachable.
        await provision_identity(delegate, user)

        set_session_cookie(response, create_session_token(user.id))

        return AuthResponse(user=UserResponse.model_validate(user))

    except AppError:
        raise
    except Exception as e:
        raise internal_error(db, "Signup", e)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Check credentials and set the session cookie."""
    try:
        user, token = await run_in_threadpool(AuthService(db).authenticate, payload.email, payload.password)
        set_session_cookie(response, token)
        return AuthResponse(user=UserResponse.model_validate(user))

    except AppError:
        raise
    except Exception as e:
        raise internal_error(db, "Login", e)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=True,
        samesite="strict",
        secure=settings.IS_PRODUCTION,
    )
    return MessageResponse(message="Logout successful")


@router.post("/onboarding", response_model=AuthResponse)
async def onboard(
    payload: OnboardingRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    delegate: RealtimeDelegate = Depends(get_realtime_delegate)
):
    """Complete the profile of the signed-in user."""
    try:
        user = UserService(db).complete_onboarding(current_user, payload.model_dump(by_alias=True))
        await provision_identity(delegate, user)
        return AuthResponse(user=UserResponse.model_validate(user))

    except AppError:
        raise
    except Exception as e:
        raise internal_error(db, "Onboarding", e)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer)
):
    """Issue a reset token and email the reset link."""
    try:
        auth_service = AuthService(db)
        user, token = auth_service.issue_reset_token(payload.email)

        try:
            await run_in_threadpool(send_password_reset_email, mailer, user.email, user.full_name, token)
        except Exception as e:
            logger.error(f"Failed to send password reset email to user {user.id}: {e}")
            auth_service.revoke_reset_token(user)
            raise ExternalServiceError("Email could not be sent")

        return MessageResponse(message="Password reset link sent to your email")

    except AppError:
        raise
    except Exception as e:
        raise internal_error(db, "Forgot password", e)


@router.post("/reset-password/{token}", response_model=MessageResponse)
async def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db)
):
    """Set a new password using a reset token."""
    try:
        await run_in_threadpool(AuthService(db).consume_reset_token, token, payload.new_password)
        return MessageResponse(message="Password reset successful")

    except AppError:
        raise
    except Exception as e:
        raise internal_error(db, "Reset password", e)


@router.get("/me", response_model=AuthResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get the signed-in user."""
    return AuthResponse(user=UserResponse.model_validate(current_user))
