from fastapi import Depends, Request
from sqlalchemy.orm import Session
from connect_db import get_db
from core.config import settings
from models.models import User
from services.auth_service import AuthService
from services.chat_service import RealtimeDelegate
from services.email_service import Mailer

# Delegates are created in main.lifespan and stored on app.state; handlers
# receive them through these dependencies so tests can override them.


def get_realtime_delegate(request: Request) -> RealtimeDelegate:
    return request.app.state.realtime_delegate


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the session cookie to the signed-in user, or raise AuthError."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    return AuthService(db).resolve_session(token)
