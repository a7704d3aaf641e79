from fastapi import APIRouter, Depends
from pydantic import BaseModel
from models.models import User
from core.dependencies import get_current_user, get_realtime_delegate
from services.chat_service import RealtimeDelegate, mint_realtime_token

router = APIRouter()


class ChatTokenResponse(BaseModel):
    token: str


@router.get("/token", response_model=ChatTokenResponse)
async def get_stream_token(
    current_user: User = Depends(get_current_user),
    delegate: RealtimeDelegate = Depends(get_realtime_delegate)
):
    """Mint the token the client presents to Stream for chat and video."""
    return ChatTokenResponse(token=mint_realtime_token(delegate, current_user.id))
