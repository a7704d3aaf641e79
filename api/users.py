from fastapi import APIRouter, Depends, status
from typing import List, Optional
from datetime import datetime
from sqlalchemy.orm import Session
from models.models import User
from connect_db import get_db
from core.dependencies import get_current_user
from core.exceptions import AppError
from services.friend_service import FriendService
from api.auth import CamelModel, MessageResponse, internal_error

router = APIRouter()


class UserSummary(CamelModel):
    id: str
    full_name: str
    profile_pic: Optional[str] = None
    native_language: Optional[str] = None
    learning_language: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None


class FriendRequestResponse(CamelModel):
    id: str
    sender_id: str
    recipient_id: str
    status: str
    created_at: datetime
    updated_at: datetime


class IncomingFriendRequest(FriendRequestResponse):
    sender: UserSummary


class OutgoingFriendRequest(FriendRequestResponse):
    recipient: UserSummary


class FriendRequestsResponse(CamelModel):
    incoming_reqs: List[IncomingFriendRequest]
    accepted_reqs: List[OutgoingFriendRequest]


@router.get("", response_model=List[UserSummary])
async def get_recommended_users(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Onboarded users the current user is not friends with yet."""
    try:
        return FriendService(db).get_recommended_users(current_user)

    except AppError:
        raise
    except Exception as e:
        raise internal_error(db, "Get recommended users", e)


@router.get("/friends", response_model=List[UserSummary])
async def get_my_friends(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get user's friends list."""
    try:
        return FriendService(db).get_friends(current_user)

    except AppError:
        raise
    except Exception as e:
        raise internal_error(db, "Get friends", e)


@router.post(
    "/friend-request/{recipient_id}",
    response_model=FriendRequestResponse,
    status_code=status.HTTP_201_CREATED
)
async def send_friend_request(
    recipient_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Send a friend request."""
    try:
        return FriendService(db).send_request(current_user, recipient_id)

    except AppError:
        raise
    except Exception as e:
        raise internal_error(db, "Send friend request", e)


@router.put("/friend-request/{request_id}/accept", response_model=MessageResponse)
async def accept_friend_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Accept a friend request."""
    try:
        FriendService(db).accept_request(request_id, current_user)
        return MessageResponse(message="Friend request accepted")

    except AppError:
        raise
    except Exception as e:
        raise internal_error(db, "Accept friend request", e)


@router.get("/friend-requests", response_model=FriendRequestsResponse)
async def get_friend_requests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Pending requests to the user and the user's requests that were accepted."""
    try:
        requests = FriendService(db).get_friend_requests(current_user)
        return FriendRequestsResponse(
            incoming_reqs=[IncomingFriendRequest.model_validate(r) for r in requests["incoming"]],
            accepted_reqs=[OutgoingFriendRequest.model_validate(r) for r in requests["accepted"]],
        )

    except AppError:
        raise
    except Exception as e:
        raise internal_error(db, "Get friend requests", e)


@router.get("/outgoing-friend-requests", response_model=List[OutgoingFriendRequest])
async def get_outgoing_friend_requests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Pending requests sent by the user."""
    try:
        return FriendService(db).get_outgoing_requests(current_user)

    except AppError:
        raise
    except Exception as e:
        raise internal_error(db, "Get outgoing friend requests", e)
