from typing import Dict, List, Tuple
from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from models.models import FriendRequest, User
from utils.logger import logger

PENDING = "pending"
ACCEPTED = "accepted"

DUPLICATE_REQUEST = "A friend request already exists between you and this user"


def sorted_pair(a: str, b: str) -> Tuple[str, str]:
    return (a, b) if a < b else (b, a)


class FriendService:
    """Service for managing friend requests and friend lists."""

    def __init__(self, db: Session):
        self.db = db

    def get_recommended_users(self, user: User) -> List[User]:
        """Onboarded users who are neither the user nor already friends."""
        excluded = [user.id] + [friend.id for friend in user.friends]
        return (
            self.db.query(User)
            .filter(User.id.notin_(excluded), User.is_onboarded.is_(True))
            .order_by(User.created_at.desc())
            .all()
        )

    def get_friends(self, user: User) -> List[User]:
        return list(user.friends)

    def send_request(self, sender: User, recipient_id: str) -> FriendRequest:
        if sender.id == recipient_id:
            raise ValidationError("You can't send friend request to yourself")

        recipient = self.db.query(User).filter(User.id == recipient_id).first()
        if not recipient:
            raise NotFoundError("Recipient not found")

        if any(friend.id == recipient_id for friend in sender.friends):
            raise ValidationError("You are already friends with this user")

        existing = self.db.query(FriendRequest).filter(
            or_(
                and_(FriendRequest.sender_id == sender.id, FriendRequest.recipient_id == recipient_id),
                and_(FriendRequest.sender_id == recipient_id, FriendRequest.recipient_id == sender.id),
            )
        ).first()
        if existing:
            raise ConflictError(DUPLICATE_REQUEST)

        low, high = sorted_pair(sender.id, recipient_id)
        friend_request = FriendRequest(
            sender_id=sender.id,
            recipient_id=recipient_id,
            status=PENDING,
            pair_low=low,
            pair_high=high,
        )
        self.db.add(friend_request)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request for the same pair won the race.
            self.db.rollback()
            raise ConflictError(DUPLICATE_REQUEST)
        self.db.refresh(friend_request)

        logger.info(f"Friend request sent: {sender.id} -> {recipient_id}")
        return friend_request

    def accept_request(self, request_id: str, acting_user: User) -> FriendRequest:
        """Accept a request addressed to acting_user and link both friend lists.

        Accepting an already accepted request succeeds without changing
        either friend list.
        """
        friend_request = self.db.query(FriendRequest).filter(FriendRequest.id == request_id).first()
        if not friend_request:
            raise NotFoundError("Friend request not found")

        if friend_request.recipient_id != acting_user.id:
            raise AuthorizationError("You are not authorized to accept this request")

        friend_request.status = ACCEPTED
        sender = friend_request.sender
        recipient = friend_request.recipient
        if recipient not in sender.friends:
            sender.friends.append(recipient)
        if sender not in recipient.friends:
            recipient.friends.append(sender)
        self.db.commit()

        logger.info(f"Friend request accepted: {request_id}")
        return friend_request

    def get_friend_requests(self, user: User) -> Dict[str, List[FriendRequest]]:
        """Incoming pending requests and the user's own requests that were accepted."""
        incoming = (
            self.db.query(FriendRequest)
            .options(joinedload(FriendRequest.sender))
            .filter(FriendRequest.recipient_id == user.id, FriendRequest.status == PENDING)
            .order_by(FriendRequest.created_at.desc())
            .all()
        )
        accepted = (
            self.db.query(FriendRequest)
            .options(joinedload(FriendRequest.recipient))
            .filter(FriendRequest.sender_id == user.id, FriendRequest.status == ACCEPTED)
            .order_by(FriendRequest.updated_at.desc())
            .all()
        )
        return {"incoming": incoming, "accepted": accepted}

    def get_outgoing_requests(self, user: User) -> List[FriendRequest]:
        return (
            self.db.query(FriendRequest)
            .options(joinedload(FriendRequest.recipient))
            .filter(FriendRequest.sender_id == user.id, FriendRequest.status == PENDING)
            .order_by(FriendRequest.created_at.desc())
            .all()
        )
