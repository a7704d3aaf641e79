from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Table, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from connect_db import Base
import uuid


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in every table."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# One row per direction; the composite key makes friend membership a set.
user_friends = Table(
    "user_friends",
    Base.metadata,
    Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("friend_id", String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=utcnow),
)


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    bio = Column(Text, default="")
    profile_pic = Column(String, default="")
    native_language = Column(String, default="")
    learning_language = Column(String, default="")
    location = Column(String, default="")
    is_onboarded = Column(Boolean, default=False, nullable=False)
    reset_password_token = Column(String, nullable=True, index=True)
    reset_password_expires = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    friends = relationship(
        "User",
        secondary=user_friends,
        primaryjoin=lambda: User.id == user_friends.c.user_id,
        secondaryjoin=lambda: User.id == user_friends.c.friend_id,
        order_by="User.full_name",
    )


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    sender_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, default="pending", nullable=False)  # pending, accepted
    # Sorted (sender, recipient) so that A->B and B->A collide on the unique constraint
    pair_low = Column(String, nullable=False)
    pair_high = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationship
    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])

    __table_args__ = (UniqueConstraint("pair_low", "pair_high", name="uq_friend_request_pair"),)
