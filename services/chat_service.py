"""
Stream chat/video delegate.

Messaging, presence and call signaling all live inside the hosted Stream
service. The backend only keeps a matching identity there and mints the
token the client presents to Stream.
"""

from typing import Optional
from stream_chat import StreamChatAsync
from core.config import settings
from core.exceptions import ExternalServiceError
from models.models import User
from utils.logger import logger


class RealtimeDelegate:
    """Interface of the hosted real-time service used by the API."""

    async def upsert_user(self, user_id: str, name: str, image: Optional[str] = None) -> None:
        raise NotImplementedError

    def create_token(self, user_id: str) -> str:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class StreamRealtimeDelegate(RealtimeDelegate):
    """RealtimeDelegate backed by the Stream Chat SDK."""

    def __init__(self, api_key: str = None, api_secret: str = None, client=None):
        self.api_key = api_key if api_key is not None else settings.STREAM_API_KEY
        self.api_secret = api_secret if api_secret is not None else settings.STREAM_API_SECRET
        self.client = client
        if self.client is None:
            if self.api_key and self.api_secret:
                self.client = StreamChatAsync(api_key=self.api_key, api_secret=self.api_secret)
            else:
                logger.error("Stream API key or secret is missing - chat features are disabled")

    def _require_client(self):
        if self.client is None:
            raise ExternalServiceError("Stream client is not configured")
        return self.client

    async def upsert_user(self, user_id: str, name: str, image: Optional[str] = None) -> None:
        client = self._require_client()
        await client.upsert_user({"id": user_id, "name": name, "image": image or ""})

    def create_token(self, user_id: str) -> str:
        client = self._require_client()
        return client.create_token(user_id)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


async def provision_identity(delegate: RealtimeDelegate, user: User) -> bool:
    """Mirror the user into the real-time service.

    Failures are logged and reported as False; they never block the caller.
    """
    try:
        await delegate.upsert_user(str(user.id), user.full_name, user.profile_pic)
        logger.info(f"Stream user upserted: {user.id}")
        return True
    except Exception as e:
        logger.warning(f"Error creating Stream user {user.id}: {e}")
        return False


def mint_realtime_token(delegate: RealtimeDelegate, user_id: str) -> str:
    """Return a token for the user; any delegate failure becomes ExternalServiceError."""
    try:
        token = delegate.create_token(str(user_id))
    except Exception as e:
        logger.error(f"Error generating Stream token for user {user_id}: {e}")
        raise ExternalServiceError()
    if not token:
        raise ExternalServiceError()
    return token
