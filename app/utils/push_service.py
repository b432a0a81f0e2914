import os
import asyncio
import logging
from typing import Any, Dict, List, Optional
import requests
from sqlmodel import Session, select

from app.models.user import User

logger = logging.getLogger(__name__)

EXPO_PUSH_URL = os.getenv("EXPO_PUSH_URL", "https://exp.host/--/api/v2/push/send")


class ExpoPushGateway:
    """Push notifications through Expo.

    Users are addressed by ``public_id``; their Expo push token is looked up
    in the users table. Users without a token are skipped. Every message is
    its own request and a failed request only costs that one recipient.
    """

    def __init__(self, engine, push_url: str = EXPO_PUSH_URL, timeout: float = 10, http=None):
        self.engine = engine
        self.push_url = push_url
        self.timeout = timeout
        self.http = http or requests.Session()

    async def send_to_all_except(self, excluded_user_id: str, title: str, body: str, payload: Dict[str, Any]):
        tokens = await asyncio.to_thread(self.tokens_except, excluded_user_id)
        await asyncio.gather(*(self.push(token, title, body, payload) for token in tokens))

    async def send_to_user(self, user_id: str, title: str, body: str, payload: Dict[str, Any]):
        token = await asyncio.to_thread(self.token_for, user_id)
        if not token:
            logger.debug("No push token for user %s", user_id)
            return
        await self.push(token, title, body, payload)

    def tokens_except(self, excluded_user_id: str) -> List[str]:
        with Session(self.engine) as session:
            tokens = session.exec(
                select(User.push_token)
                .where(User.public_id != excluded_user_id)
                .where(User.push_token.is_not(None))
            ).all()
        return [token for token in tokens if token]

    def token_for(self, user_id: str) -> Optional[str]:
        with Session(self.engine) as session:
            user = session.exec(select(User).where(User.public_id == user_id)).first()
        return user.push_token if user else None

    async def push(self, token: str, title: str, body: str, payload: Dict[str, Any]) -> bool:
        message = {
            "to": token,
            "sound": "default",
            "title": title,
            "body": body,
            "data": payload,
        }

        try:
            response = await asyncio.to_thread(
                self.http.post,
                self.push_url,
                json=message,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Error sending push notification to %s: %s", token, e)
            return False

        return True
