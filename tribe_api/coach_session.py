# tribe_api/coach_session.py
import uuid, asyncio, logging
from datetime import datetime, timezone
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from tribe_api.coach import (
    COACHING,
    NETWORK_ERROR_MESSAGE,
    extract_result,
    normalize_reply,
    result_message,
    structured_result,
)
from tribe_api.config import TELEGRAM_COACHING_URL

logger = logging.getLogger(__name__)

GREETING = (
    "سلام! من مشاور هوشمند شما هستم. من اینجا هستم تا به شما کمک کنم تا مشخص کنیم "
    "کدام نوع مشاوره برای شما مناسب‌تر است. لطفاً درباره وضعیت فعلی خود و چالش‌هایی "
    "که با آنها روبرو هستید صحبت کنید."
)
TELEGRAM_LABEL = "ورود به چت تلگرام"

ProxyCall = Callable[[Dict[str, Any]], Awaitable[Tuple[int, Any]]]


class ChatState(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"


class SessionEnded(Exception):
    pass


class SessionBusy(Exception):
    pass


@dataclass(frozen=True)
class Message:
    id: str
    text: str
    sender: str      # 'user' | 'ai'
    timestamp: datetime


@dataclass(frozen=True)
class Exchange:
    user: Message
    ai: Message
    label: Optional[str] = None


@dataclass(frozen=True)
class FollowUp:
    label: str
    url: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CoachSession:
    """
    One AI-coach conversation: ACTIVE until the workflow reports a result,
    then ENDED for good. At most one send in flight.
    """

    def __init__(self, user_id: str, proxy: ProxyCall, session_id: Optional[str] = None):
        self.id = session_id or uuid.uuid4().hex
        self.user_id = user_id
        self.state = ChatState.ACTIVE
        self.loading = False
        self.result: Optional[str] = None
        self.messages: List[Message] = []
        self._proxy = proxy
        self._append(GREETING, "ai")

    def _append(self, text: str, sender: str) -> Message:
        msg = Message(id=uuid.uuid4().hex, text=text, sender=sender, timestamp=_now())
        self.messages.append(msg)
        return msg

    @property
    def follow_up(self) -> Optional[FollowUp]:
        if self.state is ChatState.ENDED and self.result == COACHING:
            return FollowUp(label=TELEGRAM_LABEL, url=TELEGRAM_COACHING_URL)
        return None

    async def send(self, text: str) -> Optional[Exchange]:
        if self.state is ChatState.ENDED:
            raise SessionEnded(self.id)
        if self.loading:
            raise SessionBusy(self.id)
        if not (text or "").strip():
            return None

        user_msg = self._append(text, "user")
        self.loading = True
        label = None
        try:
            payload = {
                "message": text,
                "user_id": self.user_id,
                "timestamp": _now().isoformat(),
            }
            try:
                _, body = await self._proxy(payload)
            except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as e:
                logger.error("coach session %s: proxy call failed: %r", self.id, e)
                return Exchange(user=user_msg, ai=self._append(NETWORK_ERROR_MESSAGE, "ai"))

            label = structured_result(body)
            if label:
                reply = result_message(label)
            else:
                reply, label = extract_result(normalize_reply(body))
                if label and not reply:
                    reply = result_message(label)

            ai_msg = self._append(reply, "ai")
            if label:
                self.result = label
                self.state = ChatState.ENDED
                logger.info("coach session %s ended with result=%s", self.id, label)
            return Exchange(user=user_msg, ai=ai_msg, label=label)
        finally:
            self.loading = False


class SessionStore:
    """In-process registry of coach sessions, oldest evicted past ``max_sessions``."""

    def __init__(self, max_sessions: int = 1000):
        self.max_sessions = max_sessions
        self._sessions: Dict[str, CoachSession] = {}

    def create(self, user_id: str, proxy: ProxyCall) -> CoachSession:
        session = CoachSession(user_id, proxy)
        self._sessions[session.id] = session
        while len(self._sessions) > self.max_sessions:
            self._sessions.pop(next(iter(self._sessions)))
        return session

    def get(self, session_id: str, user_id: str) -> Optional[CoachSession]:
        session = self._sessions.get(session_id)
        if session is None or session.user_id != user_id:
            return None
        return session

    def __len__(self) -> int:
        return len(self._sessions)
