"""
Chat sessions - append-only message exchanges with the farming assistant.
Held in memory only and expired when idle; a reset starts a fresh exchange
with the greeting.
"""

import datetime
import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from ..services.api import APIService
from .sessions import SessionStore

logger = logging.getLogger(__name__)

GREETING = (
    "Hello! I'm your Gemini AI farming assistant with access to live weather "
    "and soil data. How can I help you today?"
)
GREETING_MODEL = "Gemini AI"
REPLY_MODEL = "Gemini AI + Live Data"


@dataclass
class ChatMessage:
    role: str  # "user" or "ai"
    text: str
    model: Optional[str] = None


@dataclass
class ChatExchange:
    session_id: str
    messages: List[ChatMessage] = field(default_factory=list)
    last_active: Optional[datetime.datetime] = None

    def append(self, message: ChatMessage):
        self.messages.append(message)

    def to_list(self) -> List[Dict]:
        return [asdict(m) for m in self.messages]


def new_exchange(session_id: str) -> ChatExchange:
    """A fresh exchange holding only the greeting."""
    exchange = ChatExchange(session_id=session_id)
    exchange.append(ChatMessage(role="ai", text=GREETING, model=GREETING_MODEL))
    return exchange


class ChatSessionStore(SessionStore[ChatExchange]):
    """In-memory chat exchanges keyed by session id."""

    def _create(self, session_id: str) -> ChatExchange:
        return new_exchange(session_id)

    def clear(self, session_id: str) -> ChatExchange:
        """Reset an exchange back to the greeting."""
        self.discard(session_id)
        return new_exchange(session_id)

    async def ask(self, api: APIService, session_id: str, text: str, context: str) -> ChatMessage:
        """
        Append the user's message, ask the assistant, append its reply.

        The assistant bridge never raises, so the exchange always gains
        exactly two messages.
        """
        exchange = self.get(session_id)
        exchange.append(ChatMessage(role="user", text=text))

        reply_text = await api.chat(text, context)
        reply = ChatMessage(role="ai", text=reply_text, model=REPLY_MODEL)
        exchange.append(reply)
        logger.info(f"Chat {session_id}: {len(exchange.messages)} messages")
        return reply
