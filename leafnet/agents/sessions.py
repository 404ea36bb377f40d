"""
In-memory session store with idle expiry and a size cap.

Every entry carries `last_active`. Entries idle for longer than the TTL are
dropped, and once the store is full the least recently used one is evicted.
"""

import datetime
import logging
from collections import OrderedDict
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

SESSION_TTL = datetime.timedelta(days=7)
MAX_SESSIONS = 1000

T = TypeVar("T")


class SessionStore(Generic[T]):
    """Base store; subclasses build new entries in `_create`."""

    def __init__(
        self,
        ttl: datetime.timedelta = SESSION_TTL,
        max_sessions: int = MAX_SESSIONS,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ):
        self.ttl = ttl
        self.max_sessions = max_sessions
        self._clock = clock
        # least recently used first
        self._sessions: "OrderedDict[str, T]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def _create(self, session_id: str) -> T:
        raise NotImplementedError

    def find(self, session_id: str) -> Optional[T]:
        """Existing session or None. Never creates one."""
        self._expire()
        session = self._sessions.get(session_id)
        if session is not None:
            self._touch(session_id, session)
        return session

    def get(self, session_id: str) -> T:
        """Get or create a session."""
        session = self.find(session_id)
        if session is None:
            session = self._create(session_id)
            self._sessions[session_id] = session
            self._touch(session_id, session)
            self._evict()
        return session

    def discard(self, session_id: str):
        self._sessions.pop(session_id, None)

    def _touch(self, session_id: str, session: T):
        session.last_active = self._clock()
        self._sessions.move_to_end(session_id)

    def _expire(self):
        cutoff = self._clock() - self.ttl
        while self._sessions:
            session_id, session = next(iter(self._sessions.items()))
            if session.last_active > cutoff:
                break
            del self._sessions[session_id]
            logger.info(f"Session {session_id} expired")

    def _evict(self):
        while len(self._sessions) > self.max_sessions:
            session_id, _ = self._sessions.popitem(last=False)
            logger.info(f"Session {session_id} evicted, store is full")
