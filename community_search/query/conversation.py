"""Per-caller conversation history used to resolve follow-up queries."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

from community_search.config import ConversationConfig
from community_search.query.models import ConversationTurn

logger = logging.getLogger(__name__)


@dataclass
class ConversationSession:
    """Bounded, most-recent-last history for one caller identity."""

    identity: str
    created_at: float
    last_activity: float
    history: list[ConversationTurn] = field(default_factory=list)

    def add(self, turn: ConversationTurn, max_history: int, now: float) -> None:
        self.history.append(turn)
        # Oldest entries are dropped silently
        del self.history[:-max_history]
        self.last_activity = now

    def is_expired(self, now: float, timeout: float) -> bool:
        return now - self.last_activity > timeout


@dataclass(frozen=True)
class ConversationContext:
    """Read-only view of prior turns handed to query understanding."""

    turns: tuple[ConversationTurn, ...]

    @property
    def last_turn(self) -> ConversationTurn:
        return self.turns[-1]

    def summary(self, now: float | None = None) -> str:
        """Compact text summary of prior turns for a model prompt."""
        now = now if now is not None else time.time()
        lines = ["Previous conversation:"]
        for index, turn in enumerate(self.turns, start=1):
            lines.append(
                f'{index}. "{turn.query}" ({_time_ago(now - turn.timestamp.timestamp())}, '
                f"intent={turn.intent.value}, {turn.result_count} results)"
            )
        entities = self.last_turn.entities.as_dict()
        if entities:
            rendered = "; ".join(f"{key}={_render(value)}" for key, value in entities.items())
            lines.append(f"Last search filters: {rendered}")
        return "\n".join(lines)


def _time_ago(seconds: float) -> str:
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{int(seconds // 60)} minutes ago"
    return f"{int(seconds // 3600)} hours ago"


def _render(value: object) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


class ConversationStore(ABC):
    """Session store interface; implementations may be in-process or external."""

    @abstractmethod
    async def get_or_create(self, identity: str) -> ConversationSession:
        """Return the live session for ``identity``, creating one if absent or expired."""

    @abstractmethod
    async def append(self, identity: str, turn: ConversationTurn) -> None:
        """Record a completed turn."""

    @abstractmethod
    async def build_context(self, identity: str) -> ConversationContext | None:
        """Context for the next query, or None when there is no live history."""

    @abstractmethod
    async def evict_idle(self) -> int:
        """Drop expired sessions and return how many were removed."""

    @abstractmethod
    def active_session_count(self) -> int:
        """Number of sessions currently held."""


class InMemoryConversationStore(ConversationStore):
    """Process-local session store with idle expiry.

    Appends for the same identity are serialised by a per-identity lock;
    distinct identities never contend.
    """

    def __init__(
        self,
        config: ConversationConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or ConversationConfig()
        self._clock = clock
        self._sessions: dict[str, ConversationSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, identity: str) -> asyncio.Lock:
        return self._locks.setdefault(identity, asyncio.Lock())

    def _live_session(self, identity: str, now: float) -> ConversationSession | None:
        session = self._sessions.get(identity)
        if session and session.is_expired(now, self.config.session_timeout):
            logger.info(f"Conversation session for {identity} expired")
            del self._sessions[identity]
            return None
        return session

    async def get_or_create(self, identity: str) -> ConversationSession:
        async with self._lock_for(identity):
            return self._get_or_create_locked(identity)

    def _get_or_create_locked(self, identity: str) -> ConversationSession:
        now = self._clock()
        session = self._live_session(identity, now)
        if session is None:
            session = ConversationSession(identity=identity, created_at=now, last_activity=now)
            self._sessions[identity] = session
        return session

    async def append(self, identity: str, turn: ConversationTurn) -> None:
        async with self._lock_for(identity):
            session = self._get_or_create_locked(identity)
            session.add(turn, self.config.max_history, self._clock())
            logger.debug(f"Session {identity} now holds {len(session.history)} turns")

    async def build_context(self, identity: str) -> ConversationContext | None:
        async with self._lock_for(identity):
            session = self._live_session(identity, self._clock())
            if session is None or not session.history:
                return None
            return ConversationContext(turns=tuple(session.history))

    async def evict_idle(self) -> int:
        now = self._clock()
        expired = [
            identity
            for identity, session in self._sessions.items()
            if session.is_expired(now, self.config.session_timeout)
        ]
        for identity in expired:
            del self._sessions[identity]
            lock = self._locks.get(identity)
            if lock is not None and not lock.locked():
                del self._locks[identity]

        if expired:
            logger.info(f"Evicted {len(expired)} idle conversation sessions")
        return len(expired)

    def active_session_count(self) -> int:
        return len(self._sessions)
