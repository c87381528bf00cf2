"""
Session table for HTTP and SSE clients.

Each connected client gets its own Session keyed by a generated identifier.
The table is the only shared mutable state in the process and every access
goes through an asyncio.Lock.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import TransportStateError

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """State of one client connection."""

    session_id: str
    transport: str
    created_at: float = field(default_factory=time.monotonic)
    last_seen: float = field(default_factory=time.monotonic)
    client_info: Dict[str, Any] = field(default_factory=dict)
    # Held open by a live event stream; never idles out while connected
    streaming: bool = False

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def idle_seconds(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.monotonic()) - self.last_seen

    def expired(self, ttl: float, now: Optional[float] = None) -> bool:
        return not self.streaming and self.idle_seconds(now) > ttl


class SessionRegistry:
    """
    Mapping of session id to Session, guarded by an asyncio.Lock.

    Idle sessions older than `ttl` seconds are pruned whenever a new session
    is created. Streaming sessions stay until their stream closes.
    """

    def __init__(self, ttl: float):
        self.ttl = ttl
        self._sessions: Dict[str, Session] = {}
        self._lock = asyncio.Lock()

    async def create(
        self,
        transport: str,
        client_info: Optional[Dict[str, Any]] = None,
        streaming: bool = False,
    ) -> Session:
        session = Session(
            session_id=uuid.uuid4().hex,
            transport=transport,
            client_info=client_info or {},
            streaming=streaming,
        )
        async with self._lock:
            self._prune_locked()
            self._sessions[session.session_id] = session
        logger.info(f"Session {session.session_id} opened ({transport})")
        return session

    async def get(self, session_id: str) -> Session:
        """
        Resolve a session and mark it as active.

        Raises:
            TransportStateError: If the session does not exist or has expired
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.expired(self.ttl):
                self._sessions.pop(session_id, None)
                raise TransportStateError(f"Sessão desconhecida ou expirada: {session_id}")
            session.touch()
            return session

    async def remove(self, session_id: str) -> bool:
        async with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info(f"Session {session_id} closed")
        return removed

    async def prune(self) -> int:
        async with self._lock:
            return self._prune_locked()

    def _prune_locked(self) -> int:
        now = time.monotonic()
        expired: List[str] = [
            sid for sid, session in self._sessions.items() if session.expired(self.ttl, now)
        ]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"Pruned {len(expired)} idle session(s)")
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
