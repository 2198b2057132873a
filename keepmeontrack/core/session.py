"""Session state handed explicitly to every tracker operation."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from keepmeontrack.adapters.demo_store import DemoStore, DEMO_USER_ID
from keepmeontrack.domain.quota import GuestQuota, is_expired, new_quota
from keepmeontrack.ports.store import EntityStore


@dataclass
class GuestSession:
    session_id: str
    quota: GuestQuota
    store: DemoStore = field(repr=False)


@dataclass
class SessionContext:
    user_id: str
    store: EntityStore
    guest: Optional[GuestSession] = None

    @property
    def is_guest(self) -> bool:
        return self.guest is not None


class GuestSessionRegistry:
    """Guest sessions live in process memory and die with it."""

    def __init__(self, ttl_minutes: int):
        self.ttl_minutes = ttl_minutes
        self._sessions: Dict[str, GuestSession] = {}

    def create(self, now: datetime) -> GuestSession:
        self.prune(now)
        session = GuestSession(
            session_id=uuid.uuid4().hex,
            quota=new_quota(now, self.ttl_minutes),
            store=DemoStore(today=now.date()),
        )
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str, now: datetime) -> Optional[GuestSession]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if is_expired(session.quota, now):
            self.discard(session_id)
            return None
        return session

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def prune(self, now: datetime) -> None:
        for session_id in [s for s, g in self._sessions.items() if is_expired(g.quota, now)]:
            del self._sessions[session_id]

    def __len__(self) -> int:
        return len(self._sessions)


def guest_context(session: GuestSession) -> SessionContext:
    return SessionContext(user_id=DEMO_USER_ID, store=session.store, guest=session)
