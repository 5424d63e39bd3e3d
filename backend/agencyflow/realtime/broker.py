"""
Channel Broker

Tracks live sessions per user and routes events either to one user or
to everyone joined to a project room.

Thread-safe: the registry lock is held only while the registry itself
changes. Each session owns its room set and its outbound queue under its
own lock, and nothing here performs network I/O. Transports drain a
session's queue on their own schedule, so a slow client only ever fills
its own bounded queue.
"""
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Set

from ..config.settings import settings
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from ..utils.idgen import generate_session_id
from ..utils.jwt import get_current_user
from ..utils.logger import get_logger

logger = get_logger(__name__)

Authenticator = Callable[[str], ActorContext]
Waker = Callable[[], None]


class Session:
    """
    One live connection of one user.

    Ephemeral: closing a session drops its rooms and pending events.
    """

    def __init__(
        self,
        actor: ActorContext,
        queue_size: int,
        waker: Optional[Waker] = None
    ):
        self.session_id = generate_session_id()
        self.user_id = actor.user_id
        self.role = actor.role
        self.connected_at = time.monotonic()
        self.last_seen = self.connected_at
        self.dropped_events = 0

        self._lock = threading.Lock()
        self._rooms: Set[str] = set()
        self._queue: Deque[Dict[str, Any]] = deque()
        self._queue_size = queue_size
        self._waker = waker
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def set_waker(self, waker: Optional[Waker]) -> None:
        """Register the callback that tells the transport events are pending"""
        with self._lock:
            self._waker = waker

    # Rooms

    def join(self, project_id: str) -> None:
        with self._lock:
            if not self._closed:
                self._rooms.add(project_id)

    def leave(self, project_id: str) -> None:
        with self._lock:
            self._rooms.discard(project_id)

    def in_room(self, project_id: str) -> bool:
        with self._lock:
            return project_id in self._rooms

    def rooms(self) -> Set[str]:
        with self._lock:
            return set(self._rooms)

    # Outbound queue

    def enqueue(self, event: Dict[str, Any]) -> bool:
        """
        Queue an event for delivery.

        When the queue is full the oldest pending event is dropped.
        Returns False if the session is already closed.
        """
        dropped = None
        with self._lock:
            if self._closed:
                return False
            if len(self._queue) >= self._queue_size:
                dropped = self._queue.popleft()
                self.dropped_events += 1
            self._queue.append(event)
            waker = self._waker

        if dropped is not None:
            logger.warning(
                f"Outbound queue full, dropped oldest event {dropped.get('type')}",
                extra={"session_id": self.session_id, "user_id": self.user_id}
            )
        if waker is not None:
            waker()
        return True

    def drain(self) -> List[Dict[str, Any]]:
        """Take every pending event, oldest first"""
        with self._lock:
            events = list(self._queue)
            self._queue.clear()
            return events

    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    # Liveness

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def idle_seconds(self) -> float:
        return time.monotonic() - self.last_seen

    def close(self) -> None:
        """Drop rooms and pending events, then wake the transport so it exits"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._rooms.clear()
            self._queue.clear()
            waker = self._waker

        if waker is not None:
            waker()


class ChannelBroker:
    """
    Registry of live sessions.

    Addressing modes:
    - publish_to_user: every live session of one user
    - publish_to_project: every session joined to a project room

    Delivery is at most once per live session. Offline users get nothing
    here; their persisted notifications are fetched on reconnect.
    """

    def __init__(
        self,
        authenticator: Optional[Authenticator] = None,
        queue_size: Optional[int] = None
    ):
        self._authenticator = authenticator
        self._queue_size = queue_size or settings.broker_queue_size
        self._lock = threading.Lock()
        self._sessions: Dict[str, Session] = {}
        self._by_user: Dict[str, Set[str]] = {}

    # Registry

    def connect(
        self,
        credentials: str,
        user_id: Optional[str] = None,
        waker: Optional[Waker] = None
    ) -> Session:
        """
        Open a session for the actor the credentials resolve to.

        Raises:
            AuthenticationError: Credentials missing, invalid, or not a live actor
        """
        if self._authenticator is None:
            raise AuthenticationError("No authenticator configured")

        actor = self._authenticator(credentials)
        if user_id is not None and actor.user_id != user_id:
            raise AuthenticationError("Credentials do not belong to this user")

        return self.register(actor, waker)

    def register(self, actor: ActorContext, waker: Optional[Waker] = None) -> Session:
        """Add a session for an already authenticated actor"""
        session = Session(actor, self._queue_size, waker)
        with self._lock:
            self._sessions[session.session_id] = session
            self._by_user.setdefault(session.user_id, set()).add(session.session_id)

        logger.info(
            f"Session connected for {session.user_id}",
            extra={"session_id": session.session_id, "user_id": session.user_id}
        )
        return session

    def disconnect(self, session: Session) -> None:
        """Remove a session; its room memberships go with it"""
        with self._lock:
            removed = self._sessions.pop(session.session_id, None)
            user_sessions = self._by_user.get(session.user_id)
            if user_sessions is not None:
                user_sessions.discard(session.session_id)
                if not user_sessions:
                    del self._by_user[session.user_id]

        session.close()
        if removed is not None:
            logger.info(
                f"Session disconnected for {session.user_id}",
                extra={"session_id": session.session_id, "user_id": session.user_id}
            )

    def _snapshot(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())

    def _user_snapshot(self, user_id: str) -> List[Session]:
        with self._lock:
            return [self._sessions[sid] for sid in self._by_user.get(user_id, ())]

    # Rooms

    def join_project(self, session: Session, project_id: str) -> None:
        session.join(project_id)
        logger.debug(
            f"Session joined project {project_id}",
            extra={"session_id": session.session_id, "project_id": project_id}
        )

    def leave_project(self, session: Session, project_id: str) -> None:
        session.leave(project_id)

    # Publishing

    def publish_to_user(self, user_id: str, event: Dict[str, Any]) -> int:
        """Queue an event on every live session of a user. Returns sessions reached."""
        delivered = 0
        for session in self._user_snapshot(user_id):
            if session.enqueue(event):
                delivered += 1
        return delivered

    def publish_to_project(
        self,
        project_id: str,
        event: Dict[str, Any],
        exclude_user_id: Optional[str] = None,
        roles: Optional[Iterable[str]] = None,
        include_user_id: Optional[str] = None
    ) -> int:
        """
        Queue an event on every session joined to a project room.

        roles, when given and non-empty, limits delivery to sessions whose
        actor holds one of them. Sessions of include_user_id skip that filter.
        """
        role_filter = set(roles) if roles else None
        delivered = 0
        for session in self._snapshot():
            if exclude_user_id is not None and session.user_id == exclude_user_id:
                continue
            if (role_filter is not None and session.role not in role_filter
                    and session.user_id != include_user_id):
                continue
            if session.in_room(project_id) and session.enqueue(event):
                delivered += 1
        return delivered

    # Liveness

    def heartbeat(self, session: Session) -> None:
        session.touch()

    def reap_stale(self, timeout_seconds: Optional[float] = None) -> int:
        """Disconnect sessions silent for longer than the timeout. Returns count reaped."""
        timeout = timeout_seconds if timeout_seconds is not None else settings.broker_heartbeat_timeout_seconds
        stale = [s for s in self._snapshot() if s.idle_seconds() > timeout]
        for session in stale:
            logger.warning(
                f"Reaping stale session for {session.user_id}",
                extra={"session_id": session.session_id, "user_id": session.user_id}
            )
            self.disconnect(session)
        return len(stale)

    def disconnect_all(self) -> int:
        """Close every session (server shutdown)"""
        sessions = self._snapshot()
        for session in sessions:
            self.disconnect(session)
        return len(sessions)

    # Stats

    def is_user_online(self, user_id: str) -> bool:
        with self._lock:
            return bool(self._by_user.get(user_id))

    def online_user_count(self) -> int:
        with self._lock:
            return len(self._by_user)

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get_stats(self) -> Dict[str, Any]:
        """Get connection statistics"""
        sessions = self._snapshot()
        return {
            "sessions": len(sessions),
            "online_users": self.online_user_count(),
            "dropped_events": sum(s.dropped_events for s in sessions),
        }


# Global broker instance
_broker: Optional[ChannelBroker] = None
_broker_lock = threading.Lock()


def get_broker() -> ChannelBroker:
    """Get global broker instance"""
    global _broker
    if _broker is None:
        with _broker_lock:
            if _broker is None:
                _broker = ChannelBroker(authenticator=get_current_user)
    return _broker

