"""Session state that carries the login result through the call chain.

Pattern: Session Context Propagation
-------------------------------------
A ``Session`` is opened on the first interaction and passed explicitly to
every downstream call: the login gate flips it, the query gateway checks it.
If a component does not receive a Session, it cannot fetch data.

A session has two states, unauthenticated and authenticated.  Only
``SessionGate`` moves it from the first to the second, and nothing moves it
back.  There is no logout or expiry; a session lives until it is discarded
from the registry or the process exits.
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
import secrets
import threading

logger = logging.getLogger(__name__)


@dataclasses.dataclass(eq=False)
class Session:
    """Per-interaction login state.

    Attributes:
        id:            Opaque random token identifying the session.
        created_at:    UTC timestamp of session creation.
        authenticated: True once a credential check has passed.
        username:      The user that logged in, ``None`` until then.
    """

    id: str
    created_at: datetime.datetime
    authenticated: bool = False
    username: str | None = None

    @classmethod
    def new(cls) -> Session:
        return cls(
            id=secrets.token_urlsafe(32),
            created_at=datetime.datetime.now(datetime.UTC),
        )

    def __str__(self) -> str:
        return (
            f"Session(id={self.id[:8]}..., user={self.username}, "
            f"authenticated={self.authenticated})"
        )


class SessionRegistry:
    """In-memory map of live sessions, keyed by session id.

    Nothing is persisted; all sessions vanish with the process.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def open(self) -> Session:
        """Create and register a fresh unauthenticated session."""
        session = Session.new()
        with self._lock:
            self._sessions[session.id] = session
        logger.debug("Opened %s", session)
        return session

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def discard(self, session_id: str) -> None:
        """Drop a session on connection teardown.  Unknown ids are ignored."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.debug("Closed %s", session)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
