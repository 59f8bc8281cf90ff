"""Login gate: checks a submitted username/password against the credential table.

Pattern: Single Gate
--------------------
``SessionGate`` is the only code that sets ``Session.authenticated``.  It
receives its ``CredentialStore`` at construction, so tests and callers decide
which credential table is in force; there is no module-level user table.

Unknown usernames and wrong passwords fail identically: same exception, same
message, and the same constant-time comparison work, so the response does not
reveal which usernames exist.  Passwords are never logged.
"""

from __future__ import annotations

import hmac
import logging

from gated_viewer.auth.credential_store import CredentialStore
from gated_viewer.auth.session import Session
from gated_viewer.errors import InvalidCredentials

logger = logging.getLogger(__name__)

# Compared against when the username is unknown so both failure paths cost the same.
_DUMMY_SECRET = b"\x00" * 32


class SessionGate:
    """Authenticates sessions against an injected ``CredentialStore``."""

    def __init__(self, credential_store: CredentialStore) -> None:
        self._store = credential_store

    def authenticate(self, session: Session, username: str, password: str) -> Session:
        """Mark *session* authenticated if *username*/*password* match.

        Returns the same session object.  Raises ``InvalidCredentials`` on any
        mismatch; the session is left as it was.  An already authenticated
        session stays authenticated even if a later attempt fails.
        """
        credential = self._store.lookup(username)
        expected = credential.password.encode() if credential is not None else _DUMMY_SECRET
        matches = hmac.compare_digest(password.encode(), expected)

        if credential is None or not matches:
            logger.warning("Login failed for user %s", username)
            raise InvalidCredentials()

        if session.authenticated and session.username == username:
            logger.debug("Session %s already authenticated as %s", session.id[:8], username)
            return session

        session.authenticated = True
        session.username = username
        logger.info("Login succeeded for user %s", username)
        return session
