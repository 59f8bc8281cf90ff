"""Explicit request handler sitting between the presentation layer and the gateway.

Pattern: Request/Outcome
------------------------
A UI event loop (terminal prompt, web callback, ...) turns each user
interaction into ``handle(session, action)`` and gets an ``Outcome`` back.
The handler is the error-isolation boundary: every failure is converted to a
failed ``Outcome`` for that one request, so nothing a user does can crash the
process.

User-facing messages are deliberately generic for warehouse failures.  The
exception detail goes to the log, not to the screen, so the service credential
and raw warehouse errors stay out of the presentation layer.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Union

from gated_viewer.auth.session import Session, SessionRegistry
from gated_viewer.auth.session_gate import SessionGate
from gated_viewer.errors import (
    GatewayError,
    InvalidCredentials,
    QueryError,
    Unauthorized,
    WarehouseConnectionError,
)
from gated_viewer.gateway.query_gateway import QueryGateway
from gated_viewer.warehouse.query import ResultTable

logger = logging.getLogger(__name__)

MSG_LOGIN_OK = "Logged in"
MSG_INVALID_CREDENTIALS = "Invalid username or password"
MSG_UNAUTHORIZED = "Please log in to view data"
MSG_DATA_UNAVAILABLE = "The data could not be loaded. Please try again later."
MSG_INTERNAL = "Something went wrong. Please try again."


@dataclasses.dataclass(frozen=True)
class Login:
    username: str
    password: str = dataclasses.field(repr=False)


@dataclasses.dataclass(frozen=True)
class Fetch:
    pass


Action = Union[Login, Fetch]


@dataclasses.dataclass(frozen=True)
class Outcome:
    """Result of one request.

    Attributes:
        ok:      Whether the action succeeded.
        session: The session the action ran against.
        message: Text safe to show to the user.
        table:   Fetched rows for a successful ``Fetch``.
        error:   Name of the error category on failure.
    """

    ok: bool
    session: Session
    message: str
    table: ResultTable | None = None
    error: str | None = None


class RequestHandler:
    """Dispatches actions to the gate and the gateway."""

    def __init__(
        self,
        gate: SessionGate,
        gateway: QueryGateway,
        registry: SessionRegistry | None = None,
    ) -> None:
        self._gate = gate
        self._gateway = gateway
        self._registry = registry if registry is not None else SessionRegistry()

    def open_session(self) -> Session:
        return self._registry.open()

    def close_session(self, session: Session) -> None:
        self._registry.discard(session.id)

    def handle(self, session: Session, action: Action) -> Outcome:
        """Run *action* for *session*.

        Only sessions opened by this handler and not yet closed are served;
        anything else is refused as ``Unauthorized`` without touching the gate.
        """
        if self._registry.get(session.id) is not session:
            logger.warning(
                "Refused %s for unknown or closed session %s", type(action).__name__, session.id[:8]
            )
            return self._failure(session, Unauthorized, MSG_UNAUTHORIZED)
        try:
            if isinstance(action, Login):
                self._gate.authenticate(session, action.username, action.password)
                return Outcome(ok=True, session=session, message=MSG_LOGIN_OK)
            if isinstance(action, Fetch):
                table = self._gateway.fetch(session)
                return Outcome(
                    ok=True,
                    session=session,
                    message=f"{len(table)} row(s) from {self._gateway.query_spec.table}",
                    table=table,
                )
            raise TypeError(f"Unsupported action: {type(action).__name__}")
        except InvalidCredentials:
            return self._failure(session, InvalidCredentials, MSG_INVALID_CREDENTIALS)
        except Unauthorized:
            return self._failure(session, Unauthorized, MSG_UNAUTHORIZED)
        except WarehouseConnectionError as exc:
            logger.error("Warehouse unreachable for session %s: %s", session.id[:8], exc)
            return self._failure(session, WarehouseConnectionError, MSG_DATA_UNAVAILABLE)
        except QueryError as exc:
            logger.error("Query failed for session %s: %s", session.id[:8], exc)
            return self._failure(session, QueryError, MSG_DATA_UNAVAILABLE)
        except GatewayError as exc:
            logger.error("Request failed for session %s: %s", session.id[:8], exc)
            return self._failure(session, type(exc), MSG_INTERNAL)
        except Exception:
            logger.exception("Unexpected error handling %s", type(action).__name__)
            return Outcome(ok=False, session=session, message=MSG_INTERNAL, error="InternalError")

    @staticmethod
    def _failure(session: Session, error: type[Exception], message: str) -> Outcome:
        return Outcome(ok=False, session=session, message=message, error=error.__name__)
