"""The authorized read path.

``QueryGateway.fetch`` is the only way to reach the warehouse from a request.
It checks the session before anything else; an unauthenticated session never
causes a connection attempt or a query.

Authorization is flat: any authenticated session sees the whole table.  The
result is returned exactly as the connector produced it, with no row or
column filtering.
"""

from __future__ import annotations

import logging

from gated_viewer.auth.session import Session
from gated_viewer.errors import Unauthorized
from gated_viewer.warehouse.connector import WarehouseConnector
from gated_viewer.warehouse.query import QuerySpec, ResultTable

logger = logging.getLogger(__name__)


class QueryGateway:
    """Runs the one configured query on behalf of an authenticated session."""

    def __init__(self, connector: WarehouseConnector, query_spec: QuerySpec) -> None:
        self._connector = connector
        self._query_spec = query_spec

    @property
    def query_spec(self) -> QuerySpec:
        return self._query_spec

    def fetch(self, session: Session) -> ResultTable:
        """Return the configured table for *session*.

        Raises ``Unauthorized`` if the session has not logged in, and lets
        ``WarehouseConnectionError`` / ``QueryError`` from the connector through.
        """
        if not session.authenticated:
            logger.warning("Rejected fetch on unauthenticated session %s", session.id[:8])
            raise Unauthorized()

        handle = self._connector.connect()
        return self._connector.query(handle, self._query_spec)
