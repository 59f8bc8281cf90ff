"""Connection to the BigQuery warehouse.

The connector owns exactly one ``bigquery.Client`` for its lifetime.  The
client is built lazily on the first ``connect()`` under a lock, so concurrent
first requests still share a single handle, and it is reused for every query
after that.  The handle never leaves the warehouse layer: the gateway hands
back only ``ResultTable`` objects.

Library exceptions are translated into the viewer's taxonomy:

  - auth, transport and timeout failures -> ``WarehouseConnectionError``
  - missing table or rejected statement  -> ``QueryError``

Neither is retried here; the request that hit it fails and the next request
tries again.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Any, Callable

import google.auth.exceptions
from google.api_core import exceptions as api_exceptions
from google.cloud import bigquery

from gated_viewer.errors import QueryError, WarehouseConnectionError
from gated_viewer.warehouse.query import QuerySpec, ResultTable
from gated_viewer.warehouse.service_credentials import resolve_service_credentials

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0


@dataclasses.dataclass(frozen=True)
class WarehouseConfig:
    """Where the table lives and how the viewer authenticates to reach it.

    Attributes:
        project:                Project that owns the dataset.
        dataset:                Dataset holding the table.
        table:                  Table rendered by the viewer.
        billing_project:        Project billed for query jobs (defaults to ``project``).
        service_credential_ref: Key file path, ``vault:<account>``, or empty for ADC.
        timeout_seconds:        Upper bound on each warehouse call.
        location:               Optional BigQuery job location.
    """

    project: str
    dataset: str
    table: str
    billing_project: str | None = None
    service_credential_ref: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    location: str | None = None

    @property
    def job_project(self) -> str:
        return self.billing_project or self.project


@dataclasses.dataclass(frozen=True)
class WarehouseHandle:
    """The live connection owned by a ``WarehouseConnector``."""

    project: str
    dataset: str
    service_credential_ref: str | None
    client: Any = dataclasses.field(repr=False, compare=False)


ClientFactory = Callable[[WarehouseConfig], Any]


def bigquery_client_factory(config: WarehouseConfig) -> bigquery.Client:
    """Build a BigQuery client authenticated with the configured service credential."""
    credentials = resolve_service_credentials(config.service_credential_ref)
    return bigquery.Client(
        project=config.job_project,
        credentials=credentials,
        location=config.location,
    )


class WarehouseConnector:
    """Holds the single warehouse handle and runs the fixed query through it."""

    def __init__(
        self,
        config: WarehouseConfig,
        client_factory: ClientFactory = bigquery_client_factory,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._handle: WarehouseHandle | None = None
        self._lock = threading.Lock()

    @property
    def config(self) -> WarehouseConfig:
        return self._config

    def connect(self) -> WarehouseHandle:
        """Return the connector's handle, creating it on first use.

        Raises ``WarehouseConnectionError`` if the client cannot be built.
        """
        handle = self._handle
        if handle is not None:
            return handle

        with self._lock:
            if self._handle is None:
                try:
                    client = self._client_factory(self._config)
                except WarehouseConnectionError:
                    raise
                except (
                    google.auth.exceptions.GoogleAuthError,
                    api_exceptions.GoogleAPIError,
                    OSError,
                ) as exc:
                    raise WarehouseConnectionError(
                        f"Could not connect to warehouse project {self._config.job_project}: "
                        f"{type(exc).__name__}"
                    ) from exc

                self._handle = WarehouseHandle(
                    project=self._config.project,
                    dataset=self._config.dataset,
                    service_credential_ref=self._config.service_credential_ref,
                    client=client,
                )
                logger.info(
                    "Connected to warehouse project=%s dataset=%s (billing=%s)",
                    self._config.project,
                    self._config.dataset,
                    self._config.job_project,
                )
            return self._handle

    def query(self, handle: WarehouseHandle, spec: QuerySpec) -> ResultTable:
        """Run *spec* through *handle* and return every row.

        Blocks until rows arrive or ``timeout_seconds`` passes.
        """
        timeout = self._config.timeout_seconds
        logger.debug("Running %s", spec.sql)
        try:
            job = handle.client.query(spec.sql, timeout=timeout)
            rows = job.result(timeout=timeout)
            columns = [field.name for field in rows.schema]
            result = ResultTable.from_rows(columns, (dict(row) for row in rows))
        except (api_exceptions.NotFound, api_exceptions.BadRequest) as exc:
            raise QueryError(
                f"Query against {spec.fully_qualified_table} was rejected: {type(exc).__name__}"
            ) from exc
        except TimeoutError as exc:
            raise WarehouseConnectionError(
                f"Query against {spec.fully_qualified_table} timed out after {timeout}s"
            ) from exc
        except (
            google.auth.exceptions.GoogleAuthError,
            api_exceptions.GoogleAPIError,
            OSError,
        ) as exc:
            raise WarehouseConnectionError(
                f"Warehouse call failed for {spec.fully_qualified_table}: {type(exc).__name__}"
            ) from exc

        logger.info(
            "Fetched %d row(s), %d column(s) from %s",
            len(result),
            len(result.columns),
            spec.fully_qualified_table,
        )
        return result

    def validate(self, spec: QuerySpec) -> None:
        """Check at startup that the target table exists.

        Raises ``QueryError`` for a missing table and ``WarehouseConnectionError``
        when the warehouse cannot be reached.
        """
        handle = self.connect()
        try:
            handle.client.get_table(spec.fully_qualified_table, timeout=self._config.timeout_seconds)
        except api_exceptions.NotFound as exc:
            raise QueryError(f"Table not found: {spec.fully_qualified_table}") from exc
        except (
            google.auth.exceptions.GoogleAuthError,
            api_exceptions.GoogleAPIError,
            OSError,
        ) as exc:
            raise WarehouseConnectionError(
                f"Could not verify table {spec.fully_qualified_table}: {type(exc).__name__}"
            ) from exc
        logger.info("Verified table %s", spec.fully_qualified_table)

    def close(self) -> None:
        """Close the client and drop the handle."""
        with self._lock:
            handle, self._handle = self._handle, None
        if handle is not None:
            handle.client.close()
            logger.info("Closed warehouse connection")
