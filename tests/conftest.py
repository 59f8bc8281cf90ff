"""Shared fixtures for tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from gated_viewer.auth.credential_store import Credential, CredentialStore
from gated_viewer.auth.session import Session
from gated_viewer.auth.session_gate import SessionGate
from gated_viewer.gateway.query_gateway import QueryGateway
from gated_viewer.gateway.request_handler import RequestHandler
from gated_viewer.warehouse.connector import WarehouseConfig, WarehouseConnector
from gated_viewer.warehouse.query import QuerySpec, ResultTable

PATIENT_COLUMNS = ("patient_id", "age", "diagnosis")
PATIENT_ROWS = (
    {"patient_id": "P001", "age": 34, "diagnosis": "Hypertension"},
    {"patient_id": "P002", "age": 58, "diagnosis": "Type 2 Diabetes"},
    {"patient_id": "P003", "age": 41, "diagnosis": "Asthma"},
)


def _row_iterator(columns, rows) -> MagicMock:
    """Stand-in for a BigQuery ``RowIterator``: has a schema and yields rows."""
    iterator = MagicMock()
    schema = []
    for name in columns:
        field = MagicMock()
        field.name = name
        schema.append(field)
    iterator.schema = schema
    data = [dict(row) for row in rows]
    iterator.__iter__.side_effect = lambda: iter(data)
    return iterator


@pytest.fixture
def credential_store() -> CredentialStore:
    return CredentialStore([
        Credential(username="admin", password="admin123"),
    ])


@pytest.fixture
def session_gate(credential_store: CredentialStore) -> SessionGate:
    return SessionGate(credential_store)


@pytest.fixture
def session() -> Session:
    return Session.new()


@pytest.fixture
def warehouse_config() -> WarehouseConfig:
    return WarehouseConfig(
        project="test-project",
        dataset="clinical",
        table="patients",
        service_credential_ref="/secrets/viewer-sa.json",
        timeout_seconds=5,
    )


@pytest.fixture
def query_spec() -> QuerySpec:
    return QuerySpec(project="test-project", dataset="clinical", table="patients")


@pytest.fixture
def patient_table() -> ResultTable:
    return ResultTable.from_rows(PATIENT_COLUMNS, PATIENT_ROWS)


@pytest.fixture
def bigquery_client() -> MagicMock:
    """A fake BigQuery client whose query job returns the three patient rows."""
    client = MagicMock()
    client.query.return_value.result.return_value = _row_iterator(
        PATIENT_COLUMNS, PATIENT_ROWS,
    )
    return client


@pytest.fixture
def client_factory(bigquery_client: MagicMock) -> MagicMock:
    return MagicMock(return_value=bigquery_client)


@pytest.fixture
def connector(warehouse_config: WarehouseConfig, client_factory: MagicMock) -> WarehouseConnector:
    return WarehouseConnector(warehouse_config, client_factory=client_factory)


@pytest.fixture
def gateway(connector: WarehouseConnector, query_spec: QuerySpec) -> QueryGateway:
    return QueryGateway(connector, query_spec)


@pytest.fixture
def request_handler(session_gate: SessionGate, gateway: QueryGateway) -> RequestHandler:
    return RequestHandler(gate=session_gate, gateway=gateway)


@pytest.fixture
def row_iterator():
    """Factory for fake ``RowIterator`` objects."""
    return _row_iterator
