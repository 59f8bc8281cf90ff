"""CLI entry point: ties together configuration, the login gate and the warehouse."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import pathlib
import sys

from gated_viewer.auth.credential_store import CredentialStore
from gated_viewer.auth.session_gate import SessionGate
from gated_viewer.config import DEFAULT_SETTINGS_PATH, Settings, load_settings
from gated_viewer.errors import ConfigError, CredentialStoreError, GatewayError
from gated_viewer.gateway.query_gateway import QueryGateway
from gated_viewer.gateway.request_handler import RequestHandler
from gated_viewer.warehouse.connector import WarehouseConnector
from gated_viewer.warehouse.query import QuerySpec

logger = logging.getLogger(__name__)


def build_handler(settings: Settings) -> tuple[RequestHandler, WarehouseConnector, QuerySpec]:
    """Wire the credential store, gate, connector and gateway from *settings*."""
    store = CredentialStore.from_yaml(settings.credentials_source)
    warehouse = settings.warehouse
    try:
        spec = QuerySpec(project=warehouse.project, dataset=warehouse.dataset, table=warehouse.table)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
    connector = WarehouseConnector(warehouse)
    handler = RequestHandler(gate=SessionGate(store), gateway=QueryGateway(connector, spec))
    return handler, connector, spec


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Gated Table Viewer: log in, then view one warehouse table",
    )
    parser.add_argument(
        "--config",
        default=str(DEFAULT_SETTINGS_PATH),
        help="Path to settings.yaml",
    )
    parser.add_argument(
        "--credentials",
        default=None,
        help="Path to the login credential table (overrides auth.credentials_source)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.credentials:
        settings = dataclasses.replace(settings, credentials_source=pathlib.Path(args.credentials))

    try:
        handler, connector, spec = build_handler(settings)
    except (ConfigError, CredentialStoreError) as exc:
        logger.error("Startup failed: %s", exc)
        sys.exit(2)

    from gated_viewer.prompt.cli import run_cli

    try:
        if settings.validate_on_startup:
            try:
                connector.validate(spec)
            except GatewayError as exc:
                logger.error("Startup validation failed: %s", exc)
                sys.exit(2)
        sys.exit(run_cli(handler, table_name=spec.fully_qualified_table))
    finally:
        connector.close()


if __name__ == "__main__":
    main()
