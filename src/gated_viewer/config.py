"""Settings loading: ``config/settings.yaml`` plus environment overrides.

Environment variables win over the file so deployments can point at a
different table or credential without editing YAML:

  VIEWER_WAREHOUSE_PROJECT, VIEWER_WAREHOUSE_DATASET, VIEWER_WAREHOUSE_TABLE,
  VIEWER_WAREHOUSE_BILLING_PROJECT, VIEWER_SERVICE_CREDENTIAL,
  VIEWER_CREDENTIALS_SOURCE, VIEWER_LOG_LEVEL
"""

from __future__ import annotations

import dataclasses
import logging
import os
import pathlib
from typing import Any, Mapping

import yaml

from gated_viewer.errors import ConfigError
from gated_viewer.warehouse.connector import DEFAULT_TIMEOUT_SECONDS, WarehouseConfig

DEFAULT_SETTINGS_PATH = pathlib.Path(__file__).resolve().parents[2] / "config" / "settings.yaml"

_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "VIEWER_WAREHOUSE_PROJECT": ("warehouse", "project"),
    "VIEWER_WAREHOUSE_DATASET": ("warehouse", "dataset"),
    "VIEWER_WAREHOUSE_TABLE": ("warehouse", "table"),
    "VIEWER_WAREHOUSE_BILLING_PROJECT": ("warehouse", "billing_project"),
    "VIEWER_SERVICE_CREDENTIAL": ("warehouse", "service_credential_ref"),
    "VIEWER_CREDENTIALS_SOURCE": ("auth", "credentials_source"),
    "VIEWER_LOG_LEVEL": ("logging", "level"),
}


@dataclasses.dataclass(frozen=True)
class Settings:
    """Everything the viewer needs at startup.

    Attributes:
        warehouse:           Warehouse location and service credential reference.
        credentials_source:  Path of the login credential table.
        validate_on_startup: Check the target table exists before serving requests.
        log_level:           Root logging level name.
    """

    warehouse: WarehouseConfig
    credentials_source: pathlib.Path
    validate_on_startup: bool = False
    log_level: str = "INFO"


def load_settings(
    path: str | pathlib.Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Read settings from *path* (default ``config/settings.yaml``) and *environ*.

    Raises ``ConfigError`` if the file is malformed or a required value is missing.
    """
    path = pathlib.Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    environ = os.environ if environ is None else environ

    data: dict[str, Any] = {}
    if path.exists():
        try:
            with open(path) as fh:
                loaded = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Settings file is not valid YAML: {path}") from exc
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"Settings file must contain a mapping: {path}")
        data = loaded or {}

    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            if data.get(section) is None:
                data[section] = {}
            if not isinstance(data[section], dict):
                raise ConfigError(f"Settings section '{section}' must be a mapping")
            data[section][key] = value

    warehouse_cfg = _section(data, "warehouse")
    auth_cfg = _section(data, "auth")
    logging_cfg = _section(data, "logging")

    missing = [key for key in ("project", "dataset", "table") if not warehouse_cfg.get(key)]
    if missing:
        raise ConfigError(f"Missing warehouse setting(s): {', '.join(missing)}")

    try:
        timeout = float(warehouse_cfg.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS))
    except (TypeError, ValueError) as exc:
        raise ConfigError("warehouse.timeout_seconds must be a number") from exc
    if timeout <= 0:
        raise ConfigError("warehouse.timeout_seconds must be positive")

    warehouse = WarehouseConfig(
        project=str(warehouse_cfg["project"]),
        dataset=str(warehouse_cfg["dataset"]),
        table=str(warehouse_cfg["table"]),
        billing_project=warehouse_cfg.get("billing_project") or None,
        service_credential_ref=warehouse_cfg.get("service_credential_ref") or None,
        timeout_seconds=timeout,
        location=warehouse_cfg.get("location") or None,
    )

    credentials_source = pathlib.Path(auth_cfg.get("credentials_source", "credentials.yaml"))
    if not credentials_source.is_absolute():
        credentials_source = path.parent / credentials_source

    validate_on_startup = warehouse_cfg.get("validate_on_startup", False)
    if not isinstance(validate_on_startup, bool):
        raise ConfigError("warehouse.validate_on_startup must be true or false")

    log_level = str(logging_cfg.get("level", "INFO")).upper()
    if log_level not in logging.getLevelNamesMapping():
        raise ConfigError(f"Unknown logging level: {log_level}")

    return Settings(
        warehouse=warehouse,
        credentials_source=credentials_source,
        validate_on_startup=validate_on_startup,
        log_level=log_level,
    )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Settings section '{name}' must be a mapping")
    return section
