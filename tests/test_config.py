"""Tests for settings loading and environment overrides."""

from __future__ import annotations

import pathlib

import pytest

from gated_viewer.config import DEFAULT_SETTINGS_PATH, load_settings
from gated_viewer.errors import ConfigError


def _write(tmp_path: pathlib.Path, body: str) -> pathlib.Path:
    path = tmp_path / "settings.yaml"
    path.write_text(body)
    return path


class TestLoadSettings:
    def test_shipped_settings_file(self) -> None:
        settings = load_settings(DEFAULT_SETTINGS_PATH, environ={})
        assert settings.warehouse.table == "patients"
        assert settings.credentials_source == DEFAULT_SETTINGS_PATH.parent / "credentials.yaml"
        assert settings.credentials_source.exists()

    def test_full_file(self, tmp_path: pathlib.Path) -> None:
        path = _write(
            tmp_path,
            "warehouse:\n"
            "  project: data-project\n"
            "  dataset: clinical\n"
            "  table: patients\n"
            "  billing_project: billing-project\n"
            "  service_credential_ref: /secrets/sa.json\n"
            "  timeout_seconds: 30\n"
            "  validate_on_startup: true\n"
            "auth:\n"
            "  credentials_source: /etc/viewer/users.yaml\n"
            "logging:\n"
            "  level: debug\n",
        )
        settings = load_settings(path, environ={})

        assert settings.warehouse.project == "data-project"
        assert settings.warehouse.job_project == "billing-project"
        assert settings.warehouse.service_credential_ref == "/secrets/sa.json"
        assert settings.warehouse.timeout_seconds == 30.0
        assert settings.validate_on_startup is True
        assert settings.credentials_source == pathlib.Path("/etc/viewer/users.yaml")
        assert settings.log_level == "DEBUG"

    def test_relative_credentials_source_resolves_next_to_settings(self, tmp_path: pathlib.Path) -> None:
        path = _write(
            tmp_path,
            "warehouse: {project: data-project, dataset: d, table: t}\n"
            "auth: {credentials_source: users.yaml}\n",
        )
        assert load_settings(path, environ={}).credentials_source == tmp_path / "users.yaml"

    def test_defaults(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path, "warehouse: {project: data-project, dataset: d, table: t}\n")
        settings = load_settings(path, environ={})
        assert settings.warehouse.billing_project is None
        assert settings.warehouse.service_credential_ref is None
        assert settings.warehouse.timeout_seconds == 60.0
        assert settings.validate_on_startup is False
        assert settings.log_level == "INFO"

    def test_missing_required_values(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path, "warehouse: {project: data-project}\n")
        with pytest.raises(ConfigError, match="dataset, table"):
            load_settings(path, environ={})

    def test_non_mapping_file(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path, "- just\n- a list\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(path, environ={})

    @pytest.mark.parametrize("timeout", ["soon", "0", "-5"])
    def test_bad_timeout(self, tmp_path: pathlib.Path, timeout: str) -> None:
        path = _write(
            tmp_path,
            f"warehouse: {{project: data-project, dataset: d, table: t, timeout_seconds: {timeout}}}\n",
        )
        with pytest.raises(ConfigError, match="timeout_seconds"):
            load_settings(path, environ={})


class TestEnvironmentOverrides:
    def test_env_only(self, tmp_path: pathlib.Path) -> None:
        settings = load_settings(
            tmp_path / "missing.yaml",
            environ={
                "VIEWER_WAREHOUSE_PROJECT": "env-project",
                "VIEWER_WAREHOUSE_DATASET": "env_dataset",
                "VIEWER_WAREHOUSE_TABLE": "env_table",
                "VIEWER_SERVICE_CREDENTIAL": "vault:viewer-reader",
                "VIEWER_CREDENTIALS_SOURCE": "/run/secrets/users.yaml",
                "VIEWER_LOG_LEVEL": "warning",
            },
        )
        assert settings.warehouse.project == "env-project"
        assert settings.warehouse.dataset == "env_dataset"
        assert settings.warehouse.table == "env_table"
        assert settings.warehouse.service_credential_ref == "vault:viewer-reader"
        assert settings.credentials_source == pathlib.Path("/run/secrets/users.yaml")
        assert settings.log_level == "WARNING"

    def test_env_wins_over_file(self, tmp_path: pathlib.Path) -> None:
        path = _write(
            tmp_path,
            "warehouse:\n"
            "  project: data-project\n"
            "  dataset: d\n"
            "  table: t\n"
            "  billing_project: file-billing\n"
            "auth:\n",
        )
        settings = load_settings(
            path,
            environ={
                "VIEWER_WAREHOUSE_TABLE": "other_table",
                "VIEWER_WAREHOUSE_BILLING_PROJECT": "env-billing",
                "VIEWER_CREDENTIALS_SOURCE": "users.yaml",
            },
        )
        assert settings.warehouse.table == "other_table"
        assert settings.warehouse.job_project == "env-billing"
        assert settings.credentials_source == tmp_path / "users.yaml"

    def test_empty_env_value_ignored(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path, "warehouse: {project: data-project, dataset: d, table: t}\n")
        settings = load_settings(path, environ={"VIEWER_WAREHOUSE_TABLE": ""})
        assert settings.warehouse.table == "t"


class TestValidation:
    def test_malformed_yaml(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path, "warehouse: {project: [\n")
        with pytest.raises(ConfigError, match="not valid YAML"):
            load_settings(path, environ={})

    @pytest.mark.parametrize("value", ["'false'", "'yes please'", "0"])
    def test_validate_on_startup_must_be_boolean(self, tmp_path: pathlib.Path, value: str) -> None:
        path = _write(
            tmp_path,
            f"warehouse: {{project: data-project, dataset: d, table: t, validate_on_startup: {value}}}\n",
        )
        with pytest.raises(ConfigError, match="validate_on_startup"):
            load_settings(path, environ={})

    def test_unknown_log_level_in_file(self, tmp_path: pathlib.Path) -> None:
        path = _write(
            tmp_path,
            "warehouse: {project: data-project, dataset: d, table: t}\n"
            "logging: {level: chatty}\n",
        )
        with pytest.raises(ConfigError, match="Unknown logging level: CHATTY"):
            load_settings(path, environ={})

    def test_unknown_log_level_from_env(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path, "warehouse: {project: data-project, dataset: d, table: t}\n")
        with pytest.raises(ConfigError, match="Unknown logging level: VERBOSE"):
            load_settings(path, environ={"VIEWER_LOG_LEVEL": "verbose"})
