"""Resolution of the warehouse service credential.

Pattern: Credential Brokering
------------------------------
The viewer reaches BigQuery with an application-level *service credential*,
never with the end user's login password.  The settings file only names a
reference to that credential; this module turns the reference into a
``google.auth`` credentials object:

  - ``/path/to/key.json``  a service-account key file on disk.
  - ``vault:<account>``    a short-lived OAuth2 token for a Vault GCP
                           impersonated account, fetched with ``hvac`` using
                           ``VAULT_ADDR`` / ``VAULT_TOKEN`` / ``VAULT_GCP_MOUNT``.
  - empty                  application default credentials.

Secret material never appears in log lines or exception messages.
"""

from __future__ import annotations

import logging
import os
import pathlib
from typing import Any

import google.auth
import google.auth.exceptions
import hvac
import hvac.exceptions
from google.oauth2 import credentials as oauth2_credentials
from google.oauth2 import service_account

from gated_viewer.errors import ServiceCredentialError

logger = logging.getLogger(__name__)

VAULT_PREFIX = "vault:"

_BIGQUERY_SCOPES = ("https://www.googleapis.com/auth/bigquery.readonly",)


def resolve_service_credentials(ref: str | None) -> Any:
    """Return Google credentials for the service credential reference *ref*.

    Raises ``ServiceCredentialError`` when the reference cannot be resolved.
    """
    ref = (ref or "").strip()
    if not ref:
        return _application_default()
    if ref.startswith(VAULT_PREFIX):
        return _from_vault(ref[len(VAULT_PREFIX):])
    return _from_key_file(pathlib.Path(ref).expanduser())


# -- private helpers ---------------------------------------------------------

def _application_default() -> Any:
    try:
        creds, _project = google.auth.default(scopes=_BIGQUERY_SCOPES)
    except google.auth.exceptions.DefaultCredentialsError as exc:
        raise ServiceCredentialError(
            "No service credential configured and no application default credentials found"
        ) from exc
    logger.info("Using application default credentials for the warehouse")
    return creds


def _from_key_file(path: pathlib.Path) -> Any:
    if not path.is_file():
        raise ServiceCredentialError(f"Service credential key file not found: {path}")
    try:
        creds = service_account.Credentials.from_service_account_file(
            str(path), scopes=_BIGQUERY_SCOPES,
        )
    except (ValueError, KeyError) as exc:
        raise ServiceCredentialError(
            f"Service credential key file is not a valid service-account key: {path}"
        ) from exc
    logger.info("Loaded service credential for %s", creds.service_account_email)
    return creds


def _from_vault(impersonated_account: str) -> Any:
    if not impersonated_account:
        raise ServiceCredentialError("Vault credential reference names no impersonated account")

    vault_addr = os.environ.get("VAULT_ADDR", "http://127.0.0.1:8200")
    vault_token = os.environ.get("VAULT_TOKEN", "")
    gcp_mount = os.environ.get("VAULT_GCP_MOUNT", "gcp")
    if not vault_token:
        raise ServiceCredentialError("VAULT_TOKEN must be set to use a vault: service credential")

    client = hvac.Client(url=vault_addr, token=vault_token)
    try:
        response = client.secrets.gcp.generate_impersonated_account_oauth2_access_token(
            name=impersonated_account,
            mount_point=gcp_mount,
        )
    except (hvac.exceptions.VaultError, OSError) as exc:
        raise ServiceCredentialError(
            f"Vault GCP token generation failed for "
            f"impersonated_account={impersonated_account}: {type(exc).__name__}"
        ) from exc

    token_data = response["data"]
    logger.info(
        "Issued warehouse token for impersonated_account=%s, ttl=%ss",
        impersonated_account,
        token_data.get("token_ttl", "unknown"),
    )
    return oauth2_credentials.Credentials(token=token_data["token"])
