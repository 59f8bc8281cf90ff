"""Read-only table of login credentials.

The store is built once at startup (normally from ``config/credentials.yaml``)
and handed to ``SessionGate``.  It never changes afterwards, so concurrent
lookups need no locking.
"""

from __future__ import annotations

import dataclasses
import logging
import pathlib
import types
from typing import Any, Iterable, Mapping

import yaml

from gated_viewer.errors import CredentialStoreError

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Credential:
    """One login entry.

    Attributes:
        username: Unique login name.
        password: Opaque secret compared in constant time by ``SessionGate``.
        metadata: Any extra keys from the source row (display name, etc.).
    """

    username: str
    password: str = dataclasses.field(repr=False)
    metadata: Mapping[str, Any] = dataclasses.field(
        default_factory=lambda: types.MappingProxyType({}),
    )


class CredentialStore:
    """Immutable username -> ``Credential`` lookup."""

    def __init__(self, credentials: Iterable[Credential]) -> None:
        entries: dict[str, Credential] = {}
        for credential in credentials:
            if credential.username in entries:
                raise ValueError(f"Duplicate username in credential table: {credential.username}")
            entries[credential.username] = credential
        self._entries = types.MappingProxyType(entries)

    @classmethod
    def from_yaml(cls, path: str | pathlib.Path) -> CredentialStore:
        """Load ``{users: [{username, password, ...}, ...]}`` from *path*."""
        path = pathlib.Path(path)
        if not path.exists():
            raise CredentialStoreError(f"Credential file not found: {path}")
        try:
            with open(path) as fh:
                data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise CredentialStoreError(f"Credential file is not valid YAML: {path}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("users"), list):
            raise CredentialStoreError("Credential file must contain a top-level 'users' list")

        credentials = []
        for index, row in enumerate(data["users"]):
            if not isinstance(row, dict) or "username" not in row or "password" not in row:
                raise CredentialStoreError(
                    f"Credential entry #{index} needs 'username' and 'password'"
                )
            username = _scalar(row["username"])
            password = _scalar(row["password"])
            if username is None or password is None:
                raise CredentialStoreError(
                    f"Credential entry #{index} needs a non-empty 'username' and 'password'"
                )
            extra = {k: v for k, v in row.items() if k not in ("username", "password")}
            credentials.append(
                Credential(
                    username=username,
                    password=password,
                    metadata=types.MappingProxyType(extra),
                )
            )

        try:
            store = cls(credentials)
        except ValueError as exc:
            raise CredentialStoreError(str(exc)) from exc
        logger.info("Loaded %d login credential(s) from %s", len(store), path)
        return store

    def lookup(self, username: str) -> Credential | None:
        """Return the credential for *username*, or ``None`` when absent."""
        return self._entries.get(username)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, username: object) -> bool:
        return username in self._entries


def _scalar(value: Any) -> str | None:
    """Return *value* as a non-empty string, or ``None`` for null, empty or non-scalar values.

    Numeric YAML values (``password: 1234``) are accepted as their text form.
    """
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    text = str(value)
    return text if text else None
