"""Error taxonomy for the viewer.

Every failure a request can hit is a ``GatewayError``.  The request handler
catches these at the request boundary, so one failed login or query never
takes the process down.  ``ConfigError`` and ``CredentialStoreError`` are
startup problems and are reported by ``main`` before any request is served.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for request-scoped failures."""


class InvalidCredentials(GatewayError):
    """Raised when a username/password pair does not match the credential table.

    Unknown usernames and wrong passwords both raise this with the same
    message so a caller cannot tell which usernames exist.
    """

    def __init__(self, message: str = "Invalid username or password") -> None:
        super().__init__(message)


class Unauthorized(GatewayError):
    """Raised when data is requested on a session that has not logged in."""

    def __init__(self, message: str = "Login required") -> None:
        super().__init__(message)


class WarehouseConnectionError(GatewayError):
    """Raised when the warehouse cannot be reached, authenticated to, or times out."""


class ServiceCredentialError(WarehouseConnectionError):
    """Raised when the configured service credential cannot be resolved."""


class QueryError(GatewayError):
    """Raised when the warehouse rejects the fixed query (bad SQL, missing table)."""


class ConfigError(Exception):
    """Raised when the settings file or environment is incomplete or malformed."""


class CredentialStoreError(Exception):
    """Raised when the login credential table cannot be loaded."""
