"""Exception hierarchy for rmqadmin.

All exceptions inherit from :class:`RmqAdminError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`rmqadmin.exit_codes`.
Command handlers catch ``RmqAdminError`` at the CLI boundary and exit with
the appropriate code, while unexpected exceptions produce a crash log and
exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    RmqAdminError (exit 1)
    +-- InvalidUsageError             (exit 2)
    +-- ConfigError                   (exit 9)
    |   +-- MissingCredentialError
    |   +-- AmbiguousNodeAliasError
    |   +-- UnknownNodeAliasError
    |   +-- InvalidTimeoutError       (exit 2)
    |   +-- ConfigFileNotFoundError
    |   +-- ConfigParseError
    +-- ApiError                      (exit code depends on ``kind``)
    +-- ProtocolError                 (exit 10)
        +-- PaginationExhaustedError

:class:`ApiError` is a single closed variant type: its ``kind`` is one of
the :class:`ApiErrorKind` members and every predicate is a plain test on
that member. An error built synthetically (:meth:`ApiError.not_found`)
and one classified from a live 404 therefore answer every predicate the
same way.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from rmqadmin.exit_codes import (
    EXIT_ALREADY_EXISTS,
    EXIT_AUTH_FAILURE,
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PROTOCOL_ERROR,
    EXIT_SERVER_ERROR,
    EXIT_TIMEOUT,
)


class RmqAdminError(Exception):
    """Base exception for all rmqadmin errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`rmqadmin.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(RmqAdminError):
    """Raised for invalid CLI arguments (page numbers, misplaced flags, bad JSON)."""

    exit_code = EXIT_INVALID_USAGE


# --- Configuration errors ---


class ConfigError(RmqAdminError):
    """Raised when a connection profile cannot be resolved."""

    exit_code = EXIT_CONFIG_ERROR


class MissingCredentialError(ConfigError):
    """The resolved username or password is blank."""


class AmbiguousNodeAliasError(ConfigError):
    """The config file marks no (or several) default aliases and ``--node`` was not given."""


class UnknownNodeAliasError(ConfigError):
    """The selected node alias has no section in the config file."""


class InvalidTimeoutError(ConfigError):
    """The timeout is not a positive integer number of seconds."""

    exit_code = EXIT_INVALID_USAGE


class ConfigFileNotFoundError(ConfigError):
    """An explicitly provided config file does not exist."""


class ConfigParseError(ConfigError):
    """The config file is not valid TOML or a value has the wrong type."""


# --- API errors ---


class ApiErrorKind(str, enum.Enum):
    """Closed set of failure kinds produced by request classification."""

    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CLIENT_ERROR_RESPONSE = "client_error_response"
    NETWORK = "network"
    TIMEOUT = "timeout"


_KIND_EXIT_CODES: dict[ApiErrorKind, int] = {
    ApiErrorKind.NOT_FOUND: EXIT_NOT_FOUND,
    ApiErrorKind.ALREADY_EXISTS: EXIT_ALREADY_EXISTS,
    ApiErrorKind.UNAUTHORIZED: EXIT_AUTH_FAILURE,
    ApiErrorKind.FORBIDDEN: EXIT_AUTH_FAILURE,
    ApiErrorKind.CLIENT_ERROR_RESPONSE: EXIT_SERVER_ERROR,
    ApiErrorKind.NETWORK: EXIT_CONNECTION_ERROR,
    ApiErrorKind.TIMEOUT: EXIT_TIMEOUT,
}

_KIND_MESSAGES: dict[ApiErrorKind, str] = {
    ApiErrorKind.NOT_FOUND: "API responded with a 404 Not Found",
    ApiErrorKind.ALREADY_EXISTS: "API responded with a 409 Conflict: the object already exists",
    ApiErrorKind.UNAUTHORIZED: "API responded with a 401 Unauthorized: check the username and password",
    ApiErrorKind.FORBIDDEN: "API responded with a 403 Forbidden: the user lacks the required permissions",
    ApiErrorKind.CLIENT_ERROR_RESPONSE: "API responded with an error",
    ApiErrorKind.NETWORK: "Could not reach the HTTP API endpoint",
    ApiErrorKind.TIMEOUT: "Request timed out",
}


class ApiError(RmqAdminError):
    """A classified failure of a single HTTP API request.

    Args:
        kind: The classified failure kind.
        status: HTTP status code, or ``None`` for transport failures.
        body: Decoded response body (JSON value or text), if any.
        detail: Extra context appended to the message (server reason,
            transport error text).
    """

    def __init__(
        self,
        kind: ApiErrorKind,
        status: Optional[int] = None,
        body: Any = None,
        detail: Optional[str] = None,
    ) -> None:
        message = _KIND_MESSAGES[kind]
        if kind is ApiErrorKind.CLIENT_ERROR_RESPONSE and status is not None:
            message = f"{message}: status code of {status}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, exit_code=_KIND_EXIT_CODES[kind])
        self.kind = kind
        self.status = status
        self.body = body

    @classmethod
    def not_found(cls, detail: Optional[str] = None) -> ApiError:
        """Build a NotFound error without a live response."""
        return cls(ApiErrorKind.NOT_FOUND, status=404, detail=detail)

    def is_not_found(self) -> bool:
        return self.kind is ApiErrorKind.NOT_FOUND

    def is_already_exists(self) -> bool:
        return self.kind is ApiErrorKind.ALREADY_EXISTS

    def is_unauthorized(self) -> bool:
        return self.kind is ApiErrorKind.UNAUTHORIZED

    def is_forbidden(self) -> bool:
        return self.kind is ApiErrorKind.FORBIDDEN

    def is_client_error_response(self) -> bool:
        return self.kind is ApiErrorKind.CLIENT_ERROR_RESPONSE

    def is_network(self) -> bool:
        return self.kind is ApiErrorKind.NETWORK

    def is_timeout(self) -> bool:
        return self.kind is ApiErrorKind.TIMEOUT

    def status_code(self) -> Optional[int]:
        """The originating HTTP status, or ``None`` for transport failures."""
        return self.status

    def __repr__(self) -> str:
        return f"ApiError(kind={self.kind.value!r}, status={self.status!r})"


# --- Protocol errors ---


class ProtocolError(RmqAdminError):
    """The broker answered with a response of an unexpected shape."""

    exit_code = EXIT_PROTOCOL_ERROR


class PaginationExhaustedError(ProtocolError):
    """A paged listing did not signal its last page within the page cap."""
