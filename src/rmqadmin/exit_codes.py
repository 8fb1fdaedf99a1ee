"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~rmqadmin.exceptions.RmqAdminError` subclass or
:class:`~rmqadmin.exceptions.ApiErrorKind`. Scripts can inspect the exit
code to determine the failure class without parsing stderr.

Example::

    $ rmqadmin delete queue --name orders
    $ echo $?
    4   # EXIT_NOT_FOUND -- the queue does not exist
"""

EXIT_SUCCESS = 0
"""The command completed successfully (including idempotent no-ops)."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments: bad timeout, page or page size, misplaced flags."""

EXIT_AUTH_FAILURE = 3
"""The broker rejected the credentials (401) or the user lacks permissions (403)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The broker answered with any other 4xx/5xx status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (DNS failure, connection refused or reset)."""

EXIT_TIMEOUT = 7
"""A request exceeded the configured timeout."""

EXIT_ALREADY_EXISTS = 8
"""The broker reported a conflict with an existing resource (HTTP 409)."""

EXIT_CONFIG_ERROR = 9
"""The configuration file or connection settings could not be resolved."""

EXIT_PROTOCOL_ERROR = 10
"""The broker response did not follow the expected shape (e.g. endless paging)."""
