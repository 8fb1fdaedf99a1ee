"""NotFound suppression for idempotent deletes.

``rmqadmin delete queue --name q1 --idempotently`` succeeds whether or not
``q1`` exists. :func:`execute_delete` runs the single underlying request
and maps its outcome onto one of three terminal states:

* success -- the request succeeded (:attr:`DeleteOutcome.SUCCESS`);
* NotFound suppressed -- the target was already absent and the operation
  is idempotent (:attr:`DeleteOutcome.NOT_FOUND_SUPPRESSED`);
* propagated failure -- any other :class:`~rmqadmin.exceptions.ApiError`,
  or NotFound for a non-idempotent delete, is re-raised unchanged.

Only NotFound is ever suppressed, and only for delete operations.
"""

from __future__ import annotations

import enum
from typing import Any, Callable

from rmqadmin.exceptions import ApiError, InvalidUsageError
from rmqadmin.models import Operation, Verb
from rmqadmin.output import debug


class DeleteOutcome(str, enum.Enum):
    SUCCESS = "success"
    NOT_FOUND_SUPPRESSED = "not_found_suppressed"


def ensure_deletable(operation: Operation) -> None:
    """Raise :class:`InvalidUsageError` unless *operation* is a delete."""
    if operation.verb is not Verb.DELETE:
        raise InvalidUsageError(
            f"--idempotently only applies to delete commands, not '{operation.verb.value}'"
        )


def execute_delete(operation: Operation, call: Callable[[], Any]) -> DeleteOutcome:
    """Run *call* once and apply the idempotent-delete policy.

    Args:
        operation: The delete operation being performed.
        call: Zero-argument callable that issues the DELETE request.

    Returns:
        :attr:`DeleteOutcome.SUCCESS` or
        :attr:`DeleteOutcome.NOT_FOUND_SUPPRESSED`.

    Raises:
        InvalidUsageError: If *operation* is not a delete.
        ApiError: Any failure other than a suppressed NotFound.
    """
    ensure_deletable(operation)
    try:
        call()
    except ApiError as exc:
        if operation.idempotent and exc.is_not_found():
            debug(f"{operation.resource} was already absent; treating delete as a success")
            return DeleteOutcome.NOT_FOUND_SUPPRESSED
        raise
    return DeleteOutcome.SUCCESS
