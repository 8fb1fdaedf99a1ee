"""Classification of HTTP outcomes into :class:`~rmqadmin.exceptions.ApiError`.

:func:`classify` is the single place where a raw outcome -- a status code
with its body, or a transport failure raised by :mod:`httpx` -- is mapped
onto an :class:`~rmqadmin.exceptions.ApiErrorKind`:

====================================  =========================
status / outcome                      kind
====================================  =========================
404                                   ``NOT_FOUND``
409                                   ``ALREADY_EXISTS``
401                                   ``UNAUTHORIZED``
403                                   ``FORBIDDEN``
``httpx.TimeoutException``            ``TIMEOUT``
any other ``httpx.TransportError``    ``NETWORK``
any other 4xx / 5xx                   ``CLIENT_ERROR_RESPONSE``
====================================  =========================

The mapping is deterministic and evaluated once per request; nothing here
retries.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from rmqadmin.exceptions import ApiError, ApiErrorKind

_STATUS_KINDS: dict[int, ApiErrorKind] = {
    404: ApiErrorKind.NOT_FOUND,
    409: ApiErrorKind.ALREADY_EXISTS,
    401: ApiErrorKind.UNAUTHORIZED,
    403: ApiErrorKind.FORBIDDEN,
}


def classify(
    status_code: Optional[int] = None,
    body: Any = None,
    transport_error: Optional[Exception] = None,
) -> Optional[ApiError]:
    """Map one request outcome to an :class:`ApiError`, or ``None`` on success.

    Args:
        status_code: HTTP status of the response, if one was received.
        body: Decoded response body (JSON value or text).
        transport_error: The exception raised by the transport when no
            response was received.

    Returns:
        The classified error, or ``None`` when the outcome is a success
        (status below 400 and no transport failure).
    """
    if transport_error is not None:
        if isinstance(transport_error, httpx.TimeoutException):
            return ApiError(ApiErrorKind.TIMEOUT, detail=str(transport_error) or None)
        return ApiError(ApiErrorKind.NETWORK, detail=str(transport_error) or None)

    if status_code is None or status_code < 400:
        return None

    kind = _STATUS_KINDS.get(status_code, ApiErrorKind.CLIENT_ERROR_RESPONSE)
    return ApiError(kind, status=status_code, body=body, detail=error_reason(body))


def error_reason(body: Any) -> Optional[str]:
    """Pull the broker's ``reason`` (or ``error``) out of an error body."""
    if isinstance(body, dict):
        reason = body.get("reason") or body.get("error")
        return str(reason) if reason else None
    if isinstance(body, str) and body.strip():
        return body.strip()[:200]
    return None
