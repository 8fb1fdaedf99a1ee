"""Synchronous client for the RabbitMQ HTTP management API.

This module provides :class:`ManagementClient`, the blocking HTTP client used
by every rmqadmin command.  It wraps :class:`httpx.Client` and layers on:

- **Basic auth** -- username and password from the resolved
  :class:`~rmqadmin.models.ConnectionProfile`.
- **Path construction** -- ``{endpoint}/api/{resource}[/{vhost}][/{name}]``
  with every dynamic segment percent-encoded (the default vhost ``/``
  becomes ``%2F``).
- **JSON both ways** -- request bodies are sent as JSON and response bodies
  decoded from JSON.
- **Error classification** -- every failure, whether an error status or a
  transport exception, is turned into an
  :class:`~rmqadmin.exceptions.ApiError` by
  :func:`~rmqadmin.client.classify.classify`.

Each call performs exactly one HTTP exchange. The profile timeout bounds
every phase of it (connect, write, each read), and a deadline checked as
the body streams in stops a response that trickles in past the timeout.
There is no retry.
"""

from __future__ import annotations

import ssl
import time
from typing import Any, Optional
from urllib.parse import quote

import httpx

from rmqadmin import __version__
from rmqadmin.client.classify import classify
from rmqadmin.client.response import extract_response_data
from rmqadmin.exceptions import ApiError, ConfigError, ProtocolError
from rmqadmin.models import (
    BindingDestinationType,
    ConnectionProfile,
    PageRequest,
    PageResult,
)
from rmqadmin.output import get_output


def encode_segment(value: str) -> str:
    """Percent-encode one path segment, including ``/``."""
    return quote(value, safe="")


def build_path(resource: str, vhost: Optional[str] = None, name: Optional[str] = None) -> str:
    """Build an API path relative to ``{endpoint}/api``.

    Args:
        resource: Resource fragment such as ``queues`` or
            ``parameters/federation-upstream``; used as given.
        vhost: Virtual host segment, percent-encoded when present.
        name: Object name segment, percent-encoded when present.

    Example::

        >>> build_path("queues", "/", "orders")
        '/queues/%2F/orders'
    """
    parts = [resource.strip("/")]
    if vhost is not None:
        parts.append(encode_segment(vhost))
    if name is not None:
        parts.append(encode_segment(name))
    return "/" + "/".join(parts)


def build_binding_path(
    vhost: str,
    source: str,
    destination_type: BindingDestinationType,
    destination: str,
) -> str:
    """Build the path of the bindings between two objects.

    Example::

        >>> build_binding_path("/", "events", BindingDestinationType.QUEUE, "audit")
        '/bindings/%2F/e/events/q/audit'
    """
    return (
        f"{build_path('bindings', vhost)}/e/{encode_segment(source)}"
        f"/{destination_type.path_segment}/{encode_segment(destination)}"
    )


class ManagementClient:
    """Synchronous client for the management API.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        profile: The resolved connection profile.
        transport: Optional :mod:`httpx` transport, used by tests to plug
            in an :class:`httpx.MockTransport`.

    Example::

        with ManagementClient(profile) as client:
            queues = client.list("queues", vhost="/")
    """

    def __init__(
        self,
        profile: ConnectionProfile,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._profile = profile
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def profile(self) -> ConnectionProfile:
        return self._profile

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ManagementClient:
        profile = self._profile
        self._client = httpx.Client(
            base_url=profile.api_root(),
            auth=httpx.BasicAuth(profile.username, profile.password),
            timeout=httpx.Timeout(profile.timeout),
            verify=self._verify(),
            headers={
                "Accept": "application/json",
                "User-Agent": f"rmqadmin {__version__}",
            },
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def _verify(self) -> ssl.SSLContext | bool:
        if not self._profile.verify_tls:
            return False
        if self._profile.ca_cert_file:
            try:
                return ssl.create_default_context(cafile=self._profile.ca_cert_file)
            except (OSError, ssl.SSLError) as exc:
                raise ConfigError(
                    f"cannot load CA certificate bundle '{self._profile.ca_cert_file}': {exc}"
                ) from exc
        return True

    # ------------------------------------------------------------------ #
    # Verbs
    # ------------------------------------------------------------------ #

    def list(
        self,
        resource: str,
        vhost: Optional[str] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """GET a collection, optionally scoped to a virtual host."""
        return self.request("GET", build_path(resource, vhost), params=params)

    def get(self, resource: str, name: str, vhost: Optional[str] = None) -> Any:
        """GET a single object."""
        return self.request("GET", build_path(resource, vhost, name))

    def declare(
        self,
        resource: str,
        name: str,
        body: Optional[dict[str, Any]] = None,
        vhost: Optional[str] = None,
    ) -> Any:
        """PUT an object definition."""
        return self.request(
            "PUT", build_path(resource, vhost, name), json_body=body if body is not None else {}
        )

    def delete(self, resource: str, name: str, vhost: Optional[str] = None) -> Any:
        """DELETE a single object."""
        return self.request("DELETE", build_path(resource, vhost, name))

    def bind(
        self,
        vhost: str,
        source: str,
        destination_type: BindingDestinationType,
        destination: str,
        routing_key: str = "",
        arguments: Optional[dict[str, Any]] = None,
    ) -> Any:
        """POST a binding from exchange *source* to a queue or exchange."""
        return self.request(
            "POST",
            build_binding_path(vhost, source, destination_type, destination),
            json_body={"routing_key": routing_key, "arguments": arguments or {}},
        )

    def unbind(
        self,
        vhost: str,
        source: str,
        destination_type: BindingDestinationType,
        destination: str,
        routing_key: str = "",
        arguments: Optional[dict[str, Any]] = None,
    ) -> Any:
        """DELETE the binding matching *routing_key* and *arguments*.

        The broker addresses a binding by its properties key, so the
        bindings between the two objects are listed first and the one with
        the same routing key and arguments is deleted.

        Raises:
            ApiError: NotFound if no binding matches, otherwise as
                classified for either request.
        """
        path = build_binding_path(vhost, source, destination_type, destination)
        for binding in self.request("GET", path) or []:
            if (
                binding.get("routing_key") == routing_key
                and (binding.get("arguments") or {}) == (arguments or {})
            ):
                return self.request(
                    "DELETE", f"{path}/{encode_segment(binding['properties_key'])}"
                )
        raise ApiError.not_found(
            f"no binding from exchange '{source}' to {destination_type.value} "
            f"'{destination}' with routing key '{routing_key}'"
        )

    def close_connection(self, name: str, reason: str) -> Any:
        """DELETE a client connection; *reason* is shown to the client."""
        return self.request(
            "DELETE", build_path("connections", name=name), headers={"X-Reason": reason}
        )

    def list_page(
        self,
        resource: str,
        page_request: PageRequest,
        vhost: Optional[str] = None,
    ) -> PageResult:
        """GET one page of a paged collection.

        Raises:
            ProtocolError: If the body is not a paged object with an
                ``items`` list.
        """
        body = self.list(
            resource,
            vhost,
            params={"page": page_request.page, "page_size": page_request.page_size},
        )
        if not isinstance(body, dict) or not isinstance(body.get("items"), list):
            raise ProtocolError(
                f"expected a paged response with an 'items' list for page "
                f"{page_request.page} of '{resource}'"
            )
        items = body["items"]
        return PageResult(
            items=items,
            returned_count=len(items),
            page=body.get("page"),
            page_count=body.get("page_count"),
        )

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Send one request and return the decoded body.

        Args:
            method: HTTP method.
            path: Path relative to ``{endpoint}/api``, already encoded.
            params: Query parameters.
            json_body: JSON-serialisable request body.
            headers: Extra request headers.

        Returns:
            The decoded JSON body, raw text, or ``None`` for an empty body.

        Raises:
            ApiError: For any error status or transport failure, including
                a response that does not complete within the timeout.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        output = get_output()
        output.debug(f"{method} {self._profile.api_root()}{path}")
        kwargs: dict[str, Any] = {"params": params, "headers": headers}
        if json_body is not None:
            kwargs["json"] = json_body
        try:
            response = self._send(method, path, **kwargs)
        except httpx.TransportError as exc:
            output.debug(f"Transport failure: {exc!r}")
            raise classify(transport_error=exc) from exc

        output.debug(f"HTTP {response.status_code} {response.reason_phrase or ''}")
        body = extract_response_data(response)
        error = classify(response.status_code, body)
        if error is not None:
            raise error
        return body

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Stream one exchange, failing once it runs past the profile timeout."""
        timeout = self._profile.timeout
        deadline = time.monotonic() + timeout
        with self._client.stream(method, path, **kwargs) as response:
            chunks: list[bytes] = []
            for chunk in response.iter_bytes():
                if time.monotonic() > deadline:
                    break
                chunks.append(chunk)
            if time.monotonic() > deadline:
                raise httpx.ReadTimeout(
                    f"response did not complete within {timeout}s", request=response.request
                )
        # iter_bytes() has already undone any content encoding
        headers = [
            (key, value)
            for key, value in response.headers.items()
            if key.lower() not in ("content-encoding", "content-length")
        ]
        return httpx.Response(
            response.status_code,
            headers=headers,
            content=b"".join(chunks),
            request=response.request,
        )
