"""HTTP client module for rmqadmin.

Provides :class:`ManagementClient`, a synchronous client that wraps
:mod:`httpx` with basic auth, percent-encoded resource paths, JSON bodies,
and classification of every failure into an
:class:`~rmqadmin.exceptions.ApiError`.

Example::

    from rmqadmin.client import ManagementClient

    with ManagementClient(profile) as client:
        nodes = client.list("nodes")
"""

from rmqadmin.client.classify import classify
from rmqadmin.client.sync_client import ManagementClient, build_path

__all__ = ["ManagementClient", "build_path", "classify"]
