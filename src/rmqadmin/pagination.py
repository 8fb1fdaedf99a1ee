"""Paged listing of large collections.

The management API serves collections such as queues and connections in
pages (``?page=N&page_size=M``). :class:`Paginator` requests page after page
and yields the items one by one until the collection is exhausted:

* a page returning fewer than ``page_size`` items is the last one;
* so is a page whose ``page`` metadata reaches ``page_count``.

A server that never signals the end would otherwise keep the loop going, so
the number of pages is capped (``max_pages``); exceeding the cap raises
:class:`~rmqadmin.exceptions.PaginationExhaustedError`.

Arguments are validated when :meth:`Paginator.paginate` is called, before the
first request. The returned iterator is lazy and cannot be restarted; a
failed page request propagates and abandons the listing.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator

from rmqadmin.exceptions import InvalidUsageError, PaginationExhaustedError
from rmqadmin.models import PageRequest, PageResult
from rmqadmin.output import debug

DEFAULT_PAGE_SIZE = 100
"""The management API's own default page size."""

DEFAULT_MAX_PAGES = 1000

FetchPage = Callable[[PageRequest], PageResult]


def validate_page_arguments(page: int, page_size: int) -> None:
    """Raise :class:`InvalidUsageError` unless ``page >= 1`` and ``page_size > 0``."""
    if page < 1:
        raise InvalidUsageError(f"--page must be 1 or greater, got: {page}")
    if page_size <= 0:
        raise InvalidUsageError(f"--page-size must be greater than 0, got: {page_size}")


class Paginator:
    """Drives repeated page requests for one collection.

    Args:
        fetch_page: Callable issuing one page request, typically a bound
            :meth:`~rmqadmin.client.ManagementClient.list_page`.
        max_pages: Upper bound on the number of page requests.

    Example::

        paginator = Paginator(lambda req: client.list_page("queues", req, vhost="/"))
        for queue in paginator.paginate(page_size=50):
            print(queue["name"])
    """

    def __init__(self, fetch_page: FetchPage, max_pages: int = DEFAULT_MAX_PAGES) -> None:
        if max_pages < 1:
            raise InvalidUsageError(f"max_pages must be 1 or greater, got: {max_pages}")
        self._fetch_page = fetch_page
        self._max_pages = max_pages
        self.requests_issued = 0

    def paginate(self, page_size: int, start_page: int = 1) -> Iterator[Any]:
        """Return a lazy iterator over all items from *start_page* onward.

        Raises:
            InvalidUsageError: Immediately, if *page_size* or *start_page*
                is out of range.
        """
        validate_page_arguments(start_page, page_size)
        return self._iterate(page_size, start_page)

    def _iterate(self, page_size: int, start_page: int) -> Iterator[Any]:
        page = start_page
        while True:
            if self.requests_issued >= self._max_pages:
                raise PaginationExhaustedError(
                    f"the server did not signal the last page after {self._max_pages} "
                    f"pages of size {page_size}"
                )
            result = self._fetch_page(PageRequest(page=page, page_size=page_size))
            self.requests_issued += 1
            debug(
                f"Page {page}: {result.returned_count} item(s)"
                + (f" of {result.page_count} page(s)" if result.page_count is not None else "")
            )
            yield from result.items
            if result.is_last_page(page_size):
                return
            page += 1
