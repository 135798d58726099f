"""Lazy cursor over paginated GitHub listings."""

from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, Self, TypeVar

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of a listing.

    Attributes:
        items: Items on this page, in listing order.
        next_url: URL of the following page, or None on the last page.
    """

    items: list[T] = field(default_factory=list)
    next_url: str | None = None


PageFetcher = Callable[[str | None], Awaitable[Page[T]]]


class PageIterator(Generic[T]):
    """Pull-based cursor that walks a listing one page at a time.

    The fetcher is called with ``None`` for the first page and with the
    previous page's ``next_url`` afterwards. Iteration stops once a page
    reports no continuation. A cursor is single-use: open a new one to
    walk the listing again.

    Attributes:
        pages_fetched: Number of pages fetched so far.
    """

    def __init__(self, fetch_page: PageFetcher[T]):
        """Initialize with a page-fetch capability.

        Args:
            fetch_page: Coroutine function returning the page at a URL.
        """
        self._fetch_page = fetch_page
        self._next_url: str | None = None
        self._exhausted = False
        self._buffer: deque[T] = deque()
        self.pages_fetched = 0

    @property
    def exhausted(self) -> bool:
        """True once the last page has been fetched."""
        return self._exhausted

    async def fetch_next_page(self) -> list[T] | None:
        """Fetch the next page of items.

        Returns:
            Items of the next page, or None when the listing is exhausted.
        """
        if self._exhausted:
            return None

        page = await self._fetch_page(self._next_url)
        self.pages_fetched += 1
        self._next_url = page.next_url
        if not page.next_url:
            self._exhausted = True
        return page.items

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> T:
        while not self._buffer:
            items = await self.fetch_next_page()
            if items is None:
                raise StopAsyncIteration
            self._buffer.extend(items)
        return self._buffer.popleft()
