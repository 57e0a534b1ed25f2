"""Paged listing over continuation tokens.

Pages are fetched one at a time. A cursor holds exactly one batch and the
token for the next; moving forward replaces it with a new cursor.
"""

import logging
import urllib.parse
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from vault_operations.lib.cancellation import CancellationToken
from vault_operations.lib.executor import RequestExecutor, raise_for_status

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PageCursor(Generic[T]):
    """Current batch of items plus the continuation token for the next one."""

    items: tuple[T, ...] = ()
    continuation_token: str | None = None


def has_page(cursor: PageCursor[Any]) -> bool:
    """True iff the cursor holds a non-empty batch."""
    return len(cursor.items) > 0


class PagedLister(Generic[T]):
    """Fetches pages from a collection endpoint returning {value, nextLink}."""

    def __init__(self, executor: RequestExecutor, deserialize: Callable[[dict], T]) -> None:
        self.executor = executor
        self.deserialize = deserialize

    def first_page(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        cancellation: CancellationToken | None = None,
    ) -> PageCursor[T]:
        """Issue the initial list request.

        Raises:
            TransportError: If the request cannot be sent
            ServiceError: If the service rejects the request
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}
        url = f"{path}?{urllib.parse.urlencode(query)}" if query else path
        return self._fetch(url, cancellation)

    def move_to_next_page(
        self, cursor: PageCursor[T], cancellation: CancellationToken | None = None
    ) -> PageCursor[T]:
        """Return a cursor for the next batch.

        Without a continuation token no request is made and an exhausted
        cursor is returned, so calling this after the end is harmless.
        """
        if cursor.continuation_token is None:
            return PageCursor()
        return self._fetch(cursor.continuation_token, cancellation)

    def _fetch(self, url: str, cancellation: CancellationToken | None) -> PageCursor[T]:
        next_url: str | None = url
        while next_url is not None:
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            fetched_url = next_url
            response = self.executor.execute("GET", fetched_url)
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            raise_for_status(response, 200)

            body = response.body or {}
            items = tuple(self.deserialize(item) for item in body.get("value") or [])
            next_url = body.get("nextLink") or None
            if items:
                logger.debug("Fetched page of %d items from %s", len(items), fetched_url)
                return PageCursor(items=items, continuation_token=next_url)
            # Empty page that still has a continuation: keep going
        return PageCursor()


class ItemPaged(Generic[T]):
    """Lazy, forward-only, single-pass iterator over a paged listing.

    Nothing is requested until the first item (or page) is pulled. Once
    exhausted it stays exhausted; list again for a fresh pass. If a page
    fetch fails, that error is raised again on every later pull so a broken
    listing is never mistaken for a finished one.
    """

    def __init__(
        self,
        lister: PagedLister[T],
        path: str,
        params: dict[str, Any] | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self._lister = lister
        self._path = path
        self._params = params
        self._cancellation = cancellation
        self._pages = self._page_iterator()
        self._current: Iterator[T] = iter(())
        self.cursor: PageCursor[T] | None = None
        self._error: Exception | None = None

    def _page_iterator(self) -> Iterator[tuple[T, ...]]:
        self.cursor = self._lister.first_page(self._path, self._params, self._cancellation)
        while has_page(self.cursor):
            yield self.cursor.items
            self.cursor = self._lister.move_to_next_page(self.cursor, self._cancellation)

    def _next_page(self) -> tuple[T, ...]:
        if self._error is not None:
            raise self._error
        try:
            return next(self._pages)
        except StopIteration:
            raise
        except Exception as e:
            self._error = e
            raise

    def by_page(self) -> Iterator[tuple[T, ...]]:
        """Iterate over batches instead of items (shares this iterator's position)."""
        # Pages are never None, so the sentinel only stops on StopIteration
        return iter(self._next_page, None)

    def __iter__(self) -> "ItemPaged[T]":
        return self

    def __next__(self) -> T:
        while True:
            try:
                return next(self._current)
            except StopIteration:
                self._current = iter(self._next_page())
