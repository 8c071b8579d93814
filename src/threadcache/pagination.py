"""
Pagination merger.

Folds the server pages of one signature into a single growable sequence and
decides whether another page may be requested. ``total_pages`` always comes
from the newest page because the server recomputes it on every fetch.

Nested reply collections can be seeded from the inline children a comment was
delivered with: page 1 is written straight into the cache with
``total_pages = ceil(comment_count / page_size)`` and no network call.
"""

from __future__ import annotations

import copy
import logging
import math
from typing import Any, Awaitable, Callable

from threadcache.cache import CacheStore, PagedValue, QuerySignature
from threadcache.cache.signature import comment_replies_signature
from threadcache.models import Comment, Page

from .queries import Query

logger = logging.getLogger(__name__)

PageFetcher = Callable[[int], Awaitable[Page]]


def total_pages(matching_count: int, page_size: int) -> int:
    """Return ``ceil(matching_count / page_size)``."""

    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    return math.ceil(max(matching_count, 0) / page_size)


class PaginatedQuery(Query):
    """Read accessor exposing ``items``, ``has_next``, ``is_fetching_next`` and ``fetch_next``."""

    def __init__(self, store: CacheStore, signature: QuerySignature, fetch_page: PageFetcher) -> None:
        super().__init__(store, signature)
        self._fetch_page = fetch_page
        self._fetching_next = False

    @property
    def value(self) -> PagedValue | None:
        entry = self.entry
        return entry.paged if entry is not None else None

    @property
    def items(self) -> list[Any]:
        value = self.value
        return value.items if value is not None else []

    @property
    def pages(self) -> list[Page]:
        value = self.value
        return list(value.pages) if value is not None else []

    @property
    def has_next(self) -> bool:
        value = self.value
        if value is None or not value.pages:
            return False
        return value.highest_page < value.total_pages

    @property
    def is_fetching_next(self) -> bool:
        return self._fetching_next and self.is_fetching

    async def fetch_next(self) -> bool:
        """
        Fetch and append the page after the highest one fetched.

        No-op (returns ``False``) when ``has_next`` is false or a load for this
        signature is already outstanding.
        """
        if not self.has_next or self.is_fetching:
            return False

        next_page = self.value.highest_page + 1
        self._fetching_next = True
        try:
            return await self._run(lambda: self._append(next_page))
        finally:
            self._fetching_next = False

    async def _append(self, page_no: int) -> None:
        page = await self._fetch_page(page_no)
        value = self.value
        if value is None:
            # Entry vanished (store cleared) while the request was in flight.
            value = PagedValue()
        value.replace_page(page)
        entry = self._store.write(self.signature, value)
        logger.debug(
            "Merged page %s/%s into %s (%s items)",
            page.page,
            page.total_pages,
            self.signature,
            len(entry.value.items),
        )

    async def _reload(self) -> None:
        # Refetch every page already loaded so the sequence keeps its length.
        wanted = max(1, self.value.highest_page if self.value is not None else 0)
        fresh = PagedValue()
        page_no = 1
        while True:
            page = await self._fetch_page(page_no)
            fresh.append_page(page)
            if page_no >= wanted or page_no >= page.total_pages:
                break
            page_no += 1
        self._store.write(self.signature, fresh)

    def seed(self, page: Page) -> bool:
        """Use ``page`` as initial data. Never overwrites an existing value."""

        if self.value is not None:
            return False
        self._store.write(self.signature, PagedValue([page]))
        return True


class ReplyQuery(PaginatedQuery):
    """Nested replies of one comment, seeded from its inline children."""

    def __init__(
        self,
        store: CacheStore,
        comment: Comment,
        fetch_page: PageFetcher,
        page_size: int,
    ) -> None:
        super().__init__(store, comment_replies_signature(comment.id), fetch_page)
        self.comment = comment
        self.page_size = page_size
        self.seed(seed_page(comment, page_size))

    @property
    def needs_first_page(self) -> bool:
        """Seeded page is empty although the counter says replies exist."""

        return not self.items and self.comment.comment_count > 0

    async def load_first_page(self) -> bool:
        return await self.refetch()


def seed_page(comment: Comment, page_size: int) -> Page:
    """Build page 1 of ``comment``'s replies from its inline children."""

    # Deep copy: the reply entry must not share objects with the parent's entry.
    return Page(
        items=copy.deepcopy(comment.child_comments[:page_size]),
        page=1,
        total_pages=total_pages(comment.comment_count, page_size),
    )


__all__ = ["PageFetcher", "PaginatedQuery", "ReplyQuery", "seed_page", "total_pages"]
