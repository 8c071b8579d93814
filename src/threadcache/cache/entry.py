"""
Cache entry and paged value containers.

:class:`PagedValue` holds the fetched pages for one paginated signature plus an
id -> occurrences index, so a node can be patched without walking the pages or
recursing into inline children. :class:`CacheEntry` wraps either a paged value
or a single entity together with the bookkeeping the store needs: observer
count (active/inactive) and the stale flag.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Iterator, List

from threadcache.models import Page

from .signature import QuerySignature


@dataclass
class PagedValue:
    """Ordered page sequence for one signature."""

    pages: List[Page] = field(default_factory=list)
    _index: dict[int, list[Any]] | None = field(default=None, init=False, repr=False, compare=False)

    # ------------------------------------------------------------------ #
    # READ helpers
    # ------------------------------------------------------------------ #

    @property
    def items(self) -> list[Any]:
        """Flattened items, page order then server order (no dedup)."""

        return [item for page in self.pages for item in page.items]

    @property
    def page_params(self) -> list[int]:
        return [page.page for page in self.pages]

    @property
    def highest_page(self) -> int:
        return max(self.page_params, default=0)

    @property
    def total_pages(self) -> int:
        # The server recomputes this per fetch; trust the newest page.
        return self.pages[-1].total_pages if self.pages else 0

    def occurrences(self, entity_id: int) -> list[Any]:
        """Return every object in this value representing ``entity_id``."""

        if self._index is None:
            self._index = self._build_index()
        return list(self._index.get(entity_id, ()))

    def contains(self, entity_id: int) -> bool:
        return bool(self.occurrences(entity_id))

    def _build_index(self) -> dict[int, list[Any]]:
        index: dict[int, list[Any]] = {}
        for node in _walk(self.items):
            index.setdefault(node.id, []).append(node)
        return index

    # ------------------------------------------------------------------ #
    # WRITE helpers
    # ------------------------------------------------------------------ #

    def append_page(self, page: Page) -> None:
        self.pages.append(page)
        self._index = None

    def replace_page(self, page: Page) -> None:
        """Swap in ``page`` for the page with the same number, or append it."""

        for pos, existing in enumerate(self.pages):
            if existing.page == page.page:
                self.pages[pos] = page
                self._index = None
                return
        self.append_page(page)

    def prepend(self, item: Any) -> bool:
        """Insert ``item`` at the head of page 1. Returns ``False`` if no pages."""

        if not self.pages:
            return False
        self.pages[0].items.insert(0, item)
        self._index = None
        return True

    def remove(self, entity_id: int) -> int:
        """Drop top-level items matching ``entity_id``; return how many."""

        removed = 0
        for page in self.pages:
            kept = [item for item in page.items if item.id != entity_id]
            removed += len(page.items) - len(kept)
            page.items[:] = kept
        if removed:
            self._index = None
        return removed

    def reindex(self) -> None:
        """Drop the occurrence index after items were replaced in place."""

        self._index = None

    def copy(self) -> "PagedValue":
        return PagedValue(pages=copy.deepcopy(self.pages))


def _walk(items: list[Any]) -> Iterator[Any]:
    for item in items:
        yield item
        children = getattr(item, "child_comments", None)
        if children:
            yield from _walk(children)


@dataclass
class CacheEntry:
    signature: QuerySignature
    value: Any = None
    observers: int = 0
    stale: bool = False

    @property
    def active(self) -> bool:
        return self.observers > 0

    @property
    def paged(self) -> PagedValue | None:
        return self.value if isinstance(self.value, PagedValue) else None

    @property
    def page_params(self) -> list[int]:
        paged = self.paged
        return paged.page_params if paged is not None else []

    def occurrences(self, entity_id: int) -> list[Any]:
        if self.value is None:
            return []
        if isinstance(self.value, PagedValue):
            return self.value.occurrences(entity_id)
        return [self.value] if getattr(self.value, "id", None) == entity_id else []

    def contains(self, entity_id: int) -> bool:
        return bool(self.occurrences(entity_id))


__all__ = ["CacheEntry", "PagedValue"]
