"""
Per-signature read accessors.

A query binds one :class:`QuerySignature` to the coroutine that loads it. Views
``mount`` a query while displayed (making its entry active) and ``unmount`` it
when hidden. Every network load runs as a task registered with the store so a
mutation can cancel it before patching; a cancelled load never writes.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Coroutine

from threadcache.cache import CacheEntry, CacheStore, QuerySignature

logger = logging.getLogger(__name__)


class Query(ABC):
    """Base accessor: activity tracking and cancellable loads."""

    def __init__(self, store: CacheStore, signature: QuerySignature) -> None:
        self._store = store
        self.signature = signature
        self._mounted = False

    @property
    def entry(self) -> CacheEntry | None:
        return self._store.entry(self.signature)

    @property
    def is_fetching(self) -> bool:
        return self._store.is_fetching(self.signature)

    @property
    def needs_fetch(self) -> bool:
        entry = self.entry
        return entry is None or entry.value is None or entry.stale

    async def mount(self) -> None:
        """Mark the entry active and load it if missing or stale."""

        if not self._mounted:
            self._store.observe(self.signature)
            self._mounted = True
        await self.load()

    def unmount(self) -> None:
        if self._mounted:
            self._store.release(self.signature)
            self._mounted = False

    async def load(self) -> bool:
        """Fetch only if the entry is missing or stale. Activity is unchanged."""

        if not self.needs_fetch:
            return False
        return await self.refetch()

    async def refetch(self) -> bool:
        """Reload the entry from the network. Returns ``False`` if cancelled."""

        # A refetch supersedes any load already running for this signature.
        self._store.cancel_fetches(self.signature)
        return await self._run(self._reload)

    def schedule_refetch(self) -> None:
        """Start a background refetch on the running loop, if there is one."""

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; %s stays stale until mounted", self.signature)
            return
        self._store.cancel_fetches(self.signature)
        task = loop.create_task(self._reload())
        self._store.track_fetch(self.signature, task)
        task.add_done_callback(self._report_background_failure)

    @abstractmethod
    async def _reload(self) -> None:
        """Fetch the value from the network and write it to the store."""

    async def _run(self, factory: Callable[[], Coroutine[Any, Any, Any]]) -> bool:
        task = asyncio.ensure_future(factory())
        self._store.track_fetch(self.signature, task)
        # ``wait`` keeps a store-side cancel from propagating into the caller.
        await asyncio.wait({task})
        if task.cancelled():
            logger.debug("Load for %s was cancelled", self.signature)
            return False
        task.result()
        return True

    def _report_background_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background refetch of %s failed: %s", self.signature, exc)


class EntityQuery(Query):
    """Single-entity view, e.g. a post detail page."""

    def __init__(
        self,
        store: CacheStore,
        signature: QuerySignature,
        fetch: Callable[[], Awaitable[Any]],
    ) -> None:
        super().__init__(store, signature)
        self._fetch = fetch

    @property
    def data(self) -> Any:
        return self._store.read(self.signature)

    async def _reload(self) -> None:
        value = await self._fetch()
        self._store.write(self.signature, value)


__all__ = ["EntityQuery", "Query"]
