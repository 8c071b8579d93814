"""Signature-keyed cache store shared by the merger, orchestrator and propagator."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Hashable, Iterable, Literal

from .entry import CacheEntry
from .signature import QuerySignature

logger = logging.getLogger(__name__)

EntryState = Literal["all", "active", "inactive"]
RefetchHandler = Callable[[QuerySignature], None]


class CacheStore:
    """
    Mapping from :class:`QuerySignature` to :class:`CacheEntry`.

    All methods are synchronous; callers run on one event loop so a patch is
    never interleaved with another writer. The store also tracks the fetch
    task currently outstanding per signature so mutations can cancel it, and
    the holds live mutations place on their scope.
    """

    def __init__(self, refetch_handler: RefetchHandler | None = None) -> None:
        self._entries: dict[QuerySignature, CacheEntry] = {}
        self._inflight: dict[QuerySignature, asyncio.Task] = {}
        # owner -> partial signatures it keeps from being reloaded
        self._holds: dict[Hashable, tuple[QuerySignature, ...]] = {}
        self._deferred: dict[QuerySignature, None] = {}
        self.refetch_handler = refetch_handler

    # ------------------------------------------------------------------ #
    # READ helpers
    # ------------------------------------------------------------------ #

    def entry(self, signature: QuerySignature) -> CacheEntry | None:
        return self._entries.get(signature)

    def read(self, signature: QuerySignature) -> Any:
        """Return the cached value for ``signature`` or ``None``."""

        entry = self._entries.get(signature)
        return entry.value if entry is not None else None

    def signatures(self) -> list[QuerySignature]:
        return list(self._entries)

    def for_each_matching(
        self,
        partial: QuerySignature,
        fn: Callable[[CacheEntry], None],
        *,
        state: EntryState = "all",
    ) -> int:
        """
        Apply ``fn`` to every entry whose signature superset-matches ``partial``.

        :param partial: Partial signature; ``None`` fields are wildcards.
        :param fn: Callback receiving the entry. It may branch on ``entry.active``.
        :param state: Restrict to ``"active"`` or ``"inactive"`` entries.
        :returns: Number of entries visited.
        """
        visited = 0
        # Snapshot the matches first so ``fn`` may write new entries safely.
        for entry in self._matching(partial, state):
            fn(entry)
            visited += 1
        return visited

    def _matching(self, partial: QuerySignature, state: EntryState) -> list[CacheEntry]:
        out = []
        for signature, entry in self._entries.items():
            if not signature.matches(partial):
                continue
            if state == "active" and not entry.active:
                continue
            if state == "inactive" and entry.active:
                continue
            out.append(entry)
        return out

    # ------------------------------------------------------------------ #
    # WRITE helpers
    # ------------------------------------------------------------------ #

    def ensure(self, signature: QuerySignature) -> CacheEntry:
        """Return the entry for ``signature``, creating an empty one if needed."""

        entry = self._entries.get(signature)
        if entry is None:
            entry = CacheEntry(signature)
            self._entries[signature] = entry
        return entry

    def write(self, signature: QuerySignature, value: Any) -> CacheEntry:
        """Store ``value`` for ``signature`` and mark the entry fresh."""

        entry = self.ensure(signature)
        entry.value = value
        entry.stale = False
        logger.debug("Wrote %s", signature)
        return entry

    def mark_stale(self, partial: QuerySignature, *, refetch_now: bool = False) -> list[QuerySignature]:
        """
        Flag every entry matching ``partial`` as stale.

        With ``refetch_now`` the active ones are handed to the refetch handler;
        inactive entries are only flagged and refetch on their next activation.
        An active entry still held by a live mutation is deferred until the
        last hold on it is released, so the reload cannot erase that
        mutation's optimistic patch.

        :returns: Signatures handed to the refetch handler now.
        """
        refetched: list[QuerySignature] = []
        for entry in self._matching(partial, "all"):
            entry.stale = True
            if not (refetch_now and entry.active and self.refetch_handler is not None):
                continue
            if self.is_held(entry.signature):
                self._deferred[entry.signature] = None
            else:
                refetched.append(entry.signature)
        for signature in refetched:
            self.refetch_handler(signature)
        if refetched:
            logger.debug("Refetching %s stale entries for %s", len(refetched), partial)
        return refetched

    def clear(self) -> None:
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()
        self._deferred.clear()
        self._entries.clear()

    # ------------------------------------------------------------------ #
    # MUTATION HOLDS
    # ------------------------------------------------------------------ #

    def hold(self, owner: Hashable, partials: Iterable[QuerySignature]) -> None:
        """Defer refetches of entries matching ``partials`` while ``owner`` is live."""

        self._holds[owner] = tuple(partials)

    def is_held(self, signature: QuerySignature) -> bool:
        return any(signature.matches(p) for partials in self._holds.values() for p in partials)

    def release_hold(self, owner: Hashable) -> list[QuerySignature]:
        """
        Drop the hold of ``owner`` and refetch deferred entries nobody holds any more.

        :returns: Signatures handed to the refetch handler.
        """
        if self._holds.pop(owner, None) is None:
            return []
        refetched: list[QuerySignature] = []
        for signature in [s for s in self._deferred if not self.is_held(s)]:
            del self._deferred[signature]
            entry = self._entries.get(signature)
            if entry is not None and entry.stale and entry.active and self.refetch_handler is not None:
                refetched.append(signature)
        for signature in refetched:
            self.refetch_handler(signature)
        if refetched:
            logger.debug("Refetching %s deferred entries after %s settled", len(refetched), owner)
        return refetched

    # ------------------------------------------------------------------ #
    # ACTIVITY
    # ------------------------------------------------------------------ #

    def observe(self, signature: QuerySignature) -> CacheEntry:
        entry = self.ensure(signature)
        entry.observers += 1
        return entry

    def release(self, signature: QuerySignature) -> None:
        entry = self._entries.get(signature)
        if entry is not None and entry.observers > 0:
            entry.observers -= 1

    # ------------------------------------------------------------------ #
    # IN-FLIGHT FETCHES
    # ------------------------------------------------------------------ #

    def track_fetch(self, signature: QuerySignature, task: asyncio.Task) -> None:
        """Register ``task`` as the outstanding fetch for ``signature``."""

        self._inflight[signature] = task
        task.add_done_callback(lambda t, sig=signature: self._untrack(sig, t))

    def _untrack(self, signature: QuerySignature, task: asyncio.Task) -> None:
        if self._inflight.get(signature) is task:
            del self._inflight[signature]

    def is_fetching(self, signature: QuerySignature) -> bool:
        task = self._inflight.get(signature)
        return task is not None and not task.done()

    def cancel_fetches(self, partial: QuerySignature) -> int:
        """Cancel outstanding fetches for signatures matching ``partial``."""

        cancelled = 0
        for signature, task in list(self._inflight.items()):
            if signature.matches(partial) and not task.done():
                task.cancel()
                del self._inflight[signature]
                cancelled += 1
        if cancelled:
            logger.debug("Cancelled %s in-flight fetches for %s", cancelled, partial)
        return cancelled


__all__ = ["CacheStore", "EntryState"]
