"""
Optimistic mutation lifecycle.

Every user action becomes one :class:`OptimisticMutation` that walks a single
path::

    PENDING -> APPLIED -> SUCCEEDED | FAILED | SUPERSEDED | ABANDONED

``prepare`` cancels in-flight loads, captures the snapshot and applies the
predicted patch synchronously. The only suspension point is the transport
call inside ``run``. A mutation resolves at most once; a late resolution for
an abandoned mutation is ignored.

While it is live a mutation holds its scope in the store: a refetch requested
for one of those entries waits until every holder has settled.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable, Iterable

from threadcache.cache import CacheStore, QuerySignature
from threadcache.errors import TransportError, ValidationError

logger = logging.getLogger(__name__)


class MutationState(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SUPERSEDED = "superseded"
    ABANDONED = "abandoned"


@dataclass(slots=True)
class MutationOutcome:
    mutation_id: int
    state: MutationState
    result: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.state is MutationState.SUCCEEDED


class MutationTracker:
    """
    Track live mutations per entity so older ones can stand down.

    Mutation ids grow monotonically. A mutation may reconcile only while it is
    the newest live one for its key; a newer success stays recorded until the
    older mutations on that key have settled.
    """

    def __init__(self) -> None:
        self._live: dict[Hashable, dict[int, bool]] = {}

    def begin(self, key: Hashable | None, mutation_id: int) -> None:
        if key is not None:
            self._live.setdefault(key, {})[mutation_id] = False

    def is_latest(self, key: Hashable | None, mutation_id: int) -> bool:
        if key is None:
            return True
        live = self._live.get(key)
        return not live or max(live) == mutation_id

    def finish(self, key: Hashable | None, mutation_id: int, succeeded: bool = False) -> None:
        live = self._live.get(key) if key is not None else None
        if live is None:
            return
        if succeeded:
            live[mutation_id] = True
        else:
            live.pop(mutation_id, None)
        if all(live.values()):
            del self._live[key]


@dataclass
class FieldSnapshot:
    """
    Per-entry copies of selected fields of one entity.

    Only the captured fields of the captured entity are ever written back, so
    restoring never erases another mutation's patch on a different entity or
    a different field of the same entry.
    """

    entity_id: int
    fields: tuple[str, ...]
    captured: dict[QuerySignature, list[dict[str, Any]]] = field(default_factory=dict)

    @property
    def signatures(self) -> list[QuerySignature]:
        return list(self.captured)

    def capture(self, signature: QuerySignature, occurrences: Iterable[Any]) -> None:
        self.captured[signature] = [
            {name: copy.deepcopy(getattr(node, name)) for name in self.fields}
            for node in occurrences
        ]

    def restore(self, store: CacheStore) -> int:
        restored = 0
        for signature, saved in self.captured.items():
            entry = store.entry(signature)
            if entry is None or not saved:
                continue
            nodes = entry.occurrences(self.entity_id)
            for pos, node in enumerate(nodes):
                # Positional when the shape is unchanged, else the first capture.
                values = saved[pos] if len(nodes) == len(saved) else saved[0]
                for name, value in values.items():
                    setattr(node, name, copy.deepcopy(value))
            restored += 1
        return restored


class OptimisticMutation(ABC):
    """One optimistic action: snapshot, apply, request, reconcile or roll back."""

    #: Label used for logs and notifications.
    label = "mutation"

    def __init__(self, store: CacheStore, tracker: MutationTracker, mutation_id: int) -> None:
        self.store = store
        self.tracker = tracker
        self.id = mutation_id
        self.state = MutationState.PENDING

    @property
    def key(self) -> Hashable | None:
        """Entity key used to detect superseding mutations (``None``: never)."""

        return None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def prepare(self) -> None:
        """Cancel loads, capture the snapshot and apply the predicted patch."""

        if self.state is not MutationState.PENDING:
            raise RuntimeError(f"{self.label} {self.id} already prepared")
        for partial in self.scope():
            self.store.cancel_fetches(partial)
        self.capture()
        self.tracker.begin(self.key, self.id)
        self.store.hold(self.id, self.scope())
        self.apply()
        self.state = MutationState.APPLIED
        logger.debug("Applied %s %s", self.label, self.id)

    async def run(self) -> MutationOutcome:
        if self.state is MutationState.PENDING:
            self.prepare()
        try:
            result = await self.request()
        except (TransportError, ValidationError) as exc:
            return self.resolve_failure(exc)
        except BaseException:
            # Bugs and cancellation still leave the cache pre-mutation equivalent.
            if self.state is MutationState.APPLIED:
                if self.tracker.is_latest(self.key, self.id):
                    self.rollback()
                else:
                    self.mark_scope_stale(refetch_now=False)
                self._settle(MutationState.FAILED)
            raise
        return self.resolve_success(result)

    def resolve_success(self, result: Any) -> MutationOutcome:
        if self.state is not MutationState.APPLIED:
            logger.debug("Ignoring late success for %s %s (%s)", self.label, self.id, self.state.value)
            return MutationOutcome(self.id, self.state, result=result)
        if not self.tracker.is_latest(self.key, self.id):
            self._settle(MutationState.SUPERSEDED)
            return MutationOutcome(self.id, self.state, result=result)
        self.reconcile(result)
        self._settle(MutationState.SUCCEEDED)
        self.after_success(result)
        return MutationOutcome(self.id, self.state, result=result)

    def resolve_failure(self, exc: Exception) -> MutationOutcome:
        if self.state is not MutationState.APPLIED:
            logger.debug("Ignoring late failure for %s %s (%s)", self.label, self.id, self.state.value)
            return MutationOutcome(self.id, self.state, error=exc)
        if not self.tracker.is_latest(self.key, self.id):
            # A newer mutation owns these fields and its resolution settles them.
            self.mark_scope_stale(refetch_now=False)
            self._settle(MutationState.SUPERSEDED)
            return MutationOutcome(self.id, self.state, error=exc)
        self.rollback()
        self._settle(MutationState.FAILED)
        self.after_failure(exc)
        return MutationOutcome(self.id, self.state, error=exc)

    def abandon(self) -> None:
        """Stop caring about the outcome; whatever arrives later is ignored."""

        if self.state in (MutationState.PENDING, MutationState.APPLIED):
            applied = self.state is MutationState.APPLIED
            latest = self.tracker.is_latest(self.key, self.id)
            self._settle(MutationState.ABANDONED)
            if applied:
                self.mark_scope_stale(refetch_now=latest)

    def _settle(self, state: MutationState) -> None:
        self.state = state
        self.tracker.finish(self.key, self.id, succeeded=state is MutationState.SUCCEEDED)
        self.store.release_hold(self.id)
        logger.debug("%s %s -> %s", self.label, self.id, state.value)

    # ------------------------------------------------------------------ #
    # Hooks
    # ------------------------------------------------------------------ #

    @abstractmethod
    def scope(self) -> list[QuerySignature]:
        """Partial signatures this mutation may patch."""

    @abstractmethod
    def capture(self) -> None:
        """Snapshot exactly the fields/keys ``apply`` will touch."""

    @abstractmethod
    def apply(self) -> None:
        """Write the predicted state."""

    @abstractmethod
    async def request(self) -> Any:
        """Issue the transport call."""

    @abstractmethod
    def reconcile(self, result: Any) -> None:
        """Replace predicted values with the authoritative ones."""

    @abstractmethod
    def rollback(self) -> None:
        """Undo ``apply`` using the snapshot."""

    def mark_scope_stale(self, refetch_now: bool = True) -> None:
        for partial in self.scope():
            self.store.mark_stale(partial, refetch_now=refetch_now)

    def after_success(self, result: Any) -> None:
        pass

    def after_failure(self, exc: Exception) -> None:
        pass


__all__ = [
    "FieldSnapshot",
    "MutationOutcome",
    "MutationState",
    "MutationTracker",
    "OptimisticMutation",
]
