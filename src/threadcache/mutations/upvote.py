"""Toggle-upvote mutations for posts and comments."""

from __future__ import annotations

import logging
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Hashable

from threadcache.cache import CacheEntry, CacheStore, QuerySignature
from threadcache.cache.signature import (
    ALL_COMMENTS,
    ALL_POSTS,
    POST,
    comment_replies_signature,
    post_comments_signature,
    post_signature,
)
from threadcache.invalidation import InvalidationPropagator
from threadcache.models import Session, UpvoteEdge, UpvoteResult
from threadcache.notifications import Notifier
from threadcache.transport import Transport

from .base import FieldSnapshot, MutationTracker, OptimisticMutation

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UpvoteScope:
    """Every (partial) signature that may hold the target entity."""

    signatures: tuple[QuerySignature, ...]

    @classmethod
    def for_post(cls, store: CacheStore, post_id: int) -> "UpvoteScope":
        """Detail entry plus every feed currently on screen."""

        feeds: list[QuerySignature] = []
        store.for_each_matching(ALL_POSTS, lambda e: feeds.append(e.signature), state="active")
        return cls((post_signature(post_id), *feeds))

    @classmethod
    def for_comment(cls, post_id: int | None, parent_comment_id: int | None) -> "UpvoteScope":
        """Parent's reply list (if nested) and every sort of the post's comments."""

        signatures = []
        if parent_comment_id is not None:
            signatures.append(comment_replies_signature(parent_comment_id))
        if post_id is not None:
            signatures.append(post_comments_signature(post_id))
        return cls(tuple(signatures))


class ToggleUpvote(OptimisticMutation):
    """Flip "is upvoted" and move points by one wherever the entity is cached."""

    kind = "entity"
    fields: tuple[str, ...] = ()
    family: tuple[QuerySignature, ...] = ()

    def __init__(
        self,
        store: CacheStore,
        tracker: MutationTracker,
        mutation_id: int,
        *,
        target_id: int,
        scope: UpvoteScope,
        transport: Transport,
        propagator: InvalidationPropagator,
        notifier: Notifier,
        session: Session,
    ) -> None:
        super().__init__(store, tracker, mutation_id)
        self.target_id = target_id
        self.upvote_scope = scope
        self.transport = transport
        self.propagator = propagator
        self.notifier = notifier
        self.session = session
        self.snapshot = FieldSnapshot(target_id, self.fields)

    @property
    def label(self) -> str:
        return f"upvote-{self.kind}"

    @property
    def key(self) -> Hashable:
        return (self.kind, self.target_id)

    def scope(self) -> list[QuerySignature]:
        return list(self.upvote_scope.signatures)

    def _entries(self) -> list[CacheEntry]:
        found: dict[QuerySignature, CacheEntry] = {}

        def collect(entry: CacheEntry) -> None:
            if entry.contains(self.target_id):
                found.setdefault(entry.signature, entry)

        for partial in self.upvote_scope.signatures:
            self.store.for_each_matching(partial, collect)
        return list(found.values())

    # ------------------------------------------------------------------ #
    # Lifecycle hooks
    # ------------------------------------------------------------------ #

    def capture(self) -> None:
        for entry in self._entries():
            self.snapshot.capture(entry.signature, entry.occurrences(self.target_id))

    def apply(self) -> None:
        entries = self._entries()
        nodes = [node for entry in entries for node in entry.occurrences(self.target_id)]
        if not nodes:
            logger.debug("%s %s: target not cached, nothing to predict", self.label, self.target_id)
            return
        # Direction comes from the first cached copy; every copy lands on it.
        upvote = not self.is_upvoted(nodes[0])
        for node in nodes:
            if self.is_upvoted(node) != upvote:
                self.set_state(node, upvote, node.points + (1 if upvote else -1))

    def reconcile(self, result: UpvoteResult) -> None:
        for entry in self._entries():
            for node in entry.occurrences(self.target_id):
                self.set_state(node, result.is_upvoted, result.points)

    def rollback(self) -> None:
        restored = self.snapshot.restore(self.store)
        logger.debug("%s %s: restored %s entries", self.label, self.target_id, restored)

    def after_success(self, result: UpvoteResult) -> None:
        self.propagator.propagate(
            self.family,
            self.target_id,
            lambda node: self.set_state(node, result.is_upvoted, result.points),
            exclude=self.upvote_scope.signatures,
        )

    def after_failure(self, exc: Exception) -> None:
        self.notifier.error(f"Failed to upvote {self.kind}", str(exc) or None)
        self.mark_scope_stale(refetch_now=True)

    # ------------------------------------------------------------------ #
    # Entity accessors
    # ------------------------------------------------------------------ #

    def is_upvoted(self, node: Any) -> bool:
        return bool(node.is_upvoted)

    @abstractmethod
    def set_state(self, node: Any, upvoted: bool, points: int) -> None:
        """Write the upvoted flag and point count onto one cached copy."""


class UpvotePost(ToggleUpvote):
    kind = "post"
    fields = ("points", "is_upvoted")
    family = (QuerySignature(POST), ALL_POSTS)

    def set_state(self, node: Any, upvoted: bool, points: int) -> None:
        node.points = points
        node.is_upvoted = upvoted

    async def request(self) -> UpvoteResult:
        return await self.transport.upvote_post(self.target_id)


class UpvoteComment(ToggleUpvote):
    kind = "comment"
    fields = ("points", "upvotes")
    family = (ALL_COMMENTS,)

    def set_state(self, node: Any, upvoted: bool, points: int) -> None:
        node.points = points
        # "Is upvoted" lives in the edge list, never in a flag.
        node.upvotes = [UpvoteEdge(self.session.user_id)] if upvoted else []

    async def request(self) -> UpvoteResult:
        return await self.transport.upvote_comment(self.target_id)


__all__ = ["ToggleUpvote", "UpvoteComment", "UpvotePost", "UpvoteScope"]
