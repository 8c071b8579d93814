"""Entry points the UI calls to start optimistic mutations."""

from __future__ import annotations

import itertools
import logging

from threadcache.cache import CacheEntry, CacheStore
from threadcache.cache.signature import ALL_COMMENTS
from threadcache.config import validation
from threadcache.errors import ValidationError
from threadcache.invalidation import InvalidationPropagator
from threadcache.models import Comment, Session
from threadcache.notifications import Notifier
from threadcache.transport import Transport

from .base import MutationOutcome, MutationTracker, OptimisticMutation
from .comment import UNEXPECTED_ERROR, CreateComment, SubmissionResult
from .upvote import UpvoteComment, UpvotePost, UpvoteScope

logger = logging.getLogger(__name__)


class MutationOrchestrator:
    """Create, run and track optimistic mutations against one store."""

    def __init__(
        self,
        store: CacheStore,
        transport: Transport,
        *,
        session: Session | None = None,
        notifier: Notifier | None = None,
        propagator: InvalidationPropagator | None = None,
    ) -> None:
        self.store = store
        self.transport = transport
        self.session = session or Session()
        self.notifier = notifier or Notifier()
        self.propagator = propagator or InvalidationPropagator(store)
        self._tracker = MutationTracker()
        self._ids = itertools.count(1)
        self._pending: dict[int, OptimisticMutation] = {}

    # ------------------------------------------------------------------ #
    # Upvotes
    # ------------------------------------------------------------------ #

    async def toggle_upvote_post(self, post_id: int, scope: UpvoteScope | None = None) -> MutationOutcome:
        mutation = UpvotePost(
            self.store,
            self._tracker,
            next(self._ids),
            target_id=post_id,
            scope=scope or UpvoteScope.for_post(self.store, post_id),
            transport=self.transport,
            propagator=self.propagator,
            notifier=self.notifier,
            session=self.session,
        )
        return await self._run(mutation)

    async def toggle_upvote_comment(
        self, comment_id: int, scope: UpvoteScope | None = None
    ) -> MutationOutcome:
        """
        Toggle the upvote on a comment.

        :param comment_id: Target comment.
        :param scope: Views that may hold the comment. Defaults to the parent's
            reply list plus the post's comment lists, derived from a cached copy.
        :raises KeyError: No scope given and the comment is not cached anywhere.
        """
        if scope is None:
            comment = self.locate_comment(comment_id)
            if comment is None:
                raise KeyError(f"Comment {comment_id} is not cached; pass an explicit scope.")
            scope = UpvoteScope.for_comment(comment.post_id, comment.parent_comment_id)
        mutation = UpvoteComment(
            self.store,
            self._tracker,
            next(self._ids),
            target_id=comment_id,
            scope=scope,
            transport=self.transport,
            propagator=self.propagator,
            notifier=self.notifier,
            session=self.session,
        )
        return await self._run(mutation)

    # ------------------------------------------------------------------ #
    # Comments
    # ------------------------------------------------------------------ #

    async def submit_comment(self, parent_id: int, content: str, is_parent_comment: bool) -> SubmissionResult:
        """
        Create a comment under a post (or under a comment when ``is_parent_comment``).

        Never raises for transport or validation failures; the returned result
        carries inline field errors or a form-level error and keeps ``content``
        so the form stays usable for a retry.

        :raises DraftPendingError: A draft is already pending in the target collection.
        """
        if len(content) < validation.MIN_COMMENT_LENGTH:
            message = f"Comment must be at least {validation.MIN_COMMENT_LENGTH} characters"
            return SubmissionResult(ok=False, content=content, field_errors={"content": message})

        mutation = CreateComment(
            self.store,
            self._tracker,
            next(self._ids),
            parent_id=parent_id,
            content=content,
            is_parent_comment=is_parent_comment,
            transport=self.transport,
            notifier=self.notifier,
            session=self.session,
        )
        mutation.check_no_pending_draft()
        outcome = await self._run(mutation)

        if outcome.ok:
            return SubmissionResult(ok=True, content="", comment=outcome.result, outcome=outcome)
        if isinstance(outcome.error, ValidationError):
            return SubmissionResult(
                ok=False,
                content=content,
                field_errors={outcome.error.field: outcome.error.message},
                outcome=outcome,
            )
        return SubmissionResult(ok=False, content=content, form_error=UNEXPECTED_ERROR, outcome=outcome)

    # ------------------------------------------------------------------ #
    # Bookkeeping
    # ------------------------------------------------------------------ #

    async def _run(self, mutation: OptimisticMutation) -> MutationOutcome:
        self._pending[mutation.id] = mutation
        try:
            outcome = await mutation.run()
        finally:
            self._pending.pop(mutation.id, None)
        logger.info("%s %s finished: %s", mutation.label, mutation.id, outcome.state.value)
        return outcome

    def pending(self) -> list[OptimisticMutation]:
        return list(self._pending.values())

    def abandon(self, mutation_id: int) -> bool:
        mutation = self._pending.get(mutation_id)
        if mutation is None:
            return False
        mutation.abandon()
        return True

    def locate_comment(self, comment_id: int) -> Comment | None:
        """Return any cached copy of ``comment_id``."""

        found: list[Comment] = []

        def look(entry: CacheEntry) -> None:
            if not found:
                found.extend(entry.occurrences(comment_id)[:1])

        self.store.for_each_matching(ALL_COMMENTS, look)
        return found[0] if found else None


__all__ = ["MutationOrchestrator"]
