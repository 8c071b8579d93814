"""
UI-facing facade.

:class:`DiscussionClient` wires the store, the query accessors and the mutation
orchestrator together. Accessors are memoized per signature so every view of
the same signature shares one query object and one cache entry.
"""

from __future__ import annotations

import logging
from typing import Iterable

from threadcache.cache import CacheStore, PagedValue, QuerySignature
from threadcache.cache.signature import (
    comment_replies_signature,
    post_comments_signature,
    post_signature,
    posts_signature,
)
from threadcache.config import pagination
from threadcache.models import Comment, PostFilter, Session
from threadcache.mutations import MutationOrchestrator, MutationOutcome, SubmissionResult, UpvoteScope
from threadcache.notifications import Notifier
from threadcache.pagination import PaginatedQuery, ReplyQuery
from threadcache.queries import EntityQuery, Query
from threadcache.thread import ThreadNode, nest
from threadcache.transport import Transport

logger = logging.getLogger(__name__)


class DiscussionClient:
    def __init__(
        self,
        transport: Transport,
        *,
        session: Session | None = None,
        notifier: Notifier | None = None,
        store: CacheStore | None = None,
    ) -> None:
        self.transport = transport
        self.store = store or CacheStore()
        self.store.refetch_handler = self._refetch
        self.notifier = notifier or Notifier()
        self.orchestrator = MutationOrchestrator(
            self.store, transport, session=session, notifier=self.notifier
        )
        self._queries: dict[QuerySignature, Query] = {}

    @property
    def session(self) -> Session:
        return self.orchestrator.session

    @session.setter
    def session(self, value: Session) -> None:
        self.orchestrator.session = value

    # ------------------------------------------------------------------ #
    # READ accessors
    # ------------------------------------------------------------------ #

    def posts(self, post_filter: PostFilter | None = None) -> PaginatedQuery:
        post_filter = post_filter or PostFilter(pagination.DEFAULT_SORT, pagination.DEFAULT_ORDER)
        signature = posts_signature(post_filter)
        query = self._queries.get(signature)
        if query is None:
            query = PaginatedQuery(
                self.store,
                signature,
                lambda page: self.transport.fetch_posts(post_filter, page, pagination.POSTS_PAGE_SIZE),
            )
            self._queries[signature] = query
        return query

    def post(self, post_id: int) -> EntityQuery:
        signature = post_signature(post_id)
        query = self._queries.get(signature)
        if query is None:
            query = EntityQuery(self.store, signature, lambda: self.transport.fetch_post(post_id))
            self._queries[signature] = query
        return query

    def post_comments(self, post_id: int, sort: str | None = None, order: str | None = None) -> PaginatedQuery:
        sort = sort or pagination.DEFAULT_SORT
        order = order or pagination.DEFAULT_ORDER
        signature = post_comments_signature(post_id, sort, order)
        query = self._queries.get(signature)
        if query is None:
            query = PaginatedQuery(
                self.store,
                signature,
                lambda page: self.transport.fetch_comments(
                    post_id, page, pagination.COMMENTS_PAGE_SIZE, sort, order, include_children=True
                ),
            )
            self._queries[signature] = query
        return query

    def comment_replies(self, comment: Comment) -> ReplyQuery:
        """Reply list of ``comment``, seeded from its inline children on first access."""

        signature = comment_replies_signature(comment.id)
        query = self._queries.get(signature)
        if query is None:
            query = ReplyQuery(
                self.store,
                comment,
                lambda page: self.transport.fetch_replies(comment.id, page, pagination.REPLY_PAGE_SIZE),
                pagination.REPLY_PAGE_SIZE,
            )
            self._queries[signature] = query
        return query

    def thread(self, post_id: int, sort: str | None = None, order: str | None = None) -> list[ThreadNode]:
        """Nest the loaded comments of ``post_id`` using parent pointers."""

        collected: list[Comment] = []

        def walk(comments: Iterable[Comment]) -> None:
            for comment in comments:
                collected.append(comment)
                replies = self.store.read(comment_replies_signature(comment.id))
                walk(replies.items if isinstance(replies, PagedValue) else comment.child_comments)

        walk(self.post_comments(post_id, sort, order).items)
        return nest(collected)

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    async def toggle_upvote_post(self, post_id: int) -> MutationOutcome:
        return await self.orchestrator.toggle_upvote_post(post_id)

    async def toggle_upvote_comment(self, comment_id: int, scope: UpvoteScope | None = None) -> MutationOutcome:
        return await self.orchestrator.toggle_upvote_comment(comment_id, scope)

    async def submit_comment(self, parent_id: int, content: str, is_parent_comment: bool) -> SubmissionResult:
        return await self.orchestrator.submit_comment(parent_id, content, is_parent_comment)

    # ------------------------------------------------------------------ #
    # MAINTENANCE
    # ------------------------------------------------------------------ #

    def _refetch(self, signature: QuerySignature) -> None:
        query = self._queries.get(signature)
        if query is None:
            logger.debug("No accessor for %s; it stays stale", signature)
            return
        query.schedule_refetch()

    def clear(self) -> None:
        self.store.clear()
        self._queries.clear()


__all__ = ["DiscussionClient"]
