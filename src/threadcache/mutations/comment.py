"""
Comment creation with a draft placeholder.

While the request is in flight a draft comment (reserved negative id) sits at
the head of page 1 of every cached view of the target collection. On success
the draft is swapped for the server's comment; on failure the page is put back
the way it was. Validation failures are reported against the input field,
anything else becomes a dismissible notification.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from threadcache.cache import CacheEntry, CacheStore, QuerySignature
from threadcache.cache.signature import (
    ALL_COMMENTS,
    comment_replies_signature,
    post_comments_signature,
    post_signature,
)
from threadcache.errors import DraftPendingError, ValidationError
from threadcache.models import DRAFT_COMMENT_ID, Author, Comment, Session
from threadcache.notifications import Notifier
from threadcache.transport import Transport

from .base import MutationOutcome, MutationTracker, OptimisticMutation

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR = "Unexpected error"


@dataclass(slots=True)
class SubmissionResult:
    """What a comment form needs after submitting."""

    ok: bool
    content: str
    comment: Comment | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    form_error: str | None = None
    outcome: MutationOutcome | None = None


class CreateComment(OptimisticMutation):
    label = "create-comment"

    def __init__(
        self,
        store: CacheStore,
        tracker: MutationTracker,
        mutation_id: int,
        *,
        parent_id: int,
        content: str,
        is_parent_comment: bool,
        transport: Transport,
        notifier: Notifier,
        session: Session,
    ) -> None:
        super().__init__(store, tracker, mutation_id)
        self.parent_id = parent_id
        self.content = content
        self.is_parent_comment = is_parent_comment
        self.transport = transport
        self.notifier = notifier
        self.session = session
        self.target = (
            comment_replies_signature(parent_id)
            if is_parent_comment
            else post_comments_signature(parent_id)
        )
        self.draft = self._build_draft()
        # signature -> page-1 items before the draft went in
        self.snapshot: dict[QuerySignature, list[Any]] = {}

    def scope(self) -> list[QuerySignature]:
        return [self.target]

    def _entries(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []

        def collect(entry: CacheEntry) -> None:
            if entry.paged is not None and entry.paged.pages:
                entries.append(entry)

        self.store.for_each_matching(self.target, collect)
        return entries

    def _build_draft(self) -> Comment:
        depth = 0
        post_id: int | None = None if self.is_parent_comment else self.parent_id
        if self.is_parent_comment:
            parent = self._find_parent()
            if parent is not None:
                depth = parent.depth + 1
                post_id = parent.post_id
        return Comment(
            id=DRAFT_COMMENT_ID,
            content=self.content,
            points=0,
            depth=depth,
            comment_count=0,
            created_at=datetime.now(timezone.utc).isoformat(),
            post_id=post_id,
            author=Author(id=self.session.user_id, username=self.session.username),
            user_id=self.session.user_id,
            parent_comment_id=self.parent_id if self.is_parent_comment else None,
        )

    def _find_parent(self) -> Comment | None:
        found: list[Comment] = []

        def look(entry: CacheEntry) -> None:
            if not found:
                found.extend(entry.occurrences(self.parent_id)[:1])

        self.store.for_each_matching(ALL_COMMENTS, look)
        return found[0] if found else None

    # ------------------------------------------------------------------ #
    # Lifecycle hooks
    # ------------------------------------------------------------------ #

    def check_no_pending_draft(self) -> None:
        for entry in self._entries():
            if any(item.id == DRAFT_COMMENT_ID for item in entry.paged.pages[0].items):
                raise DraftPendingError(f"A comment is already being submitted to {entry.signature}")

    def capture(self) -> None:
        for entry in self._entries():
            self.snapshot[entry.signature] = list(entry.paged.pages[0].items)

    def apply(self) -> None:
        for entry in self._entries():
            if entry.signature in self.snapshot:
                entry.paged.prepend(copy.deepcopy(self.draft))

    async def request(self) -> Comment:
        return await self.transport.create_comment(self.parent_id, self.content, self.is_parent_comment)

    def reconcile(self, result: Comment) -> None:
        for entry in self._entries():
            entry.paged.remove(DRAFT_COMMENT_ID)
            # A reload that landed after the commit may already list the comment.
            if not entry.paged.contains(result.id):
                entry.paged.prepend(copy.deepcopy(result))

    def rollback(self) -> None:
        for entry in self._entries():
            entry.paged.remove(DRAFT_COMMENT_ID)
            before = self.snapshot.get(entry.signature)
            page = entry.paged.pages[0]
            # Put back the exact objects unless another writer changed the page meanwhile.
            if before is not None and [i.id for i in page.items] == [i.id for i in before]:
                page.items[:] = before
                entry.paged.reindex()

    def after_success(self, result: Comment) -> None:
        post_id = result.post_id if result.post_id is not None else self.draft.post_id
        if post_id is not None:
            # The post's comment counter changed server side.
            self.store.mark_stale(post_signature(post_id), refetch_now=True)

    def after_failure(self, exc: Exception) -> None:
        if isinstance(exc, ValidationError):
            return
        self.notifier.error("Failed to create comment", str(exc) or None)
        self.mark_scope_stale(refetch_now=True)


__all__ = ["CreateComment", "SubmissionResult", "UNEXPECTED_ERROR"]
