"""
Abstract transport boundary.

The cache never talks to the network directly; it awaits these coroutines and
treats any :class:`~threadcache.errors.TransportError` as a recoverable
failure. Implementations must return fresh entity objects on every call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from threadcache.models import Comment, Page, Post, PostFilter, UpvoteResult


class Transport(ABC):
    """Request/response contract consumed by the cache."""

    @abstractmethod
    async def fetch_posts(self, post_filter: PostFilter, page: int, page_size: int) -> Page[Post]:
        """Fetch one page of the post feed."""

    @abstractmethod
    async def fetch_post(self, post_id: int) -> Post:
        """Fetch a single post; raise ``NotFoundError`` if it vanished."""

    @abstractmethod
    async def upvote_post(self, post_id: int) -> UpvoteResult:
        """Toggle the current user's upvote on a post."""

    @abstractmethod
    async def fetch_comments(
        self,
        post_id: int,
        page: int,
        page_size: int,
        sort: str,
        order: str,
        include_children: bool = True,
    ) -> Page[Comment]:
        """Fetch top-level comments of a post, optionally with inline children."""

    @abstractmethod
    async def fetch_replies(self, comment_id: int, page: int, page_size: int) -> Page[Comment]:
        """Fetch nested replies of a comment."""

    @abstractmethod
    async def create_comment(self, parent_id: int, content: str, is_parent_comment: bool) -> Comment:
        """Create a comment under a post, or under a comment when ``is_parent_comment``."""

    @abstractmethod
    async def upvote_comment(self, comment_id: int) -> UpvoteResult:
        """Toggle the current user's upvote on a comment."""
