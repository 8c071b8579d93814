import asyncio
import copy
import os
import sys
from collections import defaultdict
from pathlib import Path

import pytest

# Add src/ to sys.path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

# Ignore any local config.toml during tests
os.environ.setdefault("THREADCACHE_CONFIG", str(Path(__file__).resolve().parent / "missing.toml"))
os.environ.setdefault("API_BASE_URL", "http://test")

from threadcache.client import DiscussionClient
from threadcache.models import Author, Comment, Page, Post, Session, UpvoteEdge
from threadcache.transport import Transport


class FakeTransport(Transport):
    """
    In-memory transport.

    ``pages`` holds the server state keyed by ``(route, owner_id, page)``.
    ``script(name, *outcomes)`` queues one-shot outcomes for a route: a value,
    an exception to raise, or an ``asyncio.Future`` the test resolves later.
    Every value handed out is a deep copy so cache entries never share objects.
    """

    def __init__(self):
        self.calls = []
        self.pages = {}
        self.scripts = defaultdict(list)

    def script(self, name, *outcomes):
        self.scripts[name].extend(outcomes)

    def count(self, name):
        return sum(1 for call, _ in self.calls if call == name)

    async def _reply(self, name, args, default=None):
        self.calls.append((name, args))
        queue = self.scripts.get(name)
        outcome = queue.pop(0) if queue else default
        if isinstance(outcome, asyncio.Future):
            outcome = await outcome
        if isinstance(outcome, BaseException):
            raise outcome
        return copy.deepcopy(outcome)

    async def fetch_posts(self, post_filter, page, page_size):
        return await self._reply(
            "fetch_posts", (post_filter, page), self.pages.get(("posts", post_filter.sort, page))
        )

    async def fetch_post(self, post_id):
        return await self._reply("fetch_post", (post_id,), self.pages.get(("post", post_id, 1)))

    async def upvote_post(self, post_id):
        return await self._reply("upvote_post", (post_id,))

    async def fetch_comments(self, post_id, page, page_size, sort, order, include_children=True):
        return await self._reply(
            "fetch_comments", (post_id, page, sort), self.pages.get(("comments", post_id, page))
        )

    async def fetch_replies(self, comment_id, page, page_size):
        return await self._reply(
            "fetch_replies", (comment_id, page), self.pages.get(("replies", comment_id, page))
        )

    async def create_comment(self, parent_id, content, is_parent_comment):
        return await self._reply("create_comment", (parent_id, content, is_parent_comment))

    async def upvote_comment(self, comment_id):
        return await self._reply("upvote_comment", (comment_id,))


def make_post(post_id, points=10, is_upvoted=False, comment_count=0):
    return Post(
        id=post_id,
        title=f"Post {post_id}",
        points=points,
        comment_count=comment_count,
        created_at="2024-01-01T00:00:00Z",
        author=Author("u2", "bob"),
        is_upvoted=is_upvoted,
    )


def make_comment(
    comment_id,
    post_id=1,
    parent=None,
    depth=0,
    points=1,
    upvoted=False,
    comment_count=0,
    children=(),
):
    return Comment(
        id=comment_id,
        content=f"comment {comment_id}",
        points=points,
        depth=depth,
        comment_count=comment_count,
        created_at="2024-01-01T00:00:00Z",
        post_id=post_id,
        author=Author("u2", "bob"),
        user_id="u2",
        parent_comment_id=parent,
        upvotes=[UpvoteEdge("u1")] if upvoted else [],
        child_comments=list(children),
    )


async def settle(rounds=5):
    """Let background refetch tasks run to completion."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def session():
    return Session(user_id="u1", username="alice")


@pytest.fixture
def client(transport, session):
    return DiscussionClient(transport, session=session)


__all__ = ["FakeTransport", "make_comment", "make_post", "settle", "Page"]
