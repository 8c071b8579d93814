"""
Entity and page shapes exchanged with the discussion API.

Field names follow Python conventions; :meth:`from_api` constructors accept
the camelCase payloads the server emits. Entities are mutable because cache
entries patch them in place; every entry owns its own copies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, List, TypeVar

# Server-issued ids are positive; drafts use a reserved negative id.
DRAFT_COMMENT_ID = -1

T = TypeVar("T")


@dataclass(slots=True)
class Author:
    id: str
    username: str

    @classmethod
    def from_api(cls, raw: dict | None) -> "Author":
        raw = raw or {}
        return cls(id=str(raw.get("id") or ""), username=str(raw.get("username") or ""))


@dataclass(slots=True)
class UpvoteEdge:
    """Existence-only relation between a user and a comment."""

    user_id: str


@dataclass(slots=True)
class Post:
    id: int
    title: str
    points: int
    comment_count: int
    created_at: str
    author: Author
    is_upvoted: bool = False
    url: str | None = None
    content: str | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Post":
        return cls(
            id=int(raw["id"]),
            title=str(raw.get("title", "")),
            points=int(raw.get("points", 0)),
            comment_count=int(raw.get("commentCount", 0)),
            created_at=str(raw.get("createdAt", "")),
            author=Author.from_api(raw.get("author")),
            is_upvoted=bool(raw.get("isUpvoted", False)),
            url=raw.get("url"),
            content=raw.get("content"),
        )


@dataclass(slots=True)
class Comment:
    id: int
    content: str
    points: int
    depth: int
    comment_count: int
    created_at: str
    post_id: int | None
    author: Author
    user_id: str = ""
    parent_comment_id: int | None = None
    upvotes: List[UpvoteEdge] = field(default_factory=list)
    child_comments: List["Comment"] = field(default_factory=list)

    @property
    def is_upvoted(self) -> bool:
        """Derived from the presence of the current user's upvote edge."""

        return len(self.upvotes) > 0

    @property
    def is_draft(self) -> bool:
        return self.id < 0

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Comment":
        post_id = raw.get("postId")
        parent_id = raw.get("parentCommentId")
        return cls(
            id=int(raw["id"]),
            content=str(raw.get("content", "")),
            points=int(raw.get("points", 0)),
            depth=int(raw.get("depth", 0)),
            comment_count=int(raw.get("commentCount", 0)),
            created_at=str(raw.get("createdAt", "")),
            post_id=int(post_id) if post_id is not None else None,
            author=Author.from_api(raw.get("author")),
            user_id=str(raw.get("userId") or ""),
            parent_comment_id=int(parent_id) if parent_id is not None else None,
            upvotes=[UpvoteEdge(str(u.get("userId", ""))) for u in raw.get("commentUpvotes") or []],
            child_comments=[cls.from_api(c) for c in raw.get("childComments") or []],
        )


@dataclass(slots=True)
class Page(Generic[T]):
    """One server page; ``total_pages`` is recomputed by the server per fetch."""

    items: List[T]
    page: int
    total_pages: int


@dataclass(frozen=True, slots=True)
class UpvoteResult:
    """Authoritative upvote state returned by the server."""

    points: int
    is_upvoted: bool


@dataclass(frozen=True, slots=True)
class PostFilter:
    sort: str = "points"
    order: str = "desc"
    author: str | None = None
    site: str | None = None


@dataclass(frozen=True, slots=True)
class Session:
    """Locally known identity of the signed-in user."""

    user_id: str = ""
    username: str = ""


__all__ = [
    "DRAFT_COMMENT_ID",
    "Author",
    "Comment",
    "Page",
    "Post",
    "PostFilter",
    "Session",
    "UpvoteEdge",
    "UpvoteResult",
]
