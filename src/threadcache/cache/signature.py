"""
Structured cache keys.

A :class:`QuerySignature` names one cached view: the resource kind, the owner
axis for comment collections (``"post"`` or ``"comment"``), the owning entity
id, and the filter/sort parameters. Equality is structural. The same class
doubles as a partial signature: ``None`` fields are wildcards and ``params``
only has to be a subset of the candidate's parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from threadcache.models import PostFilter

POSTS = "posts"
POST = "post"
COMMENTS = "comments"

OWNER_POST = "post"
OWNER_COMMENT = "comment"

Params = Tuple[Tuple[str, Any], ...]


def _params(**values: Any) -> Params:
    # None means "unset": drop it so it never participates in equality.
    return tuple(sorted((k, v) for k, v in values.items() if v is not None))


@dataclass(frozen=True, slots=True)
class QuerySignature:
    kind: str
    owner: str | None = None
    entity_id: int | None = None
    params: Params = ()

    def matches(self, partial: "QuerySignature") -> bool:
        """Return ``True`` if ``self`` is a superset-match of ``partial``."""

        if partial.kind != self.kind:
            return False
        if partial.owner is not None and partial.owner != self.owner:
            return False
        if partial.entity_id is not None and partial.entity_id != self.entity_id:
            return False
        own = dict(self.params)
        return all(k in own and own[k] == v for k, v in partial.params)

    def __str__(self) -> str:
        parts = [self.kind]
        if self.owner is not None:
            parts.append(self.owner)
        if self.entity_id is not None:
            parts.append(str(self.entity_id))
        parts.extend(f"{k}={v}" for k, v in self.params)
        return ":".join(parts)


def posts_signature(post_filter: PostFilter | None = None) -> QuerySignature:
    f = post_filter or PostFilter()
    return QuerySignature(
        POSTS, params=_params(sort=f.sort, order=f.order, author=f.author, site=f.site)
    )


def post_signature(post_id: int) -> QuerySignature:
    return QuerySignature(POST, entity_id=post_id)


def post_comments_signature(
    post_id: int | None, sort: str | None = None, order: str | None = None
) -> QuerySignature:
    """Post-level comment collection; leave sort/order unset for a partial key."""

    return QuerySignature(COMMENTS, OWNER_POST, post_id, _params(sort=sort, order=order))


def comment_replies_signature(comment_id: int | None) -> QuerySignature:
    return QuerySignature(COMMENTS, OWNER_COMMENT, comment_id)


ALL_POSTS = QuerySignature(POSTS)
ALL_COMMENTS = QuerySignature(COMMENTS)


__all__ = [
    "ALL_COMMENTS",
    "ALL_POSTS",
    "COMMENTS",
    "OWNER_COMMENT",
    "OWNER_POST",
    "POST",
    "POSTS",
    "QuerySignature",
    "comment_replies_signature",
    "post_comments_signature",
    "post_signature",
    "posts_signature",
]
