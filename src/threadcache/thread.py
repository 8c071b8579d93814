"""
Rebuild visual nesting from parent pointers.

Cached collections store comments flat (one list per reply axis); the thread
shape is reconstructed on demand from ``parent_comment_id``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from threadcache.models import Comment


@dataclass(slots=True)
class ThreadNode:
    comment: Comment
    children: List["ThreadNode"] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return self.comment.depth


def nest(comments: Iterable[Comment]) -> list[ThreadNode]:
    """
    Arrange ``comments`` into a forest ordered as first seen.

    The first occurrence of an id wins. Comments whose parent is not among
    ``comments`` become roots.
    """
    nodes: dict[int, ThreadNode] = {}
    order: list[int] = []
    for comment in comments:
        if comment.id in nodes:
            continue
        nodes[comment.id] = ThreadNode(comment)
        order.append(comment.id)

    roots: list[ThreadNode] = []
    for cid in order:
        node = nodes[cid]
        parent = nodes.get(node.comment.parent_comment_id) if node.comment.parent_comment_id is not None else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots


def flatten(roots: Iterable[ThreadNode]) -> list[Comment]:
    """Depth-first pre-order walk, the order a threaded view renders in."""

    out: list[Comment] = []
    stack = list(reversed(list(roots)))
    while stack:
        node = stack.pop()
        out.append(node.comment)
        stack.extend(reversed(node.children))
    return out


__all__ = ["ThreadNode", "flatten", "nest"]
