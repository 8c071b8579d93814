"""
threadcache: a client-side cache for paginated posts and threaded comments.

:class:`~threadcache.client.DiscussionClient` is the entry point. It keeps every
view of a post or comment consistent under optimistic upvotes and comment
creation, rolling back per entry when the server rejects a change.
"""

from .client import DiscussionClient
from .errors import DraftPendingError, NotFoundError, TransportError, ValidationError
from .models import Comment, Page, Post, PostFilter, Session, UpvoteResult
from .transport import HttpTransport, Transport

__all__ = [
    "Comment",
    "DiscussionClient",
    "DraftPendingError",
    "HttpTransport",
    "NotFoundError",
    "Page",
    "Post",
    "PostFilter",
    "Session",
    "Transport",
    "TransportError",
    "UpvoteResult",
    "ValidationError",
]
