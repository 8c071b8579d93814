"""
Optimistic mutation package.

Modules
=======

``base``
    The mutation lifecycle (:class:`OptimisticMutation`), per-entry field
    snapshots and the tracker that lets newer mutations supersede older ones.
``upvote``
    Toggle-upvote mutations for posts and comments plus :class:`UpvoteScope`.
``comment``
    Comment creation with a draft placeholder.
``orchestrator``
    :class:`MutationOrchestrator`, the entry point used by the client.
"""

from .base import MutationOutcome, MutationState
from .comment import SubmissionResult
from .orchestrator import MutationOrchestrator
from .upvote import UpvoteScope

__all__ = [
    "MutationOrchestrator",
    "MutationOutcome",
    "MutationState",
    "SubmissionResult",
    "UpvoteScope",
]
