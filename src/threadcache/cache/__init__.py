"""
Client-side query cache package.

Modules
=======

``signature``
    Defines :class:`~threadcache.cache.signature.QuerySignature`, the structural
    cache key, plus constructors for the four view families (post feeds, post
    detail, post-level comments, nested replies).
``entry``
    Provides :class:`~threadcache.cache.entry.CacheEntry` and
    :class:`~threadcache.cache.entry.PagedValue`, the per-signature value with
    its id -> occurrences index.
``store``
    Implements :class:`~threadcache.cache.store.CacheStore`: reads, writes,
    superset matching, staleness and in-flight fetch tracking.
"""

from .entry import CacheEntry, PagedValue
from .signature import QuerySignature
from .store import CacheStore

__all__ = ["CacheEntry", "CacheStore", "PagedValue", "QuerySignature"]
