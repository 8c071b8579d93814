from threadcache.cache import CacheStore, PagedValue
from threadcache.cache.signature import (
    ALL_COMMENTS,
    post_comments_signature,
    comment_replies_signature,
)
from threadcache.invalidation import InvalidationPropagator
from threadcache.models import Page

from conftest import make_comment


def _store_with_copies():
    store = CacheStore()
    points = post_comments_signature(1, "points", "desc")
    recent = post_comments_signature(1, "recent", "desc")
    replies = comment_replies_signature(1)
    store.write(points, PagedValue([Page([make_comment(1, children=[make_comment(5, parent=1, depth=1)])], 1, 1)]))
    store.write(recent, PagedValue([Page([make_comment(5, parent=1, depth=1)], 1, 1)]))
    store.write(replies, PagedValue([Page([make_comment(5, parent=1, depth=1)], 1, 1)]))
    return store, points, recent, replies


def _bump(node):
    node.points = 9


def test_active_entries_patched_inactive_flagged():
    store, points, recent, replies = _store_with_copies()
    store.observe(points)

    report = InvalidationPropagator(store).propagate([ALL_COMMENTS], 5, _bump)

    assert report.patched == [points]
    assert set(report.staled) == {recent, replies}
    assert store.read(points).occurrences(5)[0].points == 9
    assert store.read(recent).occurrences(5)[0].points == 1
    assert store.entry(recent).stale
    assert not store.entry(points).stale


def test_excluded_and_unrelated_entries_untouched():
    store, points, recent, replies = _store_with_copies()
    for sig in (points, recent, replies):
        store.observe(sig)

    report = InvalidationPropagator(store).propagate(
        [ALL_COMMENTS, post_comments_signature(1)], 5, _bump, exclude=[comment_replies_signature(1)]
    )

    assert sorted(map(str, report.patched)) == sorted(map(str, [points, recent]))
    assert report.staled == []
    assert store.read(replies).occurrences(5)[0].points == 1

    empty = InvalidationPropagator(store).propagate([ALL_COMMENTS], 404, _bump)
    assert empty.patched == [] and empty.staled == []
