import asyncio

import pytest

from threadcache.cache import CacheStore, PagedValue, QuerySignature
from threadcache.cache.signature import (
    ALL_COMMENTS,
    ALL_POSTS,
    comment_replies_signature,
    post_comments_signature,
    post_signature,
    posts_signature,
)
from threadcache.models import Page, PostFilter

from conftest import make_comment, make_post


def test_partial_signature_matching():
    full = post_comments_signature(1, "points", "desc")

    assert full.matches(post_comments_signature(1))
    assert full.matches(ALL_COMMENTS)
    assert full.matches(QuerySignature("comments", params=(("sort", "points"),)))
    assert not full.matches(post_comments_signature(2))
    assert not full.matches(comment_replies_signature(1))
    assert not full.matches(post_comments_signature(1, "recent"))
    assert not full.matches(ALL_POSTS)


def test_signature_equality_is_structural():
    a = posts_signature(PostFilter(sort="recent", author="bob"))
    b = posts_signature(PostFilter(sort="recent", author="bob"))
    c = posts_signature(PostFilter(sort="recent", author="carol"))

    assert a == b and hash(a) == hash(b)
    assert a != c
    assert dict(a.params)["author"] == "bob"
    assert "site" not in dict(a.params)


def test_paged_value_indexes_inline_children():
    child = make_comment(5, parent=1, depth=1)
    parent = make_comment(1, comment_count=1, children=[child])
    value = PagedValue([Page([parent, make_comment(2)], 1, 1)])

    assert [c.id for c in value.items] == [1, 2]
    assert value.occurrences(5) == [child]
    assert value.contains(2)
    assert not value.contains(99)


def test_paged_value_prepend_and_remove_refresh_index():
    value = PagedValue([Page([make_comment(1)], 1, 1)])
    assert value.contains(1)

    assert value.prepend(make_comment(-1))
    assert value.contains(-1)
    assert value.remove(-1) == 1
    assert not value.contains(-1)
    assert [c.id for c in value.items] == [1]

    assert PagedValue().prepend(make_comment(3)) is False


def test_total_pages_trusts_newest_page():
    value = PagedValue([Page([make_post(1)], 1, 3)])
    value.replace_page(Page([make_post(2)], 2, 2))

    assert value.total_pages == 2
    assert value.highest_page == 2


def test_for_each_matching_filters_by_activity():
    store = CacheStore()
    active = posts_signature(PostFilter())
    inactive = posts_signature(PostFilter(sort="recent"))
    store.write(active, PagedValue())
    store.write(inactive, PagedValue())
    store.observe(active)

    seen = []
    assert store.for_each_matching(ALL_POSTS, lambda e: seen.append(e.signature), state="active") == 1
    assert seen == [active]
    assert store.for_each_matching(ALL_POSTS, lambda e: None, state="inactive") == 1
    assert store.for_each_matching(ALL_POSTS, lambda e: None) == 2


def test_mark_stale_refetches_only_active_entries():
    refetched = []
    store = CacheStore(refetch_handler=refetched.append)
    active = post_signature(1)
    inactive = post_signature(2)
    store.write(active, make_post(1))
    store.write(inactive, make_post(2))
    store.observe(active)

    result = store.mark_stale(QuerySignature("post"), refetch_now=True)

    assert result == [active]
    assert refetched == [active]
    assert store.entry(active).stale and store.entry(inactive).stale

    store.write(active, make_post(1))
    assert not store.entry(active).stale


def test_mark_stale_without_refetch():
    refetched = []
    store = CacheStore(refetch_handler=refetched.append)
    sig = post_signature(1)
    store.write(sig, make_post(1))
    store.observe(sig)

    store.mark_stale(sig)

    assert store.entry(sig).stale
    assert refetched == []


def test_release_never_goes_negative():
    store = CacheStore()
    sig = post_signature(1)
    store.observe(sig)
    store.release(sig)
    store.release(sig)

    assert store.entry(sig).observers == 0
    assert not store.entry(sig).active


@pytest.mark.asyncio
async def test_cancel_fetches_matches_partial_signature():
    store = CacheStore()
    blocker = asyncio.get_running_loop().create_future()
    points = post_comments_signature(1, "points", "desc")
    recent = post_comments_signature(1, "recent", "desc")
    other = post_comments_signature(2, "points", "desc")
    tasks = {sig: asyncio.ensure_future(asyncio.shield(blocker)) for sig in (points, recent, other)}
    for sig, task in tasks.items():
        store.track_fetch(sig, task)

    assert store.cancel_fetches(post_comments_signature(1)) == 2
    await asyncio.sleep(0)

    assert tasks[points].cancelled() and tasks[recent].cancelled()
    assert store.is_fetching(other)
    assert not store.is_fetching(points)

    blocker.set_result(None)
    await tasks[other]
    assert not store.is_fetching(other)


@pytest.mark.asyncio
async def test_clear_cancels_and_drops_everything():
    store = CacheStore()
    sig = post_signature(1)
    store.write(sig, make_post(1))
    task = asyncio.ensure_future(asyncio.sleep(10))
    store.track_fetch(sig, task)

    store.clear()
    await asyncio.sleep(0)

    assert task.cancelled()
    assert store.signatures() == []


def test_refetch_deferred_until_last_hold_released():
    refetched = []
    store = CacheStore(refetch_handler=refetched.append)
    points = post_comments_signature(1, "points", "desc")
    store.write(points, PagedValue())
    store.observe(points)
    store.hold(1, [post_comments_signature(1)])
    store.hold(2, [ALL_COMMENTS])

    assert store.mark_stale(points, refetch_now=True) == []
    assert store.entry(points).stale

    assert store.release_hold(1) == []
    assert refetched == []
    assert store.release_hold(2) == [points]
    assert refetched == [points]
    assert store.release_hold(2) == []


def test_deferred_entry_written_meanwhile_is_not_refetched():
    refetched = []
    store = CacheStore(refetch_handler=refetched.append)
    sig = post_signature(1)
    store.write(sig, make_post(1))
    store.observe(sig)
    store.hold("m", [sig])
    store.mark_stale(sig, refetch_now=True)

    store.write(sig, make_post(1))
    store.release_hold("m")

    assert refetched == []
    assert not store.is_held(sig)
