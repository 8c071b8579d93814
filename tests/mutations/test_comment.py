import asyncio
import copy

import pytest

from threadcache.errors import DraftPendingError, TransportError, ValidationError
from threadcache.models import DRAFT_COMMENT_ID, Page
from threadcache.mutations import MutationState

from conftest import make_comment, make_post, settle


async def _comments(client, transport, post_id=1):
    transport.pages[("comments", post_id, 1)] = Page(
        [make_comment(10, post_id=post_id), make_comment(11, post_id=post_id)], 1, 1
    )
    query = client.post_comments(post_id)
    await query.mount()
    return query


def _future():
    return asyncio.get_running_loop().create_future()


@pytest.mark.asyncio
async def test_create_comment_swaps_draft_for_server_comment(client, transport):
    query = await _comments(client, transport)
    pending = _future()
    transport.script("create_comment", pending)

    task = asyncio.create_task(client.submit_comment(1, "hello", False))
    await asyncio.sleep(0)

    draft = query.items[0]
    assert draft.id == DRAFT_COMMENT_ID
    assert draft.is_draft
    assert draft.content == "hello"
    assert draft.author.username == "alice"
    assert [c.id for c in query.items[1:]] == [10, 11]

    pending.set_result(make_comment(42, post_id=1))
    result = await task

    assert result.ok
    assert result.content == ""
    assert result.comment.id == 42
    assert [c.id for c in query.items] == [42, 10, 11]
    assert not query.entry.contains(DRAFT_COMMENT_ID)
    assert transport.calls[-1] == ("create_comment", (1, "hello", False))


@pytest.mark.asyncio
async def test_create_comment_refreshes_post_counter(client, transport):
    transport.pages[("post", 1, 1)] = make_post(1, comment_count=2)
    detail = client.post(1)
    await detail.mount()
    await _comments(client, transport)
    transport.script("create_comment", make_comment(42, post_id=1))

    await client.submit_comment(1, "hello", False)
    await settle()

    assert transport.count("fetch_post") == 2


@pytest.mark.asyncio
async def test_create_comment_failure_restores_page(client, transport):
    query = await _comments(client, transport)
    before = copy.deepcopy(query.items)
    transport.script("create_comment", TransportError("boom"))

    result = await client.submit_comment(1, "hello", False)

    assert not result.ok
    assert result.form_error == "Unexpected error"
    assert result.content == "hello"
    assert result.outcome.state is MutationState.FAILED
    assert query.items == before
    [note] = client.notifier.active()
    assert note.message == "Failed to create comment"

    await settle()
    assert transport.count("fetch_comments") == 2
    assert not query.entry.contains(DRAFT_COMMENT_ID)


@pytest.mark.asyncio
async def test_server_validation_error_is_reported_inline(client, transport):
    query = await _comments(client, transport)
    transport.script("create_comment", ValidationError("Comment is too long"))

    result = await client.submit_comment(1, "x" * 50, False)

    assert not result.ok
    assert result.field_errors == {"content": "Comment is too long"}
    assert result.form_error is None
    assert result.content == "x" * 50
    assert [c.id for c in query.items] == [10, 11]
    assert client.notifier.active() == []

    await settle()
    assert transport.count("fetch_comments") == 1


@pytest.mark.asyncio
async def test_short_comment_rejected_before_request(client, transport):
    query = await _comments(client, transport)

    result = await client.submit_comment(1, "hi", False)

    assert result.field_errors == {"content": "Comment must be at least 3 characters"}
    assert result.outcome is None
    assert transport.count("create_comment") == 0
    assert [c.id for c in query.items] == [10, 11]


@pytest.mark.asyncio
async def test_second_draft_in_same_collection_is_rejected(client, transport):
    query = await _comments(client, transport)
    pending = _future()
    transport.script("create_comment", pending)

    task = asyncio.create_task(client.submit_comment(1, "first", False))
    await asyncio.sleep(0)

    with pytest.raises(DraftPendingError):
        await client.submit_comment(1, "second", False)
    assert transport.count("create_comment") == 1

    pending.set_result(make_comment(42, post_id=1))
    assert (await task).ok
    assert [c.id for c in query.items] == [42, 10, 11]


@pytest.mark.asyncio
async def test_reply_draft_goes_into_reply_collection(client, transport):
    children = [make_comment(5, parent=10, depth=1), make_comment(6, parent=10, depth=1)]
    transport.pages[("comments", 1, 1)] = Page([make_comment(10, comment_count=3, children=children)], 1, 1)
    top = client.post_comments(1)
    await top.mount()
    replies = client.comment_replies(top.items[0])
    await replies.mount()
    pending = _future()
    transport.script("create_comment", pending)

    task = asyncio.create_task(client.submit_comment(10, "nested reply", True))
    await asyncio.sleep(0)

    draft = replies.items[0]
    assert draft.id == DRAFT_COMMENT_ID
    assert draft.depth == 1
    assert draft.post_id == 1
    assert draft.parent_comment_id == 10
    assert [c.id for c in top.items] == [10]

    pending.set_result(make_comment(77, parent=10, depth=1))
    result = await task

    assert result.ok
    assert [c.id for c in replies.items] == [77, 5, 6]


@pytest.mark.asyncio
async def test_comment_into_uncached_collection(client, transport):
    transport.script("create_comment", make_comment(42, post_id=9))

    result = await client.submit_comment(9, "hello there", False)

    assert result.ok
    assert client.store.signatures() == []


@pytest.mark.asyncio
async def test_failed_upvote_keeps_pending_draft(client, transport):
    query = await _comments(client, transport)
    pending = _future()
    transport.script("create_comment", pending)
    transport.script("upvote_comment", TransportError("nope"))

    task = asyncio.create_task(client.submit_comment(1, "hello", False))
    await asyncio.sleep(0)
    outcome = await client.toggle_upvote_comment(10)
    await settle()

    assert outcome.state is MutationState.FAILED
    assert [c.id for c in query.items] == [DRAFT_COMMENT_ID, 10, 11]
    assert (query.items[1].points, query.items[1].is_upvoted) == (1, False)
    assert query.entry.stale
    assert transport.count("fetch_comments") == 1

    transport.pages[("comments", 1, 1)] = Page(
        [make_comment(42, post_id=1), make_comment(10, post_id=1), make_comment(11, post_id=1)], 1, 1
    )
    pending.set_result(make_comment(42, post_id=1))
    assert (await task).ok
    await settle()

    assert transport.count("fetch_comments") == 2
    assert [c.id for c in query.items] == [42, 10, 11]
    assert not query.entry.stale


@pytest.mark.asyncio
async def test_created_comment_already_reloaded_is_not_duplicated(client, transport):
    query = await _comments(client, transport)
    pending = _future()
    transport.script("create_comment", pending)

    task = asyncio.create_task(client.submit_comment(1, "hello", False))
    await asyncio.sleep(0)
    assert query.items[0].id == DRAFT_COMMENT_ID

    transport.script(
        "fetch_comments",
        Page([make_comment(42, post_id=1), make_comment(10, post_id=1), make_comment(11, post_id=1)], 1, 1),
    )
    assert await query.refetch()
    assert [c.id for c in query.items] == [42, 10, 11]

    pending.set_result(make_comment(42, post_id=1))
    assert (await task).ok

    assert [c.id for c in query.items] == [42, 10, 11]
    assert len(query.entry.occurrences(42)) == 1
