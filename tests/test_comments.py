"""Tests for the comment tree."""

import pytest

from newsforum.errors import NotAllowedError, NotFoundError
from newsforum.models import Comment
from newsforum.services.comments import (
    comment_tree,
    derive_placement,
    index_children,
    walk_subtree,
)
from newsforum.stores.postgres import get_session


def _comment(id: int, comment_id: str, parent_id: str, root_id: str = "post", depth: int = 0) -> Comment:
    return Comment(
        id=id,
        comment_id=comment_id,
        author_id="alice",
        content=comment_id,
        parent_id=parent_id,
        root_id=root_id,
        depth=depth,
    )


def test_placement_under_post_and_comment():
    top = derive_placement("post-1", None)
    assert (top.root_id, top.depth) == ("post-1", 0)

    parent = _comment(1, "c1", "post-1", root_id="post-1", depth=2)
    nested = derive_placement("c1", parent)
    assert (nested.root_id, nested.depth) == ("post-1", 3)


def test_walk_is_preorder_with_siblings_in_insertion_order():
    comments = [
        _comment(4, "c4", "post"),
        _comment(2, "c2", "c1", depth=1),
        _comment(1, "c1", "post"),
        _comment(3, "c3", "c2", depth=2),
        _comment(5, "c5", "c1", depth=1),
    ]
    children = index_children(comments)

    assert [c.comment_id for c in walk_subtree(children, "post")] == ["c1", "c2", "c3", "c5", "c4"]
    assert [c.comment_id for c in walk_subtree(children, "c1")] == ["c2", "c3", "c5"]
    assert walk_subtree(children, "c3") == []


@pytest.mark.asyncio
async def test_create_derives_root_and_depth(db):
    async with get_session() as session:
        a = await comment_tree.create(session, "alice", "A", "post-1")
        b = await comment_tree.create(session, "bob", "B", a.comment_id)
        c = await comment_tree.create(session, "alice", "C", b.comment_id)

    assert (a.root_id, a.depth, a.parent_id) == ("post-1", 0, "post-1")
    assert (b.root_id, b.depth, b.parent_id) == ("post-1", 1, a.comment_id)
    assert (c.root_id, c.depth, c.parent_id) == ("post-1", 2, b.comment_id)


@pytest.mark.asyncio
async def test_get_by_parent_returns_depth_first_subtree(db):
    async with get_session() as session:
        a = await comment_tree.create(session, "alice", "A", "post-1")
        b = await comment_tree.create(session, "bob", "B", a.comment_id)
        d = await comment_tree.create(session, "bob", "D", "post-1")
        c = await comment_tree.create(session, "alice", "C", b.comment_id)
        await comment_tree.create(session, "alice", "other thread", "post-2")

    async with get_session() as session:
        whole = await comment_tree.get_by_parent(session, "post-1")
        under_a = await comment_tree.get_by_parent(session, a.comment_id)
        leaf = await comment_tree.get_by_parent(session, c.comment_id)

    assert [x.comment_id for x in whole] == [a.comment_id, b.comment_id, c.comment_id, d.comment_id]
    assert [x.comment_id for x in under_a] == [b.comment_id, c.comment_id]
    assert leaf == []


@pytest.mark.asyncio
async def test_flatten_annotates_nesting_level(db):
    async with get_session() as session:
        a = await comment_tree.create(session, "alice", "A", "post-1")
        await comment_tree.create(session, "bob", "B", a.comment_id)
        await comment_tree.create(session, "bob", "D", "post-1")

    async with get_session() as session:
        flat = await comment_tree.flatten(session, "post-1")
        counts = await comment_tree.count_by_roots(session, ["post-1", "post-2"])

    assert [(row.comment.content, row.depth) for row in flat] == [("A", 0), ("B", 1), ("D", 0)]
    assert counts == {"post-1": 3, "post-2": 0}


@pytest.mark.asyncio
async def test_delete_is_leaf_only(db):
    async with get_session() as session:
        a = await comment_tree.create(session, "alice", "A", "post-1")
        b = await comment_tree.create(session, "bob", "B", a.comment_id)

    with pytest.raises(NotAllowedError) as exc_info:
        async with get_session() as session:
            await comment_tree.delete(session, a.comment_id)
    assert exc_info.value.message == "Cannot delete comment with child comments"

    async with get_session() as session:
        await comment_tree.delete(session, b.comment_id)
        await comment_tree.delete(session, a.comment_id)

    async with get_session() as session:
        assert await comment_tree.get_by_parent(session, "post-1") == []


@pytest.mark.asyncio
async def test_unknown_comment(db):
    with pytest.raises(NotFoundError):
        async with get_session() as session:
            await comment_tree.delete(session, "missing")

    async with get_session() as session:
        assert not await comment_tree.is_author(session, "missing", "alice")
