"""Tests for cross-component action flows and their karma effects."""

import pytest

from newsforum.errors import AlreadyVotedError, BadValuesError, NotAllowedError, NotFoundError
from newsforum.services import actions
from newsforum.services.comments import comment_tree
from newsforum.services.karma import karma_store
from newsforum.services.votes import comment_votes, post_votes
from newsforum.stores.postgres import get_session


async def _karma(user: str) -> int:
    async with get_session() as session:
        return await karma_store.get(session, user)


# ============================================================
# Users
# ============================================================


@pytest.mark.asyncio
async def test_register_grants_starting_karma(db):
    user = await actions.register_user("alice")

    assert user.karma == 1
    assert user.top_bar_color == "#ff6600"
    assert await _karma(user.user_id) == 1


@pytest.mark.asyncio
async def test_duplicate_username_is_rejected(db):
    await actions.register_user("alice")

    with pytest.raises(NotAllowedError) as exc_info:
        await actions.register_user("alice")
    assert exc_info.value.message == 'User with username "alice" already exists!'


@pytest.mark.asyncio
async def test_private_profile_fields_only_for_self(make_user):
    alice = await make_user("alice")
    await actions.update_user(alice, "alice@example.com", "hi")

    own = await actions.get_user_with_karma(viewer=alice, user_id=alice)
    public = await actions.get_user_with_karma(viewer=None, username="alice")

    assert own.email == "alice@example.com"
    assert own.top_bar_color == "#ff6600"
    assert public.email is None
    assert public.top_bar_color is None
    assert public.bio == "hi"


@pytest.mark.asyncio
async def test_top_bar_color_is_karma_gated(make_user):
    newbie = await make_user("newbie")
    regular = await make_user("regular", karma=2)

    with pytest.raises(NotAllowedError):
        await actions.change_top_bar_color(newbie, "#000000")

    await actions.change_top_bar_color(regular, "#000000")
    profile = await actions.get_user_with_karma(viewer=regular, user_id=regular)
    assert profile.top_bar_color == "#000000"


# ============================================================
# Posts
# ============================================================


@pytest.mark.asyncio
async def test_create_post_self_upvotes_without_karma(make_user):
    alice = await make_user("alice")

    post = await actions.create_post(alice, "Hello")

    async with get_session() as session:
        assert await post_votes.points_for(session, post.post_id) == 1
    assert await _karma(alice) == 1


@pytest.mark.asyncio
async def test_post_vote_karma_round_trip(make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await actions.create_post(alice, "Hello")

    assert await actions.vote_post(bob, post.post_id, "up") == "Successfully upvoted the post."
    assert await _karma(alice) == 2

    with pytest.raises(AlreadyVotedError):
        await actions.vote_post(bob, post.post_id, "up")

    await actions.vote_post(bob, post.post_id, "unvote")
    assert await _karma(alice) == 1

    with pytest.raises(NotAllowedError):
        await actions.vote_post(bob, post.post_id, "unvote")


@pytest.mark.asyncio
async def test_cannot_vote_on_own_post(make_user):
    alice = await make_user("alice")
    post = await actions.create_post(alice, "Hello")

    with pytest.raises(NotAllowedError):
        await actions.vote_post(alice, post.post_id, "up")


@pytest.mark.asyncio
async def test_invalid_post_vote_type(make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await actions.create_post(alice, "Hello")

    with pytest.raises(BadValuesError):
        await actions.vote_post(bob, post.post_id, "down")


@pytest.mark.asyncio
async def test_post_with_comments_cannot_be_deleted(make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await actions.create_post(alice, "Hello")
    await actions.create_comment(bob, "Reply", post.post_id)

    with pytest.raises(NotAllowedError) as exc_info:
        await actions.delete_post(alice, post.post_id)
    assert exc_info.value.message == "Cannot delete a post that has comments"


@pytest.mark.asyncio
async def test_flagging_requires_karma(make_user):
    alice = await make_user("alice")
    newbie = await make_user("newbie", karma=4)
    veteran = await make_user("veteran", karma=5)
    post = await actions.create_post(alice, "Spam?")

    with pytest.raises(NotAllowedError):
        await actions.flag_post(newbie, post.post_id)

    result = await actions.flag_post(veteran, post.post_id)
    again = await actions.flag_post(veteran, post.post_id)

    assert result.already_marked is False
    assert again.already_marked is True


@pytest.mark.asyncio
async def test_marks_require_existing_post(make_user):
    alice = await make_user("alice")

    with pytest.raises(NotFoundError):
        await actions.favorite_post(alice, "missing")


# ============================================================
# Comments
# ============================================================


@pytest.mark.asyncio
async def test_comment_on_unknown_parent(make_user):
    alice = await make_user("alice")

    with pytest.raises(NotFoundError):
        await actions.create_comment(alice, "Hello?", "missing")

    with pytest.raises(BadValuesError):
        await actions.create_comment(alice, "   ", "missing")


@pytest.mark.asyncio
async def test_comment_votes_and_karma(make_user):
    alice = await make_user("alice", karma=3)
    bob = await make_user("bob")
    critic = await make_user("critic", karma=6)
    post = await actions.create_post(bob, "Story")
    comment = await actions.create_comment(alice, "Opinion", post.post_id)

    await actions.vote_comment(bob, comment.comment_id, "upvote")
    assert await _karma(alice) == 4

    await actions.vote_comment(critic, comment.comment_id, "downvote")
    assert await _karma(alice) == 3

    # Unvoting never reverses karma on comments
    await actions.vote_comment(bob, comment.comment_id, "unvote")
    assert await _karma(alice) == 3

    async with get_session() as session:
        assert await comment_votes.points_for(session, comment.comment_id) == 0


@pytest.mark.asyncio
async def test_comment_downvote_requires_karma(make_user):
    alice = await make_user("alice", karma=3)
    bob = await make_user("bob", karma=5)
    post = await actions.create_post(alice, "Story")
    comment = await actions.create_comment(alice, "Opinion", post.post_id)

    with pytest.raises(NotAllowedError):
        await actions.vote_comment(bob, comment.comment_id, "downvote")

    async with get_session() as session:
        assert await comment_votes.get_vote(session, bob, comment.comment_id) is None
    assert await _karma(alice) == 3


@pytest.mark.asyncio
async def test_downvote_is_rolled_back_when_author_has_no_karma(make_user):
    author = await make_user("author")
    critic = await make_user("critic", karma=6)
    post = await actions.create_post(critic, "Story")
    comment = await actions.create_comment(author, "Meh", post.post_id)

    # Drain the author's starting karma
    async with get_session() as session:
        await karma_store.decrease(session, author, 1)

    with pytest.raises(NotAllowedError):
        await actions.vote_comment(critic, comment.comment_id, "downvote")

    async with get_session() as session:
        assert await comment_votes.get_vote(session, critic, comment.comment_id) is None


@pytest.mark.asyncio
async def test_cannot_vote_on_own_comment(make_user):
    alice = await make_user("alice")
    post = await actions.create_post(alice, "Story")
    comment = await actions.create_comment(alice, "Self", post.post_id)

    with pytest.raises(NotAllowedError):
        await actions.vote_comment(alice, comment.comment_id, "unvote")


@pytest.mark.asyncio
async def test_only_author_edits_or_deletes_comment(make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await actions.create_post(alice, "Story")
    comment = await actions.create_comment(alice, "Draft", post.post_id)

    with pytest.raises(NotAllowedError):
        await actions.edit_comment(bob, comment.comment_id, "Hijacked")
    with pytest.raises(NotAllowedError):
        await actions.delete_comment(bob, comment.comment_id)

    edited = await actions.edit_comment(alice, comment.comment_id, "Final")
    assert edited.content == "Final"

    await actions.delete_comment(alice, comment.comment_id)
    async with get_session() as session:
        assert await comment_tree.get_by_parent(session, post.post_id) == []
