"""Tests for feed ranking, pagination and viewer personalization."""

from datetime import date, timedelta

import pytest

from sqlalchemy import update

from newsforum.models import Post
from newsforum.services import actions, feed
from newsforum.services.feed import compute_score, paginate
from newsforum.services.timeutil import as_utc
from newsforum.stores.postgres import get_session


def test_score_decays_with_age():
    assert compute_score(5, 1.0, 0, gravity=1.8, flag_penalty=5) == pytest.approx(4.0)
    assert compute_score(5, 10.0, 0, gravity=1.8, flag_penalty=5) == pytest.approx(0.063, abs=1e-3)


def test_score_floors_age_at_one_hour():
    fresh = compute_score(3, 0.01, 0, gravity=1.8, flag_penalty=5)
    assert fresh == compute_score(3, 1.0, 0, gravity=1.8, flag_penalty=5) == pytest.approx(2.0)


def test_score_subtracts_one_before_decay_and_penalizes_flags():
    # A single self-upvote scores zero regardless of age
    assert compute_score(1, 5.0, 0, gravity=1.8, flag_penalty=5) == 0
    assert compute_score(3, 1.0, 2, gravity=1.8, flag_penalty=5) == pytest.approx(-8.0)


def test_paginate_indexes_are_global():
    items = list(range(25))

    second = paginate(items, page=2, count=10)
    last = paginate(items, page=3, count=10)

    assert [index for index, _ in second] == list(range(11, 21))
    assert [item for _, item in second] == list(range(10, 20))
    assert [index for index, _ in last] == [21, 22, 23, 24, 25]
    assert paginate(items, page=4, count=10) == []


@pytest.fixture
async def community(make_user):
    """Three users and three posts with 3, 1 and 2 points."""
    users = {
        "alice": await make_user("alice"),
        "bob": await make_user("bob"),
        "carol": await make_user("carol", karma=5),
    }
    posts = {
        "popular": await actions.create_post(users["alice"], "Popular story", url="https://example.com/a"),
        "quiet": await actions.create_post(users["bob"], "Quiet story"),
        "decent": await actions.create_post(users["carol"], "Decent story"),
    }
    await actions.vote_post(users["bob"], posts["popular"].post_id, "up")
    await actions.vote_post(users["carol"], posts["popular"].post_id, "up")
    await actions.vote_post(users["alice"], posts["decent"].post_id, "up")
    return users, posts


@pytest.mark.asyncio
async def test_ranked_feed_orders_by_score(community):
    users, posts = community

    views = await feed.get_posts()

    assert [v.post_id for v in views] == [
        posts["popular"].post_id,
        posts["decent"].post_id,
        posts["quiet"].post_id,
    ]
    assert [v.index for v in views] == [1, 2, 3]
    assert [v.points for v in views] == [3, 2, 1]
    assert views[0].author.username == "alice"
    assert views[0].voted is False


@pytest.mark.asyncio
async def test_ranked_feed_is_personalized(community):
    users, posts = community

    views = await feed.get_posts(users["bob"])
    by_id = {v.post_id: v for v in views}

    assert by_id[posts["popular"].post_id].voted is True
    assert by_id[posts["popular"].post_id].vote == "up"
    assert by_id[posts["decent"].post_id].voted is False


@pytest.mark.asyncio
async def test_flags_push_posts_down(community):
    users, posts = community

    await actions.flag_post(users["carol"], posts["popular"].post_id)
    views = await feed.get_posts()

    assert views[-1].post_id == posts["popular"].post_id


@pytest.mark.asyncio
async def test_hidden_posts_are_excluded_for_the_viewer_only(community):
    users, posts = community

    await actions.hide_post(users["bob"], posts["popular"].post_id)

    bob_feed = await feed.get_posts(users["bob"])
    anonymous_feed = await feed.get_posts()
    hidden = await feed.get_hidden_posts(users["bob"])

    assert posts["popular"].post_id not in [v.post_id for v in bob_feed]
    assert [v.index for v in bob_feed] == [1, 2]
    assert len(anonymous_feed) == 3
    assert [v.post_id for v in hidden] == [posts["popular"].post_id]
    assert hidden[0].hidden is True


@pytest.mark.asyncio
async def test_prefix_and_day_filters(community):
    users, posts = community

    prefixed = await feed.get_posts(prefix="qui")
    yesterday = await feed.get_posts(day=date.today() - timedelta(days=2))

    assert [v.post_id for v in prefixed] == [posts["quiet"].post_id]
    assert yesterday == []


@pytest.mark.asyncio
async def test_recent_feed_keeps_pages_full_around_hidden_posts(make_user):
    author = await make_user("author")
    reader = await make_user("reader")
    created = [await actions.create_post(author, f"Post {n}") for n in range(5)]
    newest_first = [p.post_id for p in reversed(created)]

    await actions.hide_post(reader, newest_first[0])

    first_page = await feed.get_recent_posts(reader, page=1, count=2)
    second_page = await feed.get_recent_posts(reader, page=2, count=2)

    assert [v.post_id for v in first_page] == newest_first[1:3]
    assert [v.post_id for v in second_page] == newest_first[3:5]
    assert [v.index for v in first_page + second_page] == [1, 2, 3, 4]


@pytest.mark.asyncio
async def test_favorites_listing(community):
    users, posts = community

    await actions.favorite_post(users["bob"], posts["quiet"].post_id)
    await actions.favorite_post(users["bob"], posts["decent"].post_id)

    views = await feed.get_favorited_posts(users["bob"], viewer=users["alice"])

    assert [v.post_id for v in views] == [posts["decent"].post_id, posts["quiet"].post_id]
    assert views[0].voted is True


@pytest.mark.asyncio
async def test_post_details_and_thread(community):
    users, posts = community
    post_id = posts["popular"].post_id

    top = await actions.create_comment(users["bob"], "First!", post_id)
    await actions.create_comment(users["alice"], "Thanks", top.comment_id)
    await actions.vote_comment(users["alice"], top.comment_id, "upvote")
    await actions.favorite_post(users["bob"], post_id)

    detail = await feed.get_post_details(post_id, users["bob"])
    thread = await feed.get_comment_thread(post_id, users["alice"])
    comment = await feed.get_comment_details(top.comment_id)

    assert detail.points == 3
    assert detail.comments == 2
    assert detail.favorited is True
    assert detail.flagged is False
    assert detail.vote == "up"

    assert thread.count == 2
    assert [(c.content, c.depth) for c in thread.comments] == [("First!", 0), ("Thanks", 1)]
    assert thread.comments[0].points == 2
    assert thread.comments[0].vote == "up"
    assert comment.author.username == "bob"


@pytest.mark.asyncio
async def test_anonymous_pages_are_served_from_cache(db, monkeypatch: pytest.MonkeyPatch):
    cached_row = {
        "post_id": "cached-post",
        "title": "From cache",
        "date_created": "2026-01-01T00:00:00+00:00",
        "points": 7,
        "index": 1,
    }
    requested: list[str] = []

    async def fake_get_feed_cache(key: str):
        requested.append(key)
        return [cached_row]

    monkeypatch.setattr(feed, "get_feed_cache", fake_get_feed_cache)

    views = await feed.get_posts(page=1, count=5, prefix="fr")

    assert [v.post_id for v in views] == ["cached-post"]
    assert views[0].points == 7
    assert requested == ["feed:top:1:5:fr:"]


@pytest.mark.asyncio
async def test_viewer_pages_bypass_cache(make_user, monkeypatch: pytest.MonkeyPatch):
    reader = await make_user("reader")

    async def fail_get_feed_cache(key: str):
        raise AssertionError("personalized pages must not be cached")

    monkeypatch.setattr(feed, "get_feed_cache", fail_get_feed_cache)

    assert await feed.get_posts(reader) == []


@pytest.mark.asyncio
async def test_age_decay_and_recency_window(community):
    users, posts = community
    now = as_utc(posts["decent"].date_created)

    # The most upvoted post is nine hours older than the others
    async with get_session() as session:
        await session.execute(
            update(Post)
            .where(Post.post_id == posts["popular"].post_id)
            .values(date_created=now - timedelta(hours=9))
        )

    fresh = await feed.get_posts(now=now)
    later = await feed.get_posts(now=now + timedelta(hours=10))
    expired = await feed.get_posts(now=now + timedelta(days=5))

    assert [v.post_id for v in fresh] == [
        posts["decent"].post_id,
        posts["popular"].post_id,
        posts["quiet"].post_id,
    ]
    assert [v.post_id for v in later][:2] == [posts["decent"].post_id, posts["popular"].post_id]
    assert [v.points for v in later][:2] == [2, 3]
    assert expired == []
