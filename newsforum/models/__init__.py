"""SQLAlchemy ORM models.

Models represent database tables:
- users: Forum members and their display preferences
- posts: Submitted posts
- comments: Threaded comments with derived root/depth
- votes: Post and comment votes (namespaced)
- karma: Per-user reputation counters
- marks: Favorites, hides and flags (namespaced)
"""

from newsforum.models.comment import Comment
from newsforum.models.karma import Karma
from newsforum.models.mark import Mark
from newsforum.models.post import Post
from newsforum.models.user import User
from newsforum.models.vote import Vote, VoteType

__all__ = ["Comment", "Karma", "Mark", "Post", "User", "Vote", "VoteType"]
