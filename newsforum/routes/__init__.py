"""API routes."""

from fastapi import APIRouter

from newsforum.routes import comments, posts, users

api_router = APIRouter()

# Registration, profiles and the current session
api_router.include_router(users.router, tags=["users"])

# Feeds, post authoring, votes and marks
api_router.include_router(posts.router, tags=["posts"])

# Comment authoring and votes
api_router.include_router(comments.router, tags=["comments"])
