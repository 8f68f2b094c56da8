"""User endpoints.

POST /users     - register (anonymous callers only)
GET  /users     - profile + karma by username or id
PUT  /users     - update own email/bio
GET  /session   - the caller's own profile
PUT  /topbar    - change top-bar color (karma-gated)
"""

from fastapi import APIRouter, Depends, Query

from newsforum.schemas import (
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    TopBarRequest,
    UpdateUserRequest,
    UserResponse,
)
from newsforum.routes.deps import assert_logged_out, get_principal, get_viewer_optional
from newsforum.services import actions

router = APIRouter()


@router.post(
    "/users",
    response_model=RegisterResponse,
    status_code=201,
    dependencies=[Depends(assert_logged_out)],
)
async def register(body: RegisterRequest) -> RegisterResponse:
    user = await actions.register_user(body.username)
    return RegisterResponse(msg="User created successfully.", user=user)


@router.get("/users", response_model=UserResponse)
async def get_user(
    username: str | None = Query(default=None, min_length=1),
    user_id: str | None = Query(default=None, alias="userId", min_length=1),
    viewer: str | None = Depends(get_viewer_optional),
) -> UserResponse:
    return await actions.get_user_with_karma(viewer=viewer, user_id=user_id, username=username)


@router.put("/users", response_model=MessageResponse)
async def update_user(body: UpdateUserRequest, user: str = Depends(get_principal)) -> MessageResponse:
    await actions.update_user(user, body.email, body.bio)
    return MessageResponse(msg="User updated successfully.")


@router.get("/session", response_model=UserResponse)
async def get_session_user(user: str = Depends(get_principal)) -> UserResponse:
    return await actions.get_user_with_karma(viewer=user, user_id=user)


@router.put("/topbar", response_model=MessageResponse)
async def change_top_bar(body: TopBarRequest, user: str = Depends(get_principal)) -> MessageResponse:
    await actions.change_top_bar_color(user, body.top_bar_color)
    return MessageResponse(msg="Top bar color changed.")
