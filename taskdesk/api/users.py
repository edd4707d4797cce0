# =============================================================================
# Profile & User Administration Routes
# =============================================================================
#
# Endpoints:
#   GET    /profile                  - Current user (authenticated)
#   PUT    /profile                  - Update own display name / profile
#
# Admin only:
#   GET    /users                    - List users (filter + pagination)
#   GET    /users/stats              - Counts and most recent users
#   PUT    /users/{identity}/role    - Change role (not self)
#   PUT    /users/{identity}/status  - Toggle active flag (not self)
#   DELETE /users/{identity}         - Delete user (not self)
#
# =============================================================================

from fastapi import APIRouter, Body, Depends, Query

from taskdesk.api.dependencies import get_users
from taskdesk.api.schemas import (
    Message,
    ProfileUpdate,
    RoleUpdate,
    UserEnvelope,
    UserList,
    UserMessage,
    UserResponse,
)
from taskdesk.auth.context import AuthContext
from taskdesk.auth.policies import admin_only, authenticate, authorize
from taskdesk.config import get_settings
from taskdesk.core.models import Role
from taskdesk.services.users import UserDirectory, UserStats

router = APIRouter(tags=["users"])
settings = get_settings()


# =============================================================================
# Profile
# =============================================================================

@router.get("/profile", response_model=UserEnvelope)
async def get_profile(
    ctx: AuthContext = Depends(authenticate),
    users: UserDirectory = Depends(get_users),
):
    """Get the current authenticated user."""
    user = await users.require(ctx.identity)
    return UserEnvelope(user=UserResponse.from_user(user))


@router.put("/profile", response_model=UserMessage)
async def update_profile(
    data: ProfileUpdate,
    ctx: AuthContext = Depends(authenticate),
    users: UserDirectory = Depends(get_users),
):
    """Update the current user's display name and profile."""
    user = await users.update_profile(
        ctx.identity,
        display_name=data.display_name,
        profile=data.profile,
    )
    return UserMessage(
        message="Profile updated successfully",
        user=UserResponse.from_user(user),
    )


# =============================================================================
# Administration
# =============================================================================

@router.get("/users", response_model=UserList)
async def list_users(
    role: Role | None = None,
    is_active: bool | None = Query(default=None, alias="isActive"),
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    ctx: AuthContext = Depends(authorize(admin_only)),
    users: UserDirectory = Depends(get_users),
):
    """List users, newest first."""
    found, pagination = await users.list_users(
        role=role,
        is_active=is_active,
        search=search,
        page=page,
        limit=limit,
    )
    return UserList(
        users=[UserResponse.from_user(u) for u in found],
        pagination=pagination,
    )


@router.get("/users/stats", response_model=UserStats)
async def get_user_stats(
    ctx: AuthContext = Depends(authorize(admin_only)),
    users: UserDirectory = Depends(get_users),
):
    """Total/active/inactive and per-role counts, plus the newest users."""
    return await users.stats()


@router.put("/users/{identity}/role", response_model=UserMessage)
async def update_user_role(
    identity: str,
    data: RoleUpdate | None = Body(default=None),
    ctx: AuthContext = Depends(authorize(admin_only)),
    users: UserDirectory = Depends(get_users),
):
    """Change another user's role."""
    user = await users.change_role(ctx, identity, data.role if data else None)
    return UserMessage(
        message="User role updated successfully",
        user=UserResponse.from_user(user),
    )


@router.put("/users/{identity}/status", response_model=UserMessage)
async def toggle_user_status(
    identity: str,
    ctx: AuthContext = Depends(authorize(admin_only)),
    users: UserDirectory = Depends(get_users),
):
    """Activate or deactivate another user."""
    user = await users.toggle_status(ctx, identity)
    state = "activated" if user.is_active else "deactivated"
    return UserMessage(
        message=f"User {state} successfully",
        user=UserResponse.from_user(user),
    )


@router.delete("/users/{identity}", response_model=Message)
async def delete_user(
    identity: str,
    ctx: AuthContext = Depends(authorize(admin_only)),
    users: UserDirectory = Depends(get_users),
):
    """Delete another user's account and revoke their tokens."""
    await users.delete(ctx, identity)
    return Message(message="User deleted successfully")
