"""
User Directory.

Stores one record per authenticated subject, keyed by identity, and
exposes the administrative operations (listing, role changes, activation,
deletion, statistics). Administrative operations take the caller's
AuthContext explicitly and refuse to act on the caller's own account.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime

from pydantic import Field

from taskdesk.auth.access import ensure_not_self
from taskdesk.auth.context import AuthContext
from taskdesk.auth.verifier import RevocationRegistry
from taskdesk.core.errors import Conflict, InvalidInput, NotFound
from taskdesk.core.models import CamelModel, Pagination, Role, User, UserProfile
from taskdesk.core.utils import page_offset, utc_now
from taskdesk.services.base import build
from taskdesk.storage.base import DESCENDING, Collections, MetadataStorage

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================


class RecentUser(CamelModel):
    display_name: str
    email: str
    role: Role
    created_at: datetime


class UserStats(CamelModel):
    total_users: int = 0
    active_users: int = 0
    inactive_users: int = 0
    admins: int = 0
    managers: int = 0
    users: int = 0
    recent_users: list[RecentUser] = Field(default_factory=list)


# =============================================================================
# Directory
# =============================================================================


class UserDirectory:
    """All reads and writes of User records go through here."""

    def __init__(
        self,
        storage: MetadataStorage,
        revocations: RevocationRegistry | None = None,
    ):
        self.storage = storage
        self.revocations = revocations

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    async def get(self, identity: str) -> User | None:
        doc = await self.storage.get(Collections.USERS, identity)
        return User.model_validate(doc) if doc else None

    async def require(self, identity: str) -> User:
        user = await self.get(identity)
        if user is None:
            raise NotFound("User not found")
        return user

    async def exists(self, identity: str) -> bool:
        return await self.storage.get(Collections.USERS, identity) is not None

    async def get_by_email(self, email: str) -> User | None:
        docs = await self.storage.query(
            Collections.USERS, {"email": email.strip().lower()}, limit=1
        )
        return User.model_validate(docs[0]) if docs else None

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(
        self,
        identity: str,
        email: str,
        display_name: str,
        role: Role = Role.USER,
        profile: UserProfile | None = None,
    ) -> User:
        """Create a user; identity and email must both be unused."""
        user = build(User, {
            "identity": identity,
            "email": email,
            "display_name": display_name,
            "role": role,
            "profile": profile,
        })

        if await self.exists(user.identity):
            raise Conflict("User already exists")
        if await self.get_by_email(user.email):
            raise Conflict("Email already registered to another account")

        await self._save(user)
        logger.info(f"Created user {user.identity} ({user.email}) as {user.role.value}")
        return user

    async def record_login(self, identity: str) -> User:
        doc = await self.storage.update(Collections.USERS, identity, {"last_login": utc_now()})
        if doc is None:
            raise NotFound("User not found")
        return User.model_validate(doc)

    async def is_deleted(self, identity: str) -> bool:
        """Whether an administrator deleted this identity."""
        if self.revocations is None:
            return False
        return await self.revocations.is_tombstoned(identity)

    async def update_profile(
        self,
        identity: str,
        display_name: str | None = None,
        profile: UserProfile | None = None,
    ) -> User:
        """Self-service update; only display name and profile are writable."""
        updates: dict = {}
        if display_name is not None:
            updates["display_name"] = display_name
        if profile is not None:
            updates["profile"] = profile.model_dump()

        if not updates:
            raise InvalidInput("No valid updates provided")

        user = await self.require(identity)
        user = build(User, {**user.model_dump(), **updates, "updated_at": utc_now()})
        await self._save(user)
        return user

    async def _save(self, user: User) -> None:
        await self.storage.save(Collections.USERS, user.identity, user.model_dump())

    # -------------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------------

    async def list_users(
        self,
        role: Role | str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[User], Pagination]:
        filters: dict = {}
        if role:
            filters["role"] = role
        if is_active is not None:
            filters["is_active"] = is_active
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            filters["$or"] = [{"display_name": pattern}, {"email": pattern}]

        docs = await self.storage.query(
            Collections.USERS,
            filters,
            limit=limit,
            offset=page_offset(page, limit),
            sort=[("created_at", DESCENDING)],
        )
        total = await self.storage.count(Collections.USERS, filters)

        users = [User.model_validate(d) for d in docs]
        return users, Pagination.build(page, limit, total, len(users))

    async def change_role(self, ctx: AuthContext, identity: str, role: str) -> User:
        ensure_not_self(ctx, identity, "change the role of")

        try:
            new_role = Role(role)
        except ValueError:
            raise InvalidInput("Invalid role. Must be user, manager, or admin")

        user = await self.require(identity)
        previous = user.role
        user.role = new_role
        user.updated_at = utc_now()
        await self._save(user)

        logger.info(f"{ctx.identity} changed role of {identity}: {previous.value} -> {new_role.value}")
        return user

    async def toggle_status(self, ctx: AuthContext, identity: str) -> User:
        ensure_not_self(ctx, identity, "change the status of")

        user = await self.require(identity)
        user.is_active = not user.is_active
        user.updated_at = utc_now()
        await self._save(user)

        state = "activated" if user.is_active else "deactivated"
        logger.info(f"{ctx.identity} {state} {identity}")
        return user

    async def delete(self, ctx: AuthContext, identity: str) -> None:
        """
        Delete a user and tombstone the identity so no token for it is
        accepted again.

        Refused while any task (archived or not) still names the user as
        creator or assignee.
        """
        ensure_not_self(ctx, identity, "delete")

        await self.require(identity)

        references = await self.storage.count(
            Collections.TASKS,
            {"$or": [{"created_by": identity}, {"assigned_to": identity}]},
        )
        if references:
            raise Conflict(
                f"User is referenced by {references} task(s). "
                "Reassign or delete them first, or deactivate the account instead.",
                reason="referenced",
            )

        await self.storage.delete(Collections.USERS, identity)
        if self.revocations:
            await self.revocations.tombstone(identity)

        logger.info(f"{ctx.identity} deleted user {identity}")

    async def stats(self, recent: int = 5) -> UserStats:
        count = self.storage.count
        total = await count(Collections.USERS)
        active = await count(Collections.USERS, {"is_active": True})

        recent_docs = await self.storage.query(
            Collections.USERS, limit=recent, sort=[("created_at", DESCENDING)]
        )

        return UserStats(
            total_users=total,
            active_users=active,
            inactive_users=total - active,
            admins=await count(Collections.USERS, {"role": Role.ADMIN}),
            managers=await count(Collections.USERS, {"role": Role.MANAGER}),
            users=await count(Collections.USERS, {"role": Role.USER}),
            recent_users=[RecentUser.model_validate(d) for d in recent_docs],
        )
