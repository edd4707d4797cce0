"""
Authorization Guard.

Turns a bearer token into the AuthContext of an active user:

1. No token → Unauthenticated(missing)
2. Verify with the identity provider → Unauthenticated(expired|revoked|invalid)
3. Find the user by identity, provisioning a `user`-role record on first
   sight (deleted identities are refused as revoked); otherwise record
   the login
4. Deactivated → Forbidden(deactivated)
5. Return the context, which callers pass along explicitly

Step 3 writes on every authenticated request. Running it twice for the
same token never creates a second record; only `last_login` moves.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from taskdesk.auth.context import AuthContext
from taskdesk.auth.verifier import IdentityVerifier, TokenError, VerifiedIdentity
from taskdesk.core.errors import Conflict, Forbidden, Internal, Unauthenticated
from taskdesk.core.models import Role, User

if TYPE_CHECKING:
    from taskdesk.services.users import UserDirectory

logger = logging.getLogger(__name__)


_TOKEN_MESSAGES = {
    "expired": "Token expired. Please login again.",
    "revoked": "Token revoked. Please login again.",
    "invalid": "Invalid token. Authentication failed.",
}


def default_display_name(identity: VerifiedIdentity) -> str:
    """Name claim, else the local part of the email."""
    if identity.name and identity.name.strip():
        return identity.name.strip()[:50]
    return identity.email.split("@")[0][:50]


class AuthorizationGuard:
    """Resolves tokens to active users, provisioning unseen identities."""

    def __init__(
        self,
        verifier: IdentityVerifier,
        users: UserDirectory,
        timeout: float | None = None,
    ):
        self.verifier = verifier
        self.users = users
        self.timeout = timeout

    async def authenticate(self, token: str | None) -> AuthContext:
        if not token or not token.strip():
            raise Unauthenticated(
                "Access denied. No token provided or invalid format.",
                reason="missing",
            )

        identity = await self._verify(token.strip())
        user = await self.resolve(identity)

        if not user.is_active:
            logger.info(f"Rejected deactivated account {user.identity}")
            raise Forbidden(
                "Account is deactivated. Contact administrator.",
                reason="deactivated",
            )

        return AuthContext.for_user(user)

    async def _verify(self, token: str) -> VerifiedIdentity:
        try:
            return await asyncio.wait_for(self.verifier.verify(token), timeout=self.timeout)
        except TokenError as e:
            logger.info(f"Authentication failed ({e.reason}): {e}")
            raise Unauthenticated(_TOKEN_MESSAGES[e.reason], reason=e.reason)
        except asyncio.TimeoutError:
            logger.error("Identity verification timed out")
            raise Internal("Identity verification failed", error="Timed out waiting for identity provider")

    async def resolve(self, identity: VerifiedIdentity) -> User:
        """Find the user for a verified identity, creating it on first sight."""
        user = await self.users.get(identity.subject)
        if user is not None:
            return await self.users.record_login(user.identity)

        if await self.users.is_deleted(identity.subject):
            logger.info(f"Refused deleted identity {identity.subject}")
            raise Unauthenticated(_TOKEN_MESSAGES["revoked"], reason="revoked")

        if not identity.email:
            raise Unauthenticated("Token carries no email claim.", reason="invalid")

        try:
            user = await self.users.create(
                identity=identity.subject,
                email=identity.email,
                display_name=default_display_name(identity),
                role=Role.USER,
            )
        except Conflict:
            # A concurrent request may have provisioned the same identity
            existing = await self.users.get(identity.subject)
            if existing is None:
                raise
            return await self.users.record_login(existing.identity)

        logger.info(f"Provisioned new user {user.identity}")
        return user
