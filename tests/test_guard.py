"""
Tests for the Authorization Guard: token -> active user context.
"""

import asyncio
from datetime import timedelta

import pytest

from taskdesk.auth.guard import AuthorizationGuard, default_display_name
from taskdesk.auth.verifier import IdentityVerifier, JWTIdentityVerifier, VerifiedIdentity, issue_token
from taskdesk.core.errors import Forbidden, Internal, Unauthenticated
from taskdesk.core.models import Role
from taskdesk.core.utils import utc_now
from tests.helpers import context, make_user


class SlowVerifier(IdentityVerifier):
    async def verify(self, token: str) -> VerifiedIdentity:
        await asyncio.sleep(1)
        return VerifiedIdentity(subject="uid-1", email="ann@example.com")


# =============================================================================
# Credential failures
# =============================================================================


class TestCredentials:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "   "])
    async def test_missing_token(self, guard, token):
        with pytest.raises(Unauthenticated) as exc:
            await guard.authenticate(token)
        assert exc.value.reason == "missing"

    @pytest.mark.asyncio
    async def test_invalid_token(self, guard):
        with pytest.raises(Unauthenticated) as exc:
            await guard.authenticate("garbage")
        assert exc.value.reason == "invalid"
        assert exc.value.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_token(self, guard, settings):
        token = issue_token(
            "uid-1",
            email="ann@example.com",
            issued_at=utc_now() - timedelta(hours=2),
            expires_in=timedelta(hours=1),
            settings=settings,
        )

        with pytest.raises(Unauthenticated) as exc:
            await guard.authenticate(token)
        assert exc.value.reason == "expired"

    @pytest.mark.asyncio
    async def test_revoked_token(self, guard, settings, revocations):
        token = issue_token(
            "uid-1",
            email="ann@example.com",
            issued_at=utc_now() - timedelta(minutes=1),
            settings=settings,
        )
        await revocations.revoke("uid-1")

        with pytest.raises(Unauthenticated) as exc:
            await guard.authenticate(token)
        assert exc.value.reason == "revoked"

    @pytest.mark.asyncio
    async def test_failed_verification_creates_nothing(self, guard, users):
        with pytest.raises(Unauthenticated):
            await guard.authenticate("garbage")
        assert (await users.stats()).total_users == 0

    @pytest.mark.asyncio
    async def test_verifier_timeout_is_internal(self, users):
        guard = AuthorizationGuard(SlowVerifier(), users, timeout=0.05)

        with pytest.raises(Internal):
            await guard.authenticate("token")


# =============================================================================
# Provisioning
# =============================================================================


class TestProvisioning:
    @pytest.mark.asyncio
    async def test_first_sight_provisions_plain_user(self, guard, users, settings):
        token = issue_token("uid-1", email="Ann@Example.com", name="Ann", settings=settings)

        ctx = await guard.authenticate(token)

        assert ctx.identity == "uid-1"
        assert ctx.role == Role.USER
        assert ctx.permissions == {"read:own-tasks", "create:tasks"}
        stored = await users.get("uid-1")
        assert stored.email == "ann@example.com"
        assert stored.display_name == "Ann"
        assert stored.is_active

    @pytest.mark.asyncio
    async def test_repeat_verification_only_moves_last_login(self, guard, users, settings):
        token = issue_token("uid-1", email="ann@example.com", name="Ann", settings=settings)

        await guard.authenticate(token)
        first = await users.get("uid-1")
        await guard.authenticate(token)
        second = await users.get("uid-1")

        assert (await users.stats()).total_users == 1
        assert second.last_login >= first.last_login
        assert second.model_dump(exclude={"last_login"}) == first.model_dump(exclude={"last_login"})

    @pytest.mark.asyncio
    async def test_existing_user_keeps_role(self, guard, users, settings):
        await make_user(users, "boss", Role.ADMIN)

        ctx = await guard.authenticate(issue_token("boss", email="boss@example.com", settings=settings))

        assert ctx.role == Role.ADMIN
        assert ctx.can("manage:users")

    @pytest.mark.asyncio
    async def test_token_without_email_is_refused_for_unknown_identity(self, guard, users, settings):
        with pytest.raises(Unauthenticated):
            await guard.authenticate(issue_token("uid-1", settings=settings))
        assert await users.get("uid-1") is None

    @pytest.mark.asyncio
    async def test_concurrent_first_logins_create_one_record(self, guard, users, settings):
        token = issue_token("uid-1", email="ann@example.com", settings=settings)

        contexts = await asyncio.gather(*(guard.authenticate(token) for _ in range(5)))

        assert {c.identity for c in contexts} == {"uid-1"}
        assert (await users.stats()).total_users == 1

    @pytest.mark.asyncio
    async def test_deleted_identity_is_never_reprovisioned(self, users, settings):
        admin = await make_user(users, "boss", Role.ADMIN)
        await make_user(users, "ann")
        await users.delete(admin, "ann")
        # Verifier without a revocation registry: the guard still refuses
        guard = AuthorizationGuard(JWTIdentityVerifier(settings), users, timeout=2.0)

        with pytest.raises(Unauthenticated) as exc:
            await guard.authenticate(issue_token("ann", email="ann@example.com", settings=settings))

        assert exc.value.reason == "revoked"
        assert not await users.exists("ann")

    def test_display_name_falls_back_to_email(self):
        identity = VerifiedIdentity(subject="uid-1", email="ann.lee@example.com")
        assert default_display_name(identity) == "ann.lee"

    def test_display_name_prefers_name_claim(self):
        identity = VerifiedIdentity(subject="uid-1", email="ann@example.com", name="  Ann Lee ")
        assert default_display_name(identity) == "Ann Lee"

    def test_display_name_is_capped(self):
        identity = VerifiedIdentity(subject="uid-1", email="ann@example.com", name="x" * 80)
        assert len(default_display_name(identity)) == 50


# =============================================================================
# Deactivation
# =============================================================================


class TestDeactivation:
    @pytest.mark.asyncio
    async def test_deactivated_user_is_forbidden(self, guard, users, settings):
        admin = await make_user(users, "boss", Role.ADMIN)
        await make_user(users, "ann")
        await users.toggle_status(admin, "ann")

        with pytest.raises(Forbidden) as exc:
            await guard.authenticate(issue_token("ann", email="ann@example.com", settings=settings))
        assert exc.value.reason == "deactivated"

    @pytest.mark.asyncio
    async def test_reactivated_user_gets_through(self, guard, users, settings):
        admin = await make_user(users, "boss", Role.ADMIN)
        await make_user(users, "ann")
        await users.toggle_status(admin, "ann")
        await users.toggle_status(admin, "ann")

        ctx = await guard.authenticate(issue_token("ann", email="ann@example.com", settings=settings))

        assert ctx == context(await users.get("ann"))
