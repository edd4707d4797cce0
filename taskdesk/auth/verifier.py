# =============================================================================
# Identity Verification
# =============================================================================
#
# Bearer tokens are issued by an external identity provider. This module
# verifies them and yields the stable subject id plus profile claims:
#   - Shared-secret (HS256) tokens by default
#   - Provider-signed tokens (RS256 etc.) when IDENTITY_JWKS_URL is set
#   - Revocation by identity: tokens issued before a revocation are refused,
#     and every token for a deleted identity is refused
#
# `issue_token` mints shared-secret tokens for development and tests.
#
# =============================================================================

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import jwt
from pydantic import BaseModel, Field

from taskdesk.config import Settings, get_settings
from taskdesk.core.errors import Internal
from taskdesk.core.utils import generate_id, utc_now
from taskdesk.storage.base import CacheStorage

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class VerifiedIdentity(BaseModel):
    """What a successfully verified token tells us about its bearer."""
    subject: str
    email: str | None = None
    name: str | None = None
    issued_at: datetime | None = None
    claims: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Errors
# =============================================================================

class TokenError(Exception):
    """Base exception for token errors."""
    reason = "invalid"


class TokenExpiredError(TokenError):
    """Token has expired."""
    reason = "expired"


class TokenRevokedError(TokenError):
    """Token was issued before its identity was revoked."""
    reason = "revoked"


class TokenInvalidError(TokenError):
    """Token is invalid or malformed."""
    reason = "invalid"


# =============================================================================
# Revocation
# =============================================================================

class RevocationRegistry:
    """
    Per-identity revocation timestamps kept in the cache store.

    A token is revoked when it was issued at or before its identity's
    revocation time. A tombstoned (deleted) identity has every token
    revoked, whenever it was issued.
    """

    PREFIX = "revoked:"
    TOMBSTONE_PREFIX = "deleted:"

    def __init__(self, cache: CacheStorage):
        self.cache = cache

    async def revoke(self, identity: str, at: datetime | None = None) -> None:
        when = (at or utc_now()).timestamp()
        await self.cache.set(f"{self.PREFIX}{identity}", when)
        logger.info(f"Revoked tokens for {identity}")

    async def tombstone(self, identity: str) -> None:
        """Refuse every token for `identity` from now on."""
        await self.revoke(identity)
        await self.cache.set(f"{self.TOMBSTONE_PREFIX}{identity}", utc_now().timestamp())
        logger.info(f"Tombstoned {identity}")

    async def is_tombstoned(self, identity: str) -> bool:
        return await self.cache.exists(f"{self.TOMBSTONE_PREFIX}{identity}")

    async def revoked_at(self, identity: str) -> float | None:
        return await self.cache.get(f"{self.PREFIX}{identity}")

    async def is_revoked(self, identity: str, issued_at: datetime | None) -> bool:
        if await self.is_tombstoned(identity):
            return True
        revoked_at = await self.revoked_at(identity)
        if revoked_at is None:
            return False
        if issued_at is None:
            return True
        return issued_at.timestamp() <= revoked_at


# =============================================================================
# Verifiers
# =============================================================================

class IdentityVerifier(ABC):
    """Turns a bearer token into a verified identity or a TokenError."""

    @abstractmethod
    async def verify(self, token: str) -> VerifiedIdentity:
        """
        Raises:
            TokenExpiredError, TokenRevokedError, TokenInvalidError
            Internal: the identity provider could not be reached
        """
        pass


class JWTIdentityVerifier(IdentityVerifier):
    """Verifies JWTs with PyJWT against a shared secret or a JWK set."""

    def __init__(
        self,
        settings: Settings | None = None,
        revocations: RevocationRegistry | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self.revocations = revocations
        self._http_client = http_client
        self._jwks: jwt.PyJWKSet | None = None

    async def verify(self, token: str) -> VerifiedIdentity:
        key, algorithm = await self._signing_key(token)

        options: dict[str, Any] = {"require": ["sub", "exp"]}
        if not self.settings.identity_audience:
            options["verify_aud"] = False

        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[algorithm],
                audience=self.settings.identity_audience or None,
                issuer=self.settings.identity_issuer or None,
                options=options,
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Invalid token: {e}")

        issued_at = None
        if "iat" in payload:
            issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)

        identity = VerifiedIdentity(
            subject=str(payload["sub"]),
            email=payload.get("email"),
            name=payload.get("name"),
            issued_at=issued_at,
            claims=payload,
        )

        if self.revocations and await self.revocations.is_revoked(identity.subject, issued_at):
            raise TokenRevokedError("Token has been revoked")

        return identity

    async def _signing_key(self, token: str) -> tuple[Any, str]:
        if not self.settings.uses_jwks:
            return self.settings.identity_jwt_secret, self.settings.identity_jwt_algorithm

        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Invalid token: {e}")

        kid = header.get("kid")
        jwk_set = await self._load_jwks()
        for jwk in jwk_set.keys:
            if jwk.key_id == kid:
                return jwk.key, jwk.algorithm_name or header.get("alg", "RS256")

        # Provider may have rotated keys since we fetched them
        self._jwks = None
        jwk_set = await self._load_jwks()
        for jwk in jwk_set.keys:
            if jwk.key_id == kid:
                return jwk.key, jwk.algorithm_name or header.get("alg", "RS256")

        raise TokenInvalidError(f"Invalid token: unknown signing key {kid!r}")

    async def _load_jwks(self) -> jwt.PyJWKSet:
        if self._jwks is not None:
            return self._jwks

        client = self._http_client or httpx.AsyncClient()
        try:
            response = await client.get(
                self.settings.identity_jwks_url,
                timeout=self.settings.identity_timeout_seconds,
            )
            response.raise_for_status()
            self._jwks = jwt.PyJWKSet.from_dict(response.json())
        except httpx.HTTPError as e:
            logger.error(f"Fetching signing keys failed: {e}")
            raise Internal("Identity provider unavailable", error=str(e))
        except (jwt.PyJWKError, jwt.PyJWKSetError, ValueError) as e:
            logger.error(f"Identity provider returned unusable keys: {e}")
            raise Internal("Identity provider unavailable", error=str(e))
        finally:
            if self._http_client is None:
                await client.aclose()

        return self._jwks


# =============================================================================
# Token Creation (development / tests)
# =============================================================================

def issue_token(
    subject: str,
    email: str | None = None,
    name: str | None = None,
    expires_in: timedelta | None = None,
    issued_at: datetime | None = None,
    settings: Settings | None = None,
) -> str:
    """Create a shared-secret identity token like the provider would."""
    settings = settings or get_settings()
    now = issued_at or utc_now()
    expire = now + (expires_in or timedelta(minutes=settings.identity_token_expire_minutes))

    payload: dict[str, Any] = {
        "sub": subject,
        "iat": now,
        "exp": expire,
        "jti": generate_id("tok"),
    }
    if email:
        payload["email"] = email
    if name:
        payload["name"] = name
    if settings.identity_issuer:
        payload["iss"] = settings.identity_issuer
    if settings.identity_audience:
        payload["aud"] = settings.identity_audience

    return jwt.encode(payload, settings.identity_jwt_secret, algorithm=settings.identity_jwt_algorithm)
