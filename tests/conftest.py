"""
Shared fixtures.

Every fixture builds fresh in-memory stores, so tests never share state.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from taskdesk.api.app import app
from taskdesk.auth.guard import AuthorizationGuard
from taskdesk.auth.verifier import JWTIdentityVerifier, RevocationRegistry
from taskdesk.config import Settings
from taskdesk.services.tasks import TaskDirectory
from taskdesk.services.users import UserDirectory
from taskdesk.storage import create_local_storage


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def settings():
    return Settings(identity_jwt_secret="test-secret-with-at-least-32-bytes!", identity_timeout_seconds=2.0)


@pytest.fixture
def storage():
    return create_local_storage()


@pytest.fixture
def revocations(storage):
    return RevocationRegistry(storage.cache)


@pytest.fixture
def users(storage, revocations):
    return UserDirectory(storage.metadata, revocations)


@pytest.fixture
def tasks(storage, users):
    return TaskDirectory(storage.metadata, users)


@pytest.fixture
def verifier(settings, revocations):
    return JWTIdentityVerifier(settings, revocations)


@pytest.fixture
def guard(verifier, users):
    return AuthorizationGuard(verifier, users, timeout=2.0)


# =============================================================================
# HTTP fixtures
# =============================================================================


@pytest.fixture
def client():
    """Test client with a fresh app state (lifespan runs per test)."""
    with TestClient(app) as c:
        yield c
