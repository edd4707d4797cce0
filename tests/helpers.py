"""
Helpers for building users, contexts and credentials in tests.
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from taskdesk.auth.context import AuthContext
from taskdesk.auth.verifier import issue_token
from taskdesk.core.models import Role, User
from taskdesk.services.users import UserDirectory
from taskdesk.storage import Collections


def context(user: User) -> AuthContext:
    return AuthContext.for_user(user)


async def make_user(users: UserDirectory, identity: str, role: Role = Role.USER) -> AuthContext:
    """Create a user and return their context."""
    user = await users.create(
        identity=identity,
        email=f"{identity}@example.com",
        display_name=identity.title(),
        role=role,
    )
    return context(user)


def bearer(identity: str, name: str | None = None) -> dict[str, str]:
    """Authorization header for an identity, as the provider would issue."""
    token = issue_token(identity, email=f"{identity}@example.com", name=name)
    return {"Authorization": f"Bearer {token}"}


def login(client: TestClient, identity: str, role: Role = Role.USER) -> dict[str, str]:
    """Provision `identity` through the API and give it `role`."""
    headers = bearer(identity)
    response = client.get("/profile", headers=headers)
    assert response.status_code == 200, response.text

    if role != Role.USER:
        metadata = client.app.state.storage.metadata
        asyncio.run(metadata.update(Collections.USERS, identity, {"role": role}))

    return headers
