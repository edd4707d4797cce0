"""
Seed loader.

Loads users (with their roles) and tasks from a YAML file into the
document store. Provisioning on first login always creates plain
`user` accounts, so seeding is how the first administrator exists.

Example:

    users:
      - identity: firebase-uid-123
        email: admin@example.com
        displayName: Admin
        role: admin
    tasks:
      - id: task_welcome
        title: Welcome
        description: Try creating your own task
        createdBy: firebase-uid-123

Loading is idempotent: users whose identity already exists, and tasks
whose id already exists, are skipped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from taskdesk.core.errors import InvalidInput, InvalidReference
from taskdesk.core.models import Role, Task
from taskdesk.services.base import build
from taskdesk.services.users import UserDirectory
from taskdesk.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)


class SeedLoader:
    """Loads seed data and registers it with the directories."""

    def __init__(self, storage: MetadataStorage, users: UserDirectory):
        self.storage = storage
        self.users = users

    async def load_file(self, path: Path | str) -> dict[str, int]:
        """Load a YAML seed file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        counts = await self.load(data)
        logger.info(f"Seeded {counts['users']} users and {counts['tasks']} tasks from {path}")
        return counts

    async def load(self, data: dict[str, Any]) -> dict[str, int]:
        """
        Load seed data.

        Returns:
            Dict with counts of each type created
        """
        counts = {"users": 0, "tasks": 0}

        for entry in data.get("users") or []:
            if await self.load_user(entry):
                counts["users"] += 1

        for entry in data.get("tasks") or []:
            if await self.load_task(entry):
                counts["tasks"] += 1

        return counts

    async def load_user(self, entry: dict[str, Any]) -> bool:
        identity = entry.get("identity")
        if not identity:
            raise InvalidInput("Seeded users need an identity")
        if await self.users.exists(identity):
            return False

        try:
            role = Role(entry.get("role", Role.USER.value))
        except ValueError:
            raise InvalidInput(f"Seeded user {identity} has an invalid role")

        email = entry.get("email", "")
        await self.users.create(
            identity=identity,
            email=email,
            display_name=entry.get("displayName") or entry.get("display_name") or email.split("@")[0],
            role=role,
        )
        return True

    async def load_task(self, entry: dict[str, Any]) -> bool:
        data = dict(entry)
        creator = data.get("createdBy") or data.get("created_by")
        data.setdefault("assignedTo", data.get("assigned_to") or creator)

        task = build(Task, data)
        if await self.storage.get(Collections.TASKS, task.id) is not None:
            return False

        for identity in {task.created_by, task.assigned_to}:
            if not await self.users.exists(identity):
                raise InvalidReference(f"Seeded task {task.id} references unknown user {identity}")

        await self.storage.save(Collections.TASKS, task.id, task.model_dump())
        return True


async def load_seed_file(
    path: Path | str,
    storage: MetadataStorage,
    users: UserDirectory,
) -> dict[str, int]:
    """Convenience function to load a seed file."""
    return await SeedLoader(storage, users).load_file(path)
