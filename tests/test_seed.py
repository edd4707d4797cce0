"""
Tests for loading users and tasks from a YAML seed file.
"""

import pytest

from taskdesk.core.errors import InvalidInput, InvalidReference
from taskdesk.core.models import Role, TaskStatus
from taskdesk.seed import SeedLoader, load_seed_file
from taskdesk.storage import Collections


SEED = """
users:
  - identity: boss
    email: Boss@Example.com
    displayName: The Boss
    role: admin
  - identity: ann
    email: ann@example.com
tasks:
  - id: task_welcome
    title: Welcome
    description: Try creating your own task
    createdBy: boss
    assignedTo: ann
    status: in-progress
"""


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "seed.yaml"
    path.write_text(SEED)
    return path


class TestSeedLoader:
    @pytest.mark.asyncio
    async def test_load_file(self, seed_file, storage, users):
        counts = await load_seed_file(seed_file, storage.metadata, users)

        assert counts == {"users": 2, "tasks": 1}

        boss = await users.get("boss")
        assert boss.role == Role.ADMIN
        assert boss.email == "boss@example.com"
        assert (await users.get("ann")).display_name == "ann"

        task = await storage.metadata.get(Collections.TASKS, "task_welcome")
        assert task["assigned_to"] == "ann"
        assert task["status"] == TaskStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_loading_twice_is_idempotent(self, seed_file, storage, users):
        await load_seed_file(seed_file, storage.metadata, users)

        counts = await load_seed_file(seed_file, storage.metadata, users)

        assert counts == {"users": 0, "tasks": 0}
        assert await storage.metadata.count(Collections.USERS) == 2

    @pytest.mark.asyncio
    async def test_invalid_role(self, storage, users):
        loader = SeedLoader(storage.metadata, users)

        with pytest.raises(InvalidInput):
            await loader.load({"users": [{"identity": "x", "email": "x@example.com", "role": "root"}]})

    @pytest.mark.asyncio
    async def test_task_with_unknown_user(self, storage, users):
        loader = SeedLoader(storage.metadata, users)

        with pytest.raises(InvalidReference):
            await loader.load({"tasks": [{"title": "T", "description": "D", "createdBy": "ghost"}]})

        assert await storage.metadata.count(Collections.TASKS) == 0

    @pytest.mark.asyncio
    async def test_empty_file(self, tmp_path, storage, users):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert await load_seed_file(path, storage.metadata, users) == {"users": 0, "tasks": 0}
