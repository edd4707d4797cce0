"""
Core data models: Users and Tasks.

Field names are snake_case in Python and in the document store; the API
speaks camelCase (``displayName``, ``assignedTo``) via field aliases. Both
spellings are accepted on input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from taskdesk.core.utils import generate_id, page_offset, total_pages, utc_now


# =============================================================================
# Enums
# =============================================================================


class Role(str, Enum):
    """Platform-wide role controlling coarse-grained access."""

    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# Base
# =============================================================================


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Users
# =============================================================================


class UserProfile(CamelModel):
    """Optional profile details a user can edit themselves."""

    avatar: str | None = None
    department: str | None = None
    phone_number: str | None = None


class User(CamelModel):
    """
    One authenticated principal.

    Keyed by ``identity``, the subject id issued by the identity provider.
    The permission set is not stored; see ``taskdesk.auth.permissions``.
    """

    identity: str
    email: str
    display_name: str = Field(min_length=1, max_length=50)
    role: Role = Role.USER
    is_active: bool = True
    last_login: datetime = Field(default_factory=utc_now)
    profile: UserProfile | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("display_name")
    @classmethod
    def _strip_display_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Display name is required")
        return value


# =============================================================================
# Tasks
# =============================================================================


def _clean_tags(tags: list[str]) -> list[str]:
    """Strip, drop empties, dedupe preserving order."""
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _required_text(value: str, field: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{field} is required")
    return value


class Task(CamelModel):
    """One unit of work."""

    id: str = Field(default_factory=lambda: generate_id("task"))
    title: str = Field(max_length=100)
    description: str = Field(max_length=1000)
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    created_by: str = Field(min_length=1)
    assigned_to: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)
    is_archived: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        return _required_text(value, "Title")

    @field_validator("description")
    @classmethod
    def _description_required(cls, value: str) -> str:
        return _required_text(value, "Description")

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        return _clean_tags(value)

    @field_validator("due_date")
    @classmethod
    def _due_date_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class Pagination(CamelModel):
    """Page metadata attached to every listing."""

    current_page: int
    total_pages: int
    total: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int, returned: int) -> Pagination:
        offset = page_offset(page, limit)
        return cls(
            current_page=page,
            total_pages=total_pages(total, limit),
            total=total,
            has_next=offset + returned < total,
            has_prev=page > 1,
        )


def as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
