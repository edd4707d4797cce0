"""
Shared utility functions.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "task", "tok")

    Returns:
        A unique ID like "task_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def page_offset(page: int, limit: int) -> int:
    """Number of documents to skip for a 1-based page."""
    return (max(page, 1) - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0
