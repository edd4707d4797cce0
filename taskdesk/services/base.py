"""
Helpers shared by the directory services.
"""

from __future__ import annotations

from typing import Any, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from taskdesk.core.errors import InvalidInput

M = TypeVar("M", bound=BaseModel)


def describe_errors(errors: Sequence[dict[str, Any]]) -> str:
    """First validation failure as a human-readable sentence."""
    if not errors:
        return "Invalid input"
    first = errors[0]
    message = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {message}" if field else message


def build(model: type[M], data: dict[str, Any]) -> M:
    """Validate `data` into `model`, reporting failures as InvalidInput."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidInput(describe_errors(e.errors()))
