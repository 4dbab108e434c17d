"""
Cacophony API - Shared schema helpers
"""
import re
from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Letters, digits, '_', '-' and spaces; must start with a letter or digit
NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_\- ]*$")
MIN_NAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 8

T = TypeVar("T")


class APIModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


class Page(APIModel, Generic[T]):
    """One page of a query plus the total number of matching rows."""
    count: int
    rows: List[T]


def check_new_name(value: str) -> str:
    """Validate a name for a new user, group or device."""
    value = value.strip()
    if len(value) < MIN_NAME_LENGTH:
        raise ValueError(f"must be at least {MIN_NAME_LENGTH} characters")
    if not NAME_PATTERN.match(value):
        raise ValueError("may only contain letters, numbers, dash, underscore and space")
    if not any(c.isalpha() for c in value):
        raise ValueError("must contain at least one letter")
    return value
