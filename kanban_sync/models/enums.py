"""
Enumerations shared by the entity records
"""
from enum import Enum
from typing import Any, Optional


class UserRole(str, Enum):
    """Global platform role, also used for project-scoped memberships."""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ActivityType(str, Enum):
    CARD_CREATED = "CARD_CREATED"
    CARD_MOVED = "CARD_MOVED"
    CARD_UPDATED = "CARD_UPDATED"
    COMMENT_ADDED = "COMMENT_ADDED"
    MEMBER_ADDED = "MEMBER_ADDED"


MANAGER_ROLES = (UserRole.OWNER, UserRole.ADMIN)


def lower_enum_value(value: Any) -> Any:
    """Backend enums arrive upper-cased ("HIGH", "OWNER")."""
    if isinstance(value, str):
        return value.strip().lower()
    return value


def parse_priority(value: Any) -> Optional[Priority]:
    """Lenient priority parse used on server payloads: unknown values become None."""
    if value is None or value == "":
        return None
    if isinstance(value, Priority):
        return value
    try:
        return Priority(lower_enum_value(value))
    except ValueError:
        return None
