"""
User model
"""
from typing import Any, Optional

from pydantic import field_validator

from kanban_sync.models.base import EntityModel
from kanban_sync.models.enums import UserRole, lower_enum_value


class User(EntityModel):
    id: str
    email: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None  # free-form display name on older records
    avatar: Optional[str] = None
    role: Optional[UserRole] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        return lower_enum_value(v) or None

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or self.name or self.username or self.email or "Unknown"

    @classmethod
    def from_api(cls, payload: Any) -> "User":
        """Parse a user, unwrapping a project-membership wrapper or a bare id."""
        if isinstance(payload, str):
            return cls(id=payload)
        if isinstance(payload, dict) and isinstance(payload.get("user"), dict):
            payload = payload["user"]
        return cls.model_validate(payload)

    def __repr__(self):
        return f"<User(id={self.id}, name={self.display_name})>"
