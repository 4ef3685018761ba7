"""
Activity model

Activities are append-only feed entries; nothing edits one after creation.
"""
from typing import Any, Dict, Optional

from pydantic import Field

from kanban_sync.models.base import EntityModel, UTCDateTime, utcnow
from kanban_sync.models.enums import ActivityType


class Activity(EntityModel):
    id: str
    type: ActivityType
    user_id: str
    card_id: Optional[str] = None
    list_id: Optional[str] = None
    board_id: Optional[str] = None
    description: str
    created_at: UTCDateTime = Field(default_factory=utcnow)

    @property
    def is_pending(self) -> bool:
        """Client-generated entry the server has not reported back yet."""
        return self.board_id is None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Activity":
        data = dict(payload)
        if isinstance(data.get("user"), dict):
            data.setdefault("userId", data["user"].get("id"))
        return cls.model_validate(data)

    def __repr__(self):
        return f"<Activity(id={self.id}, type={self.type.value})>"
