"""
Comment model
"""
from typing import Any, Dict, Optional

from pydantic import Field

from kanban_sync.models.base import EntityModel, UTCDateTime, utcnow
from kanban_sync.models.user import User


class Comment(EntityModel):
    id: str
    content: str
    user_id: str
    card_id: Optional[str] = None
    user: Optional[User] = None
    created_at: UTCDateTime = Field(default_factory=utcnow)
    updated_at: UTCDateTime = Field(default_factory=utcnow)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Comment":
        data = dict(payload)
        if isinstance(data.get("user"), dict):
            data["user"] = User.from_api(data["user"])
            data.setdefault("userId", data["user"].id)
        return cls.model_validate(data)

    def __repr__(self):
        return f"<Comment(id={self.id}, card_id={self.card_id})>"
