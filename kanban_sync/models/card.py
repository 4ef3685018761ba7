"""
Card model
"""
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from kanban_sync.models.attachment import Attachment
from kanban_sync.models.base import EntityModel, UTCDateTime, utcnow
from kanban_sync.models.comment import Comment
from kanban_sync.models.enums import Priority, parse_priority
from kanban_sync.models.user import User


class Card(EntityModel):
    id: str
    title: str
    description: Optional[str] = None
    list_id: str
    position: int = 0
    priority: Optional[Priority] = None
    due_date: Optional[UTCDateTime] = None
    assigned_to: List[User] = Field(default_factory=list)
    labels: List[str] = Field(default_factory=list)  # label ids
    comments: List[Comment] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)
    created_by: Optional[str] = None  # user id
    created_at: UTCDateTime = Field(default_factory=utcnow)
    updated_at: UTCDateTime = Field(default_factory=utcnow)

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v):
        return parse_priority(v)

    @classmethod
    def normalize_payload(cls, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Bring a backend card body into local shape.

        Only keys present in ``payload`` appear in the result, so callers can
        tell which fields the server actually reported.
        """
        data: Dict[str, Any] = {}
        for key, value in payload.items():
            if key == "assignedTo":
                data["assignedTo"] = [User.from_api(u) for u in (value or [])]
            elif key == "labels":
                data["labels"] = [
                    label if isinstance(label, str) else label["id"]
                    for label in (value or [])
                ]
            elif key == "comments":
                data["comments"] = [Comment.from_api(c) for c in (value or [])]
            elif key == "attachments":
                data["attachments"] = list(value or [])
            elif key == "createdBy":
                data["createdBy"] = value.get("id") if isinstance(value, dict) else value
            elif key == "createdById":
                data.setdefault("createdBy", value)
            elif key in cls._wire_fields():
                data[key] = value
        return data

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Card":
        return cls.model_validate(cls.normalize_payload(payload))

    def reconcile(self, payload: Dict[str, Any]) -> "Card":
        """Overwrite every field the server reported; keep the rest."""
        reported = self.normalize_payload(payload)
        reported.pop("id", None)
        merged = self.model_validate({**self.to_api(), **reported})
        names = {self._field_for_alias(alias) for alias in reported}
        return self.model_copy(update={name: getattr(merged, name) for name in names})

    @classmethod
    def _wire_fields(cls):
        return {info.alias or name for name, info in cls.model_fields.items()}

    @classmethod
    def _field_for_alias(cls, alias: str) -> str:
        for name, info in cls.model_fields.items():
            if (info.alias or name) == alias:
                return name
        return alias

    def has_assignee(self, user_id: str) -> bool:
        return any(user.id == user_id for user in self.assigned_to)

    def __repr__(self):
        return f"<Card(id={self.id}, title={self.title})>"
