"""
Card schemas
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import field_validator

from kanban_sync.models.enums import Priority, lower_enum_value
from kanban_sync.schemas.base import RequestSchema, clean_text


def _validate_position(v):
    if v is not None and v < 0:
        raise ValueError('Position must be non-negative')
    return v


class CardCreate(RequestSchema):
    title: str
    list_id: str
    description: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None
    position: Optional[int] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 'Card title cannot be empty')

    @field_validator('list_id')
    @classmethod
    def validate_list_id(cls, v):
        return clean_text(v, 'List id is required')

    @field_validator('priority', mode='before')
    @classmethod
    def validate_priority(cls, v):
        return lower_enum_value(v) or None

    @field_validator('position')
    @classmethod
    def validate_position(cls, v):
        return _validate_position(v)


class CardUpdate(RequestSchema):
    """Partial update; only the fields the caller set are sent."""
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 'Card title cannot be empty')

    @field_validator('priority', mode='before')
    @classmethod
    def validate_priority(cls, v):
        return lower_enum_value(v) or None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class CardMove(RequestSchema):
    list_id: str
    position: int = 0

    @field_validator('list_id')
    @classmethod
    def validate_list_id(cls, v):
        return clean_text(v, 'Target list id is required')

    @field_validator('position')
    @classmethod
    def validate_position(cls, v):
        return _validate_position(v)


class CardAssign(RequestSchema):
    user_id: str
    assign: bool


class CardLabelToggle(RequestSchema):
    label_id: str
    add: bool
