"""
List schemas
"""
from pydantic import field_validator

from kanban_sync.schemas.base import RequestSchema, clean_text


class ListCreate(RequestSchema):
    title: str
    board_id: str
    position: int = 0

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 'List title cannot be empty')

    @field_validator('position')
    @classmethod
    def validate_position(cls, v):
        if v < 0:
            raise ValueError('Position must be non-negative')
        return v
