"""
Comment schemas
"""
from pydantic import field_validator

from kanban_sync.schemas.base import RequestSchema, clean_text


class CommentCreate(RequestSchema):
    content: str
    card_id: str

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        return clean_text(v, 'Comment content cannot be empty')
