"""
Admin panel schemas
"""
from typing import Optional

from pydantic import field_validator

from kanban_sync.schemas.base import RequestSchema, clean_text
from kanban_sync.schemas.project import LabelCreate, _upper_role


class AdminUserCreate(RequestSchema):
    email: str
    username: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = "MEMBER"

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        v = clean_text(v, 'Email is required')
        if '@' not in v:
            raise ValueError('Invalid email address')
        return v.lower()

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        return clean_text(v, 'Username is required')

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters long')
        return v

    @field_validator('role', mode='before')
    @classmethod
    def validate_role(cls, v):
        return _upper_role(v)


class AdminUserUpdate(RequestSchema):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None

    @field_validator('role', mode='before')
    @classmethod
    def validate_role(cls, v):
        return None if v is None else _upper_role(v)


class AdminProjectCreate(RequestSchema):
    title: str
    description: Optional[str] = None
    creator_id: Optional[str] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 'Project title cannot be empty')


class AdminBoardCreate(RequestSchema):
    project_id: str
    title: str
    description: Optional[str] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 'Board title cannot be empty')


class AdminLabelCreate(LabelCreate):
    project_id: str
