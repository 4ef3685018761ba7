"""
Project, board, membership and label schemas
"""
import re
from typing import Optional

from pydantic import field_validator, model_validator

from kanban_sync.models.enums import UserRole
from kanban_sync.schemas.base import RequestSchema, clean_text

HEX_COLOR = re.compile(r'^#(?:[0-9a-fA-F]{3}){1,2}$')


def _upper_role(v):
    if isinstance(v, UserRole):
        return v.value.upper()
    if isinstance(v, str):
        role = v.strip().lower()
        if role not in {r.value for r in UserRole}:
            raise ValueError('Role must be owner, admin, member, or viewer')
        return role.upper()
    return v


class ProjectCreate(RequestSchema):
    title: str
    description: Optional[str] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        v = clean_text(v, 'Project title cannot be empty')
        if len(v) > 255:
            raise ValueError('Project title cannot exceed 255 characters')
        return v


class ProjectUpdate(RequestSchema):
    title: Optional[str] = None
    description: Optional[str] = None
    specifications: Optional[str] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 'Project title cannot be empty')


class BoardCreate(RequestSchema):
    title: str
    description: Optional[str] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 'Board title cannot be empty')


class BoardUpdate(RequestSchema):
    title: Optional[str] = None
    description: Optional[str] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 'Board title cannot be empty')


class MemberAdd(RequestSchema):
    """Backend roles are upper-case on the wire."""
    user_email: Optional[str] = None
    user_id: Optional[str] = None
    role: str = "MEMBER"

    @field_validator('role', mode='before')
    @classmethod
    def validate_role(cls, v):
        return _upper_role(v)

    @model_validator(mode='after')
    def require_target(self):
        if not (self.user_email or self.user_id):
            raise ValueError('Either user email or user id is required')
        return self


class MemberRoleUpdate(RequestSchema):
    user_id: str
    role: str

    @field_validator('role', mode='before')
    @classmethod
    def validate_role(cls, v):
        return _upper_role(v)


class MemberRemove(RequestSchema):
    user_id: str


class LabelCreate(RequestSchema):
    name: str
    color: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return clean_text(v, 'Label name cannot be empty')

    @field_validator('color')
    @classmethod
    def validate_color(cls, v):
        if not HEX_COLOR.match(v.strip()):
            raise ValueError('Color must be a hex value such as #3b82f6')
        return v.strip()
