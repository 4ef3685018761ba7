"""
Project and membership models
"""
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from kanban_sync.models.attachment import ProjectMedia
from kanban_sync.models.base import EntityModel, UTCDateTime, utcnow
from kanban_sync.models.board import Board
from kanban_sync.models.enums import MANAGER_ROLES, UserRole, lower_enum_value
from kanban_sync.models.label import Label
from kanban_sync.models.user import User


class Membership(EntityModel):
    """Project-scoped role, independent of the user's global role"""
    id: Optional[str] = None
    user_id: str
    project_id: Optional[str] = None
    role: UserRole = UserRole.MEMBER
    user: Optional[User] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        return lower_enum_value(v) or UserRole.MEMBER

    @classmethod
    def from_api(cls, payload: Dict[str, Any], project_id: Optional[str] = None) -> "Membership":
        data = dict(payload)
        if isinstance(data.get("user"), dict):
            data["user"] = User.from_api(data["user"])
            data.setdefault("userId", data["user"].id)
        if project_id is not None:
            data.setdefault("projectId", project_id)
        return cls.model_validate(data)


class Project(EntityModel):
    id: str
    title: str
    description: Optional[str] = None
    specifications: Optional[str] = None
    media: List[ProjectMedia] = Field(default_factory=list)
    members: List[User] = Field(default_factory=list)
    memberships: List[Membership] = Field(default_factory=list)
    labels: List[Label] = Field(default_factory=list)
    boards: List[Board] = Field(default_factory=list)
    created_at: UTCDateTime = Field(default_factory=utcnow)
    updated_at: UTCDateTime = Field(default_factory=utcnow)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Project":
        """Parse a full project tree as returned by ``GET /projects/{id}``.

        Membership wrappers (``{"role": ..., "user": {...}}``) are flattened
        into ``members`` while their roles are kept in ``memberships``.
        Embedded board activities are not part of the tree; the activity log
        collects them separately.
        """
        project_id = payload.get("id")
        raw_members = payload.get("members") or []

        data = dict(payload)
        data["members"] = [User.from_api(m) for m in raw_members]
        if "memberships" in payload:
            data["memberships"] = [
                Membership.from_api(m, project_id) for m in payload["memberships"] or []
            ]
        else:
            data["memberships"] = [
                Membership.from_api(m, project_id)
                for m in raw_members
                if isinstance(m, dict) and isinstance(m.get("user"), dict)
            ]
        data["labels"] = [
            {"projectId": project_id, **label} for label in (payload.get("labels") or [])
        ]
        data["boards"] = [
            Board.from_api({"projectId": project_id, **board})
            for board in (payload.get("boards") or [])
        ]
        return cls.model_validate(data)

    def find_board(self, board_id: Optional[str]) -> Optional[Board]:
        return next((board for board in self.boards if board.id == board_id), None)

    def member(self, user_id: str) -> Optional[User]:
        return next((user for user in self.members if user.id == user_id), None)

    def label(self, label_id: str) -> Optional[Label]:
        return next((label for label in self.labels if label.id == label_id), None)

    def role_of(self, user_id: str) -> Optional[UserRole]:
        for membership in self.memberships:
            if membership.user_id == user_id:
                return membership.role
        return None

    def can_manage(self, user_id: str) -> bool:
        """UI hint only; the backend re-checks every write."""
        return self.role_of(user_id) in MANAGER_ROLES

    def __repr__(self):
        return f"<Project(id={self.id}, title={self.title})>"
