"""
Admin panel operations

The backend only serves these to users whose global role is ADMIN or OWNER;
the client sends the request and reports the 401/403 like any other failure.
"""
from typing import Any, Dict, List, Optional

from kanban_sync.models import Board, Label, Project, User
from kanban_sync.schemas import (
    AdminBoardCreate,
    AdminLabelCreate,
    AdminProjectCreate,
    AdminUserCreate,
    AdminUserUpdate,
)
from kanban_sync.services.kanban_api import BaseAPIClient, validate_request


class AdminAPIClient(BaseAPIClient):

    # Users

    async def list_users(self) -> List[User]:
        payload = self._expect_dict(await self.request("GET", "/admin/users"), "users")
        users = self._expect_list(payload.get("users"), "users")
        return [self._parse(User.from_api, item, "user") for item in users]

    async def create_user(self, email: str, username: str, password: str,
                          first_name: Optional[str] = None, last_name: Optional[str] = None,
                          role: str = "MEMBER") -> User:
        body = validate_request(
            AdminUserCreate, email=email, username=username, password=password,
            first_name=first_name, last_name=last_name, role=role,
        )
        payload = await self.request("POST", "/admin/users/create", json_body=body.to_payload())
        return self._parse(User.from_api, self._expect_dict(payload, "user"), "user")

    async def update_user(self, user_id: str, **fields: Any) -> User:
        body = validate_request(AdminUserUpdate, **fields)
        payload = await self.request(
            "PATCH", f"/admin/users/{user_id}",
            json_body=body.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return self._parse(User.from_api, self._expect_dict(payload, "user"), "user")

    async def delete_user(self, user_id: str) -> None:
        await self.request("DELETE", f"/admin/users/{user_id}")

    # Projects

    async def list_projects(self) -> List[Project]:
        payload = self._expect_list(await self.request("GET", "/admin/projects"), "projects")
        return [self._parse(Project.from_api, item, "project") for item in payload]

    async def create_project(self, title: str, description: Optional[str] = None,
                             creator_id: Optional[str] = None) -> Project:
        body = validate_request(
            AdminProjectCreate, title=title, description=description, creator_id=creator_id
        )
        payload = await self.request("POST", "/admin/projects", json_body=body.to_payload())
        return self._parse(Project.from_api, self._expect_dict(payload, "project"), "project")

    async def delete_project(self, project_id: str) -> None:
        await self.request("DELETE", f"/admin/projects/{project_id}")

    # Boards

    async def list_boards(self) -> List[Board]:
        payload = self._expect_list(await self.request("GET", "/admin/projects/boards"), "boards")
        return [self._parse(Board.from_api, item, "board") for item in payload]

    async def create_board(self, project_id: str, title: str,
                           description: Optional[str] = None) -> Board:
        body = validate_request(
            AdminBoardCreate, project_id=project_id, title=title, description=description
        )
        payload = await self.request("POST", "/admin/projects/boards", json_body=body.to_payload())
        payload = self._expect_dict(payload, "board")
        return self._parse(Board.from_api, {"projectId": project_id, **payload}, "board")

    # Labels

    async def list_labels(self, project_id: Optional[str] = None) -> List[Label]:
        params: Optional[Dict[str, Any]] = {"projectId": project_id} if project_id else None
        payload = self._expect_list(
            await self.request("GET", "/admin/labels", params=params), "labels"
        )
        return [self._parse(Label.model_validate, item, "label") for item in payload]

    async def create_label(self, project_id: str, name: str, color: str) -> Label:
        body = validate_request(AdminLabelCreate, project_id=project_id, name=name, color=color)
        payload = await self.request("POST", "/admin/labels", json_body=body.to_payload())
        return self._parse(Label.model_validate, self._expect_dict(payload, "label"), "label")

    async def delete_label(self, label_id: str) -> None:
        await self.request("DELETE", f"/admin/labels/{label_id}")
