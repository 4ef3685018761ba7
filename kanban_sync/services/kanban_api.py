"""
Remote operation layer

One coroutine per backend action. Each validates its input before any network
call, sends only the fields the backend needs, and turns a non-success
response into the matching ``APIException``. Nothing here touches the store;
the coordinator decides how a response is merged.

Card write endpoints (update, move, assign, labels) return the raw server
body, because reconciliation needs to know exactly which fields the server
reported. Create endpoints return parsed records.
"""
import asyncio
import json
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

import aiohttp
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from kanban_sync.config import Settings, settings as default_settings
from kanban_sync.core.exceptions import (
    InvalidFormatError,
    NetworkError,
    RequiredFieldError,
    ValidationError,
    error_for_status,
)
from kanban_sync.core.logging import get_logger, log_request_end, log_request_start
from kanban_sync.models import Attachment, Board, BoardList, Card, Comment, Label, Membership, Project, User
from kanban_sync.schemas import (
    BoardCreate,
    BoardUpdate,
    CardAssign,
    CardCreate,
    CardLabelToggle,
    CardMove,
    CardUpdate,
    CommentCreate,
    LabelCreate,
    ListCreate,
    MemberAdd,
    MemberRemove,
    MemberRoleUpdate,
    ProjectCreate,
    ProjectUpdate,
)

logger = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def validate_request(schema: Type[SchemaT], **data: Any) -> SchemaT:
    """Build a request schema, raising ``RequiredFieldError`` or ``ValidationError`` on bad input."""
    try:
        return schema(**data)
    except PydanticValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        missing = [err for err in errors if err["type"] == "missing"]
        if missing:
            field = ".".join(str(part) for part in missing[0]["loc"])
            raise RequiredFieldError(field, details={"errors": errors})
        unknown = [err for err in errors if err["type"] == "extra_forbidden"]
        if unknown:
            field = ".".join(str(part) for part in unknown[0]["loc"])
            raise ValidationError(f"Unknown field '{field}'", details={"errors": errors})
        message = errors[0]["msg"] if errors else "Validation failed"
        # pydantic prefixes custom messages with "Value error, "
        message = message.replace("Value error, ", "", 1)
        raise ValidationError(message, details={"errors": errors})


def _error_message(body: str) -> Optional[str]:
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return None
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return None


class BaseAPIClient:
    """Shared aiohttp transport for the backend's JSON API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        session_cookie: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        self.base_url = (base_url or self.config.api_base_url).rstrip("/")
        self.token = token if token is not None else self.config.api_token
        self.session_cookie = (
            session_cookie if session_cookie is not None else self.config.session_cookie
        )
        self.timeout = self.config.request_timeout if timeout is None else timeout
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self.session and self._owns_session and not self.session.closed:
            await self.session.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            # total=None: no client-side deadline, the transport decides
            timeout = aiohttp.ClientTimeout(total=self.timeout or None)
            self.session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self.session

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.session_cookie:
            headers["Cookie"] = f"{self.config.session_cookie_name}={self.session_cookie}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
    ) -> Any:
        """Issue one request and return the decoded JSON body."""
        session = self._get_session()
        url = f"{self.base_url}{path}"
        log_request_start(logger, method, path)
        start_time = time.perf_counter()

        try:
            async with session.request(
                method, url, json=json_body, params=params, data=data, headers=self._headers()
            ) as response:
                raw = await response.read()
                log_request_end(
                    logger, method, path, response.status, time.perf_counter() - start_time
                )
                if response.status >= 400:
                    raise error_for_status(
                        response.status,
                        _error_message(raw.decode("utf-8", errors="replace")),
                        details={"method": method, "path": path},
                    )
        except aiohttp.ClientError as e:
            logger.warning(f"Request failed: {method} {path} - {e}")
            raise NetworkError(f"{method} {path} failed: {e}")
        except asyncio.TimeoutError:
            logger.warning(f"Request timed out: {method} {path}")
            raise NetworkError(f"{method} {path} timed out")

        if not raw:
            return {}
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise InvalidFormatError(
                f"{method} {path} returned a non-JSON body",
                details={"method": method, "path": path},
            )

    @staticmethod
    def _expect_dict(payload: Any, what: str) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            raise InvalidFormatError(f"Expected {what} object in response")
        return payload

    @staticmethod
    def _expect_list(payload: Any, what: str) -> List[Any]:
        if not isinstance(payload, list):
            raise InvalidFormatError(f"Expected a list of {what} in response")
        return payload

    @staticmethod
    def _parse(parser, payload: Any, what: str):
        try:
            return parser(payload)
        except (PydanticValidationError, KeyError, TypeError, AttributeError) as e:
            raise InvalidFormatError(f"Unexpected {what} shape in response", details={"error": str(e)})


class KanbanAPIClient(BaseAPIClient):
    """Per-entity operations used by the coordinator and synchronizer"""

    # Projects

    async def list_projects(self) -> List[Dict[str, Any]]:
        """Raw project trees, including embedded board activities."""
        return self._expect_list(await self.request("GET", "/projects"), "projects")

    async def get_project(self, project_id: str) -> Dict[str, Any]:
        payload = await self.request("GET", f"/projects/{project_id}")
        return self._expect_dict(payload, "project")

    async def create_project(self, title: str, description: Optional[str] = None) -> Project:
        body = validate_request(ProjectCreate, title=title, description=description)
        payload = await self.request("POST", "/projects", json_body=body.to_payload())
        return self._parse(Project.from_api, self._expect_dict(payload, "project"), "project")

    async def update_project(self, project_id: str, **fields: Any) -> Dict[str, Any]:
        body = validate_request(ProjectUpdate, **fields)
        payload = await self.request(
            "PATCH", f"/projects/{project_id}",
            json_body=body.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return self._expect_dict(payload, "project")

    # Boards

    async def list_boards(self, project_id: str) -> List[Board]:
        payload = self._expect_list(await self.request("GET", f"/projects/{project_id}/boards"), "boards")
        return [
            self._parse(Board.from_api, {"projectId": project_id, **item}, "board")
            for item in payload
        ]

    async def create_board(self, project_id: str, title: str,
                           description: Optional[str] = None) -> Board:
        body = validate_request(BoardCreate, title=title, description=description)
        payload = self._expect_dict(
            await self.request("POST", f"/projects/{project_id}/boards", json_body=body.to_payload()),
            "board",
        )
        return self._parse(Board.from_api, {"projectId": project_id, **payload}, "board")

    async def update_board(self, board_id: str, **fields: Any) -> Board:
        body = validate_request(BoardUpdate, **fields)
        payload = self._expect_dict(
            await self.request(
                "PATCH", f"/boards/{board_id}",
                json_body=body.model_dump(mode="json", by_alias=True, exclude_unset=True),
            ),
            "board",
        )
        return self._parse(Board.from_api, payload, "board")

    async def delete_board(self, board_id: str) -> None:
        await self.request("DELETE", f"/boards/{board_id}")

    # Lists and cards

    async def create_list(self, title: str, board_id: str, position: int = 0) -> BoardList:
        body = validate_request(ListCreate, title=title, board_id=board_id, position=position)
        payload = self._expect_dict(
            await self.request("POST", "/lists", json_body=body.to_payload()), "list"
        )
        return self._parse(BoardList.from_api, {"boardId": board_id, **payload}, "list")

    async def create_card(self, title: str, list_id: str, description: Optional[str] = None,
                          priority: Optional[str] = None, due_date: Optional[datetime] = None,
                          position: Optional[int] = None) -> Card:
        body = validate_request(
            CardCreate, title=title, list_id=list_id, description=description,
            priority=priority, due_date=due_date, position=position,
        )
        payload = self._expect_dict(
            await self.request("POST", "/cards", json_body=body.to_payload()), "card"
        )
        return self._parse(Card.from_api, {"listId": list_id, **payload}, "card")

    async def update_card(self, card_id: str, **fields: Any) -> Dict[str, Any]:
        body = validate_request(CardUpdate, **fields)
        payload = await self.request("PUT", f"/cards/{card_id}", json_body=body.to_payload())
        return self._expect_dict(payload, "card")

    async def move_card(self, card_id: str, list_id: str, position: int) -> Dict[str, Any]:
        body = validate_request(CardMove, list_id=list_id, position=position)
        payload = await self.request("PATCH", f"/cards/{card_id}/move", json_body=body.to_payload())
        return self._expect_dict(payload, "card")

    async def delete_card(self, card_id: str) -> None:
        await self.request("DELETE", f"/cards/{card_id}")

    async def assign_member(self, card_id: str, user_id: str, assign: bool = True) -> Dict[str, Any]:
        body = validate_request(CardAssign, user_id=user_id, assign=assign)
        payload = await self.request("POST", f"/cards/{card_id}/assign", json_body=body.to_payload())
        return self._expect_dict(payload, "card")

    async def toggle_label(self, card_id: str, label_id: str, add: bool = True) -> Dict[str, Any]:
        body = validate_request(CardLabelToggle, label_id=label_id, add=add)
        payload = await self.request("POST", f"/cards/{card_id}/labels", json_body=body.to_payload())
        return self._expect_dict(payload, "card")

    # Comments

    async def add_comment(self, card_id: str, content: str) -> Comment:
        body = validate_request(CommentCreate, content=content, card_id=card_id)
        payload = self._expect_dict(
            await self.request("POST", "/comments", json_body=body.to_payload()), "comment"
        )
        return self._parse(Comment.from_api, {"cardId": card_id, **payload}, "comment")

    # Attachments

    async def upload_attachment(self, card_id: str, filename: str, content: bytes,
                                content_type: str = "application/octet-stream") -> Attachment:
        if not filename:
            raise ValidationError("File name is required")
        if len(content) > self.config.max_file_size:
            raise ValidationError(
                "File size must be less than 10MB",
                details={"size": len(content), "max_size": self.config.max_file_size},
            )
        form = aiohttp.FormData()
        form.add_field("file", content, filename=filename, content_type=content_type)
        payload = self._expect_dict(
            await self.request("POST", f"/cards/{card_id}/attachments", data=form), "attachment"
        )
        return self._parse(lambda p: Attachment.model_validate(p["attachment"]), payload, "attachment")

    async def delete_attachment(self, card_id: str, attachment_id: str) -> None:
        await self.request(
            "DELETE", f"/cards/{card_id}/attachments", json_body={"attachmentId": attachment_id}
        )

    # Members

    async def list_members(self, project_id: str) -> List[Membership]:
        payload = self._expect_list(
            await self.request("GET", f"/projects/{project_id}/members"), "members"
        )
        return [self._parse(lambda m: Membership.from_api(m, project_id), item, "member")
                for item in payload]

    async def add_member(self, project_id: str, user_email: Optional[str] = None,
                         user_id: Optional[str] = None, role: str = "MEMBER") -> Membership:
        body = validate_request(MemberAdd, user_email=user_email, user_id=user_id, role=role)
        payload = self._expect_dict(
            await self.request("POST", f"/projects/{project_id}/members", json_body=body.to_payload()),
            "member",
        )
        return self._parse(lambda m: Membership.from_api(m, project_id), payload, "member")

    async def update_member_role(self, project_id: str, user_id: str, role: str) -> Membership:
        body = validate_request(MemberRoleUpdate, user_id=user_id, role=role)
        payload = self._expect_dict(
            await self.request("PATCH", f"/projects/{project_id}/members", json_body=body.to_payload()),
            "member",
        )
        return self._parse(lambda m: Membership.from_api(m, project_id), payload, "member")

    async def remove_member(self, project_id: str, user_id: str) -> None:
        body = validate_request(MemberRemove, user_id=user_id)
        await self.request("DELETE", f"/projects/{project_id}/members", json_body=body.to_payload())

    # Labels

    async def list_labels(self, project_id: str) -> List[Label]:
        payload = self._expect_list(
            await self.request("GET", f"/projects/{project_id}/labels"), "labels"
        )
        return [self._parse(Label.model_validate, {"projectId": project_id, **item}, "label")
                for item in payload]

    async def create_label(self, project_id: str, name: str, color: str) -> Label:
        body = validate_request(LabelCreate, name=name, color=color)
        payload = self._expect_dict(
            await self.request("POST", f"/projects/{project_id}/labels", json_body=body.to_payload()),
            "label",
        )
        return self._parse(Label.model_validate, {"projectId": project_id, **payload}, "label")

    # Users

    async def search_users(self, query: str, project_id: Optional[str] = None) -> List[User]:
        params = {"q": query}
        if project_id:
            params["projectId"] = project_id
        payload = self._expect_list(
            await self.request("GET", "/users/search", params=params), "users"
        )
        return [self._parse(User.from_api, item, "user") for item in payload]
