"""
Shared fixtures for the Kanban sync tests
"""
import asyncio
import copy
from typing import Any, Dict, List

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from kanban_sync.core.exceptions import APIException
from kanban_sync.models import Attachment, Board, BoardList, Card, Comment, Membership, Project, StoreState, User
from kanban_sync.services.kanban_api import KanbanAPIClient
from kanban_sync.services.persistence import MemoryStorage
from kanban_sync.services.store import KanbanStore

from .fake_backend import FakeBackend

USERS = [
    {"id": "u1", "email": "alice@example.com", "username": "alice",
     "firstName": "Alice", "lastName": "Ng", "role": "OWNER"},
    {"id": "u2", "email": "bob@example.com", "username": "bob",
     "firstName": "Bob", "lastName": None, "role": "MEMBER"},
    {"id": "u3", "email": "carol@example.com", "username": "carol", "role": "MEMBER"},
]


def project_payload() -> Dict[str, Any]:
    """Project p1 -> board b1 -> lists l1 (cards c1, c2) and l2 (empty)."""
    return {
        "id": "p1",
        "title": "Website Redesign",
        "description": "Q3 relaunch",
        "specifications": None,
        "media": [],
        "members": [
            {"id": "m1", "userId": "u1", "projectId": "p1", "role": "OWNER"},
            {"id": "m2", "userId": "u2", "projectId": "p1", "role": "MEMBER"},
        ],
        "labels": [
            {"id": "lb1", "name": "Bug", "color": "#ef4444", "projectId": "p1"},
            {"id": "lb2", "name": "Feature", "color": "#3b82f6", "projectId": "p1"},
        ],
        "boards": [
            {
                "id": "b1",
                "title": "Sprint 1",
                "description": None,
                "projectId": "p1",
                "lists": [
                    {
                        "id": "l1", "title": "To Do", "boardId": "b1", "position": 0,
                        "cards": [
                            _card("c1", "Write copy", "l1", 0, "LOW"),
                            _card("c2", "Pick palette", "l1", 1, "MEDIUM"),
                        ],
                    },
                    {"id": "l2", "title": "Done", "boardId": "b1", "position": 1, "cards": []},
                ],
                "activities": [],
            }
        ],
    }


def _card(card_id: str, title: str, list_id: str, position: int, priority: str) -> Dict[str, Any]:
    return {
        "id": card_id, "title": title, "description": f"{title} for the landing page",
        "listId": list_id, "position": position, "priority": priority, "dueDate": None,
        "assignedTo": [], "labels": [], "comments": [], "attachments": [],
        "createdById": "u1", "createdAt": "2024-05-01T09:00:00Z", "updatedAt": "2024-05-01T09:00:00Z",
    }


def wire_project(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Shape a seed project the way the backend serves it (membership wrappers)."""
    out = copy.deepcopy(payload)
    users = {u["id"]: u for u in USERS}
    out["members"] = [{**m, "user": users[m["userId"]]} for m in payload["members"]]
    return out


def build_state(payload: Dict[str, Any] = None, user_id: str = "u1") -> StoreState:
    project = Project.from_api(wire_project(payload or project_payload()))
    return StoreState(
        projects=[project],
        current_project_id=project.id,
        current_board_id=project.boards[0].id if project.boards else None,
        current_user=User.from_api(next(u for u in USERS if u["id"] == user_id)),
    )


def card_ids(state: StoreState, list_id: str) -> List[str]:
    return [card.id for card in state.current_board.find_list(list_id).cards]


@pytest.fixture
def state() -> StoreState:
    return build_state()


@pytest.fixture
def store(state) -> KanbanStore:
    return KanbanStore(state, storage=MemoryStorage(), name="test-store")


class StubKanbanAPI:
    """Records calls and answers like the backend, with optional failures and gates"""

    def __init__(self):
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.responses: Dict[str, Any] = {}
        self.gates: Dict[str, asyncio.Event] = {}

    def fail(self, name: str, exc: Exception):
        self.failures[name] = exc

    def hold(self, name: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[name] = gate
        return gate

    async def _answer(self, name: str, default, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if name in self.gates:
            await self.gates[name].wait()
        if name in self.failures:
            raise self.failures[name]
        if name in self.responses:
            response = self.responses[name]
            return response(*args, **kwargs) if callable(response) else response
        return default(*args, **kwargs)

    def called(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def create_list(self, title, board_id, position=0):
        return await self._answer(
            "create_list",
            lambda *a, **k: BoardList(id="l-server", title=title, board_id=board_id, position=position),
            title, board_id, position,
        )

    async def create_card(self, title, list_id, description=None, priority=None,
                          due_date=None, position=None):
        def default(*a, **k):
            return Card(id="c-server", title=title, list_id=list_id, description=description,
                        position=position or 0, priority=priority, created_by="u1")
        return await self._answer("create_card", default, title, list_id,
                                  description=description, priority=priority,
                                  due_date=due_date, position=position)

    async def update_card(self, card_id, **fields):
        def default(*a, **k):
            body = {"id": card_id}
            if "title" in fields:
                body["title"] = fields["title"]
            if "description" in fields:
                body["description"] = fields["description"]
            if "priority" in fields:
                priority = fields["priority"]
                body["priority"] = getattr(priority, "value", priority).upper()
            return body
        return await self._answer("update_card", default, card_id, **fields)

    async def move_card(self, card_id, list_id, position):
        return await self._answer(
            "move_card", lambda *a, **k: {"id": card_id, "listId": list_id, "position": position},
            card_id, list_id, position,
        )

    async def delete_card(self, card_id):
        return await self._answer("delete_card", lambda *a, **k: None, card_id)

    async def add_comment(self, card_id, content):
        return await self._answer(
            "add_comment",
            lambda *a, **k: Comment(id="cm-server", content=content, user_id="u1", card_id=card_id),
            card_id, content,
        )

    async def assign_member(self, card_id, user_id, assign=True):
        return await self._answer("assign_member", lambda *a, **k: {"id": card_id},
                                  card_id, user_id, assign=assign)

    async def toggle_label(self, card_id, label_id, add=True):
        return await self._answer("toggle_label", lambda *a, **k: {"id": card_id},
                                  card_id, label_id, add=add)

    async def upload_attachment(self, card_id, filename, content, content_type="application/octet-stream"):
        return await self._answer(
            "upload_attachment",
            lambda *a, **k: Attachment(id="att-1", name=filename, url=f"/uploads/{filename}",
                                       size=len(content), type=content_type),
            card_id, filename, content, content_type,
        )

    async def delete_attachment(self, card_id, attachment_id):
        return await self._answer("delete_attachment", lambda *a, **k: None, card_id, attachment_id)

    async def create_project(self, title, description=None):
        return await self._answer(
            "create_project",
            lambda *a, **k: Project(id="p-server", title=title, description=description),
            title, description=description,
        )

    async def create_board(self, project_id, title, description=None):
        return await self._answer(
            "create_board",
            lambda *a, **k: Board(id="b-server", title=title, description=description,
                                  project_id=project_id),
            project_id, title, description=description,
        )

    async def update_project(self, project_id, **fields):
        return await self._answer("update_project", lambda *a, **k: {"id": project_id, **fields},
                                  project_id, **fields)

    async def add_member(self, project_id, user_email=None, user_id=None, role="MEMBER"):
        def default(*a, **k):
            user = User.from_api(next(u for u in USERS if u["id"] == (user_id or "u3")))
            return Membership(user_id=user.id, project_id=project_id, role=role, user=user)
        return await self._answer("add_member", default, project_id,
                                  user_email=user_email, user_id=user_id, role=role)

    async def get_project(self, project_id):
        return await self._answer("get_project", lambda *a, **k: wire_project(project_payload()),
                                  project_id)

    async def list_projects(self):
        return await self._answer("list_projects", lambda *a, **k: [wire_project(project_payload())])


@pytest.fixture
def stub_api() -> StubKanbanAPI:
    return StubKanbanAPI()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend([project_payload()], USERS)


@pytest_asyncio.fixture
async def server(backend):
    test_server = TestServer(backend.app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest_asyncio.fixture
async def api(server):
    client = KanbanAPIClient(base_url=str(server.make_url("/api")), token="test-token")
    yield client
    await client.close()


@pytest.fixture
def boom() -> APIException:
    return APIException("Internal server error", status_code=500)
