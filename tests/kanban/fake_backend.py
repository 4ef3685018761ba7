"""
In-memory stand-in for the project-management backend

Serves the JSON API the client consumes from plain dicts, records every
request, and can be told to fail or hold specific routes.
"""
import asyncio
import copy
import itertools
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from aiohttp import web


@dataclass
class RecordedRequest:
    method: str
    path: str
    body: Any


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _not_found(what: str) -> web.Response:
    return web.json_response({"error": f"{what} not found"}, status=404)


class FakeBackend:
    """aiohttp application holding projects, users and the request log"""

    def __init__(self, projects: List[Dict[str, Any]], users: List[Dict[str, Any]],
                 session_user_id: str = "u1"):
        self.projects: Dict[str, Dict[str, Any]] = {
            p["id"]: copy.deepcopy(p) for p in projects
        }
        self.users: Dict[str, Dict[str, Any]] = {u["id"]: copy.deepcopy(u) for u in users}
        self.session_user_id = session_user_id
        self.requests: List[RecordedRequest] = []
        self.failures: Dict[Tuple[str, str], Tuple[int, Optional[str]]] = {}
        self.gates: Dict[Tuple[str, str], asyncio.Event] = {}
        self.raw_bodies: Dict[Tuple[str, str], Tuple[int, Union[str, bytes]]] = {}
        self._ids = itertools.count(1)

        @web.middleware
        async def record_and_inject(request: web.Request, handler):
            body = None
            if request.can_read_body and request.content_type == "application/json":
                body = await request.json()
            self.requests.append(RecordedRequest(request.method, request.path, body))

            key = (request.method, request.path)
            gate = self.gates.get(key)
            if gate is not None:
                await gate.wait()
            if key in self.failures:
                status, error = self.failures[key]
                if error is None:
                    return web.Response(status=status)
                return web.json_response({"error": error}, status=status)
            if key in self.raw_bodies:
                status, raw = self.raw_bodies[key]
                if isinstance(raw, bytes):
                    return web.Response(status=status, body=raw,
                                        content_type="application/json", charset="utf-8")
                return web.Response(status=status, text=raw, content_type="text/html")
            return await handler(request)

        self.app = web.Application(middlewares=[record_and_inject])
        self.app.add_routes([
            web.get("/api/projects", self.list_projects),
            web.post("/api/projects", self.create_project),
            web.get("/api/projects/{id}", self.get_project),
            web.patch("/api/projects/{id}", self.update_project),
            web.get("/api/projects/{id}/boards", self.list_boards),
            web.post("/api/projects/{id}/boards", self.create_board),
            web.get("/api/projects/{id}/members", self.list_members),
            web.post("/api/projects/{id}/members", self.add_member),
            web.patch("/api/projects/{id}/members", self.update_member),
            web.delete("/api/projects/{id}/members", self.remove_member),
            web.get("/api/projects/{id}/labels", self.list_labels),
            web.post("/api/projects/{id}/labels", self.create_label),
            web.patch("/api/boards/{id}", self.update_board),
            web.delete("/api/boards/{id}", self.delete_board),
            web.post("/api/lists", self.create_list),
            web.post("/api/cards", self.create_card),
            web.put("/api/cards/{id}", self.update_card),
            web.delete("/api/cards/{id}", self.delete_card),
            web.patch("/api/cards/{id}/move", self.move_card),
            web.post("/api/cards/{id}/assign", self.assign_card),
            web.post("/api/cards/{id}/labels", self.toggle_label),
            web.post("/api/cards/{id}/attachments", self.upload_attachment),
            web.delete("/api/cards/{id}/attachments", self.delete_attachment),
            web.post("/api/comments", self.create_comment),
            web.get("/api/users/search", self.search_users),
            web.get("/api/admin/users", self.admin_list_users),
            web.post("/api/admin/users/create", self.admin_create_user),
            web.patch("/api/admin/users/{id}", self.admin_update_user),
            web.delete("/api/admin/users/{id}", self.admin_delete_user),
            web.get("/api/admin/projects", self.admin_list_projects),
            web.post("/api/admin/projects", self.admin_create_project),
            web.get("/api/admin/projects/boards", self.admin_list_boards),
            web.post("/api/admin/projects/boards", self.admin_create_board),
            web.delete("/api/admin/projects/{id}", self.admin_delete_project),
            web.get("/api/admin/labels", self.admin_list_labels),
            web.post("/api/admin/labels", self.admin_create_label),
            web.delete("/api/admin/labels/{id}", self.admin_delete_label),
        ])

    # Test controls

    def fail(self, method: str, path: str, status: int = 500, error: Optional[str] = None):
        self.failures[(method, f"/api{path}")] = (status, error)

    def recover(self, method: str, path: str):
        self.failures.pop((method, f"/api{path}"), None)

    def respond_raw(self, method: str, path: str, text: Union[str, bytes], status: int = 200):
        self.raw_bodies[(method, f"/api{path}")] = (status, text)

    def hold(self, method: str, path: str) -> asyncio.Event:
        """Park matching requests until the returned event is set."""
        gate = asyncio.Event()
        self.gates[(method, f"/api{path}")] = gate
        return gate

    def requests_to(self, method: str, path: str) -> List[RecordedRequest]:
        full = f"/api{path}"
        return [r for r in self.requests if r.method == method and r.path == full]

    def add_server_activity(self, project_id: str, board_id: str, activity_type: str,
                            description: str, card_id: Optional[str] = None,
                            user_id: str = "u2") -> Dict[str, Any]:
        """Simulate a change made by somebody else."""
        activity = self._activity(board_id, activity_type, description, card_id, user_id=user_id)
        self._board(project_id, board_id)["activities"].insert(0, activity)
        return activity

    def card(self, card_id: str) -> Optional[Dict[str, Any]]:
        found = self._find_card(card_id)
        return found[3] if found else None

    # Lookup helpers

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _board(self, project_id: str, board_id: str) -> Dict[str, Any]:
        return next(b for b in self.projects[project_id]["boards"] if b["id"] == board_id)

    def _find_board(self, board_id: str):
        for project in self.projects.values():
            for board in project["boards"]:
                if board["id"] == board_id:
                    return project, board
        return None

    def _find_list(self, list_id: str):
        for project in self.projects.values():
            for board in project["boards"]:
                for board_list in board["lists"]:
                    if board_list["id"] == list_id:
                        return project, board, board_list
        return None

    def _find_card(self, card_id: str):
        for project in self.projects.values():
            for board in project["boards"]:
                for board_list in board["lists"]:
                    for card in board_list["cards"]:
                        if card["id"] == card_id:
                            return project, board, board_list, card
        return None

    def _is_member(self, project: Dict[str, Any], user_id: str) -> bool:
        return any(m["userId"] == user_id for m in project["members"])

    def _activity(self, board_id: str, activity_type: str, description: str,
                  card_id: Optional[str] = None, list_id: Optional[str] = None,
                  user_id: Optional[str] = None) -> Dict[str, Any]:
        return {
            "id": self._next_id("act"),
            "type": activity_type,
            "userId": user_id or self.session_user_id,
            "cardId": card_id,
            "listId": list_id,
            "boardId": board_id,
            "description": description,
            "createdAt": _now(),
        }

    def _record(self, board: Dict[str, Any], *args, **kwargs):
        board["activities"].insert(0, self._activity(board["id"], *args, **kwargs))

    # Serialization

    def _user_out(self, user_id: str) -> Dict[str, Any]:
        return copy.deepcopy(self.users.get(user_id, {"id": user_id}))

    def _card_out(self, project: Dict[str, Any], board: Dict[str, Any],
                  card: Dict[str, Any]) -> Dict[str, Any]:
        out = copy.deepcopy(card)
        out["assignedTo"] = [self._user_out(uid) for uid in card["assignedTo"]]
        labels = {label["id"]: label for label in project["labels"]}
        out["labels"] = [copy.deepcopy(labels.get(lid, {"id": lid})) for lid in card["labels"]]
        out["list"] = {"id": card["listId"], "boardId": board["id"]}
        return out

    def _project_out(self, project: Dict[str, Any]) -> Dict[str, Any]:
        out = copy.deepcopy(project)
        out["members"] = [
            {**copy.deepcopy(m), "user": self._user_out(m["userId"])} for m in project["members"]
        ]
        for board_out, board in zip(out["boards"], project["boards"]):
            for list_out, board_list in zip(board_out["lists"], board["lists"]):
                list_out["cards"] = [self._card_out(project, board, c) for c in board_list["cards"]]
        return out

    # Projects

    async def list_projects(self, request):
        return web.json_response([self._project_out(p) for p in self.projects.values()])

    async def create_project(self, request):
        body = await request.json()
        project = {
            "id": self._next_id("p"), "title": body["title"],
            "description": body.get("description"), "specifications": None, "media": [],
            "members": [{"id": self._next_id("m"), "userId": self.session_user_id, "role": "OWNER"}],
            "labels": [], "boards": [],
        }
        self.projects[project["id"]] = project
        return web.json_response(self._project_out(project), status=201)

    async def get_project(self, request):
        project = self.projects.get(request.match_info["id"])
        if project is None:
            return _not_found("Project")
        return web.json_response(self._project_out(project))

    async def update_project(self, request):
        project = self.projects.get(request.match_info["id"])
        if project is None:
            return _not_found("Project")
        body = await request.json()
        for key in ("title", "description", "specifications"):
            if key in body:
                project[key] = body[key]
        return web.json_response(self._project_out(project))

    # Boards

    async def list_boards(self, request):
        project = self.projects.get(request.match_info["id"])
        if project is None:
            return _not_found("Project")
        return web.json_response([
            {k: v for k, v in board.items() if k not in ("lists", "activities")}
            for board in project["boards"]
        ])

    async def create_board(self, request):
        project = self.projects.get(request.match_info["id"])
        if project is None:
            return _not_found("Project")
        body = await request.json()
        board = {
            "id": self._next_id("b"), "title": body["title"],
            "description": body.get("description"), "projectId": project["id"],
            "lists": [], "activities": [],
        }
        project["boards"].append(board)
        return web.json_response(board)

    async def update_board(self, request):
        found = self._find_board(request.match_info["id"])
        if found is None:
            return _not_found("Board")
        _, board = found
        body = await request.json()
        for key in ("title", "description"):
            if key in body:
                board[key] = body[key]
        return web.json_response({k: v for k, v in board.items() if k != "activities"})

    async def delete_board(self, request):
        found = self._find_board(request.match_info["id"])
        if found is None:
            return _not_found("Board")
        project, board = found
        project["boards"].remove(board)
        return web.json_response({"success": True})

    # Lists and cards

    async def create_list(self, request):
        body = await request.json()
        found = self._find_board(body.get("boardId"))
        if found is None:
            return _not_found("Board")
        _, board = found
        board_list = {
            "id": self._next_id("l"), "title": body["title"], "boardId": board["id"],
            "position": body.get("position", len(board["lists"])), "cards": [],
        }
        board["lists"].append(board_list)
        return web.json_response(board_list, status=201)

    async def create_card(self, request):
        body = await request.json()
        found = self._find_list(body.get("listId"))
        if found is None:
            return _not_found("List")
        project, board, board_list = found
        card = {
            "id": self._next_id("c"), "title": body["title"],
            "description": body.get("description"), "listId": board_list["id"],
            "position": len(board_list["cards"]),
            "priority": (body.get("priority") or "medium").upper(),
            "dueDate": body.get("dueDate"), "assignedTo": [], "labels": [], "comments": [],
            "attachments": [], "createdById": self.session_user_id,
            "createdAt": _now(), "updatedAt": _now(),
        }
        board_list["cards"].append(card)
        self._record(board, "CARD_CREATED", f'created card "{card["title"]}"',
                     card_id=card["id"], list_id=board_list["id"])
        return web.json_response(self._card_out(project, board, card), status=201)

    async def update_card(self, request):
        found = self._find_card(request.match_info["id"])
        if found is None:
            return _not_found("Card")
        project, board, _, card = found
        body = await request.json()
        for key in ("title", "description", "dueDate"):
            if key in body:
                card[key] = body[key]
        if "priority" in body:
            card["priority"] = body["priority"].upper() if body["priority"] else None
        card["updatedAt"] = _now()
        self._record(board, "CARD_UPDATED", f'updated card "{card["title"]}"', card_id=card["id"])
        return web.json_response(self._card_out(project, board, card))

    async def delete_card(self, request):
        found = self._find_card(request.match_info["id"])
        if found is None:
            return _not_found("Card")
        _, _, board_list, card = found
        board_list["cards"].remove(card)
        return web.json_response({"success": True})

    async def move_card(self, request):
        found = self._find_card(request.match_info["id"])
        if found is None:
            return _not_found("Card")
        project, board, source, card = found
        body = await request.json()
        target = next((bl for bl in board["lists"] if bl["id"] == body["listId"]), None)
        if target is None:
            return _not_found("List")
        source["cards"].remove(card)
        target["cards"].insert(body["position"], card)
        card["listId"] = target["id"]
        for bl in (source, target):
            for index, sibling in enumerate(bl["cards"]):
                sibling["position"] = index
        self._record(board, "CARD_MOVED", f'moved card "{card["title"]}"',
                     card_id=card["id"], list_id=target["id"])
        return web.json_response(self._card_out(project, board, card))

    async def assign_card(self, request):
        found = self._find_card(request.match_info["id"])
        if found is None:
            return _not_found("Card")
        project, board, _, card = found
        body = await request.json()
        user_id = body["userId"]
        if not self._is_member(project, user_id):
            return web.json_response(
                {"error": "User is not a member of this project"}, status=400
            )
        if body["assign"] and user_id not in card["assignedTo"]:
            card["assignedTo"].append(user_id)
        elif not body["assign"] and user_id in card["assignedTo"]:
            card["assignedTo"].remove(user_id)
        return web.json_response(self._card_out(project, board, card))

    async def toggle_label(self, request):
        found = self._find_card(request.match_info["id"])
        if found is None:
            return _not_found("Card")
        project, board, _, card = found
        body = await request.json()
        label_id = body["labelId"]
        if body["add"] and label_id not in card["labels"]:
            card["labels"].append(label_id)
        elif not body["add"] and label_id in card["labels"]:
            card["labels"].remove(label_id)
        return web.json_response(self._card_out(project, board, card))

    async def upload_attachment(self, request):
        found = self._find_card(request.match_info["id"])
        if found is None:
            return _not_found("Card")
        card = found[3]
        form = await request.post()
        upload = form.get("file")
        if upload is None:
            return web.json_response({"error": "No file provided"}, status=400)
        content = upload.file.read()
        attachment = {
            "id": self._next_id("att"), "name": upload.filename,
            "url": f"/uploads/attachments/{upload.filename}", "size": len(content),
            "type": upload.content_type, "uploadedAt": _now(),
        }
        card["attachments"].append(attachment)
        return web.json_response({"attachment": attachment})

    async def delete_attachment(self, request):
        found = self._find_card(request.match_info["id"])
        if found is None:
            return _not_found("Card")
        card = found[3]
        body = await request.json()
        card["attachments"] = [a for a in card["attachments"] if a["id"] != body["attachmentId"]]
        return web.json_response({"success": True})

    # Comments

    async def create_comment(self, request):
        body = await request.json()
        found = self._find_card(body.get("cardId"))
        if found is None:
            return _not_found("Card")
        _, board, _, card = found
        comment = {
            "id": self._next_id("cm"), "content": body["content"], "cardId": card["id"],
            "userId": self.session_user_id, "createdAt": _now(), "updatedAt": _now(),
        }
        card["comments"].append(comment)
        self._record(board, "COMMENT_ADDED", "added a comment", card_id=card["id"])
        return web.json_response(
            {**comment, "user": self._user_out(self.session_user_id)}, status=201
        )

    # Members and labels

    async def list_members(self, request):
        project = self.projects.get(request.match_info["id"])
        if project is None:
            return _not_found("Project")
        return web.json_response(self._project_out(project)["members"])

    async def add_member(self, request):
        project = self.projects.get(request.match_info["id"])
        if project is None:
            return _not_found("Project")
        body = await request.json()
        user_id = body.get("userId")
        if user_id is None:
            user_id = next(
                (u["id"] for u in self.users.values() if u.get("email") == body.get("userEmail")),
                None,
            )
        if user_id is None:
            return _not_found("User")
        if self._is_member(project, user_id):
            return web.json_response({"error": "User is already a member"}, status=409)
        membership = {
            "id": self._next_id("m"), "userId": user_id, "projectId": project["id"],
            "role": body.get("role", "MEMBER"),
        }
        project["members"].append(membership)
        return web.json_response({**membership, "user": self._user_out(user_id)})

    async def update_member(self, request):
        project = self.projects.get(request.match_info["id"])
        if project is None:
            return _not_found("Project")
        body = await request.json()
        membership = next((m for m in project["members"] if m["userId"] == body["userId"]), None)
        if membership is None:
            return _not_found("Member")
        membership["role"] = body["role"]
        return web.json_response({**membership, "user": self._user_out(membership["userId"])})

    async def remove_member(self, request):
        project = self.projects.get(request.match_info["id"])
        if project is None:
            return _not_found("Project")
        body = await request.json()
        project["members"] = [m for m in project["members"] if m["userId"] != body["userId"]]
        return web.json_response({"success": True})

    async def list_labels(self, request):
        project = self.projects.get(request.match_info["id"])
        if project is None:
            return _not_found("Project")
        return web.json_response(project["labels"])

    async def create_label(self, request):
        project = self.projects.get(request.match_info["id"])
        if project is None:
            return _not_found("Project")
        body = await request.json()
        label = {"id": self._next_id("lb"), "name": body["name"], "color": body["color"],
                 "projectId": project["id"]}
        project["labels"].append(label)
        return web.json_response(label)

    async def search_users(self, request):
        query = request.query.get("q", "").lower()
        project_id = request.query.get("projectId")
        users = [u for u in self.users.values()
                 if query in (u.get("email") or "").lower() or query in (u.get("username") or "").lower()]
        if project_id in self.projects:
            members = {m["userId"] for m in self.projects[project_id]["members"]}
            users = [u for u in users if u["id"] not in members]
        return web.json_response(users)

    # Admin

    async def admin_list_users(self, request):
        return web.json_response({"users": list(self.users.values())})

    async def admin_create_user(self, request):
        body = await request.json()
        if any(u.get("email") == body["email"] for u in self.users.values()):
            return web.json_response({"error": "Email or username already exists"}, status=400)
        user = {
            "id": self._next_id("u"), "email": body["email"], "username": body["username"],
            "firstName": body.get("firstName"), "lastName": body.get("lastName"),
            "role": body.get("role", "MEMBER"),
        }
        self.users[user["id"]] = user
        return web.json_response(user, status=201)

    async def admin_update_user(self, request):
        user = self.users.get(request.match_info["id"])
        if user is None:
            return _not_found("User")
        body = await request.json()
        user.update({k: v for k, v in body.items() if k in ("firstName", "lastName", "role")})
        return web.json_response(user)

    async def admin_delete_user(self, request):
        if self.users.pop(request.match_info["id"], None) is None:
            return _not_found("User")
        return web.json_response({"success": True})

    async def admin_list_projects(self, request):
        return web.json_response([self._project_out(p) for p in self.projects.values()])

    async def admin_create_project(self, request):
        body = await request.json()
        creator = body.get("creatorId") or self.session_user_id
        project = {
            "id": self._next_id("p"), "title": body["title"],
            "description": body.get("description"), "specifications": None, "media": [],
            "members": [{"id": self._next_id("m"), "userId": creator, "role": "OWNER"}],
            "labels": [], "boards": [],
        }
        self.projects[project["id"]] = project
        return web.json_response(self._project_out(project), status=201)

    async def admin_delete_project(self, request):
        if self.projects.pop(request.match_info["id"], None) is None:
            return _not_found("Project")
        return web.json_response({"success": True})

    async def admin_list_boards(self, request):
        return web.json_response([
            {k: v for k, v in board.items() if k not in ("lists", "activities")}
            for project in self.projects.values() for board in project["boards"]
        ])

    async def admin_create_board(self, request):
        body = await request.json()
        project = self.projects.get(body.get("projectId"))
        if project is None:
            return _not_found("Project")
        board = {
            "id": self._next_id("b"), "title": body["title"],
            "description": body.get("description"), "projectId": project["id"],
            "lists": [], "activities": [],
        }
        project["boards"].append(board)
        return web.json_response(
            {k: v for k, v in board.items() if k != "activities"}, status=201
        )

    async def admin_list_labels(self, request):
        project_id = request.query.get("projectId")
        if not project_id:
            return web.json_response({"error": "Project ID is required"}, status=400)
        project = self.projects.get(project_id)
        return web.json_response(project["labels"] if project else [])

    async def admin_create_label(self, request):
        body = await request.json()
        project = self.projects.get(body.get("projectId"))
        if project is None:
            return _not_found("Project")
        label = {"id": self._next_id("lb"), "name": body["name"], "color": body["color"],
                 "projectId": project["id"]}
        project["labels"].append(label)
        return web.json_response(label)

    async def admin_delete_label(self, request):
        for project in self.projects.values():
            for label in project["labels"]:
                if label["id"] == request.match_info["id"]:
                    project["labels"].remove(label)
                    return web.json_response({"success": True})
        return _not_found("Label")
