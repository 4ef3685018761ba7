"""
Optimistic update coordinator

Every write follows the same path: capture the pre-image of the fields it
touches, apply the change locally, call the backend, then either fold the
server's answer in or invert the change from the pre-image. An activity entry
is added only after the backend accepted the write.

Failures always surface as ``APIException``. The store is never left with a
half-applied change: rollback restores exactly the captured values, so a
retried operation starts from the same state as the first attempt.
"""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from kanban_sync.core.exceptions import (
    APIException,
    AuthenticationError,
    ResourceNotFoundError,
    ValidationError,
)
from kanban_sync.core.logging import get_logger, log_sync_event
from kanban_sync.models import (
    ActivityType,
    Attachment,
    Board,
    BoardList,
    Card,
    Comment,
    Membership,
    Project,
    User,
)
from kanban_sync.models.base import ensure_utc
from kanban_sync.schemas import CardCreate, CardMove, CardUpdate, CommentCreate, ListCreate, ProjectUpdate
from kanban_sync.services import mutation_engine as engine
from kanban_sync.services.activity_log import new_activity
from kanban_sync.services.commands import (
    AddComment,
    Command,
    DeleteCard,
    InsertCard,
    InsertList,
    MoveCard,
    UpdateCardFields,
    UpdateProjectFields,
)
from kanban_sync.services.kanban_api import KanbanAPIClient, validate_request
from kanban_sync.services.store import KanbanStore

logger = get_logger(__name__)


def temporary_id(prefix: str) -> str:
    """Id for a placeholder record until the server assigns the real one."""
    return f"temp-{prefix}-{uuid.uuid4().hex}"


class OptimisticCoordinator:
    """Runs UI intents against the store and the backend"""

    def __init__(self, store: KanbanStore, api: KanbanAPIClient):
        self.store = store
        self.api = api

    # Preconditions

    def _require_user(self) -> User:
        user = self.store.state.current_user
        if user is None:
            raise AuthenticationError("Sign in before changing anything")
        return user

    def _require_project(self) -> Project:
        project = self.store.current_project()
        if project is None:
            raise ValidationError("No project selected")
        return project

    def _require_board(self) -> Board:
        board = self.store.current_board()
        if board is None:
            raise ValidationError("No board selected")
        return board

    def _require_card(self, card_id: str) -> Card:
        card = self.store.find_card(card_id)
        if card is None:
            raise ResourceNotFoundError("Card")
        return card

    def _require_list(self, list_id: str) -> BoardList:
        board_list = self._require_board().find_list(list_id)
        if board_list is None:
            raise ResourceNotFoundError("List")
        return board_list

    # Core state machine

    async def _call(self, operation: str, remote: Callable[[], Awaitable[Any]]) -> Any:
        """Await a backend call, turning anything unexpected into ``APIException``."""
        try:
            return await remote()
        except APIException:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error during {operation}")
            raise APIException(f"{operation} failed: {e}") from e

    async def _run(self, command: Command, remote: Callable[[], Awaitable[Any]]) -> Any:
        operation = command.name
        project_id = self.store.state.current_project_id
        pre_image = command.capture(self.store.state)
        self.store.dispatch(command.apply)
        log_sync_event(logger, "optimistic_applied", operation=operation, project_id=project_id)

        try:
            response = await self._call(operation, remote)
        except asyncio.CancelledError:
            self.store.dispatch(lambda state: command.invert(state, pre_image))
            log_sync_event(logger, "rolled_back", operation=operation, project_id=project_id)
            raise
        except APIException as e:
            self.store.dispatch(lambda state: command.invert(state, pre_image))
            log_sync_event(
                logger, "rolled_back", level=logging.WARNING,
                operation=operation, project_id=project_id,
                status_code=e.status_code, error_code=e.error_code,
            )
            raise

        try:
            self.store.dispatch(lambda state: command.reconcile(state, response))
        except (PydanticValidationError, KeyError, TypeError, AttributeError) as e:
            # The write is committed server-side; the next poll brings the real record.
            logger.warning(
                f"Could not reconcile {operation} response: {e}",
                extra={"operation": operation},
            )
        log_sync_event(logger, "reconciled", operation=operation, project_id=project_id)
        return response

    def _record(self, user: User, activity_type: ActivityType, description: str,
                card_id: Optional[str] = None, list_id: Optional[str] = None):
        self.store.add_activity(
            new_activity(activity_type, user.id, description, card_id=card_id, list_id=list_id)
        )

    # Lists

    async def create_list(self, title: str, board_id: Optional[str] = None,
                          position: Optional[int] = None) -> BoardList:
        user = self._require_user()
        board = self._require_board()
        board_id = board_id or board.id
        if position is None:
            position = len(board.lists)
        body = validate_request(ListCreate, title=title, board_id=board_id, position=position)

        placeholder = BoardList(
            id=temporary_id("list"), title=body.title, board_id=board_id, position=body.position
        )
        created = await self._run(
            InsertList(placeholder),
            lambda: self.api.create_list(body.title, board_id, body.position),
        )
        self._record(user, ActivityType.CARD_CREATED, f'created list "{created.title}"',
                     list_id=created.id)
        return created

    # Cards

    async def create_card(self, title: str, list_id: str, description: Optional[str] = None,
                          priority: Optional[str] = None, due_date: Optional[datetime] = None,
                          position: Optional[int] = None) -> Card:
        user = self._require_user()
        board_list = self._require_list(list_id)
        body = validate_request(
            CardCreate, title=title, list_id=list_id, description=description,
            priority=priority, due_date=due_date, position=position,
        )

        placeholder = Card(
            id=temporary_id("card"),
            title=body.title,
            description=body.description,
            list_id=list_id,
            position=len(board_list.cards) if body.position is None else body.position,
            priority=body.priority,
            due_date=ensure_utc(body.due_date),
            created_by=user.id,
        )
        created = await self._run(
            InsertCard(placeholder, body.position),
            lambda: self.api.create_card(
                body.title, list_id, description=body.description, priority=body.priority,
                due_date=body.due_date, position=body.position,
            ),
        )
        self._record(user, ActivityType.CARD_CREATED, f'created card "{created.title}"',
                     card_id=created.id, list_id=created.list_id)
        return created

    async def update_card(self, card_id: str, **fields: Any) -> Card:
        """Change card fields; the store ends up with the server's values."""
        user = self._require_user()
        original = self._require_card(card_id)
        body = validate_request(CardUpdate, **fields)
        if not body.model_fields_set:
            raise ValidationError("No card fields to update")

        changes: Dict[str, Any] = {name: getattr(body, name) for name in body.model_fields_set}
        if "due_date" in changes:
            changes["due_date"] = ensure_utc(changes["due_date"])

        await self._run(
            UpdateCardFields(card_id, changes),
            lambda: self.api.update_card(card_id, **fields),
        )
        card = self.store.find_card(card_id) or original
        self._record(user, ActivityType.CARD_UPDATED, f'updated card "{card.title}"',
                     card_id=card_id, list_id=card.list_id)
        return card

    async def move_card(self, card_id: str, target_list_id: str, index: int) -> Card:
        user = self._require_user()
        card = self._require_card(card_id)
        self._require_list(target_list_id)
        body = validate_request(CardMove, list_id=target_list_id, position=index)

        await self._run(
            MoveCard(card_id, target_list_id, body.position),
            lambda: self.api.move_card(card_id, target_list_id, body.position),
        )
        self._record(user, ActivityType.CARD_MOVED, f'moved card "{card.title}"',
                     card_id=card_id, list_id=target_list_id)
        return self.store.find_card(card_id)

    async def delete_card(self, card_id: str) -> None:
        user = self._require_user()
        card = self._require_card(card_id)

        await self._run(DeleteCard(card_id), lambda: self.api.delete_card(card_id))
        self._record(user, ActivityType.CARD_UPDATED, f'deleted card "{card.title}"',
                     list_id=card.list_id)

    # Comments

    async def add_comment(self, card_id: str, content: str) -> Comment:
        user = self._require_user()
        card = self._require_card(card_id)
        body = validate_request(CommentCreate, content=content, card_id=card_id)

        placeholder = Comment(
            id=temporary_id("comment"), content=body.content, user_id=user.id,
            card_id=card_id, user=user,
        )
        created = await self._run(
            AddComment(card_id, placeholder),
            lambda: self.api.add_comment(card_id, body.content),
        )
        self._record(user, ActivityType.COMMENT_ADDED, "added a comment",
                     card_id=card_id, list_id=card.list_id)
        return created

    # Assignees and labels

    async def assign_member(self, card_id: str, user_id: str) -> Card:
        user = self._require_user()
        project = self._require_project()
        card = self._require_card(card_id)
        member = project.member(user_id)
        if member is None:
            raise ValidationError("User is not a member of this project")

        assignees = list(card.assigned_to)
        if not card.has_assignee(user_id):
            assignees.append(member)
        await self._run(
            UpdateCardFields(card_id, {"assigned_to": assignees}),
            lambda: self.api.assign_member(card_id, user_id, assign=True),
        )
        self._record(user, ActivityType.CARD_UPDATED, "assigned member to card",
                     card_id=card_id, list_id=card.list_id)
        return self.store.find_card(card_id)

    async def unassign_member(self, card_id: str, user_id: str) -> Card:
        user = self._require_user()
        card = self._require_card(card_id)

        assignees = [u for u in card.assigned_to if u.id != user_id]
        await self._run(
            UpdateCardFields(card_id, {"assigned_to": assignees}),
            lambda: self.api.assign_member(card_id, user_id, assign=False),
        )
        self._record(user, ActivityType.CARD_UPDATED, "unassigned member from card",
                     card_id=card_id, list_id=card.list_id)
        return self.store.find_card(card_id)

    async def add_label(self, card_id: str, label_id: str) -> Card:
        user = self._require_user()
        project = self._require_project()
        card = self._require_card(card_id)
        label = project.label(label_id)
        if label is None:
            raise ValidationError("Label does not belong to this project")

        labels = list(card.labels)
        if label_id not in labels:
            labels.append(label_id)
        await self._run(
            UpdateCardFields(card_id, {"labels": labels}),
            lambda: self.api.toggle_label(card_id, label_id, add=True),
        )
        self._record(user, ActivityType.CARD_UPDATED, f'added label "{label.name}" to card',
                     card_id=card_id, list_id=card.list_id)
        return self.store.find_card(card_id)

    async def remove_label(self, card_id: str, label_id: str) -> Card:
        user = self._require_user()
        card = self._require_card(card_id)

        labels = [existing for existing in card.labels if existing != label_id]
        await self._run(
            UpdateCardFields(card_id, {"labels": labels}),
            lambda: self.api.toggle_label(card_id, label_id, add=False),
        )
        self._record(user, ActivityType.CARD_UPDATED, "removed label from card",
                     card_id=card_id, list_id=card.list_id)
        return self.store.find_card(card_id)

    # Attachments

    async def upload_attachment(self, card_id: str, filename: str, content: bytes,
                                content_type: str = "application/octet-stream") -> Attachment:
        """Not optimistic: the descriptor's URL only exists once the server stored the file."""
        self._require_user()
        self._require_card(card_id)

        attachment = await self._call(
            "upload_attachment",
            lambda: self.api.upload_attachment(card_id, filename, content, content_type),
        )

        def reducer(state):
            card = state.find_card(card_id)
            if card is None:
                return state
            return engine.update_card(state, card_id, attachments=[*card.attachments, attachment])

        self.store.dispatch(reducer)
        return attachment

    async def delete_attachment(self, card_id: str, attachment_id: str) -> None:
        self._require_user()
        card = self._require_card(card_id)

        remaining = [a for a in card.attachments if a.id != attachment_id]
        await self._run(
            UpdateCardFields(card_id, {"attachments": remaining}),
            lambda: self.api.delete_attachment(card_id, attachment_id),
        )

    # Project

    async def create_project(self, title: str, description: Optional[str] = None) -> Project:
        """Not optimistic: the creator's membership is assigned server-side."""
        self._require_user()
        project = await self._call(
            "create_project", lambda: self.api.create_project(title, description=description)
        )
        self.store.dispatch(lambda state: engine.add_project(state, project))
        self.store.set_current_project(project.id)
        return project

    async def create_board(self, title: str, description: Optional[str] = None) -> Board:
        self._require_user()
        project = self._require_project()
        board = await self._call(
            "create_board",
            lambda: self.api.create_board(project.id, title, description=description),
        )
        self.store.dispatch(lambda state: engine.add_board(state, project.id, board))
        return board

    async def update_project(self, **fields: Any) -> Project:
        self._require_user()
        project = self._require_project()
        body = validate_request(ProjectUpdate, **fields)
        changes = {name: getattr(body, name) for name in body.model_fields_set}

        await self._run(
            UpdateProjectFields(project.id, changes),
            lambda: self.api.update_project(project.id, **changes),
        )
        return self.store.state.project(project.id)

    async def add_member(self, user_email: Optional[str] = None, user_id: Optional[str] = None,
                         role: str = "MEMBER") -> Membership:
        """Not optimistic: the server resolves the email to a user."""
        user = self._require_user()
        project = self._require_project()

        membership = await self._call(
            "add_member",
            lambda: self.api.add_member(project.id, user_email=user_email, user_id=user_id, role=role),
        )
        member = membership.user or User(id=membership.user_id, email=user_email)
        self.store.dispatch(lambda state: engine.add_member(state, project.id, member, membership))
        self._record(user, ActivityType.MEMBER_ADDED, f"added {member.display_name} to the project")
        return membership
