"""
Store snapshot
"""
from typing import List, Optional

from pydantic import Field

from kanban_sync.models.activity import Activity
from kanban_sync.models.base import EntityModel
from kanban_sync.models.board import Board
from kanban_sync.models.card import Card
from kanban_sync.models.enums import Priority
from kanban_sync.models.project import Project
from kanban_sync.models.user import User


class StoreState(EntityModel):
    """One immutable snapshot of everything the client keeps.

    Every transition replaces the whole snapshot, so a reader never sees a
    half-applied mutation.
    """

    projects: List[Project] = Field(default_factory=list)
    current_project_id: Optional[str] = None
    current_board_id: Optional[str] = None
    current_user: Optional[User] = None
    activities: List[Activity] = Field(default_factory=list)  # newest first
    selected_card_id: Optional[str] = None

    search_query: str = ""
    filter_priority: Optional[Priority] = None
    filter_assignee: Optional[str] = None
    filter_label: Optional[str] = None

    def project(self, project_id: Optional[str]) -> Optional[Project]:
        return next((p for p in self.projects if p.id == project_id), None)

    @property
    def current_project(self) -> Optional[Project]:
        return self.project(self.current_project_id)

    @property
    def current_board(self) -> Optional[Board]:
        project = self.current_project
        if project is None:
            return None
        return project.find_board(self.current_board_id)

    def find_card(self, card_id: str) -> Optional[Card]:
        """Look a card up on the current board."""
        board = self.current_board
        if board is None:
            return None
        for board_list in board.lists:
            for card in board_list.cards:
                if card.id == card_id:
                    return card
        return None
