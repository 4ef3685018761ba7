"""
Kanban store container

Holds the single ``StoreState`` snapshot for one running client. Build it
once at application start and pass it to the coordinator and synchronizer;
there is no module-level instance.
"""
from typing import Callable, List, Optional

from kanban_sync.config import settings
from kanban_sync.core.logging import get_logger
from kanban_sync.models import Activity, Board, Card, Priority, Project, StoreState, User
from kanban_sync.models.enums import lower_enum_value
from kanban_sync.services import activity_log
from kanban_sync.services.filters import filter_cards
from kanban_sync.services.persistence import StorageAdapter, dump_state, load_state

logger = get_logger(__name__)

Reducer = Callable[[StoreState], StoreState]
Listener = Callable[[StoreState], None]


def _first_board_id(project: Optional[Project]) -> Optional[str]:
    if project is None or not project.boards:
        return None
    return project.boards[0].id


class KanbanStore:
    """State container with subscriber notification and a persistence hook"""

    def __init__(self, state: Optional[StoreState] = None,
                 storage: Optional[StorageAdapter] = None,
                 name: Optional[str] = None):
        self._state = state or StoreState()
        self._listeners: List[Listener] = []
        self.storage = storage
        self.name = name or settings.store_name

    @property
    def state(self) -> StoreState:
        return self._state

    def dispatch(self, reducer: Reducer) -> StoreState:
        """Apply one reducer as a single atomic replacement of the snapshot."""
        new_state = reducer(self._state)
        if new_state is self._state:
            return new_state
        self._state = new_state
        self._persist()
        self._notify()
        return new_state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def hydrate(self) -> bool:
        """Replace the snapshot with the persisted one, if there is a usable one."""
        if self.storage is None:
            return False
        restored = load_state(self.storage.load(self.name))
        if restored is None:
            return False
        self._state = restored
        logger.info("Store hydrated", extra={"project_id": restored.current_project_id})
        self._notify()
        return True

    def _persist(self):
        if self.storage is not None:
            self.storage.save(self.name, dump_state(self._state))

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Store listener failed")

    # Selectors

    def current_project(self) -> Optional[Project]:
        return self._state.current_project

    def current_board(self) -> Optional[Board]:
        return self._state.current_board

    def find_card(self, card_id: str) -> Optional[Card]:
        return self._state.find_card(card_id)

    def visible_cards(self, list_id: str) -> List[Card]:
        board = self.current_board()
        board_list = board.find_list(list_id) if board else None
        if board_list is None:
            return []
        return filter_cards(board_list, self._state)

    # Setters

    def set_projects(self, projects: List[Project]) -> StoreState:
        """Replace all projects, keeping the current selection when it still exists."""
        def reducer(state: StoreState) -> StoreState:
            update = {"projects": list(projects)}
            current = next((p for p in projects if p.id == state.current_project_id), None)
            if current is None:
                current = projects[0] if projects else None
                update["current_project_id"] = current.id if current else None
                update["selected_card_id"] = None
            if current is None or current.find_board(state.current_board_id) is None:
                update["current_board_id"] = _first_board_id(current)
            return state.model_copy(update=update)
        return self.dispatch(reducer)

    def set_current_project(self, project_id: Optional[str]) -> StoreState:
        def reducer(state: StoreState) -> StoreState:
            project = state.project(project_id)
            if project_id is not None and project is None:
                return state
            update = {"current_project_id": project_id, "selected_card_id": None}
            if project is None or project.find_board(state.current_board_id) is None:
                update["current_board_id"] = _first_board_id(project)
            return state.model_copy(update=update)
        return self.dispatch(reducer)

    def set_current_board(self, board_id: Optional[str]) -> StoreState:
        def reducer(state: StoreState) -> StoreState:
            project = state.current_project
            if board_id is not None and (project is None or project.find_board(board_id) is None):
                return state
            return state.model_copy(update={"current_board_id": board_id, "selected_card_id": None})
        return self.dispatch(reducer)

    def set_current_user(self, user: Optional[User]) -> StoreState:
        return self.dispatch(lambda state: state.model_copy(update={"current_user": user}))

    def set_selected_card(self, card_id: Optional[str]) -> StoreState:
        return self.dispatch(lambda state: state.model_copy(update={"selected_card_id": card_id}))

    def set_search_query(self, query: str) -> StoreState:
        return self.dispatch(lambda state: state.model_copy(update={"search_query": query or ""}))

    def set_filter_priority(self, priority: Optional[Priority]) -> StoreState:
        value = Priority(lower_enum_value(priority)) if priority else None
        return self.dispatch(lambda state: state.model_copy(update={"filter_priority": value}))

    def set_filter_assignee(self, user_id: Optional[str]) -> StoreState:
        return self.dispatch(lambda state: state.model_copy(update={"filter_assignee": user_id}))

    def set_filter_label(self, label_id: Optional[str]) -> StoreState:
        return self.dispatch(lambda state: state.model_copy(update={"filter_label": label_id}))

    def clear_filters(self) -> StoreState:
        return self.dispatch(lambda state: state.model_copy(update={
            "search_query": "",
            "filter_priority": None,
            "filter_assignee": None,
            "filter_label": None,
        }))

    def add_activity(self, activity: Activity) -> StoreState:
        return self.dispatch(lambda state: state.model_copy(
            update={"activities": activity_log.push_local(state.activities, activity)}
        ))

    def logout(self) -> StoreState:
        """Drop everything tied to the session, including the persisted copy."""
        new_state = self.dispatch(lambda state: StoreState())
        if self.storage is not None:
            self.storage.delete(self.name)
        return new_state
