"""
Command objects for optimistic updates

A command knows how to capture the pre-image of the fields it touches, apply
itself to a snapshot, invert itself from that pre-image, and fold the
server's answer back in. All four steps are pure ``StoreState`` functions, so
rollback never depends on hidden closure state and can be tested without a
network.
"""
from typing import Any, Dict, Optional

from kanban_sync.models import BoardList, Card, Comment, StoreState
from kanban_sync.services import mutation_engine as engine

PROJECT_SCALARS = ("title", "description", "specifications")


class Command:
    """Base command; ``reconcile`` defaults to keeping the optimistic state."""

    name = "command"

    def capture(self, state: StoreState) -> Any:
        return None

    def apply(self, state: StoreState) -> StoreState:
        raise NotImplementedError

    def invert(self, state: StoreState, pre_image: Any) -> StoreState:
        raise NotImplementedError

    def reconcile(self, state: StoreState, response: Any) -> StoreState:
        return state


class UpdateCardFields(Command):
    """Set some card fields; inversion restores exactly the captured values."""

    name = "update_card"

    def __init__(self, card_id: str, fields: Dict[str, Any]):
        self.card_id = card_id
        self.fields = dict(fields)

    def capture(self, state: StoreState) -> Optional[Dict[str, Any]]:
        card = state.find_card(self.card_id)
        if card is None:
            return None
        return {name: getattr(card, name) for name in self.fields}

    def apply(self, state: StoreState) -> StoreState:
        return engine.update_card(state, self.card_id, **self.fields)

    def invert(self, state: StoreState, pre_image: Optional[Dict[str, Any]]) -> StoreState:
        if not pre_image:
            return state
        return engine.update_card(state, self.card_id, **pre_image)

    def reconcile(self, state: StoreState, response: Optional[Dict[str, Any]]) -> StoreState:
        # Delete endpoints answer with an empty body
        if not response:
            return state
        return engine.reconcile_card(state, self.card_id, response)


class MoveCard(Command):
    name = "move_card"

    def __init__(self, card_id: str, target_list_id: str, index: int):
        self.card_id = card_id
        self.target_list_id = target_list_id
        self.index = index

    def capture(self, state: StoreState):
        return engine.locate_card(state, self.card_id)

    def apply(self, state: StoreState) -> StoreState:
        return engine.move_card(state, self.card_id, self.target_list_id, self.index)

    def invert(self, state: StoreState, pre_image) -> StoreState:
        if pre_image is None:
            return state
        source_list_id, source_index = pre_image
        return engine.move_card(state, self.card_id, source_list_id, source_index)

    def reconcile(self, state: StoreState, response: Dict[str, Any]) -> StoreState:
        return engine.reconcile_card(state, self.card_id, response)


class DeleteCard(Command):
    name = "delete_card"

    def __init__(self, card_id: str):
        self.card_id = card_id

    def capture(self, state: StoreState):
        location = engine.locate_card(state, self.card_id)
        if location is None:
            return None
        return location, state.find_card(self.card_id)

    def apply(self, state: StoreState) -> StoreState:
        return engine.delete_card(state, self.card_id)

    def invert(self, state: StoreState, pre_image) -> StoreState:
        if pre_image is None:
            return state
        (list_id, index), card = pre_image
        return engine.add_card(state, list_id, card, index)


class InsertCard(Command):
    """Show a placeholder card until the server assigns the real record."""

    name = "create_card"

    def __init__(self, placeholder: Card, index: Optional[int] = None):
        self.placeholder = placeholder
        self.index = index

    def apply(self, state: StoreState) -> StoreState:
        return engine.add_card(state, self.placeholder.list_id, self.placeholder, self.index)

    def invert(self, state: StoreState, pre_image) -> StoreState:
        return engine.delete_card(state, self.placeholder.id)

    def reconcile(self, state: StoreState, response: Card) -> StoreState:
        return engine.replace_card(state, self.placeholder.id, response)


class InsertList(Command):
    name = "create_list"

    def __init__(self, placeholder: BoardList):
        self.placeholder = placeholder

    def apply(self, state: StoreState) -> StoreState:
        return engine.add_list(state, self.placeholder)

    def invert(self, state: StoreState, pre_image) -> StoreState:
        return engine.delete_list(state, self.placeholder.id)

    def reconcile(self, state: StoreState, response: BoardList) -> StoreState:
        return engine.replace_list(state, self.placeholder.id, response)


class AddComment(Command):
    name = "add_comment"

    def __init__(self, card_id: str, placeholder: Comment):
        self.card_id = card_id
        self.placeholder = placeholder

    def apply(self, state: StoreState) -> StoreState:
        return engine.add_comment(state, self.card_id, self.placeholder)

    def invert(self, state: StoreState, pre_image) -> StoreState:
        return engine.remove_comment(state, self.card_id, self.placeholder.id)

    def reconcile(self, state: StoreState, response: Comment) -> StoreState:
        return engine.replace_comment(state, self.card_id, self.placeholder.id, response)


class UpdateProjectFields(Command):
    name = "update_project"

    def __init__(self, project_id: str, fields: Dict[str, Any]):
        self.project_id = project_id
        self.fields = dict(fields)

    def capture(self, state: StoreState) -> Optional[Dict[str, Any]]:
        project = state.project(self.project_id)
        if project is None:
            return None
        return {name: getattr(project, name) for name in self.fields}

    def apply(self, state: StoreState) -> StoreState:
        return engine.update_project(state, self.project_id, **self.fields)

    def invert(self, state: StoreState, pre_image: Optional[Dict[str, Any]]) -> StoreState:
        if not pre_image:
            return state
        return engine.update_project(state, self.project_id, **pre_image)

    def reconcile(self, state: StoreState, response: Dict[str, Any]) -> StoreState:
        # Only the edited scalars; the response tree may be partial.
        reported = {name: response[name] for name in PROJECT_SCALARS if name in response}
        return engine.update_project(state, self.project_id, **reported)
