"""
Command object tests: apply/invert without any network
"""
from kanban_sync.models import Card, Priority
from kanban_sync.services.commands import (
    DeleteCard,
    InsertCard,
    MoveCard,
    UpdateCardFields,
    UpdateProjectFields,
)

from .conftest import card_ids


def test_update_fields_invert_restores_captured_values(state):
    """Rollback puts back exactly the pre-image, not a default"""

    command = UpdateCardFields("c1", {"priority": Priority.HIGH, "title": "Rewrite copy"})
    pre_image = command.capture(state)

    applied = command.apply(state)
    restored = command.invert(applied, pre_image)

    assert pre_image == {"priority": Priority.LOW, "title": "Write copy"}
    assert applied.find_card("c1").priority == Priority.HIGH
    assert restored.find_card("c1").priority == Priority.LOW
    assert restored.find_card("c1").title == "Write copy"


def test_update_fields_invert_leaves_unrelated_edits_alone(state):
    """Functional rollback keeps concurrent changes to other fields"""

    command = UpdateCardFields("c1", {"priority": Priority.URGENT})
    pre_image = command.capture(state)
    applied = command.apply(state)

    # Another edit lands while the request is in flight
    concurrent = UpdateCardFields("c1", {"description": "Edited elsewhere"}).apply(applied)
    restored = command.invert(concurrent, pre_image)

    card = restored.find_card("c1")
    assert card.priority == Priority.LOW
    assert card.description == "Edited elsewhere"


def test_update_fields_reconcile_takes_server_values(state):
    command = UpdateCardFields("c1", {"priority": Priority.HIGH})
    applied = command.apply(state)

    reconciled = command.reconcile(applied, {"id": "c1", "priority": "URGENT", "title": "Copy v2"})

    card = reconciled.find_card("c1")
    assert card.priority == Priority.URGENT
    assert card.title == "Copy v2"


def test_move_invert_returns_card_to_source_slot(state):
    command = MoveCard("c1", "l2", 0)
    pre_image = command.capture(state)

    moved = command.apply(state)
    restored = command.invert(moved, pre_image)

    assert pre_image == ("l1", 0)
    assert card_ids(moved, "l2") == ["c1"]
    assert card_ids(restored, "l1") == ["c1", "c2"]
    assert card_ids(restored, "l2") == []
    assert restored.find_card("c1").list_id == "l1"


def test_delete_invert_reinserts_original_card(state):
    command = DeleteCard("c1")
    pre_image = command.capture(state)

    deleted = command.apply(state)
    restored = command.invert(deleted, pre_image)

    assert card_ids(deleted, "l1") == ["c2"]
    assert card_ids(restored, "l1") == ["c1", "c2"]
    assert restored.find_card("c1") == state.find_card("c1")


def test_insert_card_invert_and_reconcile(state):
    placeholder = Card(id="temp-card-1", title="Draft", list_id="l2")
    command = InsertCard(placeholder, 0)

    applied = command.apply(state)
    rolled_back = command.invert(applied, None)
    reconciled = command.reconcile(applied, Card(id="c-9", title="Draft", list_id="l2"))

    assert card_ids(applied, "l2") == ["temp-card-1"]
    assert card_ids(rolled_back, "l2") == []
    assert card_ids(reconciled, "l2") == ["c-9"]


def test_commands_on_missing_card_are_no_ops(state):
    command = UpdateCardFields("missing", {"title": "X"})
    pre_image = command.capture(state)

    assert pre_image is None
    assert command.apply(state) is state
    assert command.invert(state, pre_image) is state
    assert MoveCard("missing", "l2", 0).invert(state, None) is state


def test_project_fields_round_trip(state):
    command = UpdateProjectFields("p1", {"title": "Relaunch", "specifications": "Use brand kit"})
    pre_image = command.capture(state)

    applied = command.apply(state)
    restored = command.invert(applied, pre_image)

    assert applied.current_project.title == "Relaunch"
    assert restored.current_project.title == "Website Redesign"
    assert restored.current_project.specifications is None
