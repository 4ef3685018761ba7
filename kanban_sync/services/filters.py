"""
Board search and filters
"""
from typing import List

from kanban_sync.models import Board, BoardList, Card, StoreState


def has_active_filters(state: StoreState) -> bool:
    return bool(state.search_query or state.filter_priority
                or state.filter_assignee or state.filter_label)


def card_matches(card: Card, state: StoreState) -> bool:
    """Search matches title or description, case-insensitively; other filters are exact."""
    if state.search_query:
        query = state.search_query.lower()
        in_title = query in card.title.lower()
        in_description = query in (card.description or "").lower()
        if not in_title and not in_description:
            return False
    if state.filter_priority and card.priority != state.filter_priority:
        return False
    if state.filter_assignee and not card.has_assignee(state.filter_assignee):
        return False
    if state.filter_label and state.filter_label not in card.labels:
        return False
    return True


def filter_cards(board_list: BoardList, state: StoreState) -> List[Card]:
    return [card for card in board_list.cards if card_matches(card, state)]


def count_visible(board: Board, state: StoreState) -> int:
    return sum(len(filter_cards(board_list, state)) for board_list in board.lists)


def count_total(board: Board) -> int:
    return sum(len(board_list.cards) for board_list in board.lists)
