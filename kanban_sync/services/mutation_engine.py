"""
Local mutation engine

Pure rewrites of the Project -> Board -> List -> Card tree. Each function takes
a ``StoreState`` and returns a new one in which only the targeted node and its
ancestors were replaced; every other record is shared with the input.

All functions are total: when the targeted project, board, list, card or
comment is missing, the input snapshot is returned unchanged. Local state is
expected to be stale between polls, so a missing target is not an error.
"""
from typing import Any, Callable, Optional, Tuple

from kanban_sync.models import Board, BoardList, Card, Comment, Membership, Project, StoreState, User

BoardFn = Callable[[Board], Board]
ListFn = Callable[[BoardList], BoardList]
CardFn = Callable[[Card], Card]


# Tree plumbing

def _replace_project(state: StoreState, project_id: Optional[str],
                     fn: Callable[[Project], Project]) -> StoreState:
    for index, project in enumerate(state.projects):
        if project.id == project_id:
            updated = fn(project)
            if updated is project:
                return state
            projects = list(state.projects)
            projects[index] = updated
            return state.model_copy(update={"projects": projects})
    return state


def _replace_board(project: Project, board_id: Optional[str], fn: BoardFn) -> Project:
    for index, board in enumerate(project.boards):
        if board.id == board_id:
            updated = fn(board)
            if updated is board:
                return project
            boards = list(project.boards)
            boards[index] = updated
            return project.model_copy(update={"boards": boards})
    return project


def update_current_board(state: StoreState, fn: BoardFn) -> StoreState:
    """Apply ``fn`` to the current board of the current project."""
    return _replace_project(
        state,
        state.current_project_id,
        lambda project: _replace_board(project, state.current_board_id, fn),
    )


def _replace_list(board: Board, list_id: str, fn: ListFn) -> Board:
    for index, board_list in enumerate(board.lists):
        if board_list.id == list_id:
            updated = fn(board_list)
            if updated is board_list:
                return board
            lists = list(board.lists)
            lists[index] = updated
            return board.model_copy(update={"lists": lists})
    return board


def _replace_card(board: Board, card_id: str, fn: CardFn) -> Board:
    for list_index, board_list in enumerate(board.lists):
        for card_index, card in enumerate(board_list.cards):
            if card.id != card_id:
                continue
            updated = fn(card)
            if updated is card:
                return board
            cards = list(board_list.cards)
            cards[card_index] = updated
            lists = list(board.lists)
            lists[list_index] = board_list.model_copy(update={"cards": cards})
            return board.model_copy(update={"lists": lists})
    return board


def locate_card(state: StoreState, card_id: str) -> Optional[Tuple[str, int]]:
    """Return ``(list_id, index)`` of a card on the current board."""
    board = state.current_board
    if board is None:
        return None
    for board_list in board.lists:
        index = board_list.index_of(card_id)
        if index >= 0:
            return board_list.id, index
    return None


# Lists

def add_list(state: StoreState, board_list: BoardList) -> StoreState:
    def apply(board: Board) -> Board:
        return board.model_copy(update={"lists": [*board.lists, board_list]})
    return update_current_board(state, apply)


def update_list(state: StoreState, list_id: str, **fields: Any) -> StoreState:
    return update_current_board(
        state,
        lambda board: _replace_list(board, list_id, lambda bl: bl.model_copy(update=fields)),
    )


def replace_list(state: StoreState, list_id: str, board_list: BoardList) -> StoreState:
    """Swap a list record wholesale, e.g. a placeholder for the server's list."""
    return update_current_board(
        state, lambda board: _replace_list(board, list_id, lambda _: board_list)
    )


def delete_list(state: StoreState, list_id: str) -> StoreState:
    def apply(board: Board) -> Board:
        if board.find_list(list_id) is None:
            return board
        return board.model_copy(update={"lists": [bl for bl in board.lists if bl.id != list_id]})
    return update_current_board(state, apply)


# Cards

def add_card(state: StoreState, list_id: str, card: Card,
             index: Optional[int] = None) -> StoreState:
    """Insert ``card`` into a list, at ``index`` when given, else at the end."""
    def apply(board_list: BoardList) -> BoardList:
        cards = list(board_list.cards)
        position = len(cards) if index is None else max(0, min(index, len(cards)))
        cards.insert(position, card.model_copy(update={"list_id": list_id}))
        return board_list.model_copy(update={"cards": cards})
    return update_current_board(state, lambda board: _replace_list(board, list_id, apply))


def update_card(state: StoreState, card_id: str, **fields: Any) -> StoreState:
    if not fields:
        return state
    return update_current_board(
        state,
        lambda board: _replace_card(board, card_id, lambda card: card.model_copy(update=fields)),
    )


def replace_card(state: StoreState, card_id: str, card: Card) -> StoreState:
    return update_current_board(
        state, lambda board: _replace_card(board, card_id, lambda _: card)
    )


def reconcile_card(state: StoreState, card_id: str, payload: dict) -> StoreState:
    """Overwrite the card's fields with every field present in a server body."""
    return update_current_board(
        state, lambda board: _replace_card(board, card_id, lambda card: card.reconcile(payload))
    )


def delete_card(state: StoreState, card_id: str) -> StoreState:
    def apply(board: Board) -> Board:
        for list_index, board_list in enumerate(board.lists):
            if board_list.index_of(card_id) < 0:
                continue
            lists = list(board.lists)
            lists[list_index] = board_list.model_copy(
                update={"cards": [c for c in board_list.cards if c.id != card_id]}
            )
            return board.model_copy(update={"lists": lists})
        return board
    return update_current_board(state, apply)


def move_card(state: StoreState, card_id: str, target_list_id: str, index: int) -> StoreState:
    """Move a card to ``index`` in the target list, which may be its own list.

    The card is removed from its source list first, then inserted at the
    clamped index, and its ``list_id`` is set to the target. Sibling positions
    are left alone; the server's numbering arrives with the next refresh.
    """
    def apply(board: Board) -> Board:
        if board.find_list(target_list_id) is None:
            return board

        moving = None
        lists = []
        for board_list in board.lists:
            position = board_list.index_of(card_id)
            if position >= 0:
                moving = board_list.cards[position]
                cards = list(board_list.cards)
                del cards[position]
                board_list = board_list.model_copy(update={"cards": cards})
            lists.append(board_list)

        if moving is None:
            return board

        moving = moving.model_copy(update={"list_id": target_list_id})
        for list_index, board_list in enumerate(lists):
            if board_list.id == target_list_id:
                cards = list(board_list.cards)
                cards.insert(max(0, min(index, len(cards))), moving)
                lists[list_index] = board_list.model_copy(update={"cards": cards})
        return board.model_copy(update={"lists": lists})
    return update_current_board(state, apply)


# Comments

def add_comment(state: StoreState, card_id: str, comment: Comment) -> StoreState:
    return update_current_board(
        state,
        lambda board: _replace_card(
            board, card_id,
            lambda card: card.model_copy(update={"comments": [*card.comments, comment]}),
        ),
    )


def replace_comment(state: StoreState, card_id: str, comment_id: str,
                    comment: Comment) -> StoreState:
    def apply(card: Card) -> Card:
        if not any(c.id == comment_id for c in card.comments):
            return card
        return card.model_copy(
            update={"comments": [comment if c.id == comment_id else c for c in card.comments]}
        )
    return update_current_board(state, lambda board: _replace_card(board, card_id, apply))


def remove_comment(state: StoreState, card_id: str, comment_id: str) -> StoreState:
    def apply(card: Card) -> Card:
        if not any(c.id == comment_id for c in card.comments):
            return card
        return card.model_copy(
            update={"comments": [c for c in card.comments if c.id != comment_id]}
        )
    return update_current_board(state, lambda board: _replace_card(board, card_id, apply))


# Projects

def replace_project(state: StoreState, project: Project) -> StoreState:
    """Whole-record overwrite of one project by id."""
    return _replace_project(state, project.id, lambda _: project)


def update_project(state: StoreState, project_id: str, **fields: Any) -> StoreState:
    if not fields:
        return state
    return _replace_project(state, project_id, lambda p: p.model_copy(update=fields))


def add_project(state: StoreState, project: Project) -> StoreState:
    return state.model_copy(update={"projects": [*state.projects, project]})


def add_board(state: StoreState, project_id: str, board: Board) -> StoreState:
    return _replace_project(
        state, project_id, lambda p: p.model_copy(update={"boards": [*p.boards, board]})
    )


def add_member(state: StoreState, project_id: str, user: User,
               membership: Optional[Membership] = None) -> StoreState:
    """Append a member, or refresh the record of an existing one."""
    def apply(project: Project) -> Project:
        members = [m for m in project.members if m.id != user.id] + [user]
        update = {"members": members}
        if membership is not None:
            update["memberships"] = [
                m for m in project.memberships if m.user_id != membership.user_id
            ] + [membership]
        return project.model_copy(update=update)
    return _replace_project(state, project_id, apply)
