"""
Board list (column) model
"""
from typing import Any, Dict, List

from pydantic import Field

from kanban_sync.models.base import EntityModel
from kanban_sync.models.card import Card


class BoardList(EntityModel):
    id: str
    title: str
    board_id: str
    position: int = 0
    cards: List[Card] = Field(default_factory=list)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "BoardList":
        cards = [
            Card.from_api({"listId": payload.get("id"), **card})
            for card in (payload.get("cards") or [])
        ]
        data = dict(payload)
        data["cards"] = sorted(cards, key=lambda c: c.position)
        return cls.model_validate(data)

    def index_of(self, card_id: str) -> int:
        for index, card in enumerate(self.cards):
            if card.id == card_id:
                return index
        return -1

    def __repr__(self):
        return f"<BoardList(id={self.id}, title={self.title})>"
