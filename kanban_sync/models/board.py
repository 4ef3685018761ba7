"""
Board model
"""
from typing import Any, Dict, List, Optional

from pydantic import Field

from kanban_sync.models.base import EntityModel, UTCDateTime, utcnow
from kanban_sync.models.board_list import BoardList


class Board(EntityModel):
    id: str
    title: str
    description: Optional[str] = None
    project_id: str
    lists: List[BoardList] = Field(default_factory=list)
    created_at: UTCDateTime = Field(default_factory=utcnow)
    updated_at: UTCDateTime = Field(default_factory=utcnow)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Board":
        lists = [
            BoardList.from_api({"boardId": payload.get("id"), **item})
            for item in (payload.get("lists") or [])
        ]
        data = {k: v for k, v in payload.items() if k != "activities"}
        data["lists"] = sorted(lists, key=lambda l: l.position)
        return cls.model_validate(data)

    def find_list(self, list_id: str) -> Optional[BoardList]:
        return next((item for item in self.lists if item.id == list_id), None)

    def __repr__(self):
        return f"<Board(id={self.id}, title={self.title})>"
