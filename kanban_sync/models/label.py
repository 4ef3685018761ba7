"""
Label model
"""
from typing import Optional

from kanban_sync.models.base import EntityModel


class Label(EntityModel):
    id: str
    name: str
    color: str
    project_id: Optional[str] = None

    def __repr__(self):
        return f"<Label(id={self.id}, name={self.name})>"
