"""
Attachment and project media descriptors

Attachments live as a JSON array on the card record, not as their own rows.
"""

from pydantic import Field

from kanban_sync.models.base import EntityModel, UTCDateTime, utcnow


class Attachment(EntityModel):
    id: str
    name: str
    url: str
    size: int = 0
    type: str = ""
    uploaded_at: UTCDateTime = Field(default_factory=utcnow)


class ProjectMedia(EntityModel):
    id: str
    name: str
    url: str
    type: str = ""
    size: int = 0
    uploaded_at: UTCDateTime = Field(default_factory=utcnow)
