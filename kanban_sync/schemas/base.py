"""
Shared base for request payloads
"""
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RequestSchema(BaseModel):
    """Validated request body; serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="forbid")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def clean_text(value, message):
    if value is None:
        return value
    if not value.strip():
        raise ValueError(message)
    return value.strip()
