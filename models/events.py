from enum import Enum
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventType(str, Enum):
    NEW_LEAD = "new_lead"
    CLICK = "click"


# Events whose payload carries the owning user id and must be scoped to it.
USER_SCOPED_EVENTS = frozenset({EventType.NEW_LEAD.value})


class EventPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    subscriber_id: str = Field(..., alias="subscriberId")
    user_id: str | None = Field(default=None, alias="userId")
    lists: List[str] = Field(default_factory=list)

    @field_validator("lists", mode="before")
    @classmethod
    def stringify_list_ids(cls, value: Any) -> Any:
        # Trigger list scopes are compared as strings
        if value is None:
            return []
        if isinstance(value, (list, tuple, set)):
            return [str(list_id) for list_id in value]
        return value


def event_key(event_type: "EventType | str") -> str:
    """Plain string form of an event type."""
    return event_type.value if isinstance(event_type, EventType) else str(event_type)
