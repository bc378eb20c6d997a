from datetime import datetime, timezone
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field

ActionStatus = Literal["success", "failure"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActionLogEntry(BaseModel):
    automation_id: str
    node_id: str
    subscriber_id: str
    status: ActionStatus
    input: Dict[str, Any] = Field(default_factory=dict, description="Echo of node params and payload")
    output: Dict[str, Any] = Field(default_factory=dict, description="Result message or error")
    executed_at: datetime = Field(default_factory=_utcnow)
