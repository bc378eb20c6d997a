from datetime import datetime
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class ExecutionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


class AutomationExecution(BaseModel):
    """
    Durable bookmark of one subscriber's progress through one automation.

    Only DELAY pauses create or update these rows; at most one exists per
    (automation_id, subscriber_id).
    """

    id: str
    automation_id: str
    subscriber_id: str
    current_node_id: str
    status: ExecutionStatus
    resume_at: datetime | None = None
    context: Dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
