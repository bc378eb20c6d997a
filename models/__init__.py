from .action_log import ActionLogEntry, ActionStatus
from .automation import (
    Automation,
    AutomationStatus,
    Branches,
    NodeType,
    Position,
    Trigger,
    WorkflowNode,
)
from .events import USER_SCOPED_EVENTS, EventPayload, EventType, event_key
from .execution import AutomationExecution, ExecutionStatus

__all__ = [
    "ActionLogEntry",
    "ActionStatus",
    "Automation",
    "AutomationExecution",
    "AutomationStatus",
    "Branches",
    "EventPayload",
    "EventType",
    "ExecutionStatus",
    "NodeType",
    "Position",
    "Trigger",
    "USER_SCOPED_EVENTS",
    "WorkflowNode",
    "event_key",
]
