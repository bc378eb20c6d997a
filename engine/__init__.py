from .delay import DEFAULT_DELAY, calculate_resume_at
from .executor import RunOutcome, RunResult, WorkflowExecutor
from .handlers import (
    PAUSE,
    ConditionNodeHandler,
    DelayNodeHandler,
    EmailNodeHandler,
    EndNodeHandler,
    FallthroughNodeHandler,
    NodeContext,
    NodeHandler,
    find_previous_email_node,
)
from .matcher import EventMatcher
from .scheduler import TickSummary, WorkflowScheduler
from .service import AutomationEngine

__all__ = [
    "DEFAULT_DELAY",
    "PAUSE",
    "AutomationEngine",
    "ConditionNodeHandler",
    "DelayNodeHandler",
    "EmailNodeHandler",
    "EndNodeHandler",
    "EventMatcher",
    "FallthroughNodeHandler",
    "NodeContext",
    "NodeHandler",
    "RunOutcome",
    "RunResult",
    "TickSummary",
    "WorkflowExecutor",
    "WorkflowScheduler",
    "calculate_resume_at",
    "find_previous_email_node",
]
