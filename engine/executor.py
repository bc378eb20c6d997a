from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Mapping

from core.logger import get_logger
from models import Automation

from .handlers import PAUSE, FallthroughNodeHandler, NodeContext, NodeHandler

logger = get_logger("executor")

DEFAULT_MAX_STEPS = 1000


class RunOutcome(str, Enum):
    COMPLETED = "completed"
    PAUSED = "paused"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class RunResult:
    outcome: RunOutcome
    executed: List[str] = field(default_factory=list)
    error: str | None = None


class WorkflowExecutor:
    """
    Interprets an automation's node graph for one subscriber.

    Starting from a node id, each node is looked up in the automation's arena
    and passed to the handler registered for its type until a handler ends
    the run, pauses it, or fails. Nothing raised by a handler escapes
    ``run``.
    """

    def __init__(
        self,
        handlers: Iterable[NodeHandler],
        fallback: NodeHandler | None = None,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        self._handlers: Mapping[str, NodeHandler] = {handler.node_type: handler for handler in handlers}
        self._fallback = fallback or FallthroughNodeHandler()
        self._max_steps = max_steps

    def handler_for(self, node_type: str) -> NodeHandler:
        return self._handlers.get(node_type, self._fallback)

    def run(self, automation: Automation, subscriber_id: str, start_node_id: str | None) -> RunResult:
        executed: List[str] = []
        current_node_id = start_node_id

        while current_node_id:
            if len(executed) >= self._max_steps:
                error = f"Automation [{automation.name}]: exceeded {self._max_steps} steps without pausing"
                logger.error(error)
                return RunResult(RunOutcome.ABORTED, executed, error)

            node = automation.get_node(current_node_id)
            if node is None:
                error = f"Automation [{automation.name}]: Node with id {current_node_id} not found."
                logger.error(error)
                return RunResult(RunOutcome.ABORTED, executed, error)

            payload = {"subscriberId": subscriber_id}
            logger.info(
                "[%s] executing node %s (%s) for subscriber %s",
                automation.name,
                node.type,
                node.label or node.id,
                subscriber_id,
            )
            executed.append(node.id)
            try:
                result = self.handler_for(node.type).handle(NodeContext(automation, node, payload))
            except Exception as exc:
                error = f"Automation [{automation.name}]: node {node.id} ({node.type}) failed: {exc}"
                logger.error(error, exc_info=True)
                return RunResult(RunOutcome.FAILED, executed, str(exc))

            if result is PAUSE:
                return RunResult(RunOutcome.PAUSED, executed)
            current_node_id = result

        return RunResult(RunOutcome.COMPLETED, executed)
