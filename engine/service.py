"""
Automation engine service.

Wires domain events to user-defined automations: every matching automation
runs from the node after its trigger, and paused executions come back
through ``resume_automation``. Construct one instance at startup and pass it
to whatever needs it.
"""

from collections.abc import Mapping
from functools import partial
from typing import Any, List

from pydantic import ValidationError

from core.exceptions import ConfigurationError
from core.logger import get_logger
from db.repository import AutomationRepository
from events.bus import EventBus
from models import Automation, AutomationExecution, EventPayload, EventType, event_key

from .executor import RunOutcome, RunResult, WorkflowExecutor
from .matcher import EventMatcher

logger = get_logger("engine")


class AutomationEngine:
    def __init__(
        self,
        repository: AutomationRepository,
        matcher: EventMatcher,
        executor: WorkflowExecutor,
        event_bus: EventBus,
    ) -> None:
        self._repository = repository
        self._matcher = matcher
        self._executor = executor
        self._event_bus = event_bus
        self._initialized = False

    def initialize(self) -> None:
        """Subscribe to every trigger event type. Call once at startup."""
        if self._initialized:
            raise RuntimeError("AutomationEngine.initialize() has already been called")
        for event_type in EventType:
            self._event_bus.subscribe(event_type, partial(self._on_event, event_type))
        self._initialized = True
        logger.info("AutomationEngine initialized - listening for events")

    def _on_event(self, event_type: EventType, payload: Mapping[str, Any]) -> None:
        try:
            self.process_event(event_type, payload)
        except Exception as exc:
            logger.error("AutomationEngine error processing %s: %s", event_type.value, exc, exc_info=True)

    def process_event(self, event_type: EventType | str, payload: Mapping[str, Any]) -> List[RunResult]:
        key = event_key(event_type)
        try:
            event = EventPayload.model_validate(dict(payload))
        except ValidationError as exc:
            logger.error("Ignoring %s event with invalid payload: %s", key, exc)
            return []

        automations = self._matcher.match(key, event)
        if not automations:
            return []

        logger.info("Executing %d automation(s) for event %s", len(automations), key)
        return [self.execute_automation(automation, event.subscriber_id) for automation in automations]

    def execute_automation(self, automation: Automation, subscriber_id: str) -> RunResult:
        """Run ``automation`` from the node directly after its trigger."""
        if not automation.nodes:
            logger.warning("Automation [%s] has no nodes to execute.", automation.name)
        start_node_id = automation.start_node_id()
        if start_node_id is None:
            error = f"Automation [{automation.name}] has no start node defined."
            logger.error(error)
            return RunResult(RunOutcome.ABORTED, error=error)
        return self._executor.run(automation, subscriber_id, start_node_id)

    def resume_automation(self, execution: AutomationExecution) -> RunResult:
        automation = self._repository.get(execution.automation_id)
        if automation is None:
            raise ConfigurationError(f"Automation {execution.automation_id} not found for resumed execution.")
        return self._executor.run(automation, execution.subscriber_id, execution.current_node_id)
