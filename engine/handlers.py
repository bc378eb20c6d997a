"""
Per-node-type logic for the workflow executor.

Every handler returns one of three things:

- a node id: continue with that node
- ``None``: the run is finished
- ``PAUSE``: continuation state has been persisted, stop without error
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Mapping, Union

from core.exceptions import DeliveryError
from core.logger import get_logger
from db.action_logs import ActionLogStore
from models import ActionLogEntry, ActionStatus, Automation, NodeType, WorkflowNode
from services.directory import SubscriberDirectory
from services.email import EmailDeliveryService, OutgoingEmail
from services.tracking import add_tracking, add_unsubscribe, substitute_variables

if TYPE_CHECKING:
    from .scheduler import WorkflowScheduler

logger = get_logger("handlers")


class _Pause:
    _instance = None

    def __new__(cls) -> "_Pause":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "PAUSE"


PAUSE = _Pause()

HandlerResult = Union[str, None, _Pause]


@dataclass
class NodeContext:
    automation: Automation
    node: WorkflowNode
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def subscriber_id(self) -> str:
        return self.payload["subscriberId"]


class NodeHandler(ABC):
    node_type: str = ""

    @abstractmethod
    def handle(self, context: NodeContext) -> HandlerResult:
        raise NotImplementedError


class EmailNodeHandler(NodeHandler):
    """
    Sends one email and records the attempt in the action log.

    Whatever happens during rendering or delivery, the run continues with
    ``node.next``; failures only show up as a failure log entry and as a
    missing or unengaged send record for later CONDITION nodes.
    """

    node_type = NodeType.EMAIL.value

    def __init__(
        self,
        email_service: EmailDeliveryService,
        directory: SubscriberDirectory,
        action_logs: ActionLogStore,
        api_base_url: str,
    ) -> None:
        self._email = email_service
        self._directory = directory
        self._action_logs = action_logs
        self._api_base_url = api_base_url.rstrip("/")

    def handle(self, context: NodeContext) -> HandlerResult:
        automation, node = context.automation, context.node
        log_input = {"params": node.params, "payload": context.payload}
        try:
            message = self._send(context)
        except Exception as exc:
            error = exc if isinstance(exc, DeliveryError) else DeliveryError(str(exc) or "Failed to execute EMAIL node.")
            logger.error("Automation [%s]: %s", automation.name, error, exc_info=not isinstance(exc, DeliveryError))
            self._log(context, "failure", log_input, {"error": str(error)})
        else:
            logger.info("Automation [%s]: %s", automation.name, message)
            self._log(context, "success", log_input, {"message": message})
        return node.next

    def _send(self, context: NodeContext) -> str:
        automation, node = context.automation, context.node
        params = node.params
        content = params.get("content") or ""

        template_id = params.get("selectedTemplate")
        if template_id and template_id != "no-template":
            rendered = self._email.render_template(template_id)
            if rendered is not None:
                content = rendered

        subscriber = self._directory.get_subscriber(context.subscriber_id)
        if subscriber is None:
            raise DeliveryError(f"Subscriber {context.subscriber_id} not found.")

        subject = substitute_variables(params.get("subject") or "", subscriber)
        content = substitute_variables(content, subscriber)

        profile = self._directory.get_user_profile(automation.user_id)
        if profile is None or not profile.address:
            raise DeliveryError(f"User profile or address for {automation.user_id} not found.")

        provider = self._email.get_provider(automation.user_id)
        if provider is None:
            raise DeliveryError(f"No SMTP provider configured for {automation.user_id}.")

        record = self._email.create_send_record(
            automation_id=automation.id,
            node_id=node.id,
            subscriber_id=subscriber.id,
            subject=subject,
            content=content,
            provider_id=provider.id,
        )

        html = content.replace("clickId", record.id)
        html = add_tracking(html, self._api_base_url, subscriber.id, record.id)
        html = add_unsubscribe(html, self._api_base_url, record.id, profile)

        self._email.deliver(
            OutgoingEmail(
                provider_id=provider.id,
                to=subscriber.email,
                subject=subject,
                html=html,
                sender=params.get("selectedSender") or provider.default_sender,
            )
        )
        return f"Successfully sent email to {subscriber.email}"

    def _log(self, context: NodeContext, status: ActionStatus, log_input: Dict[str, Any], output: Dict[str, Any]) -> None:
        self._action_logs.log_action(
            ActionLogEntry(
                automation_id=context.automation.id,
                node_id=context.node.id,
                subscriber_id=context.subscriber_id,
                status=status,
                input=log_input,
                output=output,
            )
        )


class DelayNodeHandler(NodeHandler):
    node_type = NodeType.DELAY.value

    def __init__(self, scheduler: "WorkflowScheduler") -> None:
        self._scheduler = scheduler

    def handle(self, context: NodeContext) -> HandlerResult:
        node = context.node
        if not node.next:
            # Nothing left to wait for; the run ends here.
            logger.info("Automation [%s]: DELAY node %s has no successor", context.automation.name, node.id)
            return None
        self._scheduler.schedule(context.automation.id, context.subscriber_id, node.next, node.params)
        return PAUSE


def find_previous_email_node(automation: Automation, node_id: str) -> WorkflowNode | None:
    """
    Nearest EMAIL node upstream of ``node_id``.

    Walks the reverse-adjacency index breadth first; the visited set stops
    the walk on cycles.
    """
    visited = {node_id}
    queue = deque(automation.predecessors(node_id))
    while queue:
        candidate_id = queue.popleft()
        if candidate_id in visited:
            continue
        visited.add(candidate_id)
        candidate = automation.get_node(candidate_id)
        if candidate is None:
            continue
        if candidate.type == NodeType.EMAIL.value:
            return candidate
        queue.extend(automation.predecessors(candidate_id))
    return None


class ConditionNodeHandler(NodeHandler):
    """Branches on engagement with the most recent upstream email."""

    node_type = NodeType.CONDITION.value

    ENGAGEMENT_COUNTERS: Mapping[str, str] = {
        "opened": "total_opens",
        "clicked": "total_clicks",
    }

    def __init__(self, email_service: EmailDeliveryService) -> None:
        self._email = email_service

    def handle(self, context: NodeContext) -> HandlerResult:
        node = context.node
        branches = node.branches
        if branches is None:
            logger.warning("Automation [%s]: condition node %s has no branches", context.automation.name, node.id)
            return None
        return branches.true if self._evaluate(context) else branches.false

    def _evaluate(self, context: NodeContext) -> bool:
        automation, node = context.automation, context.node
        params = node.params
        counter = self.ENGAGEMENT_COUNTERS.get(params.get("emailAction"))

        if params.get("conditionType") != "emailAction" or params.get("emailScope") != "previousEmail" or counter is None:
            logger.warning(
                "Automation [%s]: Unknown condition type in node %s. Defaulting to false.", automation.name, node.id
            )
            return False

        email_node = find_previous_email_node(automation, node.id)
        if email_node is None:
            logger.warning(
                "Automation [%s]: Could not find a previous email node for condition node %s. Defaulting to false.",
                automation.name,
                node.id,
            )
            return False

        record = self._email.latest_send(automation.id, email_node.id, context.subscriber_id)
        return record is not None and getattr(record, counter) > 0


class EndNodeHandler(NodeHandler):
    node_type = NodeType.END.value

    def handle(self, context: NodeContext) -> HandlerResult:
        logger.info("Automation [%s]: reached end node.", context.automation.name)
        return None


class FallthroughNodeHandler(NodeHandler):
    """Used for node types without a handler so legacy runs are not stranded."""

    def handle(self, context: NodeContext) -> HandlerResult:
        logger.warning(
            "Automation [%s]: unknown node type %s (node %s)",
            context.automation.name,
            context.node.type,
            context.node.id,
        )
        return context.node.next
