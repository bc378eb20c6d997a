from typing import Any, Dict

from core.exceptions import ConfigurationError, UnknownRegistryTypeError
from core.logger import get_logger
from models import Automation
from registry import Registry, resolve_trigger_type

logger = get_logger("validation")


def _validate_against_registries(automation: Automation, registries: Dict[str, Registry]) -> Automation:
    trigger_registry = registries["trigger"]
    node_registry = registries["node"]

    if trigger_registry.get(automation.trigger.type) is None:
        raise UnknownRegistryTypeError(f"Unknown trigger type: {automation.trigger.type}")

    for node in automation.nodes.values():
        if node_registry.get(node.type) is None:
            raise UnknownRegistryTypeError(f"Unknown node type: {node.type} (node {node.id})")

    return automation


def _validate_graph(automation: Automation) -> Automation:
    for node in automation.nodes.values():
        for successor in node.successors():
            if successor not in automation.nodes:
                raise ConfigurationError(f"Node {node.id} points at missing node {successor}")

    start_links = [
        step
        for step in automation.editor_data.get("steps") or []
        if isinstance(step, dict) and step.get("parentId") == automation.trigger.id
    ]
    if len(start_links) > 1:
        raise ConfigurationError(f"Trigger {automation.trigger.id} has more than one direct successor")

    start_node_id = automation.start_node_id()
    if start_node_id is None:
        logger.warning("Automation [%s] has no start node; it will never run", automation.name)
    elif start_node_id not in automation.nodes:
        raise ConfigurationError(f"Start node {start_node_id} is not part of the automation")

    return automation


def parse_and_validate_automation(payload: Dict[str, Any], registries: Dict[str, Registry]) -> Automation:
    """
    Convert parsed JSON (dict) into an Automation and validate it.

    The trigger type may be given as an editor label ("New Lead") and is mapped
    to its event type first. Raises pydantic.ValidationError for schema
    problems, UnknownRegistryTypeError for unknown trigger or node types and
    ConfigurationError for broken graphs.
    """
    trigger = payload.get("trigger")
    if isinstance(trigger, dict) and trigger.get("type"):
        payload = {**payload, "trigger": {**trigger, "type": resolve_trigger_type(trigger["type"], registries["trigger"])}}

    automation = Automation.model_validate(payload)
    _validate_against_registries(automation, registries)
    return _validate_graph(automation)
