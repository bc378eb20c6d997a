from core.exceptions import UnknownRegistryTypeError
from models import EventType, NodeType

from .registry import Registry


def create_default_registries() -> dict[str, Registry]:
    """Create the registries for trigger event types and workflow node types."""
    trigger_registry = Registry(name="trigger")
    trigger_registry.register(
        EventType.NEW_LEAD.value,
        "Fires when a subscriber joins one of the owner's lists",
        label="New Lead",
    )
    trigger_registry.register(
        EventType.CLICK.value,
        "Fires when a subscriber clicks a tracked link",
        label="Click",
    )

    node_registry = Registry(name="node")
    node_registry.register(NodeType.EMAIL.value, "Send an email to the subscriber")
    node_registry.register(NodeType.DELAY.value, "Wait for a period, a time of day, a date or a weekday")
    node_registry.register(NodeType.CONDITION.value, "Branch on whether the previous email was opened")
    node_registry.register(NodeType.END.value, "Stop the workflow")

    return {
        "trigger": trigger_registry,
        "node": node_registry,
    }


def resolve_trigger_type(name: str, registry: Registry) -> str:
    """Map an editor label such as "New Lead" (or a raw type) to an event type."""
    item = registry.resolve(name)
    if item is None:
        raise UnknownRegistryTypeError(f"Invalid trigger type: {name}")
    return item.type
