from typing import Any, List, Set

from db.repository import AutomationRepository
from models import USER_SCOPED_EVENTS, Automation, AutomationStatus, EventPayload, EventType, event_key


def list_scope(params: dict[str, Any]) -> Set[str]:
    """List ids a trigger is restricted to; empty means unrestricted."""
    scope: Set[str] = set()
    if params.get("listId"):
        scope.add(str(params["listId"]))
    for list_id in params.get("listIds") or []:
        scope.add(str(list_id))
    return scope


class EventMatcher:
    """Selects the automations that should react to an incoming event."""

    def __init__(self, repository: AutomationRepository) -> None:
        self._repository = repository

    def match(self, event_type: EventType | str, payload: EventPayload) -> List[Automation]:
        key = event_key(event_type)
        return [
            automation
            for automation in self._repository.find_by_trigger(key)
            if self.matches(automation, key, payload)
        ]

    @staticmethod
    def matches(automation: Automation, event_type: str, payload: EventPayload) -> bool:
        if not automation.is_enabled or automation.status != AutomationStatus.ACTIVE:
            return False
        if automation.trigger.type != event_type:
            return False
        if event_type in USER_SCOPED_EVENTS and payload.user_id != automation.user_id:
            return False
        scope = list_scope(automation.trigger.params)
        if scope and not scope.intersection(payload.lists):
            return False
        return True
