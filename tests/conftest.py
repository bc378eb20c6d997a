"""Shared fixtures: in-memory collaborators, a controllable clock and an automation factory."""

from __future__ import annotations

from typing import Any

import pytest

from db import InMemoryActionLogStore, InMemoryAutomationRepository, InMemoryExecutionStore
from engine import (
    AutomationEngine,
    ConditionNodeHandler,
    DelayNodeHandler,
    EmailNodeHandler,
    EndNodeHandler,
    EventMatcher,
    WorkflowExecutor,
    WorkflowScheduler,
)
from events import EventBus
from factories import API_BASE_URL, TRIGGER_ID, FakeClock
from models import Automation
from services import InMemoryEmailDeliveryService, InMemorySubscriberDirectory, SenderProvider, Subscriber, UserProfile

# ==============================================================================
# Collaborators
# ==============================================================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repository():
    return InMemoryAutomationRepository()


@pytest.fixture
def execution_store():
    return InMemoryExecutionStore()


@pytest.fixture
def action_logs():
    return InMemoryActionLogStore()


@pytest.fixture
def email_service():
    service = InMemoryEmailDeliveryService()
    service.providers["user-1"] = SenderProvider(id="smtp-1", name="Primary", default_sender="news@acme.test")
    return service


@pytest.fixture
def directory():
    directory = InMemorySubscriberDirectory()
    directory.add_subscriber(Subscriber(id="sub-1", email="ada@example.com", data={"name": "Ada"}))
    directory.add_subscriber(Subscriber(id="sub-2", email="bob@example.com", data={"name": "Bob"}))
    directory.add_user(
        UserProfile(id="user-1", address="1 Main St, Springfield", company_name="Acme", company_url="https://acme.test")
    )
    return directory


# ==============================================================================
# Engine components
# ==============================================================================


@pytest.fixture
def scheduler(execution_store, clock):
    return WorkflowScheduler(execution_store, batch_size=10, clock=clock)


@pytest.fixture
def executor(scheduler, email_service, directory, action_logs):
    return WorkflowExecutor(
        [
            EmailNodeHandler(email_service, directory, action_logs, API_BASE_URL),
            DelayNodeHandler(scheduler),
            ConditionNodeHandler(email_service),
            EndNodeHandler(),
        ]
    )


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def engine(repository, executor, scheduler, event_bus):
    engine = AutomationEngine(repository, EventMatcher(repository), executor, event_bus)
    scheduler.set_resume_handler(engine.resume_automation)
    return engine


# ==============================================================================
# Automation factory
# ==============================================================================


@pytest.fixture
def make_automation(repository):
    """Build (and save) an automation whose trigger leads to ``start``."""

    def _make(
        nodes: list[dict],
        start: str | None = "n1",
        automation_id: str = "auto-1",
        save: bool = True,
        trigger_type: str = "new_lead",
        trigger_params: dict | None = None,
        **fields: Any,
    ) -> Automation:
        steps = [{"id": start, "type": "step", "parentId": TRIGGER_ID}] if start else []
        automation = Automation.model_validate(
            {
                "id": automation_id,
                "userId": "user-1",
                "name": f"Automation {automation_id}",
                "trigger": {"id": TRIGGER_ID, "type": trigger_type, "params": trigger_params or {}},
                "nodes": nodes,
                "editorData": {"steps": steps},
                **fields,
            }
        )
        if save:
            repository.save(automation)
        return automation

    return _make
