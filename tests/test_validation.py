"""Tests for authoring: registries, validation, the LLM parser and the orchestration helpers."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from core.exceptions import ConfigurationError, UnknownRegistryTypeError
from db import InMemoryAutomationRepository
from factories import condition_node, delay_node, email_node, end_node
from llm import LlmAutomationParser, OpenAIAutomationLLM
from main import orchestrate_natural_language, orchestrate_user_input
from registry import create_default_registries, resolve_trigger_type
from validations import parse_and_validate_automation


@pytest.fixture
def registries():
    return create_default_registries()


def _payload(trigger_type="New Lead", nodes=None, steps=None):
    return {
        "userId": "user-1",
        "name": "Welcome series",
        "trigger": {"id": "trigger", "type": trigger_type, "params": {}},
        "nodes": nodes if nodes is not None else [email_node("n1", "n2"), delay_node("n2", "n3"), end_node("n3")],
        "editorData": {"steps": steps if steps is not None else [{"id": "n1", "type": "EMAIL", "parentId": "trigger"}]},
    }


# ==============================================================================
# Registries
# ==============================================================================


@pytest.mark.parametrize("name,expected", [("New Lead", "new_lead"), ("Click", "click"), ("new_lead", "new_lead")])
def test_trigger_labels_resolve_to_event_types(registries, name, expected):
    assert resolve_trigger_type(name, registries["trigger"]) == expected


def test_unknown_trigger_label_is_rejected(registries):
    with pytest.raises(UnknownRegistryTypeError, match="Invalid trigger type: Form Submitted"):
        resolve_trigger_type("Form Submitted", registries["trigger"])


def test_node_registry_lists_every_node_type(registries):
    assert sorted(item.type for item in registries["node"].all()) == ["CONDITION", "DELAY", "EMAIL", "END"]


# ==============================================================================
# Validation
# ==============================================================================


def test_valid_payload_is_parsed(registries):
    automation = parse_and_validate_automation(_payload(), registries)

    assert automation.trigger.type == "new_lead"
    assert automation.start_node_id() == "n1"
    assert list(automation.nodes) == ["n1", "n2", "n3"]


def test_condition_branches_are_accepted(registries):
    nodes = [email_node("n1", "n2"), condition_node("n2", "n3", "n4"), end_node("n3"), end_node("n4")]

    automation = parse_and_validate_automation(_payload(nodes=nodes), registries)

    assert automation.get_node("n2").branches.false == "n4"


def test_unknown_node_type_is_rejected(registries):
    nodes = [email_node("n1", "n2"), {"id": "n2", "type": "SMS"}]

    with pytest.raises(UnknownRegistryTypeError, match="Unknown node type: SMS"):
        parse_and_validate_automation(_payload(nodes=nodes), registries)


def test_dangling_successor_is_rejected(registries):
    nodes = [email_node("n1", "missing")]

    with pytest.raises(ConfigurationError, match="missing"):
        parse_and_validate_automation(_payload(nodes=nodes), registries)


def test_trigger_with_two_successors_is_rejected(registries):
    steps = [{"id": "n1", "parentId": "trigger"}, {"id": "n2", "parentId": "trigger"}]

    with pytest.raises(ConfigurationError, match="more than one"):
        parse_and_validate_automation(_payload(steps=steps), registries)


def test_start_step_must_reference_a_node(registries):
    steps = [{"id": "ghost", "parentId": "trigger"}]

    with pytest.raises(ConfigurationError, match="ghost"):
        parse_and_validate_automation(_payload(steps=steps), registries)


def test_missing_start_step_is_only_a_warning(registries, caplog):
    automation = parse_and_validate_automation(_payload(steps=[]), registries)

    assert automation.start_node_id() is None
    assert "no start node" in caplog.text


def test_schema_errors_surface_as_validation_errors(registries):
    payload = _payload()
    del payload["name"]

    with pytest.raises(ValidationError):
        parse_and_validate_automation(payload, registries)


# ==============================================================================
# LLM output parsing
# ==============================================================================


def test_parser_accepts_plain_json():
    assert LlmAutomationParser().parse('{"name": "x"}') == {"name": "x"}


def test_parser_strips_markdown_fence():
    text = '```json\n{"name": "fenced"}\n```'

    assert LlmAutomationParser().parse(text) == {"name": "fenced"}


def test_parser_rejects_non_json():
    with pytest.raises(json.JSONDecodeError):
        LlmAutomationParser().parse("Sure! Here is your automation.")


# ==============================================================================
# Orchestration
# ==============================================================================


def test_orchestrate_user_input_saves_for_the_given_user():
    repository = InMemoryAutomationRepository()
    payload = _payload()
    payload["userId"] = "someone-else"

    automation_id = orchestrate_user_input(json.dumps(payload), "user-7", repository)

    saved = repository.get(automation_id)
    assert saved.user_id == "user-7"
    assert saved.trigger.type == "new_lead"


def _fake_openai(content):
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )
    return client


def test_llm_prompt_lists_registry_types(registries):
    client = _fake_openai('{"name": "x"}')
    llm = OpenAIAutomationLLM(model="test-model", client=client)

    assert llm.generate_automation_json("Send a welcome email", registries) == '{"name": "x"}'

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    system, user = kwargs["messages"]
    assert system["role"] == "system"
    prompt = user["content"]
    for type_name in ("new_lead", "click", "EMAIL", "DELAY", "CONDITION", "END"):
        assert type_name in prompt
    assert "Send a welcome email" in prompt
    assert "New Lead" in prompt


def test_orchestrate_natural_language_end_to_end():
    repository = InMemoryAutomationRepository()
    llm = OpenAIAutomationLLM(client=_fake_openai("```json\n" + json.dumps(_payload(trigger_type="Click")) + "\n```"))

    automation_id = orchestrate_natural_language("Email clickers", "user-1", repository, llm_client=llm)

    saved = repository.get(automation_id)
    assert saved.trigger.type == "click"
    assert saved.get_node("n2").type == "DELAY"
