from typing import Dict
import os

from openai import OpenAI

from core.logger import get_logger
from registry import Registry

logger = get_logger("llm")

# Parameter shapes the executor understands, keyed by node type.
NODE_PARAM_HINTS: Dict[str, str] = {
    "EMAIL": '{"subject": "...", "content": "<html>", "selectedTemplate": "<template id, optional>"}; '
    '"@Sub Name", "@Sub Email" and "@Sub Id" are replaced per subscriber',
    "DELAY": '{"delayType": "period", "delayAmount": <int>, "delayUnit": "Minutes|Hours|Days|Weeks"}, '
    '{"delayType": "timeOfDay", "timeOfDay": "HH:MM"}, '
    '{"delayType": "dateAndTime", "specificDateTime": "<ISO 8601>"} or '
    '{"delayType": "dayOfWeek", "daysOfWeek": {"Mon": true, ...}}',
    "CONDITION": '{"conditionType": "emailAction", "emailAction": "opened|clicked", "emailScope": "previousEmail"} '
    'with "branches": {"true": <id>, "false": <id>} instead of "next"',
    "END": "{}",
}

SYSTEM_PROMPT = (
    "You translate marketing requests into an email automation workflow.\n"
    "A workflow has exactly one trigger and a graph of nodes linked by id.\n"
    "Return ONLY a JSON object with fields: name, trigger, nodes, editorData.\n"
    'editorData.steps must contain {"id": <first node id>, "parentId": <trigger id>} for the node that runs first.\n'
    "Only use trigger and node types listed by the user message. If unsure, pick the closest match."
)

SHAPE_HINT = (
    '{\n'
    '  "name": "<string>",\n'
    '  "trigger": {"id": "trigger", "type": "<trigger type>", "params": {"listIds": [...]}},\n'
    '  "nodes": [{"id": "<id>", "type": "<node type>", "label": "<string>", "params": {...}, "next": "<id>"}, ...],\n'
    '  "editorData": {"steps": [{"id": "<first node id>", "type": "<node type>", "parentId": "trigger"}]}\n'
    '}'
)


class OpenAIAutomationLLM:
    """
    Turns a natural-language request into the stringified workflow JSON
    accepted by ``orchestrate_user_input``.
    """

    def __init__(self, model: str = "gpt-4o-mini", client: OpenAI | None = None) -> None:
        if client is None:
            api_key = os.getenv("OPENAI_API_KEY")
            client = OpenAI(api_key=api_key) if api_key else OpenAI()
        self.client = client
        self.model = model

    def _build_prompt(self, user_input: str, registries: Dict[str, Registry]) -> str:
        trigger_lines = ["Triggers:"]
        for item in registries["trigger"].all():
            label = f' (shown as "{item.label}")' if item.label else ""
            trigger_lines.append(f"- {item.type}{label}: {item.description}")

        node_lines = ["Node types:"]
        for item in registries["node"].all():
            node_lines.append(f"- {item.type}: {item.description}")
            hint = NODE_PARAM_HINTS.get(item.type)
            if hint:
                node_lines.append(f"  params: {hint}")

        return "\n\n".join(
            [
                "\n".join(trigger_lines),
                "\n".join(node_lines),
                f"Request:\n{user_input}",
                f"Respond with JSON shaped like:\n{SHAPE_HINT}",
            ]
        )

    def generate_automation_json(self, user_input: str, registries: Dict[str, Registry]) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self._build_prompt(user_input, registries)},
            ],
            temperature=0.2,
        )
        content = (response.choices[0].message.content or "").strip()
        logger.debug("LLM returned %d characters for request %r", len(content), user_input[:80])
        return content
