import json
import re
from typing import Any, Dict

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class LlmAutomationParser:
    """
    Adapter around the LLM output. The LLM is expected to return a stringified JSON
    describing an automation with fields: name, trigger, nodes, editorData.
    """

    def parse(self, llm_text: str) -> Dict[str, Any]:
        """
        Parse the LLM output into a dictionary that can be validated against the schema.
        A surrounding markdown code fence is tolerated.

        Raises json.JSONDecodeError if the input is not valid JSON.
        """
        text = llm_text.strip()
        match = _FENCE_RE.match(text)
        if match:
            text = match.group(1)
        return json.loads(text)
