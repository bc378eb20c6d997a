from .openai_client import OpenAIAutomationLLM
from .parser import LlmAutomationParser

__all__ = ["LlmAutomationParser", "OpenAIAutomationLLM"]
