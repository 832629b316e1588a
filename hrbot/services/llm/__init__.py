from hrbot.services.llm.base import AssistantProvider, LLMProvider, LLMResponse
from hrbot.services.llm.openai_provider import OpenAIProvider

__all__ = ["AssistantProvider", "LLMProvider", "LLMResponse", "OpenAIProvider"]
