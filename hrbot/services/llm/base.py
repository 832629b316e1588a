from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[dict] = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate response from LLM."""
        pass


class AssistantProvider(LLMProvider):
    """Provider that also exposes hosted assistants with server-side threads."""

    @abstractmethod
    async def create_assistant(self, name: str, instructions: str, model: str, tools: List[dict]) -> str:
        pass

    @abstractmethod
    async def create_thread(self) -> str:
        pass

    @abstractmethod
    async def delete_thread(self, thread_id: str) -> None:
        pass

    @abstractmethod
    async def add_message(self, thread_id: str, content: str, role: str = "user") -> str:
        pass

    @abstractmethod
    async def create_run(self, thread_id: str, assistant_id: str) -> dict:
        pass

    @abstractmethod
    async def retrieve_run(self, thread_id: str, run_id: str) -> dict:
        pass

    @abstractmethod
    async def list_messages(self, thread_id: str, limit: int = 1) -> List[dict]:
        pass
