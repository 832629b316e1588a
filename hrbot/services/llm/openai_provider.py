from typing import Any, List, Optional

import httpx

from hrbot.logging_config import get_logger
from hrbot.services.errors import LLMProviderError
from hrbot.services.llm.base import AssistantProvider, LLMResponse

logger = get_logger("llm.openai")


class OpenAIProvider(AssistantProvider):
    """OpenAI API provider (chat completions and Assistants v2)."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 60.0,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def _headers(self, beta: bool) -> dict:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if beta:
            headers["OpenAI-Beta"] = "assistants=v2"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        beta: bool = True,
    ) -> dict:
        url = f"{self.base_url}{path}"
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.request(method, url, headers=self._headers(beta), json=json, params=params)

        logger.debug(f"OpenAI {operation} status: {response.status_code}")

        if response.status_code >= 400:
            logger.error(f"OpenAI error ({operation}): {response.text}")
            raise LLMProviderError(operation, response.status_code, response.text)

        return response.json()

    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate response from OpenAI chat completions."""
        model = model or self.default_model
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        logger.debug(f"OpenAI request: model={model}, messages_count={len(messages)}")

        data = await self._request("POST", "/chat/completions", operation="chat.completions", json=payload, beta=False)

        content = ""
        if data.get("choices"):
            message = data["choices"][0].get("message", {})
            content = message.get("content") or ""
        logger.debug(f"OpenAI content: {content[:100] if content else 'EMPTY'}")

        return LLMResponse(content=content, model=data.get("model", model), usage=data.get("usage"))

    async def create_assistant(self, name: str, instructions: str, model: str, tools: List[dict]) -> str:
        data = await self._request(
            "POST",
            "/assistants",
            operation="assistants.create",
            json={"name": name, "instructions": instructions, "model": model, "tools": tools},
        )
        return data["id"]

    async def create_thread(self) -> str:
        data = await self._request("POST", "/threads", operation="threads.create", json={})
        return data["id"]

    async def delete_thread(self, thread_id: str) -> None:
        await self._request("DELETE", f"/threads/{thread_id}", operation="threads.delete")

    async def add_message(self, thread_id: str, content: str, role: str = "user") -> str:
        data = await self._request(
            "POST",
            f"/threads/{thread_id}/messages",
            operation="threads.messages.create",
            json={"role": role, "content": content},
        )
        return data["id"]

    async def create_run(self, thread_id: str, assistant_id: str) -> dict:
        return await self._request(
            "POST",
            f"/threads/{thread_id}/runs",
            operation="threads.runs.create",
            json={"assistant_id": assistant_id},
        )

    async def retrieve_run(self, thread_id: str, run_id: str) -> dict:
        return await self._request("GET", f"/threads/{thread_id}/runs/{run_id}", operation="threads.runs.retrieve")

    async def list_messages(self, thread_id: str, limit: int = 1) -> List[dict]:
        data: dict[str, Any] = await self._request(
            "GET",
            f"/threads/{thread_id}/messages",
            operation="threads.messages.list",
            params={"limit": limit, "order": "desc"},
        )
        return data.get("data", [])
