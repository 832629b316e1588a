import asyncio
import time
from typing import Awaitable, Callable, Optional

from hrbot.config import Settings, settings
from hrbot.logging_config import get_logger
from hrbot.services.errors import UpstreamProcessingError
from hrbot.services.llm import AssistantProvider, OpenAIProvider
from hrbot.services.text_service import strip_citations

logger = get_logger("ai_service")

ASSISTANT_NAME = "HR Assistant"
ASSISTANT_INSTRUCTIONS = (
    "You are a helpful HR assistant. Answer questions about salary, policies, leave, and other "
    "HR-related topics based on the provided documentation. Be concise, accurate, and professional."
)
CHAT_SYSTEM_PROMPT = (
    "You are a helpful HR assistant. Answer questions about salary, policies, leave, and other "
    "HR-related topics. Be concise, accurate, and professional."
)
ASSISTANT_TOOLS = [{"type": "file_search"}]

PENDING_RUN_STATUSES = {"queued", "in_progress"}

_llm_provider: Optional[OpenAIProvider] = None


def get_llm_provider() -> OpenAIProvider:
    """Get or create LLM provider instance."""
    global _llm_provider
    if _llm_provider is None:
        _llm_provider = OpenAIProvider(
            api_key=settings.openai_api_key,
            default_model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout_seconds=settings.http_timeout_seconds,
        )
    return _llm_provider


def extract_message_text(message: Optional[dict]) -> Optional[str]:
    """Return the text of the first content part of an assistant message, if it is text."""
    if not message:
        return None
    content = message.get("content") or []
    if not content:
        return None
    first = content[0]
    if first.get("type") != "text":
        return None
    return (first.get("text") or {}).get("value")


class AIGateway:
    """Calls into the OpenAI assistant for stateful, stateless and chat-completion replies."""

    def __init__(
        self,
        provider: AssistantProvider,
        config: Optional[Settings] = None,
        sleep_func: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.config = config or settings
        self._sleep = sleep_func
        self._clock = clock
        self._assistant_id: Optional[str] = self.config.openai_assistant_id or None
        self._assistant_lock = asyncio.Lock()

    async def get_assistant_id(self) -> str:
        """Configured assistant id, or one created on first use and kept for the process lifetime."""
        if self._assistant_id:
            return self._assistant_id

        async with self._assistant_lock:
            if not self._assistant_id:
                logger.info("Creating OpenAI assistant")
                self._assistant_id = await self.provider.create_assistant(
                    name=ASSISTANT_NAME,
                    instructions=ASSISTANT_INSTRUCTIONS,
                    model=self.config.openai_model,
                    tools=ASSISTANT_TOOLS,
                )
                logger.info("OpenAI assistant created", extra={"context": {"assistant_id": self._assistant_id}})
        return self._assistant_id

    async def create_thread(self) -> str:
        return await self.provider.create_thread()

    async def ask_stateful(self, thread_id: str, text: str) -> str:
        """Append ``text`` to a persistent thread and return the assistant's reply."""
        return await self._run_thread(thread_id, text)

    async def ask_stateless(self, text: str) -> str:
        """Answer ``text`` on a throwaway thread that is deleted afterwards."""
        thread_id = await self.provider.create_thread()
        try:
            return await self._run_thread(thread_id, text)
        finally:
            try:
                await self.provider.delete_thread(thread_id)
            except Exception as e:
                logger.warning(f"Failed to delete throwaway thread {thread_id}: {e}")

    async def ask_chat_completion(self, text: str) -> str:
        response = await self.provider.generate(
            [
                {"role": "system", "content": CHAT_SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            temperature=0.7,
        )
        reply = strip_citations(response.content or "")
        if not reply.strip():
            raise UpstreamProcessingError("No response from OpenAI")
        return reply

    async def _run_thread(self, thread_id: str, text: str) -> str:
        assistant_id = await self.get_assistant_id()
        await self.provider.add_message(thread_id, text)
        run = await self.provider.create_run(thread_id, assistant_id)
        logger.debug(f"Run started: thread={thread_id}, run={run.get('id')}")

        run = await self._wait_for_run(thread_id, run["id"])
        status = run.get("status")

        if status == "completed":
            messages = await self.provider.list_messages(thread_id, limit=1)
            reply = strip_citations(extract_message_text(messages[0] if messages else None) or "")
            if not reply.strip():
                raise UpstreamProcessingError("Assistant run completed without a text reply")
            return reply

        if status == "failed":
            last_error = run.get("last_error") or {}
            raise UpstreamProcessingError(f"OpenAI run failed: {last_error.get('message') or 'Unknown error'}")

        raise UpstreamProcessingError(f"Unexpected run status: {status}")

    async def _wait_for_run(self, thread_id: str, run_id: str) -> dict:
        """Poll a run until it leaves queued/in_progress, with backoff and an overall deadline."""
        interval = self.config.run_poll_interval_seconds
        deadline = self._clock() + self.config.run_timeout_seconds

        run = await self.provider.retrieve_run(thread_id, run_id)
        while run.get("status") in PENDING_RUN_STATUSES:
            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.warning(
                    "Assistant run timed out",
                    extra={"context": {"thread_id": thread_id, "run_id": run_id, "status": run.get("status")}},
                )
                raise UpstreamProcessingError(
                    f"OpenAI run {run_id} did not finish within {self.config.run_timeout_seconds}s"
                )
            await self._sleep(min(interval, remaining))
            interval = min(interval * self.config.run_poll_backoff, self.config.run_poll_max_interval_seconds)
            run = await self.provider.retrieve_run(thread_id, run_id)
        return run


_gateway: Optional[AIGateway] = None


def get_ai_gateway() -> AIGateway:
    global _gateway
    if _gateway is None:
        _gateway = AIGateway(get_llm_provider())
    return _gateway
