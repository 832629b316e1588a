import asyncio
from typing import Literal, Optional

from hrbot.config import settings
from hrbot.logging_config import get_logger, preview
from hrbot.schemas.slack import InboundMessage
from hrbot.services.ai_service import AIGateway, get_ai_gateway
from hrbot.services.conversation_service import ConversationRouter, is_direct_message_channel
from hrbot.services.delivery_service import DeliveryService
from hrbot.services.slack_service import SlackService
from hrbot.services.text_service import normalize_inbound_text

logger = get_logger("message_service")

Responder = Literal["assistant", "chat"]


class MessageProcessor:
    """Runs one inbound Slack message through routing, the AI backend and delivery."""

    def __init__(
        self,
        slack: SlackService,
        gateway: AIGateway,
        router: Optional[ConversationRouter] = None,
        delivery: Optional[DeliveryService] = None,
    ):
        self.slack = slack
        self.gateway = gateway
        self.router = router or ConversationRouter(gateway)
        self.delivery = delivery or DeliveryService(slack)
        self._tasks: set[asyncio.Task] = set()

    def prepare(self, message: InboundMessage) -> Optional[str]:
        """Cleaned text worth answering, or None if the message must be ignored."""
        if message.is_bot:
            return None
        if not message.user_id or not message.channel_id or not message.text:
            return None
        return normalize_inbound_text(message.text) or None

    async def _mark_read(self, message: InboundMessage) -> None:
        if not is_direct_message_channel(message.channel_id):
            return
        try:
            await self.slack.mark_read(message.channel_id, message.ts)
        except Exception as e:
            logger.debug(f"conversations.mark skipped: {e}")

    async def _answer(self, message: InboundMessage, text: str, responder: Responder) -> str:
        if responder == "chat":
            return await self.gateway.ask_chat_completion(text)
        return await self.router.ask(message, text)

    async def process(self, message: InboundMessage, text: str, responder: Responder = "assistant") -> None:
        """Never raises: failures end in the apology message or a log line."""
        try:
            await self._mark_read(message)
            job = await self.delivery.post_placeholder(message.channel_id, message.thread_ts)
            try:
                response = await self._answer(message, text, responder)
                await self.delivery.deliver_response(job, response)
            except Exception as e:
                logger.error(
                    f"Error processing message: {e}",
                    exc_info=True,
                    extra={"context": {"channel": message.channel_id, "user": message.user_id}},
                )
                await self.delivery.deliver_error(job)
        except Exception as e:
            logger.error(f"Unhandled error in async processing: {e}", exc_info=True)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background message task failed", exc_info=exc)

    def dispatch(self, message: InboundMessage, text: str, responder: Responder = "assistant") -> asyncio.Task:
        """Process in the background so the caller can acknowledge Slack right away."""
        logger.info(
            "Message accepted",
            extra={
                "context": {
                    "channel": message.channel_id,
                    "user": message.user_id,
                    "responder": responder,
                    "text": preview(text),
                }
            },
        )
        task = asyncio.create_task(self.process(message, text, responder))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def drain(self) -> None:
        """Wait for in-flight background tasks."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


_processor: Optional[MessageProcessor] = None


def get_message_processor() -> MessageProcessor:
    """Get or create the process-wide message processor."""
    global _processor
    if _processor is None:
        _processor = MessageProcessor(SlackService(settings.slack_bot_token), get_ai_gateway())
    return _processor
