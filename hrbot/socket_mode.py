"""Socket Mode ingestion.

Slack authenticates the socket with the app-level token, so events arriving here
skip request signature checks and go straight to the message processor.
"""

from typing import Optional

from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp

from hrbot.config import Settings, settings
from hrbot.logging_config import get_logger
from hrbot.schemas.slack import InboundMessage
from hrbot.services.message_service import MessageProcessor, get_message_processor

logger = get_logger("socket_mode")


async def handle_socket_event(event: dict, processor: MessageProcessor) -> bool:
    """Dispatch a socket-mode ``message``/``app_mention`` event. Returns True if it was accepted."""
    message = InboundMessage.from_event(event)
    text = processor.prepare(message)
    if not text:
        logger.debug(f"Ignoring socket event: kind={message.kind.value}, channel={message.channel_id}")
        return False
    processor.dispatch(message, text, "assistant")
    return True


def create_bolt_app(config: Optional[Settings] = None, processor: Optional[MessageProcessor] = None) -> AsyncApp:
    config = config or settings
    bolt_app = AsyncApp(token=config.slack_bot_token, request_verification_enabled=False)

    def _processor() -> MessageProcessor:
        return processor or get_message_processor()

    @bolt_app.event("message")
    async def on_message(event: dict):
        await handle_socket_event(event, _processor())

    @bolt_app.event("app_mention")
    async def on_app_mention(event: dict):
        await handle_socket_event(event, _processor())

    @bolt_app.error
    async def on_error(error):
        logger.error(f"Slack Bolt error: {error}")

    return bolt_app


class SocketModeRunner:
    """Owns the Socket Mode connection for the lifetime of the web app."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self._handler: Optional[AsyncSocketModeHandler] = None

    @property
    def enabled(self) -> bool:
        return bool(self.config.socket_mode_enabled and self.config.slack_app_token)

    async def start(self) -> None:
        if not self.enabled or self._handler is not None:
            return
        self._handler = AsyncSocketModeHandler(create_bolt_app(self.config), self.config.slack_app_token)
        await self._handler.connect_async()
        logger.info("Slack Socket Mode connected")

    async def stop(self) -> None:
        if self._handler is None:
            return
        try:
            await self._handler.close_async()
        finally:
            self._handler = None
            logger.info("Slack Socket Mode closed")
