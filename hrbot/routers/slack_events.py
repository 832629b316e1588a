import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from hrbot.logging_config import get_logger
from hrbot.schemas.slack import InboundMessage, MessageKind, SlackEventEnvelope, SlackEventResponse
from hrbot.services.errors import AuthenticationError
from hrbot.services.message_service import MessageProcessor, Responder, get_message_processor
from hrbot.services.signature_service import check_request_signature

logger = get_logger("slack_events")

router = APIRouter(prefix="/api/slack", tags=["Slack"])

HANDLED_EVENT_TYPES = {"message", "app_mention"}


def _reply(message: str) -> SlackEventResponse:
    return SlackEventResponse(message=message)


async def handle_slack_event(request: Request, processor: MessageProcessor, responder: Responder):
    raw_body = (await request.body()).decode("utf-8", errors="replace")
    try:
        envelope = SlackEventEnvelope(**json.loads(raw_body))
    except (json.JSONDecodeError, TypeError, ValidationError) as e:
        logger.warning(f"Invalid Slack payload: {e}")
        return JSONResponse(status_code=400, content={"error": "Invalid payload"})

    # Slack sends the handshake before the endpoint is verified, so it carries no usable signature.
    if envelope.type == "url_verification" and envelope.challenge:
        return SlackEventResponse(challenge=envelope.challenge)

    try:
        check_request_signature(
            request.headers.get("x-slack-request-timestamp"),
            raw_body,
            request.headers.get("x-slack-signature"),
        )
    except AuthenticationError as e:
        logger.warning(f"Rejected Slack request: {e.reason}")
        return JSONResponse(status_code=401, content={"error": e.reason})

    if envelope.type != "event_callback" or envelope.event is None:
        return _reply("Event type not handled")

    message = InboundMessage.from_event(envelope.event)
    if message.kind is MessageKind.BOT:
        return _reply("Ignored bot message")
    if message.is_bot:
        return _reply(f"Ignored {message.kind.value} message")

    if envelope.event.type not in HANDLED_EVENT_TYPES:
        return _reply("Event type not handled")

    if not message.user_id or not message.channel_id or not (message.text or "").strip():
        return _reply("Missing required event data")

    text = processor.prepare(message)
    if not text:
        return _reply("Empty message after cleanup")

    processor.dispatch(message, text, responder)
    return _reply("Event received")


@router.post("/events/assistant", response_model=SlackEventResponse, response_model_exclude_none=True)
async def assistant_events(request: Request, processor: MessageProcessor = Depends(get_message_processor)):
    """Slack Events API endpoint answered by the OpenAI assistant (per-user threads in DMs)."""
    return await handle_slack_event(request, processor, "assistant")


@router.post("/events/chat", response_model=SlackEventResponse, response_model_exclude_none=True)
async def chat_events(request: Request, processor: MessageProcessor = Depends(get_message_processor)):
    """Slack Events API endpoint answered by a single-turn chat completion."""
    return await handle_slack_event(request, processor, "chat")
