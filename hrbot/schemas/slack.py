from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class SlackEvent(BaseModel):
    type: str
    user: Optional[str] = None
    text: Optional[str] = None
    channel: Optional[str] = None
    ts: Optional[str] = None
    thread_ts: Optional[str] = None
    bot_id: Optional[str] = None
    app_id: Optional[str] = None
    subtype: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class SlackEventEnvelope(BaseModel):
    type: str  # url_verification, event_callback
    token: Optional[str] = None
    challenge: Optional[str] = None
    event: Optional[SlackEvent] = None

    model_config = ConfigDict(extra="allow")


class SlackEventResponse(BaseModel):
    challenge: Optional[str] = None
    message: Optional[str] = None


class SlackErrorResponse(BaseModel):
    error: str


class MessageKind(str, Enum):
    USER = "user"
    BOT = "bot"
    SUBTYPE = "subtype"
    APP = "app"


@dataclass(frozen=True)
class InboundMessage:
    kind: MessageKind
    user_id: Optional[str]
    channel_id: Optional[str]
    text: Optional[str]
    thread_ts: Optional[str] = None
    ts: Optional[str] = None

    @property
    def is_bot(self) -> bool:
        return self.kind is not MessageKind.USER

    @staticmethod
    def classify(event: dict[str, Any]) -> MessageKind:
        if event.get("bot_id"):
            return MessageKind.BOT
        if event.get("subtype"):
            return MessageKind.SUBTYPE
        if event.get("app_id"):
            return MessageKind.APP
        return MessageKind.USER

    @classmethod
    def from_event(cls, event: SlackEvent | dict[str, Any]) -> "InboundMessage":
        """Build a message from a webhook event model or a raw socket-mode event dict."""
        data = event.model_dump() if isinstance(event, SlackEvent) else dict(event)
        return cls(
            kind=cls.classify(data),
            user_id=data.get("user"),
            channel_id=data.get("channel"),
            text=data.get("text"),
            thread_ts=data.get("thread_ts"),
            ts=data.get("ts"),
        )
