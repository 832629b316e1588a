from hrbot.schemas.slack import (
    InboundMessage,
    MessageKind,
    SlackErrorResponse,
    SlackEvent,
    SlackEventEnvelope,
    SlackEventResponse,
)

__all__ = [
    "InboundMessage",
    "MessageKind",
    "SlackErrorResponse",
    "SlackEvent",
    "SlackEventEnvelope",
    "SlackEventResponse",
]
