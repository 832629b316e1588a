from typing import Optional
from unittest.mock import AsyncMock, Mock

import pytest

from hrbot.config import Settings
from hrbot.schemas.slack import InboundMessage, MessageKind

SIGNING_SECRET = "8f742231b10e8888abcd99yyyzzz85a5"


class FakeBindingStore:
    def __init__(self, initial: Optional[dict] = None):
        self.data = dict(initial or {})
        self.upserts: list[tuple[str, str]] = []

    async def find(self, user_id: str) -> Optional[str]:
        return self.data.get(user_id)

    async def create(self, user_id: str, thread_id: str) -> None:
        if user_id in self.data:
            raise ValueError("binding exists")
        self.data[user_id] = thread_id

    async def upsert(self, user_id: str, thread_id: str) -> None:
        self.upserts.append((user_id, thread_id))
        self.data[user_id] = thread_id


@pytest.fixture
def test_settings():
    return Settings(
        slack_bot_token="xoxb-test",
        slack_signing_secret=SIGNING_SECRET,
        openai_api_key="test-key",
        openai_assistant_id="asst_test",
        database_url="sqlite://",
    )


@pytest.fixture
def signing_secret(monkeypatch):
    from hrbot.config import settings

    monkeypatch.setattr(settings, "slack_signing_secret", SIGNING_SECRET)
    return SIGNING_SECRET


@pytest.fixture
def slack():
    """Mock Slack client: posts return increasing message timestamps."""
    client = Mock()
    counter = iter(range(1, 1000))
    client.post_message = AsyncMock(side_effect=lambda *args, **kwargs: f"1700000000.{next(counter):06d}")
    client.update_message = AsyncMock(return_value=None)
    client.mark_read = AsyncMock(return_value=None)
    return client


@pytest.fixture
def binding_store():
    return FakeBindingStore()


def make_message(
    text: Optional[str] = "How many vacation days do I have?",
    channel: Optional[str] = "C0123456",
    user: Optional[str] = "U0AAAAAAA",
    kind: MessageKind = MessageKind.USER,
    thread_ts: Optional[str] = None,
) -> InboundMessage:
    return InboundMessage(kind=kind, user_id=user, channel_id=channel, text=text, thread_ts=thread_ts, ts="1700000000.000100")
