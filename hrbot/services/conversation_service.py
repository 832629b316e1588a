import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from hrbot.database import SessionLocal
from hrbot.logging_config import get_logger
from hrbot.models import BotUser
from hrbot.schemas.slack import InboundMessage
from hrbot.services.ai_service import AIGateway

logger = get_logger("conversation_service")

DIRECT_MESSAGE_PREFIX = "D"


@dataclass(frozen=True)
class ProcessingMode:
    stateful: bool
    user_id: Optional[str] = None

    @classmethod
    def for_user(cls, user_id: str) -> "ProcessingMode":
        return cls(stateful=True, user_id=user_id)


STATELESS = ProcessingMode(stateful=False)


def is_direct_message_channel(channel_id: Optional[str]) -> bool:
    return bool(channel_id) and channel_id.startswith(DIRECT_MESSAGE_PREFIX)


class SqlBindingStore:
    """Slack user -> assistant thread bindings kept in the ``bot_users`` table."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def _find(self, user_id: str) -> Optional[str]:
        with self.session_factory() as db:
            bot_user = db.get(BotUser, user_id)
            return bot_user.thread_id if bot_user else None

    def _create(self, user_id: str, thread_id: str) -> None:
        now = datetime.now(timezone.utc)
        with self.session_factory() as db:
            db.add(BotUser(slack_user_id=user_id, thread_id=thread_id, created_at=now, updated_at=now))
            db.commit()

    def _update(self, db: Session, user_id: str, thread_id: str) -> bool:
        bot_user = db.get(BotUser, user_id)
        if bot_user is None:
            return False
        bot_user.thread_id = thread_id
        bot_user.updated_at = datetime.now(timezone.utc)
        db.commit()
        return True

    def _upsert(self, user_id: str, thread_id: str) -> None:
        with self.session_factory() as db:
            if self._update(db, user_id, thread_id):
                return
        try:
            self._create(user_id, thread_id)
        except IntegrityError:
            # Lost an insert race; last writer wins.
            with self.session_factory() as db:
                self._update(db, user_id, thread_id)

    async def find(self, user_id: str) -> Optional[str]:
        return await asyncio.to_thread(self._find, user_id)

    async def create(self, user_id: str, thread_id: str) -> None:
        await asyncio.to_thread(self._create, user_id, thread_id)

    async def upsert(self, user_id: str, thread_id: str) -> None:
        await asyncio.to_thread(self._upsert, user_id, thread_id)


class ConversationRouter:
    """Chooses per-user stateful threads for DMs and stateless replies elsewhere."""

    def __init__(self, gateway: AIGateway, store: Optional[SqlBindingStore] = None):
        self.gateway = gateway
        self.store = store or SqlBindingStore()
        self._user_locks: dict[str, asyncio.Lock] = {}

    def route(self, message: InboundMessage) -> ProcessingMode:
        if is_direct_message_channel(message.channel_id) and message.user_id:
            return ProcessingMode.for_user(message.user_id)
        return STATELESS

    async def resolve_thread(self, user_id: str) -> str:
        thread_id = await self.store.find(user_id)
        if thread_id:
            return thread_id

        lock = self._user_locks.setdefault(user_id, asyncio.Lock())
        try:
            async with lock:
                thread_id = await self.store.find(user_id)
                if thread_id:
                    return thread_id

                thread_id = await self.gateway.create_thread()
                await self.store.upsert(user_id, thread_id)
                logger.info(
                    "Bound new assistant thread", extra={"context": {"user_id": user_id, "thread_id": thread_id}}
                )
                return thread_id
        finally:
            if self._user_locks.get(user_id) is lock:
                del self._user_locks[user_id]

    async def ask(self, message: InboundMessage, text: str) -> str:
        mode = self.route(message)
        if mode.stateful:
            thread_id = await self.resolve_thread(mode.user_id)
            return await self.gateway.ask_stateful(thread_id, text)
        return await self.gateway.ask_stateless(text)
