import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hrbot.database import init_db
from hrbot.models import BotUser
from hrbot.services.conversation_service import (
    STATELESS,
    ConversationRouter,
    ProcessingMode,
    SqlBindingStore,
    is_direct_message_channel,
)
from tests.conftest import FakeBindingStore, make_message


@pytest.fixture
def gateway():
    mock = Mock()
    mock.create_thread = AsyncMock(return_value="thread_new")
    mock.ask_stateful = AsyncMock(return_value="stateful reply")
    mock.ask_stateless = AsyncMock(return_value="stateless reply")
    return mock


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


class TestRoute:
    def test_dm_channel_is_stateful(self, gateway):
        router = ConversationRouter(gateway, FakeBindingStore())
        mode = router.route(make_message(channel="D024BE91L", user="U1"))
        assert mode == ProcessingMode(stateful=True, user_id="U1")

    @pytest.mark.parametrize("channel", ["C024BE91L", "G024BE91L", "d024BE91L", ""])
    def test_other_channels_are_stateless(self, gateway, channel):
        router = ConversationRouter(gateway, FakeBindingStore())
        assert router.route(make_message(channel=channel)) == STATELESS

    def test_is_direct_message_channel(self):
        assert is_direct_message_channel("D1") is True
        assert is_direct_message_channel(None) is False


class TestResolveThread:
    @pytest.mark.asyncio
    async def test_existing_binding_is_reused(self, gateway):
        store = FakeBindingStore({"U1": "thread_old"})
        router = ConversationRouter(gateway, store)

        assert await router.resolve_thread("U1") == "thread_old"
        gateway.create_thread.assert_not_awaited()
        assert store.upserts == []

    @pytest.mark.asyncio
    async def test_first_contact_creates_and_persists_thread(self, gateway):
        store = FakeBindingStore()
        router = ConversationRouter(gateway, store)

        assert await router.resolve_thread("U1") == "thread_new"
        assert store.upserts == [("U1", "thread_new")]

    @pytest.mark.asyncio
    async def test_concurrent_first_contact_creates_one_thread(self, gateway):
        async def slow_create():
            await asyncio.sleep(0.01)
            return "thread_new"

        gateway.create_thread = AsyncMock(side_effect=slow_create)
        store = FakeBindingStore()
        router = ConversationRouter(gateway, store)

        results = await asyncio.gather(*(router.resolve_thread("U1") for _ in range(3)))

        assert results == ["thread_new"] * 3
        gateway.create_thread.assert_awaited_once()
        assert store.data == {"U1": "thread_new"}

    @pytest.mark.asyncio
    async def test_failed_thread_creation_releases_user_lock(self, gateway):
        gateway.create_thread = AsyncMock(side_effect=[RuntimeError("openai down"), "thread_retry"])
        store = FakeBindingStore()
        router = ConversationRouter(gateway, store)

        with pytest.raises(RuntimeError):
            await router.resolve_thread("U1")

        assert router._user_locks == {}
        assert store.data == {}

        assert await router.resolve_thread("U1") == "thread_retry"
        assert router._user_locks == {}
        assert store.data == {"U1": "thread_retry"}

    @pytest.mark.asyncio
    async def test_failed_upsert_releases_user_lock(self, gateway):
        store = FakeBindingStore()
        store.upsert = AsyncMock(side_effect=RuntimeError("database is locked"))
        router = ConversationRouter(gateway, store)

        with pytest.raises(RuntimeError):
            await router.resolve_thread("U1")

        assert router._user_locks == {}


class TestAsk:
    @pytest.mark.asyncio
    async def test_dm_goes_to_user_thread(self, gateway):
        router = ConversationRouter(gateway, FakeBindingStore({"U1": "thread_u1"}))

        result = await router.ask(make_message(channel="D1", user="U1"), "hello")

        assert result == "stateful reply"
        gateway.ask_stateful.assert_awaited_once_with("thread_u1", "hello")
        gateway.ask_stateless.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_channel_message_is_stateless(self, gateway):
        store = FakeBindingStore()
        router = ConversationRouter(gateway, store)

        result = await router.ask(make_message(channel="C1", user="U1"), "hello")

        assert result == "stateless reply"
        gateway.ask_stateless.assert_awaited_once_with("hello")
        assert store.data == {}


class TestSqlBindingStore:
    @pytest.mark.asyncio
    async def test_find_missing(self, session_factory):
        store = SqlBindingStore(session_factory)
        assert await store.find("U404") is None

    @pytest.mark.asyncio
    async def test_create_then_find(self, session_factory):
        store = SqlBindingStore(session_factory)

        await store.create("U1", "thread_1")

        assert await store.find("U1") == "thread_1"

    @pytest.mark.asyncio
    async def test_create_twice_fails(self, session_factory):
        store = SqlBindingStore(session_factory)
        await store.create("U1", "thread_1")

        with pytest.raises(Exception):
            await store.create("U1", "thread_2")

    @pytest.mark.asyncio
    async def test_upsert_inserts_and_overwrites(self, session_factory):
        store = SqlBindingStore(session_factory)

        await store.upsert("U1", "thread_1")
        await store.upsert("U1", "thread_2")

        assert await store.find("U1") == "thread_2"
        with session_factory() as db:
            assert db.query(BotUser).count() == 1
