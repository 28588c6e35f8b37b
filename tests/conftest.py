"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator

import pytest
from sqlalchemy.exc import OperationalError

from estate_chat.application.dto.message import NewMessageDTO
from estate_chat.application.dto.principal import Principal
from estate_chat.application.exceptions import StoreError
from estate_chat.domain.entities.conversation import Conversation
from estate_chat.domain.entities.message import Message
from estate_chat.domain.value_objects.enums import UserRole
from estate_chat.infrastructure.ws.registry import ConnectionRegistry
from estate_chat.infrastructure.ws.relay import MessageRelay

BUYER_ID = 5
SELLER_ID = 9
PROPERTY_ID = 3
CONVERSATION_ID = 42

_BASE_TS = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def buyer_principal() -> Principal:
    return Principal(user_id=BUYER_ID, role=UserRole.BUYER)


@pytest.fixture
def seller_principal() -> Principal:
    return Principal(user_id=SELLER_ID, role=UserRole.SELLER)


def make_conversation(
    *,
    conversation_id: int = CONVERSATION_ID,
    buyer_id: int = BUYER_ID,
    seller_id: int = SELLER_ID,
    property_id: int = PROPERTY_ID,
) -> Conversation:
    return Conversation(
        id=conversation_id,
        buyer_id=buyer_id,
        seller_id=seller_id,
        property_id=property_id,
        created_at=_BASE_TS,
    )


def make_message(
    *,
    message_id: int = 1,
    conversation_id: int = CONVERSATION_ID,
    sender_id: int = BUYER_ID,
    content: str = "hello",
) -> Message:
    return Message(
        id=message_id,
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        created_at=_BASE_TS + timedelta(seconds=message_id),
    )


@dataclass
class FakeConversationReader:
    _store: dict[int, Conversation] = field(default_factory=dict)

    async def get_by_id(self, conversation_id: int) -> Conversation | None:
        return self._store.get(conversation_id)

    async def find(self, buyer_id: int, seller_id: int, property_id: int) -> Conversation | None:
        for c in self._store.values():
            if (c.buyer_id, c.seller_id, c.property_id) == (buyer_id, seller_id, property_id):
                return c
        return None

    async def list_for_user(self, user_id: int, *, limit: int = 20) -> list[Conversation]:
        convs = [c for c in self._store.values() if c.has_participant(user_id)]
        convs.sort(key=lambda c: (c.created_at, c.id), reverse=True)
        return convs[:limit]


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader
    _ids: itertools.count = field(default_factory=lambda: itertools.count(100))

    async def create_if_not_exists(
        self, buyer_id: int, seller_id: int, property_id: int,
    ) -> tuple[Conversation, bool]:
        existing = await self._reader.find(buyer_id, seller_id, property_id)
        if existing is not None:
            return existing, False
        conv = make_conversation(
            conversation_id=next(self._ids),
            buyer_id=buyer_id,
            seller_id=seller_id,
            property_id=property_id,
        )
        self._reader._store[conv.id] = conv
        return conv, True


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def list_messages(
        self, conversation_id: int, *, cursor: str | None = None, limit: int = 50,
    ) -> list[Message]:
        return [m for m in self._messages if m.conversation_id == conversation_id][:limit]


@dataclass
class FakeMessageWriter:
    """Assigns ids and timestamps the way the database does."""

    _reader: FakeMessageReader
    fail: bool = False
    calls: int = 0
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    async def create(self, message: NewMessageDTO) -> Message:
        self.calls += 1
        if self.fail:
            raise StoreError("Could not persist message")
        msg_id = next(self._ids)
        msg = Message(
            id=msg_id,
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            content=message.content,
            created_at=_BASE_TS + timedelta(seconds=msg_id),
        )
        self._reader._messages.append(msg)
        return msg


@dataclass
class SlowMessageWriter(FakeMessageWriter):
    """Holds each insert open for `delay` seconds; the events are safe to wait on from any thread."""

    delay: float = 0.05
    started: threading.Event = field(default_factory=threading.Event)
    finished: threading.Event = field(default_factory=threading.Event)

    async def create(self, message: NewMessageDTO) -> Message:
        self.started.set()
        await asyncio.sleep(self.delay)
        msg = await super().create(message)
        self.finished.set()
        return msg


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    conversations: FakeConversationReader = field(default_factory=FakeConversationReader)
    conversations_w: FakeConversationWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    _committed: bool = False

    def __post_init__(self) -> None:
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        pass


def uow_factory_for(uow: FakeUoW):
    @asynccontextmanager
    async def _scope() -> AsyncIterator[FakeUoW]:
        yield uow

    return _scope


class UnreachableSession:
    """AsyncSession stand-in whose every round-trip fails as if Postgres were down."""

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self) -> OperationalError:
        self.calls += 1
        return OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    async def get(self, *args, **kwargs):
        raise self._fail()

    async def execute(self, *args, **kwargs):
        raise self._fail()


@dataclass
class FakeHandle:
    """Connection handle that records what it was sent."""

    name: str = "conn"
    open: bool = True
    broken: bool = False
    sent: list[str] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.open

    async def send_text(self, data: str) -> None:
        if self.broken:
            raise RuntimeError(f"{self.name}: connection reset")
        self.sent.append(data)


@pytest.fixture
def uow() -> FakeUoW:
    uow = FakeUoW()
    conv = make_conversation()
    uow.conversations._store[conv.id] = conv
    return uow


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def relay(registry: ConnectionRegistry, uow: FakeUoW) -> MessageRelay:
    return MessageRelay(registry, uow_factory_for(uow))
