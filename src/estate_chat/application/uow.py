from __future__ import annotations

from typing import AsyncContextManager, Callable, Protocol

from estate_chat.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from estate_chat.application.repositories.message import MessageReader, MessageWriter


class UnitOfWork(Protocol):
    conversations: ConversationReader
    conversations_w: ConversationWriter
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UoWFactory = Callable[[], AsyncContextManager[UnitOfWork]]
