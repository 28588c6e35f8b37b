from __future__ import annotations

from typing import Protocol

from estate_chat.application.dto.message import NewMessageDTO
from estate_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_messages(
        self,
        conversation_id: int,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]: ...


class MessageWriter(Protocol):
    async def create(self, message: NewMessageDTO) -> Message:
        """Persist a message. The returned record carries the store-assigned id and timestamp.

        Raises StoreError when the write cannot complete; never partially persists.
        """
        ...
