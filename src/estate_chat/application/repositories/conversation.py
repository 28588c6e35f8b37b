from __future__ import annotations

from typing import Protocol

from estate_chat.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: int) -> Conversation | None: ...

    async def find(
        self, buyer_id: int, seller_id: int, property_id: int,
    ) -> Conversation | None:
        """Find the conversation for a (buyer, seller, property) triple."""
        ...

    async def list_for_user(
        self, user_id: int, *, limit: int = 20
    ) -> list[Conversation]:
        """Conversations where the user is the buyer or the seller, newest first."""
        ...


class ConversationWriter(Protocol):
    async def create_if_not_exists(
        self, buyer_id: int, seller_id: int, property_id: int,
    ) -> tuple[Conversation, bool]:
        """Insert conversation. Return (conversation, created). On conflict → return existing."""
        ...
