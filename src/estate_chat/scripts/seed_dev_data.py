"""Seed development data: one buyer/seller conversation about a property, with a few messages."""
from __future__ import annotations

import asyncio
import logging

from estate_chat.application.dto.message import NewMessageDTO
from estate_chat.infrastructure.db.uow import uow_scope

logger = logging.getLogger(__name__)

BUYER_ID = 5
SELLER_ID = 9
PROPERTY_ID = 1


async def seed() -> None:
    async with uow_scope() as uow:
        conv, created = await uow.conversations_w.create_if_not_exists(
            BUYER_ID, SELLER_ID, PROPERTY_ID,
        )
        if not created:
            logger.info("Conversation %s already seeded", conv.id)
            return

        messages_data = [
            (BUYER_ID, "Hi! Is this still available?"),
            (SELLER_ID, "Yes, it is. Would you like to schedule a viewing?"),
            (BUYER_ID, "Saturday morning works for me."),
            (SELLER_ID, "Great, see you at 10."),
        ]
        for sender_id, content in messages_data:
            await uow.messages_w.create(
                NewMessageDTO(conversation_id=conv.id, sender_id=sender_id, content=content)
            )

        await uow.commit()
        logger.info("Seeded conversation %s with %d messages", conv.id, len(messages_data))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
