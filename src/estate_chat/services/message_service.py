from __future__ import annotations

from estate_chat.application.dto.message import NewMessageDTO
from estate_chat.application.policies.message import validate_content
from estate_chat.application.policies.permissions import assert_conversation_participant
from estate_chat.application.uow import UnitOfWork
from estate_chat.config import settings
from estate_chat.domain.entities.conversation import Conversation
from estate_chat.domain.entities.message import Message


async def send_message(
    conversation_id: int,
    sender_id: int,
    content: str | None,
    uow: UnitOfWork,
) -> tuple[Message, Conversation]:
    """Persist a message from one of the conversation's two participants.

    The conversation is resolved before the write, so nothing is stored for an
    unknown conversation or a sender who is not its buyer or seller.
    Returns the persisted record together with the resolved conversation.
    """
    content = validate_content(content, settings.MESSAGE_MAX_LENGTH)

    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_conversation_participant(conversation, sender_id)

    msg = await uow.messages_w.create(
        NewMessageDTO(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
        )
    )
    await uow.commit()

    return msg, conversation


async def list_messages(
    conversation_id: int,
    user_id: int,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_conversation_participant(conversation, user_id)
    return await uow.messages.list_messages(
        conversation_id, cursor=cursor, limit=limit,
    )
