from __future__ import annotations

from estate_chat.application.dto.principal import Principal
from estate_chat.application.exceptions import ForbiddenError, ValidationError
from estate_chat.application.policies.permissions import assert_conversation_participant
from estate_chat.application.uow import UnitOfWork
from estate_chat.domain.entities.conversation import Conversation


async def get_or_create_conversation(
    principal: Principal,
    seller_id: int,
    property_id: int,
    uow: UnitOfWork,
) -> tuple[Conversation, bool]:
    """Return the caller's conversation about a property, creating it on first contact.

    Only buyers start conversations. Returns (conversation, created).
    """
    if not principal.is_buyer:
        raise ForbiddenError("Only buyers can start conversations")
    if seller_id == principal.user_id:
        raise ValidationError("Cannot start a conversation with yourself")

    existing = await uow.conversations.find(principal.user_id, seller_id, property_id)
    if existing is not None:
        return existing, False

    conversation, created = await uow.conversations_w.create_if_not_exists(
        principal.user_id, seller_id, property_id,
    )
    if created:
        await uow.commit()
    return conversation, created


async def list_user_conversations(
    principal: Principal,
    limit: int,
    uow: UnitOfWork,
) -> list[Conversation]:
    return await uow.conversations.list_for_user(principal.user_id, limit=limit)


async def get_conversation(
    conversation_id: int,
    principal: Principal,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await uow.conversations.get_by_id(conversation_id)
    return assert_conversation_participant(conversation, principal.user_id)
