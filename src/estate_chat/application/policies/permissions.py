from __future__ import annotations

from estate_chat.application.exceptions import ForbiddenError, NotFoundError
from estate_chat.domain.entities.conversation import Conversation


def assert_conversation_participant(
    conversation: Conversation | None,
    user_id: int,
) -> Conversation:
    """Raise if conversation doesn't exist or the user is neither its buyer nor its seller."""
    if conversation is None:
        raise NotFoundError("Conversation not found")

    if not conversation.has_participant(user_id):
        raise ForbiddenError("Not a participant of this conversation")

    return conversation
