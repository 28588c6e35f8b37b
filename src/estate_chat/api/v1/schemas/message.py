from __future__ import annotations

from datetime import datetime

from estate_chat.api.v1.schemas.common import CamelModel


class SendMessageRequest(CamelModel):
    content: str


class MessageResponse(CamelModel):
    id: int
    conversation_id: int
    sender_id: int
    content: str
    created_at: datetime
