"""WebSocket frame models."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

from estate_chat.domain.entities.message import Message


class InboundChatMessage(BaseModel):
    """Client → Server: one chat message."""

    conversation_id: StrictInt = Field(
        validation_alias=AliasChoices("conversationId", "chatId", "conversation_id"),
    )
    sender_id: StrictInt = Field(validation_alias=AliasChoices("senderId", "sender_id"))
    content: StrictStr


class MessageFrame(BaseModel):
    """Server → Client: a persisted message, sent as forward and as echo."""

    id: int
    conversation_id: int
    sender_id: int
    content: str
    created_at: datetime

    model_config = ConfigDict(
        alias_generator=AliasGenerator(serialization_alias=to_camel),
        from_attributes=True,
    )

    @classmethod
    def dump(cls, message: Message) -> str:
        return cls.model_validate(message).model_dump_json(by_alias=True)


class WsOutbound(BaseModel):
    """Server → Client control frame."""

    type: str  # error | ping
    data: dict[str, Any] = {}
